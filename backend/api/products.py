from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from typing import Optional
import json

from api.deps import get_catalog
from core.errors import ValidationError
from models.product import Product, ProductDraft
from models.schemas import ErrorResponse, MessageResponse
from services.catalog import ProductCatalog

router = APIRouter()

ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def parse_product(raw: str) -> ProductDraft:
    """The admin panel sends product fields as a JSON string form field"""
    try:
        return ProductDraft.model_validate(json.loads(raw))
    except PydanticValidationError as exc:
        raise ValidationError("product", exc.errors()[0]["msg"]) from exc
    except ValueError as exc:
        raise ValidationError("product", "must be valid JSON") from exc


async def store_upload(catalog: ProductCatalog, image: UploadFile) -> str:
    data = await image.read()
    return await catalog.assets.save(data, image.filename or "")


@router.get("/products")
async def list_products(catalog: ProductCatalog = Depends(get_catalog)):
    return await catalog.list()


@router.post(
    "/products",
    response_model=Product,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def create_product(
    product: str = Form(...),
    image: UploadFile = File(...),
    catalog: ProductCatalog = Depends(get_catalog),
):
    draft = parse_product(product)
    image_ref = await store_upload(catalog, image)
    return await catalog.create(draft, image_ref)


@router.put("/products/{product_id}", responses=ERRORS)
async def update_product(
    product_id: int,
    product: str = Form(...),
    image: Optional[UploadFile] = File(None),
    catalog: ProductCatalog = Depends(get_catalog),
):
    """Replace a product's fields; a new image replaces and removes the old one"""
    draft = parse_product(product)
    image_ref = await store_upload(catalog, image) if image is not None else None
    return await catalog.update(product_id, draft, image_ref)


@router.patch("/products/{product_id}", responses=ERRORS)
async def toggle_product(product_id: int, catalog: ProductCatalog = Depends(get_catalog)):
    """Enable/disable a product on the kiosk menu"""
    return await catalog.toggle_enabled(product_id)


@router.delete("/products/{product_id}", response_model=MessageResponse, responses=ERRORS)
async def delete_product(product_id: int, catalog: ProductCatalog = Depends(get_catalog)):
    await catalog.delete(product_id)
    return {"message": "Product deleted successfully"}
