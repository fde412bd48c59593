import logging
from typing import Any, Dict, List, Optional, Tuple

from core.errors import AssetCleanupError, NotFoundError
from core.ids import IdAllocator
from core.record_store import Record, RecordStore
from models.product import ProductDraft
from services.assets import AssetStore
from services.notifier import ChangeNotifier

logger = logging.getLogger(__name__)


def _find(products: List[Record], product_id: int) -> int:
    for index, product in enumerate(products):
        if product.get("id") == product_id:
            return index
    raise NotFoundError("Product not found")


class ProductCatalog:
    """CRUD over the products collection.

    Owns the product images: uploads handed to ``create``/``update`` are
    released again if the operation fails, and images of deleted or
    replaced products are removed.
    """

    def __init__(self, store: RecordStore, assets: AssetStore, notifier: ChangeNotifier):
        self.store = store
        self.assets = assets
        self.notifier = notifier
        self._ids = IdAllocator()

    async def list(self) -> List[Record]:
        return await self.store.snapshot()

    async def create(self, draft: ProductDraft, asset_ref: str) -> Record:
        def add(products: List[Record]) -> Tuple[List[Record], Record]:
            product = draft.model_dump(exclude_unset=True)
            product["id"] = self._ids.next_id(products)
            product["image"] = asset_ref
            if product.get("enabled") is None:
                product["enabled"] = True
            products.append(product)
            return products, product

        try:
            product = await self.store.with_exclusive_access(add)
        except Exception:
            await self.assets.discard(asset_ref)
            raise
        logger.info("Created product %s", product["id"])
        self.notifier.notify_catalog_changed()
        return product

    async def update(
        self, product_id: int, draft: ProductDraft, new_asset_ref: Optional[str] = None
    ) -> Record:
        def replace(products: List[Record]) -> Tuple[List[Record], Tuple[Record, Optional[str]]]:
            index = _find(products, product_id)
            existing = products[index]
            product = draft.model_dump(exclude_unset=True)
            product["id"] = product_id
            product["image"] = new_asset_ref or existing.get("image")
            if product.get("enabled") is None:
                product["enabled"] = existing.get("enabled", True)
            products[index] = product
            replaced = existing.get("image") if new_asset_ref else None
            return products, (product, replaced)

        try:
            product, old_ref = await self.store.with_exclusive_access(replace)
        except Exception:
            if new_asset_ref:
                await self.assets.discard(new_asset_ref)
            raise

        if old_ref and old_ref != new_asset_ref:
            await self.assets.discard(old_ref)
        logger.info("Updated product %s", product_id)
        self.notifier.notify_catalog_changed()
        return product

    async def toggle_enabled(self, product_id: int) -> Record:
        def toggle(products: List[Record]) -> Tuple[List[Record], Record]:
            product = products[_find(products, product_id)]
            product["enabled"] = not product.get("enabled", True)
            return products, product

        product = await self.store.with_exclusive_access(toggle)
        logger.info("Product %s enabled=%s", product_id, product["enabled"])
        self.notifier.notify_catalog_changed()
        return product

    async def delete(self, product_id: int) -> None:
        """Remove a product and its image.

        The image is moved aside inside the cycle and only deleted once the
        shorter product list is on disk; a failed save moves it back, so a
        listed product never points at a missing file.
        """
        staged: Dict[str, Any] = {}

        async def remove(products: List[Record]) -> Tuple[List[Record], None]:
            product = products[_find(products, product_id)]
            image = product.get("image")
            if image:
                try:
                    path = await self.assets.stage(image)
                except (OSError, ValueError) as exc:
                    logger.error("Failed to delete image file for product %s: %s", product_id, exc)
                    raise AssetCleanupError("Failed to delete image file") from exc
                if path is not None:
                    staged["ref"], staged["path"] = image, path
            remaining = [p for p in products if p.get("id") != product_id]
            return remaining, None

        async def put_image_back():
            if staged:
                await self.assets.restore(staged["ref"], staged["path"])

        await self.store.with_exclusive_access(remove, rollback=put_image_back)
        if staged:
            await self.assets.purge(staged["path"])
        logger.info("Deleted product %s", product_id)
        self.notifier.notify_catalog_changed()
