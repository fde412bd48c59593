from pydantic import BaseModel
from typing import Any, Optional


class ProductDraft(BaseModel):
    """Product fields sent by the admin panel; anything extra is kept as is."""
    name: Any = None
    price: Any = None
    category: Any = None
    enabled: Optional[bool] = None

    class Config:
        extra = "allow"


class Product(ProductDraft):
    id: int
    image: str
    enabled: bool = True
