from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Union


class OrderDraft(BaseModel):
    """Order as submitted by the kiosk, before id/createdAt/pending are set"""
    name: str = Field(..., min_length=3)
    phone: str = Field(..., min_length=10, max_length=10)
    tableNumber: Union[str, int]
    items: List[Any] = Field(..., min_length=1)  # [{"name": "Tea", "qty": 1}]
    totalPrice: Union[int, float] = Field(..., ge=0)  # stored as submitted, 20 stays 20

    class Config:
        extra = "allow"

    @field_validator("tableNumber")
    @classmethod
    def table_number_not_blank(cls, value):
        if isinstance(value, str) and not value.strip():
            raise ValueError("must not be empty")
        return value


class Order(OrderDraft):
    id: int
    createdAt: str
    pending: bool = True


class OrderPendingUpdate(BaseModel):
    pending: bool
