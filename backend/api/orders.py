from fastapi import APIRouter, Body, Depends, status
from typing import Any

from api.deps import get_ledger
from models.order import Order, OrderPendingUpdate
from models.schemas import ErrorResponse, SuccessResponse
from services.orders import OrderLedger

router = APIRouter()

ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.get("/orders")
async def list_orders(ledger: OrderLedger = Depends(get_ledger)):
    """Kitchen/admin view of every order"""
    return await ledger.list()


@router.post(
    "/orders",
    response_model=Order,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def create_order(payload: Any = Body(...), ledger: OrderLedger = Depends(get_ledger)):
    """Kiosk checkout; validated by the ledger so errors name the bad field"""
    return await ledger.create(payload)


@router.put("/orders/{order_id}", responses=ERRORS)
async def update_order_status(
    order_id: int,
    update: OrderPendingUpdate,
    ledger: OrderLedger = Depends(get_ledger),
):
    return await ledger.set_pending(order_id, update.pending)


@router.delete("/orders/{order_id}", response_model=SuccessResponse, responses=ERRORS)
async def delete_order(order_id: int, ledger: OrderLedger = Depends(get_ledger)):
    await ledger.delete(order_id)
    return {"success": True}
