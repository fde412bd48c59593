import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from pydantic import ValidationError as PydanticValidationError

from core.errors import NotFoundError, ValidationError
from core.ids import IdAllocator
from core.record_store import Record, RecordStore
from models.order import OrderDraft
from services.notifier import ChangeNotifier

logger = logging.getLogger(__name__)


def _find(orders: List[Record], order_id: int) -> int:
    for index, order in enumerate(orders):
        if order.get("id") == order_id:
            return index
    raise NotFoundError("Order not found")


def validate_order(payload: Any) -> OrderDraft:
    """Check a submitted order, naming the first offending field on failure"""
    if not isinstance(payload, dict):
        raise ValidationError(None, "Order must be a JSON object")
    try:
        return OrderDraft.model_validate(payload)
    except PydanticValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or None
        raise ValidationError(field, error["msg"]) from exc


class OrderLedger:
    def __init__(self, store: RecordStore, notifier: ChangeNotifier):
        self.store = store
        self.notifier = notifier
        self._ids = IdAllocator()

    async def list(self) -> List[Record]:
        return await self.store.snapshot()

    async def create(self, payload: Dict[str, Any]) -> Record:
        """Validate, stamp and persist a new order, then tell the kitchen."""
        draft = validate_order(payload)

        def add(orders: List[Record]) -> Tuple[List[Record], Record]:
            order = draft.model_dump(mode="json")
            order["id"] = self._ids.next_id(orders)
            created = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
            order["createdAt"] = created.replace("+00:00", "Z")
            order["pending"] = True
            orders.append(order)
            return orders, order

        order = await self.store.with_exclusive_access(add)
        logger.info("Order %s placed for table %s", order["id"], order["tableNumber"])
        self.notifier.notify_order_created(order)
        return order

    async def set_pending(self, order_id: int, pending: bool) -> Record:
        def mark(orders: List[Record]) -> Tuple[List[Record], Record]:
            order = orders[_find(orders, order_id)]
            order["pending"] = pending
            return orders, order

        order = await self.store.with_exclusive_access(mark)
        logger.info("Order %s pending=%s", order_id, pending)
        return order

    async def delete(self, order_id: int) -> None:
        def remove(orders: List[Record]) -> Tuple[List[Record], None]:
            del orders[_find(orders, order_id)]
            return orders, None

        await self.store.with_exclusive_access(remove)
        logger.info("Deleted order %s", order_id)
