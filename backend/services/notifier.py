import logging
from typing import Any, Dict

from utils.broadcast import MENU_UPDATED, NEW_ORDER, Broadcaster

logger = logging.getLogger(__name__)


class ChangeNotifier:
    """Publish-only view of the broadcaster handed to the services."""

    def __init__(self, broadcaster: Broadcaster):
        self._broadcaster = broadcaster

    def notify_catalog_changed(self) -> None:
        """Tell observers to re-fetch the product list."""
        count = self._broadcaster.publish(MENU_UPDATED)
        logger.debug("menuUpdated queued for %d observers", count)

    def notify_order_created(self, order: Dict[str, Any]) -> None:
        count = self._broadcaster.publish(NEW_ORDER, order)
        logger.debug("newOrder %s queued for %d observers", order.get("id"), count)
