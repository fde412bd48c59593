import asyncio
import logging
from typing import Any, Dict, FrozenSet, Iterable, Optional, Set

logger = logging.getLogger(__name__)

NEW_ORDER = "newOrder"
MENU_UPDATED = "menuUpdated"
ALL_TOPICS = frozenset({NEW_ORDER, MENU_UPDATED})


class Subscription:
    """One observer's mailbox: the topics it listens to and a bounded queue."""

    def __init__(self, topics: FrozenSet[str], maxsize: int):
        self.topics = topics
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    async def next_message(self) -> Dict[str, Any]:
        return await self.queue.get()


class Broadcaster:
    """Fire-and-forget fan-out of events to the current subscribers"""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscriptions: Set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, topics: Optional[Iterable[str]] = None) -> Subscription:
        wanted = frozenset(topics) if topics is not None else ALL_TOPICS
        unknown = wanted - ALL_TOPICS
        if unknown:
            raise ValueError(f"Unknown topics: {sorted(unknown)}")
        subscription = Subscription(wanted, self.queue_size)
        self._subscriptions.add(subscription)
        logger.info("Observer subscribed to %s (%d connected)", sorted(wanted), self.subscriber_count)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.discard(subscription)
        logger.info("Observer unsubscribed (%d connected)", self.subscriber_count)

    def publish(self, event: str, data: Any = None) -> int:
        """Queue ``event`` for every interested subscriber without waiting.

        Returns the number of subscribers the message was queued for.
        """
        message = {"event": event, "data": data}
        delivered = 0
        for subscription in list(self._subscriptions):
            if event not in subscription.topics:
                continue
            try:
                subscription.queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Dropping %s for a slow observer", event)
        return delivered
