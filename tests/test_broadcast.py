import asyncio

import pytest

from services.notifier import ChangeNotifier
from utils.broadcast import MENU_UPDATED, NEW_ORDER, Broadcaster


def test_publish_reaches_every_interested_subscriber():
    async def scenario():
        broadcaster = Broadcaster()
        everything = broadcaster.subscribe()
        kitchen = broadcaster.subscribe([NEW_ORDER])
        kiosk = broadcaster.subscribe([MENU_UPDATED])

        assert broadcaster.publish(NEW_ORDER, {"id": 1}) == 2
        assert broadcaster.publish(MENU_UPDATED) == 2

        assert await everything.next_message() == {"event": NEW_ORDER, "data": {"id": 1}}
        assert await everything.next_message() == {"event": MENU_UPDATED, "data": None}
        assert await kitchen.next_message() == {"event": NEW_ORDER, "data": {"id": 1}}
        assert kitchen.queue.empty()
        assert await kiosk.next_message() == {"event": MENU_UPDATED, "data": None}

    asyncio.run(scenario())


def test_slow_subscriber_drops_events_instead_of_blocking():
    async def scenario():
        broadcaster = Broadcaster(queue_size=1)
        slow = broadcaster.subscribe()
        fast = broadcaster.subscribe()

        broadcaster.publish(MENU_UPDATED)
        await fast.next_message()
        assert broadcaster.publish(MENU_UPDATED) == 1
        assert slow.queue.qsize() == 1

    asyncio.run(scenario())


def test_no_history_for_late_or_departed_subscribers():
    async def scenario():
        broadcaster = Broadcaster()
        early = broadcaster.subscribe()
        broadcaster.publish(NEW_ORDER, {"id": 1})
        broadcaster.unsubscribe(early)
        late = broadcaster.subscribe()

        assert broadcaster.publish(MENU_UPDATED) == 1
        assert await late.next_message() == {"event": MENU_UPDATED, "data": None}
        assert early.queue.qsize() == 1
        assert broadcaster.subscriber_count == 1

    asyncio.run(scenario())


def test_unknown_topic_is_rejected():
    with pytest.raises(ValueError):
        Broadcaster().subscribe(["orderDeleted"])


def test_notifier_event_shapes():
    async def scenario():
        broadcaster = Broadcaster()
        subscription = broadcaster.subscribe()
        notifier = ChangeNotifier(broadcaster)

        notifier.notify_catalog_changed()
        notifier.notify_order_created({"id": 9, "pending": True})

        assert await subscription.next_message() == {"event": "menuUpdated", "data": None}
        assert await subscription.next_message() == {"event": "newOrder", "data": {"id": 9, "pending": True}}

    asyncio.run(scenario())
