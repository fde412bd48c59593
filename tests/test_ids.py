from core.ids import IdAllocator


def test_ids_are_epoch_milliseconds():
    allocator = IdAllocator(clock=lambda: 1700000000.5)
    assert allocator.next_id([]) == 1700000000500


def test_same_millisecond_still_gives_increasing_ids():
    allocator = IdAllocator(clock=lambda: 1700000000.0)
    ids = [allocator.next_id([]) for _ in range(5)]
    assert ids == sorted(set(ids))
    assert len(ids) == 5


def test_ids_skip_past_existing_records():
    allocator = IdAllocator(clock=lambda: 1.0)
    records = [{"id": 5000}, {"id": 4200}, {"name": "no id"}]
    assert allocator.next_id(records) == 5001
