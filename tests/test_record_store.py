import asyncio
import gc
import json
import os

import pytest

from core.errors import StorageFormatError, StorageReadError, StorageWriteError
from core import record_store
from core.record_store import RecordStore


@pytest.fixture
def store(tmp_path):
    store = RecordStore(tmp_path / "records.json")
    store.ensure_exists([{"id": 1, "n": 0}])
    return store


def test_ensure_exists_creates_file_and_keeps_existing(tmp_path):
    path = tmp_path / "nested" / "orders.json"
    store = RecordStore(path)
    store.ensure_exists()
    assert json.loads(path.read_text()) == []

    path.write_text('[{"id": 7}]')
    store.ensure_exists([{"id": 1}])
    assert json.loads(path.read_text()) == [{"id": 7}]


def test_load_missing_file_is_read_error(tmp_path):
    with pytest.raises(StorageReadError):
        asyncio.run(RecordStore(tmp_path / "missing.json").load())


@pytest.mark.parametrize("content", ["{not json", '{"id": 1}', "[1, 2]"])
def test_load_rejects_anything_but_array_of_objects(tmp_path, content):
    path = tmp_path / "bad.json"
    path.write_text(content)
    with pytest.raises(StorageFormatError):
        asyncio.run(RecordStore(path).load())


def test_save_writes_indented_array(store):
    asyncio.run(store.save([{"id": 1}, {"id": 2}]))
    assert store.path.read_text() == json.dumps([{"id": 1}, {"id": 2}], indent=2)


def test_failed_save_keeps_previous_content(store, monkeypatch):
    before = store.path.read_bytes()

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", broken_replace)
    with pytest.raises(StorageWriteError):
        asyncio.run(store.save([{"id": 2}]))

    assert store.path.read_bytes() == before
    assert [p.name for p in store.path.parent.iterdir()] == [store.path.name]


def test_unserializable_records_are_write_error(store):
    with pytest.raises(StorageWriteError):
        asyncio.run(store.save([{"id": object()}]))


def test_exclusive_access_persists_and_returns_result(store):
    def add(records):
        records.append({"id": 2})
        return records, "added"

    assert asyncio.run(store.with_exclusive_access(add)) == "added"
    assert json.loads(store.path.read_text()) == [{"id": 1, "n": 0}, {"id": 2}]


def test_exclusive_access_accepts_coroutine_functions(store):
    async def add(records):
        await asyncio.sleep(0)
        return records + [{"id": 3}], len(records)

    assert asyncio.run(store.with_exclusive_access(add)) == 1
    assert len(json.loads(store.path.read_text())) == 2


def test_failure_inside_mutation_skips_save_and_releases_lock(store):
    before = store.path.read_bytes()

    def explode(records):
        records.clear()
        raise LookupError("nope")

    async def scenario():
        with pytest.raises(LookupError):
            await store.with_exclusive_access(explode)
        assert not store._lock.locked()
        return await store.snapshot()

    assert asyncio.run(scenario()) == [{"id": 1, "n": 0}]
    assert store.path.read_bytes() == before


def test_cycles_on_same_file_never_overlap(store):
    async def bump(records):
        seen = records[0]["n"]
        # yield to the loop in the middle of the cycle
        await asyncio.sleep(0)
        records[0]["n"] = seen + 1
        return records, seen

    async def scenario():
        return await asyncio.gather(*(store.with_exclusive_access(bump) for _ in range(25)))

    seen = asyncio.run(scenario())
    assert sorted(seen) == list(range(25))
    assert json.loads(store.path.read_text())[0]["n"] == 25


def test_stores_on_same_path_share_one_lock(tmp_path):
    first = RecordStore(tmp_path / "shared.json")
    second = RecordStore(str(tmp_path / "." / "shared.json"))
    other = RecordStore(tmp_path / "other.json")
    assert first._lock is second._lock
    assert first._lock is not other._lock


def test_rollback_runs_only_when_save_fails(store, monkeypatch):
    calls = []

    def add(records):
        calls.append("mutate")
        return records + [{"id": 2}], None

    async def undo():
        calls.append("rollback")

    asyncio.run(store.with_exclusive_access(add, rollback=undo))
    assert calls == ["mutate"]

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", broken_replace)
    with pytest.raises(StorageWriteError):
        asyncio.run(store.with_exclusive_access(add, rollback=undo))
    assert calls == ["mutate", "mutate", "rollback"]
    assert not store._lock.locked()


def test_lock_registry_forgets_unused_paths(tmp_path):
    path = tmp_path / "transient.json"
    store = RecordStore(path)
    assert path.resolve() in record_store._locks

    del store
    gc.collect()
    assert path.resolve() not in record_store._locks
