import asyncio
import inspect
import json
import logging
import os
import tempfile
import weakref
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar, Union

from fastapi.concurrency import run_in_threadpool

from core.errors import StorageFormatError, StorageReadError, StorageWriteError

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
T = TypeVar("T")
Mutation = Callable[
    [List[Record]],
    Union[Tuple[List[Record], T], Awaitable[Tuple[List[Record], T]]],
]

# One lock per resolved file path, shared by every store opened on it.
# Held weakly: a lock lives only as long as some store still uses it, so
# stores created on a later event loop (tests, app restarts) get a fresh one.
_locks: "weakref.WeakValueDictionary[Path, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(path: Path) -> asyncio.Lock:
    lock = _locks.get(path)
    if lock is None:
        lock = _locks[path] = asyncio.Lock()
    return lock


class RecordStore:
    """Read-modify-write access to one JSON array of records on disk.

    Every mutation goes through ``with_exclusive_access`` which holds the
    file's lock across load, mutation and save, so cycles on the same file
    never overlap. Saves go to a temporary file that is renamed over the
    target, so readers only ever see a complete array.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).resolve()
        self._lock = _lock_for(self.path)

    def __repr__(self) -> str:
        return f"RecordStore({str(self.path)!r})"

    def ensure_exists(self, seed: Iterable[Record] = ()) -> None:
        """Create the collection file with ``seed`` if it is not there yet."""
        if self.path.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._write(list(seed))
        logger.info("Created collection file %s", self.path)

    async def load(self) -> List[Record]:
        return await run_in_threadpool(self._read)

    async def save(self, records: List[Record]) -> None:
        await run_in_threadpool(self._write, records)

    async def snapshot(self) -> List[Record]:
        """Load the current records without overlapping an in-flight save."""
        async with self._lock:
            return await self.load()

    async def with_exclusive_access(
        self, fn: Mutation, rollback: Optional[Callable[[], Any]] = None
    ) -> T:
        """Run one load -> ``fn`` -> save cycle under the file lock.

        ``fn`` receives the loaded records and returns ``(new_records,
        result)``; it may be a coroutine function. If it raises, nothing is
        written and the exception propagates as is.

        ``rollback`` undoes side effects ``fn`` had outside the file. It runs
        still holding the lock when the save fails, before the
        ``StorageWriteError`` propagates.
        """
        async with self._lock:
            records = await self.load()
            outcome = fn(records)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            new_records, result = outcome
            try:
                await self.save(new_records)
            except StorageWriteError:
                if rollback is not None:
                    undone = rollback()
                    if inspect.isawaitable(undone):
                        await undone
                raise
            return result

    def _read(self) -> List[Record]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                raw = fh.read()
        except OSError as exc:
            logger.error("Failed to read %s: %s", self.path, exc)
            raise StorageReadError(f"Failed to read {self.path.name}") from exc

        try:
            data = json.loads(raw)
        except ValueError as exc:
            logger.error("Malformed JSON in %s: %s", self.path, exc)
            raise StorageFormatError(f"{self.path.name} is not valid JSON") from exc

        if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
            raise StorageFormatError(f"{self.path.name} must hold an array of objects")
        return data

    def _write(self, records: List[Record]) -> None:
        try:
            payload = json.dumps(records, indent=2)
        except (TypeError, ValueError) as exc:
            raise StorageWriteError(f"Records for {self.path.name} are not serializable") from exc

        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
        except OSError as exc:
            logger.error("Failed to stage write for %s: %s", self.path, exc)
            raise StorageWriteError(f"Failed to write to {self.path.name}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
        except OSError as exc:
            logger.error("Failed to write %s: %s", self.path, exc)
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise StorageWriteError(f"Failed to write to {self.path.name}") from exc
