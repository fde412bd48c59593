import time
from typing import Any, Dict, Iterable, Optional


class IdAllocator:
    """Hands out time-derived integer ids that never repeat in a collection.

    Ids are epoch milliseconds, bumped past both the last id issued here and
    the largest id already stored, so two creates in the same millisecond
    still get distinct, increasing ids. Call ``next_id`` only while holding
    the collection's exclusive access.
    """

    def __init__(self, clock=None):
        self._clock = clock or time.time
        self._last: Optional[int] = None

    def next_id(self, records: Iterable[Dict[str, Any]]) -> int:
        existing = [r["id"] for r in records if isinstance(r.get("id"), int)]
        candidate = int(self._clock() * 1000)
        if existing:
            candidate = max(candidate, max(existing) + 1)
        if self._last is not None:
            candidate = max(candidate, self._last + 1)
        self._last = candidate
        return candidate
