"""Instrument name to retention bucket mapping owned by one engine."""

from __future__ import annotations

from typing import Callable, Dict, Iterator

from services.retention import RetentionBucket

DEFAULT_CAPACITY_HINT = 10_000


class InstrumentRegistry:
    """Lazily creates one bucket per instrument name.

    ``capacity_hint`` records the expected number of instruments for sizing
    diagnostics. The mapping keeps growing past it.
    """

    def __init__(self, capacity_hint: int = DEFAULT_CAPACITY_HINT) -> None:
        self.capacity_hint = max(capacity_hint, 0)
        self._buckets: Dict[str, RetentionBucket] = {}

    def bucket_for(
        self, name: str, factory: Callable[[], RetentionBucket]
    ) -> RetentionBucket:
        bucket = self._buckets.get(name)
        if bucket is None:
            bucket = factory()
            self._buckets[name] = bucket
        return bucket

    def get(self, name: str) -> RetentionBucket | None:
        return self._buckets.get(name)

    def names(self) -> list[str]:
        return list(self._buckets)

    def __contains__(self, name: object) -> bool:
        return name in self._buckets

    def __len__(self) -> int:
        return len(self._buckets)

    def __iter__(self) -> Iterator[str]:
        return iter(self._buckets)
