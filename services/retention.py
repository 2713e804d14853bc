"""Per-instrument storage policies for accepted observations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Protocol

from models.records import Observation, newest_first

DEFAULT_WINDOW_SIZE = 10


class RetentionKind(str, Enum):
    """Storage policy an aggregation strategy needs for its instrument."""

    full_history = "full_history"
    bounded_window = "bounded_window"


class RetentionBucket(Protocol):
    """Observations retained for a single instrument."""

    kind: RetentionKind

    def store(self, observation: Observation) -> bool: ...

    @property
    def observations(self) -> tuple[Observation, ...]: ...

    def values(self) -> list[float]: ...

    def __len__(self) -> int: ...

    def __iter__(self) -> Iterator[Observation]: ...


class FullHistoryBucket:
    """Keeps every accepted observation in arrival order."""

    kind = RetentionKind.full_history

    def __init__(self) -> None:
        self._items: list[Observation] = []

    def store(self, observation: Observation) -> bool:
        self._items.append(observation)
        return True

    @property
    def observations(self) -> tuple[Observation, ...]:
        return tuple(self._items)

    def values(self) -> list[float]:
        return [item.value for item in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Observation]:
        return iter(self._items)


class BoundedWindowBucket:
    """Keeps only the ``window_size`` most recently dated observations.

    Entries are held newest first. Observations sharing a date keep arrival
    order, and once the window is full an observation must be strictly newer
    than the oldest entry to displace it.
    """

    kind = RetentionKind.bounded_window

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE) -> None:
        if window_size <= 0:
            raise ValueError("Window size must be a positive integer.")
        self.window_size = window_size
        self._items: list[Observation] = []

    def store(self, observation: Observation) -> bool:
        if len(self._items) < self.window_size:
            self._items.append(observation)
            newest_first(self._items)
            return True

        if observation.date <= self._items[-1].date:
            return False

        self._items[-1] = observation
        newest_first(self._items)
        return True

    @property
    def oldest(self) -> Observation | None:
        return self._items[-1] if self._items else None

    @property
    def observations(self) -> tuple[Observation, ...]:
        return tuple(self._items)

    def values(self) -> list[float]:
        return [item.value for item in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Observation]:
        return iter(self._items)


@dataclass(frozen=True)
class RetentionPolicy:
    """Builds buckets for a retention kind."""

    window_size: int = DEFAULT_WINDOW_SIZE

    def __post_init__(self) -> None:
        if self.window_size <= 0:
            raise ValueError("Window size must be a positive integer.")

    def new_bucket(self, kind: RetentionKind) -> RetentionBucket:
        if kind is RetentionKind.full_history:
            return FullHistoryBucket()
        return BoundedWindowBucket(self.window_size)
