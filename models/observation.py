from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

# date key ("YYYYMMDD") → measurement, possibly a sentinel or malformed value
RawObservationSeries = dict[str, Any]


@dataclass(frozen=True)
class CleanedSeries:
    """Chronologically ordered valid observations for one variable."""

    points: tuple[tuple[str, float], ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[tuple[str, float]]:
        return iter(self.points)

    def __bool__(self) -> bool:
        return bool(self.points)

    @property
    def values(self) -> list[float]:
        return [value for _, value in self.points]

    @property
    def date_keys(self) -> list[str]:
        return [key for key, _ in self.points]
