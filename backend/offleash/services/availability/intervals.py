# backend/offleash/services/availability/intervals.py
"""
Half-open [start, end) interval algebra over datetimes.

All functions are pure: they never mutate their inputs.
"""

from dataclasses import dataclass
from datetime import datetime
from functools import reduce
from typing import Iterable


@dataclass(frozen=True, order=True)
class Interval:
    start: datetime
    end: datetime

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def is_empty(self) -> bool:
        return self.end <= self.start

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end


def subtract(intervals: Iterable[Interval], cut: Interval) -> list[Interval]:
    """Remove `cut` from every interval. Zero-length pieces are dropped."""
    result: list[Interval] = []
    for iv in intervals:
        if not iv.overlaps(cut):
            if not iv.is_empty():
                result.append(iv)
            continue
        if iv.start < cut.start:
            result.append(Interval(iv.start, cut.start))
        if cut.end < iv.end:
            result.append(Interval(cut.end, iv.end))
    return result


def subtract_all(intervals: Iterable[Interval], cuts: Iterable[Interval]) -> list[Interval]:
    """Fold `subtract` over cuts. The result does not depend on cut order."""
    return sorted(reduce(subtract, cuts, list(intervals)))


def merge(intervals: Iterable[Interval]) -> list[Interval]:
    """Union of intervals, sorted; touching intervals are joined."""
    merged: list[Interval] = []
    for iv in sorted(i for i in intervals if not i.is_empty()):
        if merged and iv.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, iv.end))
        else:
            merged.append(iv)
    return merged


def clip(iv: Interval, window: Interval) -> Interval | None:
    start, end = max(iv.start, window.start), min(iv.end, window.end)
    if end <= start:
        return None
    return Interval(start, end)


def total_minutes(intervals: Iterable[Interval]) -> int:
    return sum(iv.minutes for iv in intervals)
