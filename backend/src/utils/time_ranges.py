"""
Time-range algebra over half-open intervals.

Pure functions, no database access. A range list is "normalized" when it is
sorted by start and no two ranges overlap; every function that takes a range
list expects a normalized list and returns one.

Removing a range from a normalized list handles five cases per input range:
- no overlap: kept unchanged
- complete containment: dropped
- removal strictly inside: split in two
- removal covers the start only: truncated from the left
- removal covers the end only: truncated from the right
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional


@dataclass(frozen=True, order=True)
class TimeRange:
    """Half-open interval [start, end). Always non-empty."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if not self.start < self.end:
            raise ValueError(f"TimeRange start must be before end: {self.start} >= {self.end}")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "TimeRange") -> bool:
        return ranges_overlap(self.start, self.end, other.start, other.end)

    def contains(self, other: "TimeRange") -> bool:
        return self.start <= other.start and other.end <= self.end


def ranges_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """
    Check if two half-open intervals overlap.

    Back-to-back intervals (one ends exactly when the other starts) do not.
    """
    return start1 < end2 and start2 < end1


def subtract_range(ranges: Iterable[TimeRange], removal: TimeRange) -> List[TimeRange]:
    """
    Remove ``removal`` from a normalized list of ranges.

    Args:
        ranges: Normalized (sorted, disjoint) ranges
        removal: Range to take out

    Returns:
        New normalized list covering exactly ``ranges`` minus ``removal``
    """
    result: List[TimeRange] = []

    for current in ranges:
        if current.end <= removal.start or current.start >= removal.end:
            result.append(current)
            continue

        if removal.start <= current.start and removal.end >= current.end:
            continue

        if removal.start > current.start and removal.end < current.end:
            result.append(TimeRange(current.start, removal.start))
            result.append(TimeRange(removal.end, current.end))
            continue

        if removal.start <= current.start:
            result.append(TimeRange(removal.end, current.end))
        else:
            result.append(TimeRange(current.start, removal.start))

    return result


def subtract_ranges(ranges: Iterable[TimeRange], removals: Iterable[TimeRange]) -> List[TimeRange]:
    """Apply subtract_range once per removal, each building on the previous result."""
    result = list(ranges)
    for removal in removals:
        if not result:
            break
        result = subtract_range(result, removal)
    return result


def merge_ranges(ranges: Iterable[TimeRange]) -> List[TimeRange]:
    """
    Normalize an arbitrary collection of ranges.

    Overlapping and touching ranges are coalesced; the result is sorted.
    """
    merged: List[TimeRange] = []
    for current in sorted(ranges):
        if merged and current.start <= merged[-1].end:
            last = merged[-1]
            if current.end > last.end:
                merged[-1] = TimeRange(last.start, current.end)
            continue
        merged.append(current)
    return merged


def generate_slots(
    free_range: TimeRange,
    duration: timedelta,
    step: Optional[timedelta] = None,
) -> List[TimeRange]:
    """
    Slice a free range into fixed-duration slots.

    Slots start at ``free_range.start`` and advance by ``step`` (defaults to
    ``duration``) while the whole slot still fits. No partial trailing slot is
    emitted, so a range of length L yields floor((L - d) / s) + 1 slots, or
    none when L < d.

    Raises:
        ValueError: If duration or step is not positive
    """
    if duration <= timedelta(0):
        raise ValueError("Slot duration must be positive")
    if step is None:
        step = duration
    if step <= timedelta(0):
        raise ValueError("Slot step must be positive")

    slots: List[TimeRange] = []
    current = free_range.start
    while current + duration <= free_range.end:
        slots.append(TimeRange(current, current + duration))
        current += step
    return slots


def covers(ranges: Iterable[TimeRange], target: TimeRange) -> bool:
    """True if a single range in ``ranges`` contains the whole target."""
    return any(candidate.contains(target) for candidate in ranges)
