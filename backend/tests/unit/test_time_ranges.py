"""
Unit tests for the time-range algebra.

Covers:
- The five subtraction cases
- Subtraction properties (disjoint, sorted, no time lost or invented)
- Order independence of repeated subtraction
- Slot generation counts and boundaries
- Merging and coverage
"""

import itertools
from datetime import datetime, timedelta

import pytest

from utils.time_ranges import (
    TimeRange, covers, generate_slots, merge_ranges, ranges_overlap, subtract_range, subtract_ranges,
)


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2030, 1, 7, hour, minute)


def tr(start_hour: int, start_minute: int, end_hour: int, end_minute: int = 0) -> TimeRange:
    return TimeRange(at(start_hour, start_minute), at(end_hour, end_minute))


def total(ranges) -> timedelta:
    return sum((r.duration for r in ranges), timedelta(0))


def assert_normalized(ranges):
    for previous, current in zip(ranges, ranges[1:]):
        assert previous.end <= current.start


class TestTimeRange:
    def test_rejects_empty_range(self):
        with pytest.raises(ValueError):
            TimeRange(at(10), at(10))

    def test_rejects_reversed_range(self):
        with pytest.raises(ValueError):
            TimeRange(at(11), at(10))

    def test_duration(self):
        assert tr(9, 0, 10, 30).duration == timedelta(minutes=90)


class TestRangesOverlap:
    def test_overlapping(self):
        assert ranges_overlap(at(10), at(10, 30), at(10, 15), at(10, 45))

    def test_back_to_back_does_not_overlap(self):
        """Half-open intervals sharing a boundary are not in conflict."""
        assert not ranges_overlap(at(10), at(10, 30), at(10, 30), at(11))
        assert not ranges_overlap(at(10, 30), at(11), at(10), at(10, 30))

    def test_containment_overlaps(self):
        assert ranges_overlap(at(9), at(17), at(12), at(13))


class TestSubtractRange:
    def test_no_overlap_keeps_range(self):
        assert subtract_range([tr(9, 0, 12)], tr(13, 0, 14)) == [tr(9, 0, 12)]

    def test_touching_removal_keeps_range(self):
        assert subtract_range([tr(9, 0, 12)], tr(12, 0, 13)) == [tr(9, 0, 12)]

    def test_complete_containment_drops_range(self):
        assert subtract_range([tr(10, 0, 11)], tr(9, 0, 12)) == []

    def test_exact_match_drops_range(self):
        assert subtract_range([tr(10, 0, 11)], tr(10, 0, 11)) == []

    def test_removal_strictly_inside_splits_range(self):
        assert subtract_range([tr(9, 0, 17)], tr(12, 0, 13)) == [tr(9, 0, 12), tr(13, 0, 17)]

    def test_removal_over_start_truncates_left(self):
        assert subtract_range([tr(9, 0, 12)], tr(8, 0, 10)) == [tr(10, 0, 12)]

    def test_removal_over_end_truncates_right(self):
        assert subtract_range([tr(9, 0, 12)], tr(11, 0, 13)) == [tr(9, 0, 11)]

    def test_removal_spanning_several_ranges(self):
        ranges = [tr(9, 0, 10), tr(11, 0, 12), tr(13, 0, 14)]
        assert subtract_range(ranges, tr(9, 30, 13, 30)) == [tr(9, 0, 9, 30), tr(13, 30, 14)]

    def test_does_not_mutate_input(self):
        ranges = [tr(9, 0, 17)]
        subtract_range(ranges, tr(12, 0, 13))
        assert ranges == [tr(9, 0, 17)]

    @pytest.mark.parametrize("removal", [
        tr(8, 0, 9),
        tr(8, 0, 9, 30),
        tr(9, 15, 9, 45),
        tr(10, 30, 11, 30),
        tr(11, 45, 13, 15),
        tr(8, 0, 18),
        tr(13, 30, 15),
    ])
    def test_no_time_lost_or_invented(self, removal):
        """subtract(R, X) is normalized and together with R ∩ X adds back up to R."""
        ranges = [tr(9, 0, 10), tr(10, 30, 12), tr(13, 0, 14)]
        result = subtract_range(ranges, removal)

        assert_normalized(result)
        for r in result:
            assert not r.overlaps(removal)
            assert any(original.contains(r) for original in ranges)

        intersection = timedelta(0)
        for original in ranges:
            start = max(original.start, removal.start)
            end = min(original.end, removal.end)
            if start < end:
                intersection += end - start
        assert total(result) + intersection == total(ranges)


class TestSubtractRanges:
    def test_applies_each_removal(self):
        result = subtract_ranges([tr(9, 0, 17)], [tr(12, 0, 13), tr(10, 0, 10, 30), tr(16, 30, 17)])
        assert result == [tr(9, 0, 10), tr(10, 30, 12), tr(13, 0, 16, 30)]

    def test_removal_order_does_not_matter(self):
        base = [tr(9, 0, 12), tr(13, 0, 17)]
        exceptions = [tr(12, 0, 13), tr(15, 0, 15, 30)]
        appointments = [tr(9, 30, 10), tr(11, 45, 12, 15), tr(14, 0, 14, 30)]

        expected = subtract_ranges(subtract_ranges(base, exceptions), appointments)
        assert subtract_ranges(subtract_ranges(base, appointments), exceptions) == expected
        for permutation in itertools.permutations(exceptions + appointments):
            assert subtract_ranges(base, permutation) == expected

    def test_empty_removals(self):
        assert subtract_ranges([tr(9, 0, 17)], []) == [tr(9, 0, 17)]


class TestMergeRanges:
    def test_merges_overlapping_and_touching(self):
        merged = merge_ranges([tr(13, 0, 14), tr(9, 0, 10), tr(9, 30, 11), tr(11, 0, 12)])
        assert merged == [tr(9, 0, 12), tr(13, 0, 14)]

    def test_contained_range_absorbed(self):
        assert merge_ranges([tr(9, 0, 17), tr(10, 0, 11)]) == [tr(9, 0, 17)]


class TestGenerateSlots:
    def test_default_step_is_duration(self):
        slots = generate_slots(tr(9, 0, 10), timedelta(minutes=30))
        assert slots == [tr(9, 0, 9, 30), tr(9, 30, 10)]

    def test_smaller_step(self):
        slots = generate_slots(tr(9, 0, 10), timedelta(minutes=30), timedelta(minutes=15))
        assert [s.start for s in slots] == [at(9), at(9, 15), at(9, 30)]

    def test_no_partial_trailing_slot(self):
        slots = generate_slots(tr(9, 0, 10, 20), timedelta(minutes=30))
        assert slots[-1].end == at(10)

    def test_range_shorter_than_duration(self):
        assert generate_slots(tr(9, 0, 9, 20), timedelta(minutes=30)) == []

    @pytest.mark.parametrize("length,duration,step", [
        (60, 30, 30),
        (60, 30, 15),
        (90, 45, 10),
        (480, 30, 30),
        (50, 20, 7),
        (30, 30, 5),
    ])
    def test_slot_count_formula(self, length, duration, step):
        """floor((L - d) / s) + 1 slots, none crossing the range boundary."""
        free = TimeRange(at(9), at(9) + timedelta(minutes=length))
        slots = generate_slots(free, timedelta(minutes=duration), timedelta(minutes=step))

        assert len(slots) == (length - duration) // step + 1
        assert all(free.contains(s) for s in slots)
        assert all(s.duration == timedelta(minutes=duration) for s in slots)

    def test_rejects_non_positive_duration(self):
        with pytest.raises(ValueError):
            generate_slots(tr(9, 0, 10), timedelta(0))

    def test_rejects_negative_step(self):
        with pytest.raises(ValueError):
            generate_slots(tr(9, 0, 10), timedelta(minutes=30), timedelta(minutes=-15))

    def test_rejects_zero_step(self):
        with pytest.raises(ValueError):
            generate_slots(tr(9, 0, 10), timedelta(minutes=30), timedelta(0))

    def test_omitted_step_defaults_to_duration(self):
        slots = generate_slots(tr(9, 0, 10), timedelta(minutes=20))
        assert [s.start.minute for s in slots] == [0, 20, 40]


class TestCovers:
    def test_single_range_must_contain_target(self):
        assert covers([tr(9, 0, 12)], tr(10, 0, 11))
        assert covers([tr(9, 0, 12)], tr(9, 0, 12))

    def test_partial_overlap_is_not_coverage(self):
        assert not covers([tr(9, 0, 12)], tr(11, 30, 12, 30))

    def test_adjacent_ranges_do_not_combine(self):
        assert not covers([tr(9, 0, 12), tr(12, 0, 17)], tr(11, 30, 12, 30))
