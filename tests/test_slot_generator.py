"""
Tests for slot generation.
"""

import pendulum
import pytest

from slotkeeper.domain.models import TimeSlot
from slotkeeper.domain.slot_generator import SlotGenerator


def _interval(start: str, end: str) -> TimeSlot:
    return TimeSlot(start=pendulum.parse(start, tz="UTC"), end=pendulum.parse(end, tz="UTC"))


class TestSlotGenerator:
    """Tests for SlotGenerator."""

    @pytest.mark.parametrize(
        "length, duration",
        [(480, 30), (480, 45), (100, 30), (29, 30), (60, 60)],
    )
    def test_exhaustive_contiguous_slots(self, length, duration):
        """An interval of length L yields floor(L/D) contiguous slots of length D."""
        start = pendulum.parse("2024-11-25 09:00", tz="UTC")
        interval = TimeSlot(start=start, end=start.add(minutes=length))

        slots = list(SlotGenerator().generate([interval], duration_minutes=duration))

        assert len(slots) == length // duration
        for slot in slots:
            assert slot.duration_minutes() == duration
        for previous, current in zip(slots, slots[1:]):
            assert previous.end == current.start
            assert not previous.overlaps(current)

    def test_buffers_excluded_from_emitted_slots(self):
        """Buffers must fit inside the interval but are not part of the slot."""
        interval = _interval("2024-11-25 09:00", "2024-11-25 11:00")

        slots = list(
            SlotGenerator().generate(
                [interval], duration_minutes=30, buffer_before_minutes=10, buffer_after_minutes=20,
            )
        )

        # Each block takes 60 minutes; cursor steps by 30
        assert [s.start.format("HH:mm") for s in slots] == ["09:10", "09:40", "10:10"]
        assert all(s.duration_minutes() == 30 for s in slots)
        assert slots[-1].end.add(minutes=20) <= interval.end

    def test_finer_step(self):
        interval = _interval("2024-11-25 09:00", "2024-11-25 10:00")

        slots = list(SlotGenerator().generate([interval], duration_minutes=30, step_minutes=15))

        assert [s.start.format("HH:mm") for s in slots] == ["09:00", "09:15", "09:30"]

    def test_multiple_intervals(self):
        intervals = [
            _interval("2024-11-25 09:00", "2024-11-25 10:00"),
            _interval("2024-11-25 13:00", "2024-11-25 13:45"),
        ]

        slots = list(SlotGenerator().generate(intervals, duration_minutes=30))

        assert [s.start.format("HH:mm") for s in slots] == ["09:00", "09:30", "13:00"]

    def test_interval_too_short_for_buffers(self):
        interval = _interval("2024-11-25 09:00", "2024-11-25 09:40")

        slots = list(SlotGenerator().generate([interval], duration_minutes=30, buffer_after_minutes=15))

        assert slots == []

    def test_generation_is_restartable(self):
        """Calling generate again with the same inputs yields the same sequence."""
        generator = SlotGenerator()
        intervals = [_interval("2024-11-25 09:00", "2024-11-25 12:00")]

        first = list(generator.generate(intervals, duration_minutes=45))
        second = list(generator.generate(intervals, duration_minutes=45))

        assert first == second
        assert len(first) == 4

    def test_generation_is_lazy(self):
        interval = _interval("2024-11-25 00:00", "2024-11-26 00:00")

        iterator = SlotGenerator().generate([interval], duration_minutes=1)

        assert next(iterator).start == interval.start

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"duration_minutes": 0},
            {"duration_minutes": 30, "step_minutes": 0},
            {"duration_minutes": 30, "buffer_before_minutes": -1},
        ],
    )
    def test_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            SlotGenerator().generate([], **kwargs)
