"""
Discretization of open intervals into bookable slots.
"""

from typing import Iterable, Iterator

from .models import TimeSlot


class SlotGenerator:
    """
    Turns open availability intervals into candidate slots.

    Each candidate reserves ``buffer_before + duration + buffer_after``
    minutes inside an open interval, but only the ``duration`` part is
    emitted: buffers keep neighbouring bookings apart and are never
    bookable themselves.

    The generator keeps no state between calls, so calling ``generate``
    again with the same inputs restarts the sequence.
    """

    def generate(
        self,
        open_intervals: Iterable[TimeSlot],
        duration_minutes: int,
        buffer_before_minutes: int = 0,
        buffer_after_minutes: int = 0,
        step_minutes: int | None = None
    ) -> Iterator[TimeSlot]:
        """
        Lazily yield candidate slots in interval order.

        Args:
            open_intervals: Ordered open intervals (e.g. from AvailabilityResolver)
            duration_minutes: Length of each emitted slot
            buffer_before_minutes: Padding required before each slot
            buffer_after_minutes: Padding required after each slot
            step_minutes: Distance between consecutive candidate starts,
                defaults to the duration

        Raises:
            ValueError: On a non-positive duration or step, or negative buffers
        """
        step = duration_minutes if step_minutes is None else step_minutes

        if duration_minutes <= 0:
            raise ValueError(f"Duration must be greater than zero, got {duration_minutes}")
        if step <= 0:
            raise ValueError(f"Step must be greater than zero, got {step}")
        if buffer_before_minutes < 0 or buffer_after_minutes < 0:
            raise ValueError("Buffers must not be negative")

        return self._walk(open_intervals, duration_minutes, buffer_before_minutes, buffer_after_minutes, step)

    @staticmethod
    def _walk(
        open_intervals: Iterable[TimeSlot],
        duration: int,
        before: int,
        after: int,
        step: int
    ) -> Iterator[TimeSlot]:
        for interval in open_intervals:
            cursor = interval.start
            while cursor.add(minutes=before + duration + after) <= interval.end:
                slot_start = cursor.add(minutes=before)
                yield TimeSlot(start=slot_start, end=slot_start.add(minutes=duration))
                cursor = cursor.add(minutes=step)
