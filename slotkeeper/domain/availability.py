"""
Resolution of a host's availability schedule into concrete open intervals.

Pure domain logic: no I/O, no clock, no shared state.
"""

import logging
from datetime import date, timedelta
from typing import Iterator, List, Tuple

from .models import AvailabilitySchedule, TimeSlot

logger = logging.getLogger(__name__)


class AvailabilityResolver:
    """
    Expands weekly rules and date overrides into open intervals.

    Algorithm for a single date:
    1. If an override exists for the date and is marked unavailable, the
       date has no availability.
    2. If an override exists with explicit intervals, those intervals are the
       availability (an empty list blocks the day).
    3. Otherwise the weekly rule for the date's weekday applies.
    4. With neither rule nor override the host is unavailable that day.

    Intervals are materialized in the schedule's timezone and never merged
    across midnight. An interval lying entirely inside a spring-forward gap
    does not exist on that date and is dropped.
    """

    def resolve(self, schedule: AvailabilitySchedule, day: date) -> List[TimeSlot]:
        """
        Return the ordered, non-overlapping open intervals for ``day``.

        Args:
            schedule: The host's availability schedule
            day: Calendar date, interpreted in the schedule's timezone

        Returns:
            List of TimeSlot objects in the schedule's timezone
        """
        override = schedule.override_for(day)

        if override is not None:
            if override.unavailable:
                logger.debug("Schedule %s: %s overridden as unavailable", schedule.id, day)
                return []
            intervals = override.intervals
            logger.debug("Schedule %s: %s uses override with %d interval(s)", schedule.id, day, len(intervals))
        else:
            rule = schedule.rule_for(day.weekday())
            if rule is None:
                return []
            intervals = rule.intervals

        # Schedule construction already sorted and validated the intervals
        resolved = []
        for interval in intervals:
            slot = interval.on(day, schedule.timezone)
            if slot is None:
                logger.debug("Schedule %s: %s on %s falls into a DST gap", schedule.id, interval, day)
                continue
            resolved.append(slot)
        return resolved

    def resolve_range(
        self,
        schedule: AvailabilitySchedule,
        start_date: date,
        end_date: date
    ) -> Iterator[Tuple[date, List[TimeSlot]]]:
        """
        Resolve every date from ``start_date`` to ``end_date`` inclusive.

        Yields (date, open intervals) pairs in date order, including days
        without availability.
        """
        if end_date < start_date:
            raise ValueError(f"End date {end_date} is before start date {start_date}")

        current = start_date
        while current <= end_date:
            yield current, self.resolve(schedule, current)
            current = current + timedelta(days=1)
