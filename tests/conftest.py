"""
Shared fixtures for the test suite.

Dates revolve around Monday 2024-11-25; ``now`` is the Wednesday before.
"""

from datetime import time

import pendulum
import pytest

from slotkeeper.domain.booking import Booking, BookingStatus
from slotkeeper.domain.event_type import BookingLimits, EventType
from slotkeeper.domain.models import (
    AvailabilityRule,
    AvailabilitySchedule,
    Invitee,
    TimeInterval,
    TimeSlot,
)


@pytest.fixture
def now():
    return pendulum.parse("2024-11-20 08:00", tz="UTC")


@pytest.fixture
def monday():
    return pendulum.date(2024, 11, 25)


@pytest.fixture
def office_schedule():
    """Monday 09:00-17:00 UTC, nothing else."""
    return AvailabilitySchedule(
        id="office",
        timezone="UTC",
        rules=(AvailabilityRule(weekday=0, intervals=(TimeInterval(time(9, 0), time(17, 0)),)),),
    )


@pytest.fixture
def week_schedule():
    """Monday to Friday 09:00-17:00 in Europe/Berlin."""
    return AvailabilitySchedule(
        id="week",
        timezone="Europe/Berlin",
        rules=tuple(
            AvailabilityRule(weekday=day, intervals=(TimeInterval(time(9, 0), time(17, 0)),))
            for day in range(5)
        ),
    )


@pytest.fixture
def make_event_type():
    def _make(**overrides) -> EventType:
        values = dict(
            id="intro",
            name="Intro call",
            host_id="host-1",
            duration_minutes=30,
            schedule_id="office",
            limits=BookingLimits(),
        )
        values.update(overrides)
        return EventType(**values)

    return _make


@pytest.fixture
def invitee():
    return Invitee(name="Ada Lovelace", email="Ada@Example.com")


@pytest.fixture
def make_booking(invitee):
    counter = {"n": 0}

    def _make(
        start: str,
        end: str,
        *,
        event_type_id: str = "intro",
        host_id: str = "host-1",
        status: BookingStatus = BookingStatus.CONFIRMED,
        buffer_before: int = 0,
        buffer_after: int = 0,
        tz: str = "UTC",
    ) -> Booking:
        counter["n"] += 1
        return Booking(
            id=f"booking-{counter['n']}",
            event_type_id=event_type_id,
            host_id=host_id,
            invitee=invitee,
            slot=TimeSlot(start=pendulum.parse(start, tz=tz), end=pendulum.parse(end, tz=tz)),
            status=status,
            buffer_before_minutes=buffer_before,
            buffer_after_minutes=buffer_after,
        )

    return _make
