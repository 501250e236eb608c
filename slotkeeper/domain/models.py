"""
Domain models for time slots and availability schedules.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, List, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import InvalidSchedule

MINUTES_PER_DAY = 24 * 60

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


@dataclass(frozen=True)
class TimeSlot:
    """
    Represents an immutable, half-open time range [start, end).

    Invariant: start must be before end, and both must be timezone-aware so
    that comparisons always happen on the absolute timescale.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("TimeSlot boundaries must be timezone-aware")
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    @classmethod
    def starting_at(cls, start: DateTime, duration_minutes: int) -> "TimeSlot":
        """Build a slot of the given length beginning at ``start``."""
        return cls(start=start, end=start.add(minutes=duration_minutes))

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeSlot") -> bool:
        """Check if this slot overlaps another. Touching endpoints do not overlap."""
        return self.start < other.end and other.start < self.end

    def contains(self, other: "TimeSlot") -> bool:
        """Check if ``other`` lies entirely within this slot."""
        return self.start <= other.start and other.end <= self.end

    def contains_instant(self, instant: DateTime) -> bool:
        return self.start <= instant < self.end

    def expand(self, before_minutes: int = 0, after_minutes: int = 0) -> "TimeSlot":
        """Return a copy widened by the given padding on each side."""
        if before_minutes < 0 or after_minutes < 0:
            raise ValueError("Padding must not be negative")
        return TimeSlot(
            start=self.start.subtract(minutes=before_minutes),
            end=self.end.add(minutes=after_minutes),
        )

    def in_timezone(self, tz: str) -> "TimeSlot":
        return TimeSlot(start=self.start.in_timezone(tz), end=self.end.in_timezone(tz))

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class TimeInterval:
    """
    A time-of-day interval such as 09:00-17:00.

    An end of ``time(0, 0)`` stands for 24:00, the midnight closing the day.
    Intervals never span midnight otherwise; a schedule that needs
    availability across midnight uses one interval on each day.
    """
    start: time
    end: time

    def __post_init__(self):
        if self.start_minute >= self.end_minute:
            raise InvalidSchedule(f"Interval {self} must start before it ends")

    @property
    def start_minute(self) -> int:
        return self.start.hour * 60 + self.start.minute

    @property
    def end_minute(self) -> int:
        if self.ends_at_midnight:
            return MINUTES_PER_DAY
        return self.end.hour * 60 + self.end.minute

    @property
    def ends_at_midnight(self) -> bool:
        return self.end == time(0, 0)

    def on(self, day: date, tz: str) -> TimeSlot | None:
        """
        Materialize the interval on a calendar date in the given timezone.

        Returns None when a DST gap swallows the whole interval, e.g.
        02:00-03:00 on a spring-forward night.
        """
        start = pendulum.datetime(day.year, day.month, day.day, self.start.hour, self.start.minute, tz=tz)
        if self.ends_at_midnight:
            end = pendulum.datetime(day.year, day.month, day.day, tz=tz).add(days=1)
        else:
            end = pendulum.datetime(day.year, day.month, day.day, self.end.hour, self.end.minute, tz=tz)

        if start >= end:
            return None
        return TimeSlot(start=start, end=end)

    def __str__(self) -> str:
        end = "24:00" if self.ends_at_midnight else self.end.strftime('%H:%M')
        return f"{self.start.strftime('%H:%M')}-{end}"


def _validated_intervals(intervals: Iterable[TimeInterval], label: str) -> Tuple[TimeInterval, ...]:
    """Sort intervals and reject any pair that overlaps."""
    ordered = tuple(sorted(intervals, key=lambda i: i.start))
    for previous, current in zip(ordered, ordered[1:]):
        if current.start_minute < previous.end_minute:
            raise InvalidSchedule(f"Overlapping intervals {previous} and {current} in {label}")
    return ordered


@dataclass(frozen=True)
class AvailabilityRule:
    """Weekly recurring availability for one weekday (0=Monday, 6=Sunday)."""
    weekday: int
    intervals: Tuple[TimeInterval, ...]

    def __post_init__(self):
        if self.weekday not in range(7):
            raise InvalidSchedule(f"Weekday must be between 0 and 6, got {self.weekday}")
        label = f"rule for {WEEKDAY_NAMES[self.weekday]}"
        object.__setattr__(self, "intervals", _validated_intervals(self.intervals, label))


@dataclass(frozen=True)
class DateOverride:
    """
    Date-specific availability that fully replaces the weekly rule.

    ``unavailable=True`` blocks the whole day. Otherwise ``intervals`` is the
    replacement availability; an empty tuple also blocks the day.
    """
    date: date
    intervals: Tuple[TimeInterval, ...] = ()
    unavailable: bool = False

    def __post_init__(self):
        if self.unavailable and self.intervals:
            raise InvalidSchedule(f"Override for {self.date} is unavailable but lists intervals")
        label = f"override for {self.date.isoformat()}"
        object.__setattr__(self, "intervals", _validated_intervals(self.intervals, label))


def validate_timezone(name: str) -> str:
    """Ensure ``name`` is a known IANA timezone and return it."""
    try:
        pendulum.timezone(name)
    except (ValueError, KeyError) as exc:
        raise InvalidSchedule(f"Unknown timezone: {name}") from exc
    return name


@dataclass(frozen=True)
class AvailabilitySchedule:
    """
    A host's weekly availability plus date overrides, in one timezone.

    All invariants are checked on construction so that a schedule which made
    it into the system can never fail at booking time.
    """
    id: str
    timezone: str
    rules: Tuple[AvailabilityRule, ...] = ()
    overrides: Tuple[DateOverride, ...] = ()
    name: str = ""

    def __post_init__(self):
        validate_timezone(self.timezone)

        rules = tuple(sorted(self.rules, key=lambda r: r.weekday))
        for previous, current in zip(rules, rules[1:]):
            if previous.weekday == current.weekday:
                raise InvalidSchedule(
                    f"Schedule {self.id} has more than one rule for {WEEKDAY_NAMES[current.weekday]}"
                )

        overrides = tuple(sorted(self.overrides, key=lambda o: o.date))
        for previous, current in zip(overrides, overrides[1:]):
            if previous.date == current.date:
                raise InvalidSchedule(
                    f"Schedule {self.id} has more than one override for {current.date.isoformat()}"
                )

        object.__setattr__(self, "rules", rules)
        object.__setattr__(self, "overrides", overrides)

    def rule_for(self, weekday: int) -> AvailabilityRule | None:
        for rule in self.rules:
            if rule.weekday == weekday:
                return rule
        return None

    def override_for(self, day: date) -> DateOverride | None:
        for override in self.overrides:
            if override.date == day:
                return override
        return None

    def with_override(self, override: DateOverride) -> "AvailabilitySchedule":
        """Return a copy with ``override`` added, replacing any for the same date."""
        remaining: List[DateOverride] = [o for o in self.overrides if o.date != override.date]
        remaining.append(override)
        return AvailabilitySchedule(
            id=self.id,
            timezone=self.timezone,
            rules=self.rules,
            overrides=tuple(remaining),
            name=self.name,
        )


@dataclass(frozen=True)
class Invitee:
    """The person booking an appointment."""
    name: str
    email: str
    phone: str | None = None
    timezone: str = "UTC"

    def __post_init__(self):
        if "@" not in self.email:
            raise ValueError(f"Invalid invitee email: {self.email}")
        object.__setattr__(self, "email", self.email.strip().lower())
