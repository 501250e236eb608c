"""
Configuration management using Pydantic models loaded from YAML.
"""

import datetime
from datetime import time
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Literal

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.availability import AvailabilityResolver
from .domain.conflict_checker import BufferScope, ConflictChecker
from .domain.event_type import (
    BookingLimits,
    BookingQuestion,
    ConfirmationSettings,
    CustomLocation,
    EventLocation,
    EventType,
    InPerson,
    Phone,
    QuestionType,
    VideoConference,
    VideoProvider,
    VideoProviderKind,
)
from .domain.lifecycle import BookingLifecycle
from .domain.models import (
    MINUTES_PER_DAY,
    WEEKDAY_NAMES,
    AvailabilityRule,
    AvailabilitySchedule,
    DateOverride,
    TimeInterval,
    validate_timezone,
)
from .domain.slot_calculator import SlotCalculator
from .domain.slot_generator import SlotGenerator

if TYPE_CHECKING:
    from .adapters.in_memory import InMemoryCatalog

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class IntervalConfig(BaseModel):
    """
    Time-of-day interval, e.g. ``{start: "09:00", end: "12:00"}``.

    ``end: "24:00"`` closes the interval at the midnight ending the day.
    """
    start: time
    end: time

    @field_validator("end", mode="before")
    @classmethod
    def parse_midnight_end(cls, value):
        """Map 24:00 to ``time(0, 0)``, which the domain reads as end of day."""
        if isinstance(value, str) and value.strip() in ("24:00", "24:00:00"):
            return time(0, 0)
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "IntervalConfig":
        """Ensure the interval opens before it closes."""
        end_minute = MINUTES_PER_DAY if self.end == time(0, 0) else self.end.hour * 60 + self.end.minute
        if end_minute <= self.start.hour * 60 + self.start.minute:
            raise ValueError(f"Interval end {self.end} must be later than start {self.start}")
        return self

    def to_domain(self) -> TimeInterval:
        return TimeInterval(start=self.start, end=self.end)


class OverrideConfig(BaseModel):
    """Availability for one specific date."""
    date: datetime.date
    unavailable: bool = False
    intervals: List[IntervalConfig] = Field(default_factory=list)

    def to_domain(self) -> DateOverride:
        return DateOverride(
            date=self.date,
            intervals=tuple(i.to_domain() for i in self.intervals),
            unavailable=self.unavailable,
        )


class ScheduleConfig(BaseModel):
    """Weekly availability schedule."""
    id: str
    name: str = ""
    timezone: str | None = None  # Falls back to AppConfig.timezone
    weekly: Dict[str, List[IntervalConfig]] = Field(default_factory=dict)
    overrides: List[OverrideConfig] = Field(default_factory=list)

    @field_validator("weekly")
    @classmethod
    def validate_weekdays(cls, value: Dict[str, List[IntervalConfig]]) -> Dict[str, List[IntervalConfig]]:
        """Normalize weekday keys to lowercase names and reject unknown ones."""
        normalized: Dict[str, List[IntervalConfig]] = {}
        for day, intervals in value.items():
            key = day.strip().lower()
            if key not in WEEKDAY_NAMES:
                raise ValueError(f"Unknown weekday '{day}', use one of {', '.join(WEEKDAY_NAMES)}")
            if key in normalized:
                raise ValueError(f"Weekday '{day}' is listed more than once")
            normalized[key] = intervals
        return normalized

    def to_domain(self, default_timezone: str) -> AvailabilitySchedule:
        """
        Build the domain schedule.

        Raises:
            InvalidSchedule: If intervals overlap or the timezone is unknown
        """
        rules = [
            AvailabilityRule(
                weekday=WEEKDAY_NAMES.index(day),
                intervals=tuple(i.to_domain() for i in intervals),
            )
            for day, intervals in self.weekly.items()
            if intervals
        ]
        return AvailabilitySchedule(
            id=self.id,
            name=self.name or self.id,
            timezone=self.timezone or default_timezone,
            rules=tuple(rules),
            overrides=tuple(o.to_domain() for o in self.overrides),
        )


class LimitsConfig(BaseModel):
    min_notice_hours: int = 0
    max_future_days: int = 0
    max_per_day: int | None = None
    max_per_week: int | None = None

    @model_validator(mode="after")
    def validate_limits(self) -> "LimitsConfig":
        self.to_domain()
        return self

    def to_domain(self) -> BookingLimits:
        return BookingLimits(**self.model_dump())


class LocationConfig(BaseModel):
    """
    Where the appointment happens.

    ``type`` selects the variant; the other fields apply to one variant each.
    """
    type: Literal["in_person", "phone", "video", "custom"] = "video"
    address: str | None = None
    provider: VideoProviderKind = VideoProviderKind.GOOGLE_MEET
    url: str | None = None
    instructions: str | None = None

    @model_validator(mode="after")
    def validate_variant(self) -> "LocationConfig":
        if self.type == "in_person" and not self.address:
            raise ValueError("An in_person location needs an address")
        if self.type == "custom" and not self.instructions:
            raise ValueError("A custom location needs instructions")
        if self.type == "video" and self.provider is VideoProviderKind.CUSTOM and not self.url:
            raise ValueError("A custom video provider needs a url")
        return self

    def to_domain(self) -> EventLocation:
        if self.type == "in_person":
            return InPerson(address=self.address)
        if self.type == "phone":
            return Phone()
        if self.type == "custom":
            return CustomLocation(instructions=self.instructions)
        return VideoConference(provider=VideoProvider(kind=self.provider, url=self.url))

    @classmethod
    def from_domain(cls, location: EventLocation) -> "LocationConfig":
        if isinstance(location, InPerson):
            return cls(type="in_person", address=location.address)
        if isinstance(location, Phone):
            return cls(type="phone")
        if isinstance(location, CustomLocation):
            return cls(type="custom", instructions=location.instructions)
        if isinstance(location, VideoConference):
            return cls(type="video", provider=location.provider.kind, url=location.provider.url)
        raise TypeError(f"Unknown location type: {type(location).__name__}")


class QuestionConfig(BaseModel):
    id: str
    question: str
    type: QuestionType = QuestionType.SHORT_TEXT
    required: bool = False
    options: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_options(self) -> "QuestionConfig":
        """Choice questions must offer at least one option."""
        if self.type in (QuestionType.SINGLE_CHOICE, QuestionType.MULTIPLE_CHOICE) and not self.options:
            raise ValueError(f"Question '{self.id}' is a choice question without options")
        return self

    def to_domain(self) -> BookingQuestion:
        return BookingQuestion(
            id=self.id,
            question=self.question,
            question_type=self.type,
            required=self.required,
            options=tuple(self.options),
        )


class ConfirmationConfig(BaseModel):
    requires_confirmation: bool = False
    send_confirmation_email: bool = True
    send_reminder_email: bool = True
    reminder_hours_before: List[int] = Field(default_factory=lambda: [24])
    redirect_url: str | None = None
    custom_message: str | None = None

    @field_validator("reminder_hours_before")
    @classmethod
    def validate_reminders(cls, value: List[int]) -> List[int]:
        """Reminder offsets must be positive; duplicates are dropped."""
        if any(hours <= 0 for hours in value):
            raise ValueError("reminder_hours_before entries must be greater than zero")
        return sorted(set(value), reverse=True)

    def to_domain(self) -> ConfirmationSettings:
        data = self.model_dump()
        data["reminder_hours_before"] = tuple(data["reminder_hours_before"])
        return ConfirmationSettings(**data)


class EventTypeConfig(BaseModel):
    """Bookable event type."""
    id: str
    name: str
    host_id: str
    schedule_id: str
    duration_minutes: int = 30
    buffer_before_minutes: int = 0
    buffer_after_minutes: int = 0
    description: str | None = None
    color: str = "#3788d8"
    active: bool = True
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    location: LocationConfig = Field(default_factory=LocationConfig)
    questions: List[QuestionConfig] = Field(default_factory=list)
    confirmation: ConfirmationConfig = Field(default_factory=ConfirmationConfig)

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure the event duration is positive."""
        if value <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        return value

    @field_validator("buffer_before_minutes", "buffer_after_minutes")
    @classmethod
    def validate_buffer(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Buffers must not be negative")
        return value

    def to_domain(self) -> EventType:
        return EventType(
            id=self.id,
            name=self.name,
            host_id=self.host_id,
            duration_minutes=self.duration_minutes,
            schedule_id=self.schedule_id,
            buffer_before_minutes=self.buffer_before_minutes,
            buffer_after_minutes=self.buffer_after_minutes,
            limits=self.limits.to_domain(),
            location=self.location.to_domain(),
            questions=tuple(q.to_domain() for q in self.questions),
            confirmation=self.confirmation.to_domain(),
            description=self.description,
            color=self.color,
            is_active=self.active,
        )


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "UTC"
    log_level: str = "INFO"
    buffer_scope: BufferScope = BufferScope.HOST
    slot_step_minutes: int | None = None
    bookings_file: Path = Path("bookings.json")
    schedules: List[ScheduleConfig] = Field(default_factory=list)
    event_types: List[EventTypeConfig] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_default_timezone(cls, value: str) -> str:
        return validate_timezone(value)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value}")
        return level

    @field_validator("slot_step_minutes")
    @classmethod
    def validate_step(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError("slot_step_minutes must be greater than zero")
        return value

    @model_validator(mode="after")
    def validate_references(self) -> "AppConfig":
        """Ensure ids are unique, schedules are valid and every event type has a schedule."""
        schedule_ids = [s.id for s in self.schedules]
        duplicates = sorted({sid for sid in schedule_ids if schedule_ids.count(sid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate schedule id(s): {', '.join(duplicates)}")

        event_type_ids = [e.id for e in self.event_types]
        duplicates = sorted({eid for eid in event_type_ids if event_type_ids.count(eid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate event type id(s): {', '.join(duplicates)}")

        for event_type in self.event_types:
            if event_type.schedule_id not in schedule_ids:
                raise ValueError(
                    f"Event type '{event_type.id}' references unknown schedule '{event_type.schedule_id}'"
                )

        # Surface overlapping intervals and bad timezones at load time
        for schedule in self.schedules:
            schedule.to_domain(self.timezone)
        return self

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)
        if not config.bookings_file.is_absolute():
            config.bookings_file = config_path.parent / config.bookings_file
        return config

    def find_event_type(self, event_type_id: str) -> EventTypeConfig | None:
        for event_type in self.event_types:
            if event_type.id == event_type_id:
                return event_type
        return None

    def build_catalog(self) -> "InMemoryCatalog":
        """Catalog of domain event types and schedules described by this config."""
        from .adapters.in_memory import InMemoryCatalog

        return InMemoryCatalog(
            event_types=[e.to_domain() for e in self.event_types],
            schedules=[s.to_domain(self.timezone) for s in self.schedules],
        )

    def build_lifecycle(self) -> BookingLifecycle:
        """Booking lifecycle wired with the configured buffer scope and slot step."""
        calculator = SlotCalculator(
            resolver=AvailabilityResolver(),
            generator=SlotGenerator(),
            checker=ConflictChecker(buffer_scope=self.buffer_scope),
            step_minutes=self.slot_step_minutes,
        )
        return BookingLifecycle(calculator=calculator)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
