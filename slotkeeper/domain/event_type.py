"""
Event types: the bookable appointment templates a host offers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple, Union

import pendulum
from pendulum import DateTime

from .exceptions import InvalidResponses


@dataclass(frozen=True)
class BookingLimits:
    """
    Business-rule limits applied when accepting a booking.

    ``max_future_days == 0`` means there is no booking horizon.
    """
    min_notice_hours: int = 0
    max_future_days: int = 0
    max_per_day: int | None = None
    max_per_week: int | None = None

    def __post_init__(self):
        if self.min_notice_hours < 0:
            raise ValueError("min_notice_hours must not be negative")
        if self.max_future_days < 0:
            raise ValueError("max_future_days must not be negative")
        for name in ("max_per_day", "max_per_week"):
            value = getattr(self, name)
            if value is not None and value < 1:
                raise ValueError(f"{name} must be at least 1 when set")


class VideoProviderKind(str, Enum):
    GOOGLE_MEET = "google_meet"
    ZOOM = "zoom"
    MICROSOFT_TEAMS = "microsoft_teams"
    CUSTOM = "custom"


@dataclass(frozen=True)
class VideoProvider:
    kind: VideoProviderKind = VideoProviderKind.GOOGLE_MEET
    url: str | None = None  # Only for CUSTOM

    def __post_init__(self):
        if self.kind is VideoProviderKind.CUSTOM and not self.url:
            raise ValueError("A custom video provider needs a url")


@dataclass(frozen=True)
class InPerson:
    address: str


@dataclass(frozen=True)
class Phone:
    pass


@dataclass(frozen=True)
class VideoConference:
    provider: VideoProvider = field(default_factory=VideoProvider)


@dataclass(frozen=True)
class CustomLocation:
    instructions: str


EventLocation = Union[InPerson, Phone, VideoConference, CustomLocation]


def describe_location(location: EventLocation) -> str:
    """Human readable description of where the appointment takes place."""
    if isinstance(location, InPerson):
        return f"In person: {location.address}"
    if isinstance(location, Phone):
        return "Phone call"
    if isinstance(location, VideoConference):
        if location.provider.kind is VideoProviderKind.CUSTOM:
            return f"Video call: {location.provider.url}"
        return f"Video call ({location.provider.kind.value.replace('_', ' ').title()})"
    if isinstance(location, CustomLocation):
        return location.instructions
    raise TypeError(f"Unknown location type: {type(location).__name__}")


def meeting_url_for(location: EventLocation) -> str | None:
    """
    Meeting URL known at booking time.

    Hosted providers (Meet, Zoom, Teams) get their URL from the calendar
    integration later, so only custom video providers resolve here.
    """
    if isinstance(location, VideoConference) and location.provider.kind is VideoProviderKind.CUSTOM:
        return location.provider.url
    return None


class QuestionType(str, Enum):
    SHORT_TEXT = "short_text"
    LONG_TEXT = "long_text"
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    PHONE = "phone"


@dataclass(frozen=True)
class BookingQuestion:
    """A question the invitee answers when booking."""
    id: str
    question: str
    question_type: QuestionType = QuestionType.SHORT_TEXT
    required: bool = False
    options: Tuple[str, ...] = ()

    def problems_with(self, answer: str | None) -> List[str]:
        """Return a list of problems with ``answer``; empty when acceptable."""
        if answer is None or not answer.strip():
            return [f"'{self.question}' is required"] if self.required else []

        if self.question_type is QuestionType.SINGLE_CHOICE:
            if answer not in self.options:
                return [f"'{answer}' is not an option for '{self.question}'"]
        elif self.question_type is QuestionType.MULTIPLE_CHOICE:
            chosen = [part.strip() for part in answer.split(",") if part.strip()]
            unknown = [choice for choice in chosen if choice not in self.options]
            if unknown:
                return [f"{', '.join(unknown)} not options for '{self.question}'"]
        elif self.question_type is QuestionType.PHONE:
            digits = [c for c in answer if c.isdigit()]
            if len(digits) < 6:
                return [f"'{answer}' is not a phone number"]
        return []


@dataclass(frozen=True)
class ConfirmationSettings:
    requires_confirmation: bool = False
    send_confirmation_email: bool = True
    send_reminder_email: bool = True
    reminder_hours_before: Tuple[int, ...] = (24,)
    redirect_url: str | None = None
    custom_message: str | None = None


@dataclass
class EventType:
    """
    A bookable appointment type.

    Invariants: duration > 0 and buffers >= 0. Fields are changed through the
    setters below, which re-check the invariants. Event types are only ever
    soft-deactivated because bookings keep referencing them.
    """
    id: str
    name: str
    host_id: str
    duration_minutes: int
    schedule_id: str
    buffer_before_minutes: int = 0
    buffer_after_minutes: int = 0
    limits: BookingLimits = field(default_factory=BookingLimits)
    location: EventLocation = field(default_factory=VideoConference)
    questions: Tuple[BookingQuestion, ...] = ()
    confirmation: ConfirmationSettings = field(default_factory=ConfirmationSettings)
    description: str | None = None
    color: str = "#3788d8"
    is_active: bool = True
    created_at: DateTime = field(default_factory=lambda: pendulum.now("UTC"))

    def __post_init__(self):
        self._check_duration(self.duration_minutes)
        self._check_buffers(self.buffer_before_minutes, self.buffer_after_minutes)

    @staticmethod
    def _check_duration(minutes: int) -> None:
        if minutes <= 0:
            raise ValueError(f"duration must be greater than zero, got {minutes}")

    @staticmethod
    def _check_buffers(before: int, after: int) -> None:
        if before < 0 or after < 0:
            raise ValueError(f"buffers must not be negative, got {before}/{after}")

    @property
    def max_bookings_per_day(self) -> int | None:
        return self.limits.max_per_day

    def total_block_minutes(self) -> int:
        """Duration plus both buffers."""
        return self.buffer_before_minutes + self.duration_minutes + self.buffer_after_minutes

    def set_duration(self, minutes: int) -> None:
        self._check_duration(minutes)
        self.duration_minutes = minutes

    def set_buffer(self, before: int, after: int) -> None:
        self._check_buffers(before, after)
        self.buffer_before_minutes = before
        self.buffer_after_minutes = after

    def set_limits(self, limits: BookingLimits) -> None:
        self.limits = limits

    def set_availability(self, schedule_id: str) -> None:
        self.schedule_id = schedule_id

    def set_location(self, location: EventLocation) -> None:
        self.location = location

    def deactivate(self) -> None:
        self.is_active = False

    def activate(self) -> None:
        self.is_active = True

    def validate_responses(self, responses: Dict[str, str]) -> None:
        """
        Check answers against the configured questions.

        Raises:
            InvalidResponses: If a required answer is missing, a choice is
                not among the options, or an answer targets an unknown question.
        """
        known = {question.id for question in self.questions}
        problems: List[str] = [f"Unknown question id '{qid}'" for qid in responses if qid not in known]
        for question in self.questions:
            problems.extend(question.problems_with(responses.get(question.id)))
        if problems:
            raise InvalidResponses("; ".join(problems))
