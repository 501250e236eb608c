"""
Booking repository persisted to a JSON file.

Used by the CLI so that bookings survive between invocations. The whole
file is rewritten after every change, which is fine for a single host's
booking volume but not meant for concurrent processes.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List

import pendulum
from pydantic import BaseModel, Field, ValidationError

from ..config import LocationConfig
from ..domain.booking import Booking, BookingStatus
from ..domain.models import Invitee, TimeSlot
from .in_memory import InMemoryBookingRepository

logger = logging.getLogger(__name__)


class InviteeRecord(BaseModel):
    name: str
    email: str
    phone: str | None = None
    timezone: str = "UTC"


class SlotRecord(BaseModel):
    start: str
    end: str

    @classmethod
    def from_slot(cls, slot: TimeSlot) -> "SlotRecord":
        return cls(start=slot.start.in_timezone("UTC").to_iso8601_string(),
                   end=slot.end.in_timezone("UTC").to_iso8601_string())

    def to_slot(self) -> TimeSlot:
        return TimeSlot(start=pendulum.parse(self.start), end=pendulum.parse(self.end))


class BookingRecord(BaseModel):
    """Serialized form of a Booking; pending events are never stored."""
    id: str
    event_type_id: str
    host_id: str
    invitee: InviteeRecord
    slot: SlotRecord
    status: BookingStatus
    buffer_before_minutes: int = 0
    buffer_after_minutes: int = 0
    location: LocationConfig | None = None
    meeting_url: str | None = None
    notes: str | None = None
    responses: Dict[str, str] = Field(default_factory=dict)
    cancelled_at: str | None = None
    cancellation_reason: str | None = None
    rescheduled_from: SlotRecord | None = None
    reminders_sent: List[int] = Field(default_factory=list)
    created_at: str

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingRecord":
        return cls(
            id=booking.id,
            event_type_id=booking.event_type_id,
            host_id=booking.host_id,
            invitee=InviteeRecord(
                name=booking.invitee.name,
                email=booking.invitee.email,
                phone=booking.invitee.phone,
                timezone=booking.invitee.timezone,
            ),
            slot=SlotRecord.from_slot(booking.slot),
            status=booking.status,
            buffer_before_minutes=booking.buffer_before_minutes,
            buffer_after_minutes=booking.buffer_after_minutes,
            location=LocationConfig.from_domain(booking.location) if booking.location else None,
            meeting_url=booking.meeting_url,
            notes=booking.notes,
            responses=dict(booking.responses),
            cancelled_at=booking.cancelled_at.to_iso8601_string() if booking.cancelled_at else None,
            cancellation_reason=booking.cancellation_reason,
            rescheduled_from=SlotRecord.from_slot(booking.rescheduled_from) if booking.rescheduled_from else None,
            reminders_sent=list(booking.reminders_sent),
            created_at=booking.created_at.to_iso8601_string(),
        )

    def to_booking(self) -> Booking:
        return Booking(
            id=self.id,
            event_type_id=self.event_type_id,
            host_id=self.host_id,
            invitee=Invitee(**self.invitee.model_dump()),
            slot=self.slot.to_slot(),
            status=self.status,
            buffer_before_minutes=self.buffer_before_minutes,
            buffer_after_minutes=self.buffer_after_minutes,
            location=self.location.to_domain() if self.location else None,
            meeting_url=self.meeting_url,
            notes=self.notes,
            responses=dict(self.responses),
            cancelled_at=pendulum.parse(self.cancelled_at) if self.cancelled_at else None,
            cancellation_reason=self.cancellation_reason,
            rescheduled_from=self.rescheduled_from.to_slot() if self.rescheduled_from else None,
            reminders_sent=list(self.reminders_sent),
            created_at=pendulum.parse(self.created_at),
        )


class JsonBookingRepository(InMemoryBookingRepository):
    """
    In-memory repository that mirrors its contents to a JSON file.

    The file holds a list of BookingRecord objects. A missing file is an
    empty repository.
    """

    def __init__(self, path: Path):
        self.path = path
        super().__init__(self._load())

    def _load(self) -> List[Booking]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {self.path}: {exc}") from exc

        if not isinstance(raw, list):
            raise ValueError(f"Bookings file {self.path} must contain a list")

        try:
            bookings = [BookingRecord.model_validate(item).to_booking() for item in raw]
        except ValidationError as exc:
            raise ValueError(f"Invalid booking record in {self.path}: {exc}") from exc

        logger.debug("Loaded %d booking(s) from %s", len(bookings), self.path)
        return bookings

    def _on_change(self) -> None:
        records = [BookingRecord.from_booking(b).model_dump(mode="json") for b in self._bookings.values()]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(records, f, indent=2)
        tmp_path.replace(self.path)
