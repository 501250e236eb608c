"""
Event publisher that writes domain events to the log.

Real delivery (email, calendar sync) lives in other services; this adapter
is what the CLI uses to make dispatched events visible.
"""

import logging
from typing import Sequence

from ..domain.events import SchedulingEvent, event_name

logger = logging.getLogger(__name__)


class LoggingEventPublisher:
    """Logs every published event at INFO level."""

    def __init__(self, log: logging.Logger | None = None):
        self._log = log or logger

    def publish(self, events: Sequence[SchedulingEvent]) -> None:
        for event in events:
            self._log.info(
                "%s booking_id=%s at %s",
                event_name(event),
                event.booking_id,
                event.occurred_at.to_iso8601_string(),
            )
