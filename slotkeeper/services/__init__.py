"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking_service import (
    BookingRepositoryProtocol,
    BookingResult,
    BookingService,
    CatalogProtocol,
    EventPublisherProtocol,
)

__all__ = [
    "BookingRepositoryProtocol",
    "BookingResult",
    "BookingService",
    "CatalogProtocol",
    "EventPublisherProtocol",
]
