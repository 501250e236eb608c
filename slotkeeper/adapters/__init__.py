"""
Adapters layer - Catalog, persistence and event dispatch implementations.
"""

from .event_publisher import LoggingEventPublisher
from .in_memory import InMemoryBookingRepository, InMemoryCatalog
from .json_store import JsonBookingRepository

__all__ = ["InMemoryBookingRepository", "InMemoryCatalog", "JsonBookingRepository", "LoggingEventPublisher"]
