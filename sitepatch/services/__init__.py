"""Edit and persistence service ports with HTTP and in-memory backends."""

from .http import HttpEditServiceClient, HttpPersistenceClient, build_session
from .memory import InMemoryPageStore
from .ports import EditService, PersistenceService

__all__ = [
    "EditService",
    "HttpEditServiceClient",
    "HttpPersistenceClient",
    "InMemoryPageStore",
    "PersistenceService",
    "build_session",
]
