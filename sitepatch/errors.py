"""Exception hierarchy shared by the assembler, patch engine, and editor."""

from __future__ import annotations


class SitepatchError(Exception):
    """Base class for every error raised by sitepatch."""


class ConfigurationError(SitepatchError, ValueError):
    """Raised when templates or editor configuration are unusable."""


class NotFoundError(SitepatchError, LookupError):
    """Raised when a component identifier matches nothing in the document."""


class AmbiguousMatchError(NotFoundError):
    """Raised when a lookup matches several nodes under a strict policy."""


class ValidationError(SitepatchError, ValueError):
    """Raised when a returned fragment is empty or malformed."""


class RejectedByPolicy(SitepatchError):
    """Raised when the Edit Service declines an instruction."""


class TransportError(SitepatchError, RuntimeError):
    """Raised when an external service cannot be reached or answers badly."""


class PersistenceError(SitepatchError, RuntimeError):
    """Raised when a save, publish, or page lookup write fails."""


class EditorStateError(SitepatchError, RuntimeError):
    """Raised when an operation is not allowed in the session's current state."""


class EditInProgressError(EditorStateError):
    """Raised when a second edit is dispatched while one is still running."""


class NotEditableError(EditorStateError):
    """Raised when the selected component lives outside every page section."""


__all__ = [
    "AmbiguousMatchError",
    "ConfigurationError",
    "EditInProgressError",
    "EditorStateError",
    "NotEditableError",
    "NotFoundError",
    "PersistenceError",
    "RejectedByPolicy",
    "SitepatchError",
    "TransportError",
    "ValidationError",
]
