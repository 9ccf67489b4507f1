"""Interfaces the editing session expects from external services.

Implementations are synchronous; the session runs them in worker threads so
the event loop stays responsive. Every persistence failure is reported as
:class:`~sitepatch.errors.PersistenceError` and every edit-service transport
failure as :class:`~sitepatch.errors.TransportError`.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from sitepatch.editor.models import ChatMessage, EditRequest, EditResponse, Page
    from sitepatch.sections import Section


class EditService(typ.Protocol):
    """Produces a replacement fragment for one component."""

    def request_edit(self, request: EditRequest) -> EditResponse: ...


class PersistenceService(typ.Protocol):
    """Stores page versions, their sections, and edit transcripts."""

    def fetch_page(self, page_id: str) -> Page: ...

    def create_draft_from_page(self, page_id: str) -> Page: ...

    def update_sections(
        self,
        page_id: str,
        sections: typ.Sequence[Section],
        chat_history: typ.Mapping[str, typ.Sequence[ChatMessage]],
    ) -> None: ...

    def publish(self, page_id: str) -> Page: ...

    def fetch_version(self, page_id: str, version_id: str) -> Page: ...

    def restore_version(self, page_id: str, version_id: str) -> Page: ...


__all__ = ["EditService", "PersistenceService"]
