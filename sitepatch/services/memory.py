"""In-process page store implementing the persistence contract.

Every stored version of a page is its own record sharing the page's ``path``.
At most one draft and one published record exist per path; publishing a draft
retires the previous published record to ``inactive``. The store backs the
command-line tools and the test-suite, and is safe to call from worker
threads.
"""

from __future__ import annotations

import itertools
import threading
import typing as typ

from sitepatch.editor.models import (
    ChatMessage,
    Page,
    PageStatus,
    cap_chat_history,
)
from sitepatch.errors import PersistenceError
from sitepatch.sections import Section, clone_sections


class InMemoryPageStore:
    """Versioned page records held in a dictionary."""

    def __init__(self) -> None:
        self._pages: dict[str, Page] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add_page(
        self,
        path: str,
        sections: typ.Sequence[Section],
        *,
        status: PageStatus = PageStatus.PUBLISHED,
        version: int = 1,
        page_id: str | None = None,
    ) -> Page:
        """Seed a page record and return a copy of it."""
        with self._lock:
            record = Page(
                id=page_id or self._next_id(),
                path=path,
                sections=clone_sections(sections),
                status=status,
                version=version,
            )
            self._pages[record.id] = record
            return record.copy()

    def versions(self, page_id: str) -> list[Page]:
        """Return every record sharing ``page_id``'s path, oldest first."""
        with self._lock:
            path = self._get(page_id).path
            records = [page for page in self._pages.values() if page.path == path]
            return [page.copy() for page in sorted(records, key=lambda page: page.version)]

    def fetch_page(self, page_id: str) -> Page:
        with self._lock:
            return self._get(page_id).copy()

    def create_draft_from_page(self, page_id: str) -> Page:
        with self._lock:
            source = self._get(page_id)
            if source.is_draft:
                return source.copy()
            siblings = [page for page in self._pages.values() if page.path == source.path]
            existing = next((page for page in siblings if page.is_draft), None)
            if existing is not None:
                return existing.copy()
            draft = Page(
                id=self._next_id(),
                path=source.path,
                sections=clone_sections(source.sections),
                status=PageStatus.DRAFT,
                version=max(page.version for page in siblings) + 1,
            )
            self._pages[draft.id] = draft
            return draft.copy()

    def update_sections(
        self,
        page_id: str,
        sections: typ.Sequence[Section],
        chat_history: typ.Mapping[str, typ.Sequence[ChatMessage]],
    ) -> None:
        with self._lock:
            page = self._get_draft(page_id)
            page.sections = clone_sections(sections)
            page.chat_history = cap_chat_history(chat_history)

    def publish(self, page_id: str) -> Page:
        with self._lock:
            draft = self._get_draft(page_id)
            for page in self._pages.values():
                if page.path == draft.path and page.status is PageStatus.PUBLISHED:
                    page.status = PageStatus.INACTIVE
            draft.status = PageStatus.PUBLISHED
            draft.chat_history = {}
            return draft.copy()

    def fetch_version(self, page_id: str, version_id: str) -> Page:
        with self._lock:
            return self._version_of(page_id, version_id).copy()

    def restore_version(self, page_id: str, version_id: str) -> Page:
        with self._lock:
            draft = self._get_draft(page_id)
            version = self._version_of(page_id, version_id)
            draft.sections = clone_sections(version.sections)
            return draft.copy()

    def _next_id(self) -> str:
        return f"page-{next(self._ids)}"

    def _get(self, page_id: str) -> Page:
        try:
            return self._pages[page_id]
        except KeyError as exc:
            msg = f"Page '{page_id}' not found"
            raise PersistenceError(msg) from exc

    def _get_draft(self, page_id: str) -> Page:
        page = self._get(page_id)
        if not page.is_draft:
            msg = f"Page '{page_id}' is {page.status}; only drafts can be changed"
            raise PersistenceError(msg)
        return page

    def _version_of(self, page_id: str, version_id: str) -> Page:
        page = self._get(page_id)
        version = self._get(version_id)
        if version.path != page.path:
            msg = f"Version '{version_id}' does not belong to page '{page_id}'"
            raise PersistenceError(msg)
        return version


__all__ = ["InMemoryPageStore"]
