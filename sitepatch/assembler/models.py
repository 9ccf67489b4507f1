"""Dataclasses consumed by the page assembly pipeline."""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

from sitepatch._constants import SLOT_MARKER
from sitepatch.errors import ConfigurationError


class SnippetLocation(enum.StrEnum):
    """Structural injection point for a code snippet."""

    HEAD_START = "head_start"
    HEAD_END = "head_end"
    BODY_START = "body_start"
    BODY_END = "body_end"


@dc.dataclass(slots=True)
class TemplateSet:
    """Project-level wrapper, header, and footer markup.

    Attributes
    ----------
    wrapper : str
        Outer document containing exactly one ``{{slot}}`` marker.
    header : str
        Markup placed before the page sections.
    footer : str
        Markup placed after the page sections.
    """

    wrapper: str = SLOT_MARKER
    header: str = ""
    footer: str = ""

    def validate(self) -> None:
        """Raise ConfigurationError unless the wrapper holds one slot marker."""
        count = self.wrapper.count(SLOT_MARKER)
        if count == 0:
            msg = (
                f"The project wrapper is missing the {SLOT_MARKER} placeholder; "
                "add it where page content should be injected."
            )
            raise ConfigurationError(msg)
        if count > 1:
            msg = f"The project wrapper contains {count} {SLOT_MARKER} placeholders; expected one."
            raise ConfigurationError(msg)


@dc.dataclass(slots=True)
class CodeSnippet:
    """Externally configured markup injected at a structural location."""

    code: str
    location: SnippetLocation
    order_index: int = 0
    is_enabled: bool = True
    page_ids: list[str] = dc.field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: typ.Mapping[str, typ.Any]) -> CodeSnippet:
        """Build a snippet from a persisted mapping, validating its location."""
        raw_location = data.get("location")
        try:
            location = SnippetLocation(str(raw_location))
        except ValueError as exc:
            msg = f"Unknown snippet location {raw_location!r}"
            raise ConfigurationError(msg) from exc
        page_ids = data.get("page_ids") or []
        return cls(
            code=str(data.get("code") or ""),
            location=location,
            order_index=int(data.get("order_index") or 0),
            is_enabled=bool(data.get("is_enabled", True)),
            page_ids=[str(page_id) for page_id in page_ids],
        )

    def targets(self, page_id: str | None) -> bool:
        """Return True when the snippet applies to ``page_id``.

        Snippets without page targeting are global. With no known page id
        (preview mode) every snippet applies.
        """
        if not self.page_ids or page_id is None:
            return True
        return page_id in self.page_ids


__all__ = ["CodeSnippet", "SnippetLocation", "TemplateSet"]
