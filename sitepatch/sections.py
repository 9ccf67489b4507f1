r"""Normalise persisted page sections into ordered ``Section`` records.

Pages are stored as an ordered list of ``{name, content}`` pairs, but the
persisted shape varies: the editor writes a bare list while background jobs
write a ``{"sections": [...]}`` wrapper, and some exports hand over a JSON
string. This module folds those shapes into :class:`Section` dataclasses and
exposes the helpers that recover a section's component identifier from its
own markup.

Example
-------
>>> from sitepatch.sections import normalize_sections
>>> sections = normalize_sections({"sections": [{"name": "hero", "content": "<p>Hi</p>"}]})
>>> sections[0].name
'hero'
"""

from __future__ import annotations

import dataclasses as dc
import json
import logging
import typing as typ

from bs4 import BeautifulSoup, Tag

from ._constants import (
    DEFAULT_COMPONENT_PREFIX,
    SECTION_ID_MARKER,
    SECTION_LOCATOR_ATTR,
)

logger = logging.getLogger(__name__)


@dc.dataclass(slots=True)
class Section:
    """One named, ordered HTML fragment that forms an editable page unit.

    Attributes
    ----------
    name : str
        Section name; expected to be unique per page and used as the locator
        value stamped on the rendered root element.
    content : str
        Self-contained HTML fragment whose root element carries the section's
        component identifier in its class list.
    """

    name: str
    content: str

    def to_dict(self) -> dict[str, str]:
        """Return the JSON-ready mapping persisted for this section."""
        return {"name": self.name, "content": self.content}


def normalize_sections(raw: object) -> list[Section]:
    """Return the ordered sections held by ``raw``, whatever its stored shape.

    Parameters
    ----------
    raw : object
        A list of mappings or ``Section`` objects, a mapping wrapping such a
        list under ``"sections"``, or a JSON string encoding either.

    Returns
    -------
    list[Section]
        Sections in rendering order. Unrecognised shapes yield an empty list;
        entries without a string ``name`` are skipped and logged.
    """
    match raw:
        case str() as text:
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                logger.warning("Section payload is not valid JSON")
                return []
            if isinstance(decoded, str):
                return []
            return normalize_sections(decoded)
        case {"sections": list() as entries}:
            items: list[typ.Any] = entries
        case list() as entries:
            items = entries
        case _:
            return []

    sections: list[Section] = []
    for index, entry in enumerate(items):
        match entry:
            case Section():
                sections.append(Section(name=entry.name, content=entry.content))
            case {"name": str() as name, **rest}:
                content = rest.get("content")
                sections.append(
                    Section(name=name, content=content if isinstance(content, str) else "")
                )
            case _:
                logger.warning(
                    "Skipping malformed section entry", extra={"index": index}
                )
    return sections


def sections_payload(sections: typ.Iterable[Section]) -> list[dict[str, str]]:
    """Return the bare-list payload written to the persistence service."""
    return [section.to_dict() for section in sections]


def clone_sections(sections: typ.Iterable[Section]) -> list[Section]:
    """Return an independent copy of ``sections`` suitable for a snapshot."""
    return [Section(name=section.name, content=section.content) for section in sections]


def fragment_root(fragment_html: str) -> Tag | None:
    """Return the first top-level element of ``fragment_html`` or ``None``."""
    soup = BeautifulSoup(fragment_html or "", "html.parser")
    return next((node for node in soup.contents if isinstance(node, Tag)), None)


def class_tokens(element: Tag) -> list[str]:
    """Return the whitespace-delimited class tokens of ``element``."""
    value = element.get("class")
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    return [str(token) for token in value]


def component_id_of(
    fragment_html: str, prefix: str = DEFAULT_COMPONENT_PREFIX
) -> str | None:
    """Return the component identifier carried by the fragment's root element.

    The identifier is the first class token on the root element that starts
    with ``prefix``; ``None`` is returned when the fragment has no root element
    or no such token.
    """
    root = fragment_root(fragment_html)
    if root is None:
        return None
    return next((token for token in class_tokens(root) if token.startswith(prefix)), None)


def section_locator(name: str) -> dict[str, str]:
    """Return the attribute the assembler stamps on the section named ``name``."""
    return {SECTION_LOCATOR_ATTR: name}


def is_section_component(component_id: str) -> bool:
    """Return True when ``component_id`` names a section root."""
    return SECTION_ID_MARKER in component_id


def readable_label(component_id: str, prefix: str = DEFAULT_COMPONENT_PREFIX) -> str:
    """Strip the prefix and hash segment to give a human-friendly label.

    >>> readable_label("tpl-3fa2-section-hero")
    'section-hero'
    """
    if not component_id.startswith(prefix):
        return component_id
    remainder = component_id[len(prefix) :]
    head, sep, tail = remainder.partition("-")
    if sep and head and all(char in "0123456789abcdef" for char in head.lower()):
        return tail
    return remainder


__all__ = [
    "Section",
    "class_tokens",
    "clone_sections",
    "component_id_of",
    "fragment_root",
    "is_section_component",
    "normalize_sections",
    "readable_label",
    "section_locator",
    "sections_payload",
]
