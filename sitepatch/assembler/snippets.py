"""Splice configured code snippets into an assembled document."""

from __future__ import annotations

import logging
import re
import typing as typ

from .models import CodeSnippet, SnippetLocation

logger = logging.getLogger(__name__)

# (pattern, insert after the match?)
_INJECTION_POINTS: dict[SnippetLocation, tuple[re.Pattern[str], bool]] = {
    SnippetLocation.HEAD_START: (re.compile(r"<head(?:\s[^>]*)?>", re.IGNORECASE), True),
    SnippetLocation.HEAD_END: (re.compile(r"</head\s*>", re.IGNORECASE), False),
    SnippetLocation.BODY_START: (re.compile(r"<body(?:\s[^>]*)?>", re.IGNORECASE), True),
    SnippetLocation.BODY_END: (re.compile(r"</body\s*>", re.IGNORECASE), False),
}


def group_snippets(
    snippets: typ.Iterable[CodeSnippet], page_id: str | None
) -> dict[SnippetLocation, list[CodeSnippet]]:
    """Return enabled snippets for ``page_id`` grouped by location and sorted.

    Within a group snippets are ordered by ascending ``order_index``; ties keep
    their input order.
    """
    groups: dict[SnippetLocation, list[CodeSnippet]] = {
        location: [] for location in SnippetLocation
    }
    for snippet in snippets:
        if not snippet.is_enabled or not snippet.targets(page_id):
            continue
        groups[snippet.location].append(snippet)
    for members in groups.values():
        members.sort(key=lambda snippet: snippet.order_index)
    return groups


def inject_snippets(
    html: str, snippets: typ.Iterable[CodeSnippet], page_id: str | None = None
) -> str:
    """Return ``html`` with each snippet group spliced at its structural marker.

    Each group's code is concatenated in order and inserted once, at the first
    occurrence of the opening head tag, closing head tag, opening body tag, or
    closing body tag respectively. Groups whose marker is absent are skipped.
    """
    for location, members in group_snippets(snippets, page_id).items():
        if not members:
            continue
        pattern, after = _INJECTION_POINTS[location]
        match = pattern.search(html)
        if match is None:
            logger.warning(
                "Snippet marker not found; skipping group",
                extra={"location": str(location), "snippets": len(members)},
            )
            continue
        code = "\n".join(snippet.code for snippet in members)
        index = match.end() if after else match.start()
        html = f"{html[:index]}{code}{html[index:]}"
    return html


__all__ = ["group_snippets", "inject_snippets"]
