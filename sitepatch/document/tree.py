"""Parse and serialise live page documents with BeautifulSoup.

The preview surface renders a mutable document tree. Editing affordances
(hover outlines, selection labels, the inline action panel) are injected into
that same tree, so everything written back to storage passes through
:func:`serialize`, which works on a copy and strips the instrumentation before
emitting markup.
"""

from __future__ import annotations

import copy
import re
import typing as typ

from bs4 import BeautifulSoup, Comment, Doctype, NavigableString, Tag

from sitepatch._constants import (
    DEFAULT_DOCTYPE,
    EDITOR_ELEMENT_IDS,
    EDITOR_FLAG_ATTRS,
    HOVER_ATTR,
    SELECTED_ATTR,
    SELECTOR_STYLE_ID,
)
from sitepatch.errors import ValidationError

CSP_META_PATTERN = re.compile(
    r"<meta[^>]*http-equiv=[\"']Content-Security-Policy[\"'][^>]*>", re.IGNORECASE
)
_DOCTYPE_KEYWORD = re.compile(r"^doctype\s*", re.IGNORECASE)

SELECTOR_CSS = f"""
  a, button, form, input, select, textarea {{
    pointer-events: none !important;
    cursor: default !important;
  }}
  [class*="tpl-"] {{
    pointer-events: auto !important;
    cursor: pointer !important;
  }}
  [{HOVER_ATTR}="true"] {{
    outline: 2px dashed #3b82f6 !important;
    outline-offset: 6px !important;
  }}
  [{SELECTED_ATTR}="true"] {{
    outline: 2px solid #2563eb !important;
    outline-offset: 6px !important;
  }}
  [data-hidden="true"] {{
    opacity: 0.35 !important;
  }}
"""

EditorFlag = typ.Literal["hover", "selected"]
_FLAG_ATTRS: dict[str, str] = {"hover": HOVER_ATTR, "selected": SELECTED_ATTR}


def parse(html: str) -> BeautifulSoup:
    """Parse ``html`` into a mutable tree using the stdlib-backed parser."""
    return BeautifulSoup(html or "", "html.parser")


def serialize(tree: BeautifulSoup) -> str:
    """Return persistable markup for ``tree`` without editor instrumentation.

    The original doctype is kept (``<!DOCTYPE html>`` is emitted when the
    document had none) and the live tree is left untouched.
    """
    clean = copy.copy(tree)
    strip_instrumentation(clean)
    doctype: str | None = None
    parts: list[str] = []
    for node in clean.contents:
        if isinstance(node, Doctype):
            if doctype is None:
                doctype = _format_doctype(node)
            continue
        parts.append(str(node))
    body = "".join(parts).lstrip()
    return f"{doctype or DEFAULT_DOCTYPE}\n{body}"


def strip_instrumentation(tree: BeautifulSoup | Tag) -> None:
    """Remove injected editor elements and marker attributes from ``tree``."""
    for element_id in EDITOR_ELEMENT_IDS:
        for element in tree.find_all(id=element_id):
            element.decompose()
    for attr in EDITOR_FLAG_ATTRS:
        for element in tree.find_all(attrs={attr: True}):
            del element[attr]


def _format_doctype(node: Doctype) -> str:
    value = _DOCTYPE_KEYWORD.sub("", str(node)).strip()
    return f"<!DOCTYPE {value}>" if value else DEFAULT_DOCTYPE


def parse_fragment(html: str) -> Tag:
    """Return the single root element of a standalone fragment.

    Raises
    ------
    ValidationError
        When the fragment is empty, carries stray top-level text, or has more
        than one root element.
    """
    if not html or not html.strip():
        msg = "Fragment is empty"
        raise ValidationError(msg)
    soup = BeautifulSoup(html, "html.parser")
    roots: list[Tag] = []
    for node in soup.contents:
        if isinstance(node, Tag):
            roots.append(node)
        elif isinstance(node, Comment | Doctype):
            continue
        elif isinstance(node, NavigableString) and node.strip():
            msg = f"Fragment has stray top-level text: {node.strip()[:40]!r}"
            raise ValidationError(msg)
    if not roots:
        msg = "Fragment has no root element"
        raise ValidationError(msg)
    if len(roots) > 1:
        msg = f"Fragment must have a single root element, found {len(roots)}"
        raise ValidationError(msg)
    return roots[0].extract()


def prepare_for_preview(html: str) -> str:
    """Strip Content-Security-Policy meta tags so preview assets can load."""
    return CSP_META_PATTERN.sub("", html)


def instrument(tree: BeautifulSoup) -> Tag:
    """Inject the selector style block into ``tree`` once and return it."""
    existing = tree.find(id=SELECTOR_STYLE_ID)
    if isinstance(existing, Tag):
        return existing
    style = tree.new_tag("style", id=SELECTOR_STYLE_ID)
    style.string = SELECTOR_CSS
    head = tree.find("head")
    if isinstance(head, Tag):
        head.append(style)
    else:
        tree.insert(0, style)
    return style


def mark(element: Tag, flag: EditorFlag) -> None:
    """Set the hover or selected flag on ``element``."""
    element[_FLAG_ATTRS[flag]] = "true"


def clear_marks(tree: BeautifulSoup | Tag, flag: EditorFlag) -> None:
    """Clear the hover or selected flag wherever it is set in ``tree``."""
    attr = _FLAG_ATTRS[flag]
    for element in tree.find_all(attrs={attr: True}):
        del element[attr]


__all__ = [
    "CSP_META_PATTERN",
    "SELECTOR_CSS",
    "EditorFlag",
    "clear_marks",
    "instrument",
    "mark",
    "parse",
    "parse_fragment",
    "prepare_for_preview",
    "serialize",
    "strip_instrumentation",
]
