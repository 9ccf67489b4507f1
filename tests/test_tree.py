"""Unit tests for the document tree adapter.

These tests check doctype handling, removal of editor instrumentation during
serialisation, fragment validation, and the preview helpers.

Usage
-----
Run ``pytest tests/test_tree.py -v``.
"""

from __future__ import annotations

import pytest

from sitepatch.document import (
    clear_marks,
    instrument,
    mark,
    parse,
    parse_fragment,
    prepare_for_preview,
    serialize,
)
from sitepatch.errors import ValidationError


@pytest.mark.parametrize(
    ("source", "expected_doctype"),
    [
        ("<!DOCTYPE html>\n<html><body><p>x</p></body></html>", "<!DOCTYPE html>"),
        ("<!doctype html><html><body><p>x</p></body></html>", "<!DOCTYPE html>"),
        ("<html><body><p>x</p></body></html>", "<!DOCTYPE html>"),
    ],
    ids=["upper", "lower", "absent"],
)
def test_serialize_emits_doctype_then_markup(source: str, expected_doctype: str) -> None:
    """Serialisation keeps (or reconstructs) the doctype on its own line."""
    html = serialize(parse(source))
    assert html == f"{expected_doctype}\n<html><body><p>x</p></body></html>", (
        f"Unexpected serialisation: {html!r}"
    )


def test_serialize_keeps_legacy_doctype() -> None:
    """Non-HTML5 doctypes are preserved."""
    legacy = '<!DOCTYPE html PUBLIC "-//W3C//DTD HTML 4.01//EN">'
    html = serialize(parse(f"{legacy}<html></html>"))
    assert html.startswith(f"{legacy}\n"), f"Doctype lost: {html!r}"


def test_serialize_strips_instrumentation_without_touching_live_tree() -> None:
    """Editor overlays and flags are removed from output but not from the tree."""
    tree = parse(
        "<html><head></head><body>"
        '<div id="sitepatch-hover-label">hero</div>'
        '<div id="sitepatch-selected-label">hero</div>'
        '<div id="sitepatch-action-panel"><button>Hide</button></div>'
        '<section class="tpl-1-section-hero"><p>Hi</p></section>'
        "</body></html>"
    )
    instrument(tree)
    section = tree.find("section")
    mark(section, "selected")
    mark(section.p, "hover")

    html = serialize(tree)

    for marker in (
        "sitepatch-selector-styles",
        "sitepatch-hover-label",
        "sitepatch-selected-label",
        "sitepatch-action-panel",
        "data-sitepatch-hover",
        "data-sitepatch-selected",
    ):
        assert marker not in html, f"{marker} leaked into serialised output"
    assert '<section class="tpl-1-section-hero"><p>Hi</p></section>' in html
    assert tree.find(id="sitepatch-action-panel") is not None, "Live tree was mutated"
    assert section.get("data-sitepatch-selected") == "true", "Live flags were removed"


def test_instrument_is_idempotent() -> None:
    """The selector style block is injected into the head once."""
    tree = parse("<html><head><title>t</title></head><body></body></html>")
    first = instrument(tree)
    second = instrument(tree)
    assert first is second
    assert len(tree.find_all("style")) == 1
    assert first.parent is tree.head, "Style should live in the document head"


def test_clear_marks_removes_one_flag_kind() -> None:
    """Clearing hover flags leaves selected flags alone."""
    tree = parse("<div><p>a</p><p>b</p></div>")
    first, second = tree.find_all("p")
    mark(first, "hover")
    mark(second, "selected")
    clear_marks(tree, "hover")
    assert first.get("data-sitepatch-hover") is None
    assert second.get("data-sitepatch-selected") == "true"


def test_parse_fragment_returns_single_root() -> None:
    """Comments and whitespace around one root element are accepted."""
    root = parse_fragment('  <!-- note -->\n<section class="a"><p>x</p></section>\n')
    assert root.name == "section"
    assert root.p.string == "x"


@pytest.mark.parametrize(
    ("fragment", "reason"),
    [
        ("", "empty"),
        ("   \n", "empty"),
        ("just text", "stray"),
        ("<p>a</p><p>b</p>", "single root"),
        ("<!-- only a comment -->", "no root"),
    ],
)
def test_parse_fragment_rejects_invalid_markup(fragment: str, reason: str) -> None:
    """Empty, text-only, and multi-root fragments are invalid."""
    with pytest.raises(ValidationError, match=reason):
        parse_fragment(fragment)


def test_prepare_for_preview_drops_csp_meta() -> None:
    """Content-Security-Policy meta tags are stripped; other metas stay."""
    html = (
        '<head><meta charset="utf-8">'
        "<meta http-equiv='Content-Security-Policy' content=\"default-src 'self'\">"
        "</head>"
    )
    assert prepare_for_preview(html) == '<head><meta charset="utf-8"></head>'
