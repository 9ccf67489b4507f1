"""Tests for the ``sitepatch`` command-line entrypoints.

Usage
-----
Run ``pytest tests/test_cli.py -v``.
"""

from __future__ import annotations

import json
import typing as typ

import pytest

from sitepatch import cli
from sitepatch.document import AmbiguityPolicy

if typ.TYPE_CHECKING:
    from pathlib import Path

HERO = '<section class="tpl-1a-section-hero"><h1>Hello</h1></section>'
ABOUT = '<section class="tpl-2b-section-about"><p>About us</p></section>'


def _project(tmp_path: Path) -> dict[str, Path]:
    config = tmp_path / "sitepatch.yaml"
    config.write_text(
        "project:\n"
        "  id: proj-9\n"
        "  wrapper: '<html><head></head><body>{{slot}}</body></html>'\n"
        "snippets:\n"
        "  - code: '<meta name=\"x\">'\n"
        "    location: head_end\n"
        "    page_ids: [home]\n",
        encoding="utf-8",
    )
    sections = tmp_path / "sections.json"
    sections.write_text(
        json.dumps(
            {"sections": [{"name": "hero", "content": HERO}, {"name": "about", "content": ABOUT}]}
        ),
        encoding="utf-8",
    )
    return {"config": config, "sections": sections, "html": tmp_path / "out" / "page.html"}


def test_assemble_writes_page(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """The assemble command renders sections, snippets, and the form script."""
    paths = _project(tmp_path)

    cli.assemble(
        sections=paths["sections"],
        output=paths["html"],
        config=paths["config"],
        page_id="home",
        only=["hero"],
        form=True,
    )

    html = paths["html"].read_text(encoding="utf-8")
    assert '<section class="tpl-1a-section-hero" data-section="hero">' in html
    assert "tpl-2b-section-about" not in html, "Filtered section should be skipped"
    assert '<head><meta name="x"></head>' in html
    assert 'var PROJECT_ID = "proj-9";' in html
    assert "wrote " in capsys.readouterr().out


def test_assemble_form_requires_project_id(tmp_path: Path) -> None:
    """The form script cannot be injected without a project id."""
    paths = _project(tmp_path)
    paths["config"].write_text("project:\n  wrapper: '{{slot}}'\n", encoding="utf-8")
    with pytest.raises(ValueError, match="project.id"):
        cli.assemble(
            sections=paths["sections"], output=paths["html"], config=paths["config"], form=True
        )


def test_patch_then_extract_updates_sections(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Patching a saved page and extracting refreshes only that section."""
    paths = _project(tmp_path)
    cli.assemble(sections=paths["sections"], output=paths["html"], config=paths["config"])
    fragment = tmp_path / "hero.html"
    fragment.write_text(
        '<section class="tpl-1a-section-hero"><h1>Welcome</h1></section>', encoding="utf-8"
    )

    cli.patch_page(
        html=paths["html"],
        component="tpl-1a-section-hero",
        fragment=fragment,
        on_ambiguous=AmbiguityPolicy.ERROR,
    )
    refreshed = tmp_path / "refreshed.json"
    cli.extract_sections(html=paths["html"], sections=paths["sections"], output=refreshed)

    payload = json.loads(refreshed.read_text(encoding="utf-8"))
    assert payload == [
        {
            "name": "hero",
            "content": '<section class="tpl-1a-section-hero"><h1>Welcome</h1></section>',
        },
        {"name": "about", "content": ABOUT},
    ]
    assert paths["html"].read_text(encoding="utf-8").startswith("<!DOCTYPE html>\n")
    assert capsys.readouterr().out.count("wrote ") == 3


def test_missing_sections_file_is_reported(tmp_path: Path) -> None:
    """A missing sections file raises a clear error."""
    paths = _project(tmp_path)
    with pytest.raises(FileNotFoundError, match="Sections file"):
        cli.assemble(
            sections=tmp_path / "absent.json", output=paths["html"], config=paths["config"]
        )


def test_app_registers_commands() -> None:
    """The Cyclopts app exposes the three page commands."""
    for name in ("assemble", "patch", "extract"):
        assert cli.app[name] is not None, f"Expected {name!r} command to be registered"
