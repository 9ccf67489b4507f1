"""Unit tests for loading ``sitepatch.yaml``."""

from __future__ import annotations

import typing as typ
from textwrap import dedent

import pytest

from sitepatch.assembler import SnippetLocation
from sitepatch.config import load_editor_config
from sitepatch.document import AmbiguityPolicy, MatchMode
from sitepatch.errors import ConfigurationError
from sitepatch.sections import Section

if typ.TYPE_CHECKING:
    from pathlib import Path


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "sitepatch.yaml"
    path.write_text(dedent(text).lstrip(), encoding="utf-8")
    return path


def test_load_full_config(tmp_path: Path) -> None:
    """Every section of the file is parsed into typed settings."""
    (tmp_path / "layout").mkdir()
    (tmp_path / "layout" / "wrapper.html").write_text(
        "<html><head></head><body>{{slot}}</body></html>", encoding="utf-8"
    )
    path = _write(
        tmp_path,
        """
        project:
          id: proj-1
          wrapper_path: layout/wrapper.html
          header: '<header class="tpl-9-component-nav">Nav</header>'
          footer: "<footer>F</footer>"
        services:
          edit_url: https://edit.example.invalid
          persistence_url: https://store.example.invalid
          timeout: 12
        editor:
          component_prefix: cmp-
          match_mode: substring
          on_ambiguous: error
          debounce_seconds: 1.5
          chat_history_limit: 20
          form_endpoint: /forms
        snippets:
          - code: "<script>a</script>"
            location: head_end
            order_index: 2
          - code: "<script>b</script>"
            location: body_end
            is_enabled: false
            page_ids: [home]
        """,
    )

    config = load_editor_config(path)

    assert config.project.id == "proj-1"
    assert config.project.templates.wrapper.startswith("<html>")
    assert config.project.templates.footer == "<footer>F</footer>"
    assert config.services.timeout == 12
    assert config.services.edit_url == "https://edit.example.invalid"
    assert config.editor.component_prefix == "cmp-"
    assert config.editor.match_policy.mode is MatchMode.SUBSTRING
    assert config.editor.match_policy.on_ambiguous is AmbiguityPolicy.ERROR
    assert config.editor.debounce_seconds == 1.5
    assert config.editor.chat_history_limit == 20
    assert [s.location for s in config.snippets] == [
        SnippetLocation.HEAD_END,
        SnippetLocation.BODY_END,
    ]
    assert config.snippets[1].page_ids == ["home"]
    assert config.snippets[1].is_enabled is False

    html = config.build_assembler().render([Section("a", "<p>A</p>")], form_target_id="proj-1")
    assert 'var ENDPOINT = "/forms";' in html
    assert '<header class="tpl-9-component-nav">Nav</header>' in html


def test_defaults_apply_to_an_empty_file(tmp_path: Path) -> None:
    """An empty file yields a bare-slot wrapper and default tunables."""
    config = load_editor_config(_write(tmp_path, ""))
    assert config.project.templates.wrapper == "{{slot}}"
    assert config.editor.match_mode is MatchMode.TOKEN
    assert config.editor.debounce_seconds == 0.8
    assert config.editor.chat_history_limit == 50
    assert config.snippets == []


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("project:\n  wrapper: '<html></html>'\n", "missing the"),
        ("project:\n  wrapper: '{{slot}}{{slot}}'\n", "expected one"),
        ("editor:\n  match_mode: fuzzy\n", "editor.match_mode"),
        ("editor:\n  debounce_seconds: soon\n", "must be a number"),
        ("editor:\n  chat_history_limit: 0\n", "at least"),
        ("editor: [1, 2]\n", "'editor' must be a mapping"),
        ("snippets: {code: x}\n", "must be a list"),
        ("snippets:\n  - just text\n", "Snippet #1"),
        ("snippets:\n  - {code: x, location: footer}\n", "Unknown snippet location"),
        (
            "project:\n  wrapper: '{{slot}}'\n  wrapper_path: w.html\n",
            "not both",
        ),
        ("project:\n  header_path: missing.html\n", "Could not read"),
    ],
)
def test_invalid_values_raise_configuration_error(
    tmp_path: Path, text: str, message: str
) -> None:
    """Bad values are reported with the offending key."""
    with pytest.raises(ConfigurationError, match=message):
        load_editor_config(_write(tmp_path, text))


def test_missing_file_raises(tmp_path: Path) -> None:
    """A missing config file is reported as such."""
    with pytest.raises(FileNotFoundError, match="not found"):
        load_editor_config(tmp_path / "absent.yaml")


def test_top_level_must_be_a_mapping(tmp_path: Path) -> None:
    """A YAML list at the top level is rejected."""
    with pytest.raises(TypeError, match="must be a mapping"):
        load_editor_config(_write(tmp_path, "- project\n"))
