"""Load editor configuration YAML into typed dataclasses."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from sitepatch._constants import SLOT_MARKER
from sitepatch.assembler.models import CodeSnippet, TemplateSet
from sitepatch.document.patch import AmbiguityPolicy, MatchMode
from sitepatch.errors import ConfigurationError

from .helpers import _enum_value, _mapping, _number, _optional_str, _template_text
from .models import EditorConfig, EditorSettings, ProjectConfig, ServiceSettings


def load_editor_config(path: Path) -> EditorConfig:
    """Load the YAML file describing the project templates and editor tunables.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML configuration file (for example,
        ``sitepatch.yaml``). Relative ``*_path`` template entries resolve
        against the file's directory.

    Returns
    -------
    EditorConfig
        Project templates, service endpoints, editor settings, and snippets.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    TypeError
        If the top-level YAML structure is not a mapping.
    ConfigurationError
        If a section or value is invalid, including a wrapper template
        without exactly one ``{{slot}}`` marker.
    YAMLError
        If the YAML content cannot be parsed by the underlying loader.

    Examples
    --------
    >>> from pathlib import Path
    >>> from sitepatch.config import load_editor_config
    >>> config = load_editor_config(Path("sitepatch.yaml"))  # doctest: +SKIP
    >>> config.editor.match_mode  # doctest: +SKIP
    <MatchMode.TOKEN: 'token'>
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise TypeError(msg)
    raw: dict[str, typ.Any] = dict(loaded)
    base_dir = path.parent

    project = _build_project_config(_mapping(raw.get("project"), "project"), base_dir)
    services = _build_service_settings(_mapping(raw.get("services"), "services"))
    editor = _build_editor_settings(_mapping(raw.get("editor"), "editor"))
    snippets = _build_snippets(raw.get("snippets"))
    return EditorConfig(
        project=project, services=services, editor=editor, snippets=snippets
    )


def _build_project_config(
    payload: typ.Mapping[str, typ.Any], base_dir: Path
) -> ProjectConfig:
    templates = TemplateSet(
        wrapper=_template_text(payload, "wrapper", base_dir, SLOT_MARKER),
        header=_template_text(payload, "header", base_dir, ""),
        footer=_template_text(payload, "footer", base_dir, ""),
    )
    templates.validate()
    return ProjectConfig(id=_optional_str(payload.get("id")), templates=templates)


def _build_service_settings(payload: typ.Mapping[str, typ.Any]) -> ServiceSettings:
    base = ServiceSettings()
    return ServiceSettings(
        edit_url=_optional_str(payload.get("edit_url")),
        persistence_url=_optional_str(payload.get("persistence_url")),
        timeout=_number(payload.get("timeout", base.timeout), "services.timeout"),
    )


def _build_editor_settings(payload: typ.Mapping[str, typ.Any]) -> EditorSettings:
    base = EditorSettings()
    prefix = _optional_str(payload.get("component_prefix")) or base.component_prefix
    limit = _number(
        payload.get("chat_history_limit", base.chat_history_limit),
        "editor.chat_history_limit",
        minimum=1,
    )
    return EditorSettings(
        component_prefix=prefix,
        match_mode=_enum_value(
            MatchMode, payload.get("match_mode", base.match_mode), "editor.match_mode"
        ),
        on_ambiguous=_enum_value(
            AmbiguityPolicy,
            payload.get("on_ambiguous", base.on_ambiguous),
            "editor.on_ambiguous",
        ),
        debounce_seconds=_number(
            payload.get("debounce_seconds", base.debounce_seconds),
            "editor.debounce_seconds",
        ),
        chat_history_limit=int(limit),
        form_endpoint=_optional_str(payload.get("form_endpoint")) or base.form_endpoint,
    )


def _build_snippets(raw: object) -> list[CodeSnippet]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        msg = "'snippets' must be a list."
        raise ConfigurationError(msg)
    snippets: list[CodeSnippet] = []
    for index, entry in enumerate(raw):
        match entry:
            case dict():
                snippets.append(CodeSnippet.from_mapping(entry))
            case _:
                msg = f"Snippet #{index + 1} must be a mapping."
                raise ConfigurationError(msg)
    return snippets


__all__ = ["load_editor_config"]
