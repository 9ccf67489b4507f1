"""Typed dataclasses describing the editor configuration file."""

from __future__ import annotations

import dataclasses as dc

from sitepatch._constants import (
    CHAT_HISTORY_LIMIT,
    DEFAULT_COMPONENT_PREFIX,
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_FORM_ENDPOINT,
)
from sitepatch.assembler.models import CodeSnippet, TemplateSet
from sitepatch.assembler.page_assembler import PageAssembler
from sitepatch.document.patch import AmbiguityPolicy, MatchMode, MatchPolicy


@dc.dataclass(slots=True)
class EditorSettings:
    """Tunables for component lookup, autosave, and transcripts."""

    component_prefix: str = DEFAULT_COMPONENT_PREFIX
    match_mode: MatchMode = MatchMode.TOKEN
    on_ambiguous: AmbiguityPolicy = AmbiguityPolicy.FIRST
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    chat_history_limit: int = CHAT_HISTORY_LIMIT
    form_endpoint: str = DEFAULT_FORM_ENDPOINT

    @property
    def match_policy(self) -> MatchPolicy:
        """Return the lookup policy shared by patching and extraction."""
        return MatchPolicy(mode=self.match_mode, on_ambiguous=self.on_ambiguous)


@dc.dataclass(slots=True)
class ServiceSettings:
    """Endpoints of the edit and persistence services."""

    edit_url: str | None = None
    persistence_url: str | None = None
    timeout: float = 30.0


@dc.dataclass(slots=True)
class ProjectConfig:
    """Project identity and its layout templates."""

    id: str | None = None
    templates: TemplateSet = dc.field(default_factory=TemplateSet)


@dc.dataclass(slots=True)
class EditorConfig:
    """Fully resolved editor configuration."""

    project: ProjectConfig = dc.field(default_factory=ProjectConfig)
    services: ServiceSettings = dc.field(default_factory=ServiceSettings)
    editor: EditorSettings = dc.field(default_factory=EditorSettings)
    snippets: list[CodeSnippet] = dc.field(default_factory=list)

    def build_assembler(self) -> PageAssembler:
        """Return a page assembler bound to the project's templates."""
        return PageAssembler(
            self.project.templates,
            project_id=self.project.id,
            form_endpoint=self.editor.form_endpoint,
        )


__all__ = [
    "EditorConfig",
    "EditorSettings",
    "ProjectConfig",
    "ServiceSettings",
]
