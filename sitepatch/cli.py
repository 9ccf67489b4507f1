"""Cyclopts CLI entrypoint for assembling, patching, and re-extracting pages.

The ``sitepatch`` console script exposes the page engine without the
interactive editor: ``assemble`` renders a page from the project templates and
a sections file, ``patch`` swaps one component in a saved document, and
``extract`` re-derives the sections file from an edited document. Sections
files hold the persisted JSON shape: a list of ``{"name", "content"}``
objects, or the same list under a ``"sections"`` key.

Examples
--------
Assemble a page with snippets targeted at ``home``:

>>> from sitepatch.cli import app
>>> app.run(
...     ["assemble", "--sections", "home.json", "--output", "home.html", "--page-id", "home"]
... )  # doctest: +SKIP

Replace one component in the rendered page:

>>> app.run(
...     ["patch", "--html", "home.html", "--component", "tpl-3fa2-section-hero",
...      "--fragment", "hero.html"]
... )  # doctest: +SKIP
"""

from __future__ import annotations

import json
import logging
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from ._constants import DEFAULT_COMPONENT_PREFIX
from .config import load_editor_config
from .document import AmbiguityPolicy, MatchMode, MatchPolicy, extract, parse, patch
from .sections import Section, normalize_sections, sections_payload

DEFAULT_CONFIG = Path("sitepatch.yaml")

app = App(name="sitepatch", config=cyclopts.config.Env("SITEPATCH_", command=False))  # type: ignore[unknown-argument]

LogLevel = typ.Annotated[
    str,
    Parameter(help="Logging level (DEBUG, INFO, WARNING, ERROR)", env_var="SITEPATCH_LOG_LEVEL"),
]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _read_sections(path: Path) -> list[Section]:
    if not path.exists():
        msg = f"Sections file '{path}' not found."
        raise FileNotFoundError(msg)
    return normalize_sections(path.read_text(encoding="utf-8"))


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    print(f"wrote {_format_path(path)}")


@app.command(help="Assemble a full HTML page from templates and a sections file.")
def assemble(
    *,
    sections: typ.Annotated[Path, Parameter(help="Sections JSON file")],
    output: typ.Annotated[Path, Parameter(help="Where to write the HTML page")],
    config: typ.Annotated[
        Path, Parameter(help="Path to editor config", env_var="SITEPATCH_CONFIG")
    ] = DEFAULT_CONFIG,
    page_id: typ.Annotated[
        str | None, Parameter(help="Page identifier used for snippet targeting")
    ] = None,
    only: typ.Annotated[
        list[str] | None, Parameter(help="Render only the named sections")
    ] = None,
    form: typ.Annotated[
        bool, Parameter(help="Inject the form-submission script")
    ] = False,
    log_level: LogLevel = "WARNING",
) -> None:
    """Render ``sections`` through the configured project templates.

    Raises
    ------
    ValueError
        If ``--form`` is requested but the configuration has no project id.
    """
    _configure_logging(log_level)
    editor_config = load_editor_config(config)
    project_id = editor_config.project.id
    if form and not project_id:
        msg = "Cannot inject the form handler without 'project.id' in the config."
        raise ValueError(msg)
    html = editor_config.build_assembler().render(
        _read_sections(sections),
        section_filter=set(only) if only else None,
        snippets=editor_config.snippets,
        page_id=page_id,
        form_target_id=project_id if form else None,
    )
    _write(output, html)


@app.command(name="patch", help="Replace one component of a saved HTML page in place.")
def patch_page(
    *,
    html: typ.Annotated[Path, Parameter(help="HTML page to patch")],
    component: typ.Annotated[str, Parameter(help="Component identifier (class token)")],
    fragment: typ.Annotated[Path, Parameter(help="File holding the replacement fragment")],
    output: typ.Annotated[
        Path | None, Parameter(help="Where to write the result (defaults to --html)")
    ] = None,
    match_mode: typ.Annotated[
        MatchMode, Parameter(help="token or substring matching")
    ] = MatchMode.TOKEN,
    on_ambiguous: typ.Annotated[
        AmbiguityPolicy, Parameter(help="first or error when several elements match")
    ] = AmbiguityPolicy.FIRST,
    log_level: LogLevel = "WARNING",
) -> None:
    """Swap ``component`` in ``html`` for the markup in ``fragment``."""
    _configure_logging(log_level)
    tree = parse(html.read_text(encoding="utf-8"))
    result = patch(
        tree,
        component,
        fragment.read_text(encoding="utf-8"),
        policy=MatchPolicy(mode=match_mode, on_ambiguous=on_ambiguous),
    )
    _write(output or html, result.html)


@app.command(name="extract", help="Re-derive a sections file from an edited HTML page.")
def extract_sections(
    *,
    html: typ.Annotated[Path, Parameter(help="Edited HTML page")],
    sections: typ.Annotated[Path, Parameter(help="Sections JSON the page was built from")],
    output: typ.Annotated[
        Path | None, Parameter(help="Where to write sections JSON (defaults to --sections)")
    ] = None,
    prefix: typ.Annotated[
        str, Parameter(help="Class prefix of component identifiers")
    ] = DEFAULT_COMPONENT_PREFIX,
    log_level: LogLevel = "WARNING",
) -> None:
    """Refresh each section in ``sections`` from the markup in ``html``."""
    _configure_logging(log_level)
    prior = _read_sections(sections)
    tree = parse(html.read_text(encoding="utf-8"))
    refreshed = extract(tree, prior, prefix=prefix)
    payload = json.dumps(sections_payload(refreshed), indent=2, ensure_ascii=False)
    _write(output or sections, f"{payload}\n")


def main() -> None:
    """Invoke the Cyclopts application that powers the `sitepatch` console command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
