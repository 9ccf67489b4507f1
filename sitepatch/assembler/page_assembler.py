"""Assemble full HTML documents from template parts and page sections.

The wrapper template holds one ``{{slot}}`` marker; the assembler replaces it
with the header, the page sections, and the footer. Each section's root
element is stamped with a ``data-section`` locator so the patch engine and the
section extractor can find it later regardless of styling classes. Optional
code snippets and a form-submission script are spliced in afterwards.

Example
-------
>>> from sitepatch.assembler import assemble
>>> from sitepatch.sections import Section
>>> html = assemble(
...     "<html><head></head><body>{{slot}}</body></html>",
...     "<h1>H</h1>",
...     "<footer>F</footer>",
...     [Section(name="a", content="<p>A</p>")],
... )
>>> '<p data-section="a">A</p>' in html
True
"""

from __future__ import annotations

import functools
import logging
import re
import typing as typ
from pathlib import Path

from bs4 import BeautifulSoup, Tag
from jinja2 import Environment, FileSystemLoader, select_autoescape

from sitepatch._constants import (
    DEFAULT_FORM_ENDPOINT,
    FORM_OPT_OUT_ATTR,
    FORM_REENABLE_DELAY_MS,
    SECTION_LOCATOR_ATTR,
    SLOT_MARKER,
)

from .models import CodeSnippet, TemplateSet
from .snippets import inject_snippets

if typ.TYPE_CHECKING:
    from sitepatch.sections import Section

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"
BODY_CLOSE_PATTERN = re.compile(r"</body\s*>", re.IGNORECASE)


@functools.cache
def _environment(templates_dir: Path) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


class PageAssembler:
    """Render pages for one project's template set."""

    def __init__(
        self,
        templates: TemplateSet,
        *,
        project_id: str | None = None,
        form_endpoint: str = DEFAULT_FORM_ENDPOINT,
        templates_dir: Path | None = None,
    ) -> None:
        """Initialize the assembler with project templates and form settings.

        Parameters
        ----------
        templates : TemplateSet
            Wrapper, header, and footer markup for the project.
        project_id : str, optional
            Identifier sent by the injected form handler; also used as the
            default form target when rendering.
        form_endpoint : str, optional
            URL the injected form handler posts submissions to.
        templates_dir : Path, optional
            Directory containing Jinja templates; defaults to the package
            templates.
        """
        self.templates = templates
        self.project_id = project_id
        self.form_endpoint = form_endpoint
        self.templates_dir = templates_dir or DEFAULT_TEMPLATES_DIR
        self.env = _environment(self.templates_dir)
        self.form_template = self.env.get_template("form_handler.jinja")

    def render(
        self,
        sections: typ.Sequence[Section],
        *,
        section_filter: typ.Collection[str] | None = None,
        snippets: typ.Iterable[CodeSnippet] | None = None,
        page_id: str | None = None,
        form_target_id: str | None = None,
    ) -> str:
        """Return the full HTML document for ``sections``.

        Raises
        ------
        ConfigurationError
            When the wrapper does not contain exactly one slot marker.
        """
        self.templates.validate()
        selected = (
            [section for section in sections if section.name in section_filter]
            if section_filter is not None
            else list(sections)
        )
        main_content = "\n".join(tag_section(section) for section in selected)
        page_content = "\n".join(
            [self.templates.header, main_content, self.templates.footer]
        )
        html = self.templates.wrapper.replace(SLOT_MARKER, page_content, 1)
        if snippets is not None:
            html = inject_snippets(html, snippets, page_id)
        if form_target_id is not None:
            html = self._inject_form_handler(html, form_target_id)
        return html

    def form_handler_script(self, target_id: str) -> str:
        """Render the self-contained form-submission script for ``target_id``."""
        return self.form_template.render(
            project_id=target_id,
            endpoint=self.form_endpoint,
            reenable_delay_ms=FORM_REENABLE_DELAY_MS,
            opt_out_attr=FORM_OPT_OUT_ATTR,
        )

    def _inject_form_handler(self, html: str, target_id: str) -> str:
        script = self.form_handler_script(target_id)
        closing = list(BODY_CLOSE_PATTERN.finditer(html))
        if not closing:
            return f"{html}{script}"
        index = closing[-1].start()
        return f"{html[:index]}{script}{html[index:]}"


def tag_section(section: Section) -> str:
    """Return the section markup with its root element carrying the locator."""
    soup = BeautifulSoup(section.content, "html.parser")
    root = next((node for node in soup.contents if isinstance(node, Tag)), None)
    if root is None:
        logger.warning(
            "Section has no root element; rendering untagged",
            extra={"section": section.name},
        )
        return section.content
    root[SECTION_LOCATOR_ATTR] = section.name
    return str(soup)


def assemble(
    wrapper: str,
    header: str,
    footer: str,
    sections: typ.Sequence[Section],
    section_filter: typ.Collection[str] | None = None,
    snippets: typ.Iterable[CodeSnippet] | None = None,
    page_id: str | None = None,
    form_target_id: str | None = None,
    *,
    form_endpoint: str = DEFAULT_FORM_ENDPOINT,
) -> str:
    """Combine templates and sections into one HTML document.

    Parameters
    ----------
    wrapper : str
        Outer document with exactly one ``{{slot}}`` marker.
    header : str
        Markup rendered before the sections.
    footer : str
        Markup rendered after the sections.
    sections : Sequence[Section]
        Sections in rendering order.
    section_filter : Collection[str], optional
        Names of the sections to render; all sections when omitted.
    snippets : Iterable[CodeSnippet], optional
        Code snippets to splice at their structural markers.
    page_id : str, optional
        Current page, used for snippet page targeting.
    form_target_id : str, optional
        When given, a form-submission script posting on behalf of this id is
        inserted before the closing body tag.
    form_endpoint : str, optional
        URL the form-submission script posts to.

    Returns
    -------
    str
        The assembled document.

    Raises
    ------
    ConfigurationError
        When ``wrapper`` lacks the slot marker.
    """
    assembler = PageAssembler(
        TemplateSet(wrapper=wrapper, header=header, footer=footer),
        form_endpoint=form_endpoint,
    )
    return assembler.render(
        sections,
        section_filter=section_filter,
        snippets=snippets,
        page_id=page_id,
        form_target_id=form_target_id,
    )


__all__ = ["DEFAULT_TEMPLATES_DIR", "PageAssembler", "assemble", "tag_section"]
