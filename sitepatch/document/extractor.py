"""Re-derive the ordered section list from the current document tree.

After any mutation the rendered tree, not the patch call's bookkeeping, is the
source of truth. Each section is looked up by the component identifier found
in its own last-known markup, falling back to the ``data-section`` locator the
assembler stamped on its root. Sections that cannot be found keep their prior
content and the mismatch is logged; extraction never aborts.
"""

from __future__ import annotations

import copy
import logging
import typing as typ

from bs4 import BeautifulSoup, Tag

from sitepatch._constants import (
    DEFAULT_COMPONENT_PREFIX,
    EDITOR_FLAG_ATTRS,
    SECTION_LOCATOR_ATTR,
)
from sitepatch.sections import Section, component_id_of, section_locator

from .patch import MatchPolicy, find_components

logger = logging.getLogger(__name__)


def extract(
    tree: BeautifulSoup,
    prior_sections: typ.Sequence[Section],
    *,
    prefix: str = DEFAULT_COMPONENT_PREFIX,
    policy: MatchPolicy | None = None,
) -> list[Section]:
    """Return ``prior_sections`` refreshed from the markup currently in ``tree``.

    Parameters
    ----------
    tree : BeautifulSoup
        Live document tree after a mutation.
    prior_sections : Sequence[Section]
        Section list as it stood before the mutation; order and names are kept.
    prefix : str, optional
        Class-token prefix that marks component identifiers.
    policy : MatchPolicy, optional
        Matching rule used for identifier lookups.

    Returns
    -------
    list[Section]
        One entry per prior section. Content is the matched element's markup
        without the locator attribute or editor flags; unmatched sections are
        returned unchanged.
    """
    policy = policy or MatchPolicy()
    refreshed: list[Section] = []
    for section in prior_sections:
        element = _locate_section(tree, section, prefix, policy)
        if element is None:
            logger.warning(
                "Section not found in document; keeping prior content",
                extra={"section": section.name},
            )
            refreshed.append(Section(name=section.name, content=section.content))
            continue
        markup = clean_markup(element)
        if markup == _normalized(section.content):
            markup = section.content
        refreshed.append(Section(name=section.name, content=markup))
    return refreshed


def _locate_section(
    tree: BeautifulSoup, section: Section, prefix: str, policy: MatchPolicy
) -> Tag | None:
    component_id = component_id_of(section.content, prefix)
    if component_id:
        matches = find_components(tree, component_id, policy.mode)
        if matches:
            return matches[0]
    located = tree.find(attrs=section_locator(section.name))
    return located if isinstance(located, Tag) else None


def clean_markup(element: Tag) -> str:
    """Return ``element`` markup without the locator or editor-only flags."""
    clone = copy.copy(element)
    if clone.get(SECTION_LOCATOR_ATTR) is not None:
        del clone[SECTION_LOCATOR_ATTR]
    for attr in EDITOR_FLAG_ATTRS:
        if clone.get(attr) is not None:
            del clone[attr]
        for nested in clone.find_all(attrs={attr: True}):
            del nested[attr]
    return str(clone)


def _normalized(fragment_html: str) -> str:
    return str(BeautifulSoup(fragment_html or "", "html.parser")).strip()


__all__ = ["clean_markup", "extract"]
