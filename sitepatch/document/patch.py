"""Replace one component's markup in place inside a live document tree.

The preview surface must not reload on every edit, so a patch swaps exactly
the matched element for the new fragment and leaves every other node of the
tree as it was. Lookup is by component identifier in the class list; the
matching rule and the handling of several matches are explicit policy.

Example
-------
>>> from sitepatch.document import parse, patch
>>> tree = parse('<div class="tpl-1-section-a"><p>old</p></div>')
>>> result = patch(tree, "tpl-1-section-a", '<div class="tpl-1-section-a">new</div>')
>>> result.match_count
1
"""

from __future__ import annotations

import dataclasses as dc
import enum
import logging

from bs4 import BeautifulSoup, Tag

from sitepatch._constants import SECTION_LOCATOR_ATTR
from sitepatch.errors import AmbiguousMatchError, NotFoundError
from sitepatch.sections import class_tokens

from .tree import parse_fragment, serialize

logger = logging.getLogger(__name__)


class MatchMode(enum.StrEnum):
    """How a component identifier is compared against a class attribute."""

    TOKEN = "token"
    SUBSTRING = "substring"


class AmbiguityPolicy(enum.StrEnum):
    """What a lookup does when more than one element matches."""

    FIRST = "first"
    ERROR = "error"


@dc.dataclass(frozen=True, slots=True)
class MatchPolicy:
    """Matching rule plus multi-match handling for component lookups.

    ``TOKEN`` requires the identifier to be one whole class token, so
    ``tpl-2`` never matches an element classed ``tpl-20``. ``SUBSTRING``
    matches anywhere in the class attribute text.
    """

    mode: MatchMode = MatchMode.TOKEN
    on_ambiguous: AmbiguityPolicy = AmbiguityPolicy.FIRST


@dc.dataclass(slots=True)
class PatchResult:
    """Outcome of a successful patch."""

    html: str
    match_count: int


def find_components(
    tree: BeautifulSoup | Tag, component_id: str, mode: MatchMode = MatchMode.TOKEN
) -> list[Tag]:
    """Return every element matching ``component_id`` in document order."""
    if not component_id:
        return []
    if mode is MatchMode.SUBSTRING:
        return tree.find_all(
            lambda tag: component_id in " ".join(class_tokens(tag))
        )
    return tree.find_all(lambda tag: component_id in class_tokens(tag))


def find_component(
    tree: BeautifulSoup | Tag, component_id: str, policy: MatchPolicy | None = None
) -> tuple[Tag, int]:
    """Return the element the policy selects for ``component_id`` and the match count.

    Raises
    ------
    NotFoundError
        When nothing matches.
    AmbiguousMatchError
        When several elements match and the policy demands a unique match.
    """
    policy = policy or MatchPolicy()
    matches = find_components(tree, component_id, policy.mode)
    if not matches:
        msg = f'No element found with class "{component_id}"'
        raise NotFoundError(msg)
    if len(matches) > 1:
        if policy.on_ambiguous is AmbiguityPolicy.ERROR:
            msg = f'Found {len(matches)} elements with class "{component_id}"'
            raise AmbiguousMatchError(msg)
        logger.warning(
            "Multiple elements match component; replacing first match",
            extra={"component_id": component_id, "match_count": len(matches)},
        )
    return matches[0], len(matches)


def patch(
    tree: BeautifulSoup,
    component_id: str,
    new_fragment_html: str,
    *,
    policy: MatchPolicy | None = None,
) -> PatchResult:
    """Swap the element identified by ``component_id`` for ``new_fragment_html``.

    Parameters
    ----------
    tree : BeautifulSoup
        Live document tree; mutated in place.
    component_id : str
        Component identifier carried in the target element's class list.
    new_fragment_html : str
        Replacement markup with a single root element.
    policy : MatchPolicy, optional
        Lookup rule; defaults to exact-token matching, first match wins.

    Returns
    -------
    PatchResult
        Serialised document (instrumentation stripped) and the number of
        elements that matched before the swap.

    Raises
    ------
    NotFoundError
        No element matched; the tree is unchanged.
    ValidationError
        The fragment is empty or malformed; the tree is unchanged.
    """
    target, match_count = find_component(tree, component_id, policy)
    replacement = parse_fragment(new_fragment_html)
    locator = target.get(SECTION_LOCATOR_ATTR)
    if locator is not None and replacement.get(SECTION_LOCATOR_ATTR) is None:
        replacement[SECTION_LOCATOR_ATTR] = locator
    target.replace_with(replacement)
    return PatchResult(html=serialize(tree), match_count=match_count)


__all__ = [
    "AmbiguityPolicy",
    "MatchMode",
    "MatchPolicy",
    "PatchResult",
    "find_component",
    "find_components",
    "patch",
]
