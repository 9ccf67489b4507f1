"""Document tree adapter, component patch engine, and section extractor."""

from .extractor import clean_markup, extract
from .patch import (
    AmbiguityPolicy,
    MatchMode,
    MatchPolicy,
    PatchResult,
    find_component,
    find_components,
    patch,
)
from .tree import (
    clear_marks,
    instrument,
    mark,
    parse,
    parse_fragment,
    prepare_for_preview,
    serialize,
    strip_instrumentation,
)

__all__ = [
    "AmbiguityPolicy",
    "MatchMode",
    "MatchPolicy",
    "PatchResult",
    "clean_markup",
    "clear_marks",
    "extract",
    "find_component",
    "find_components",
    "instrument",
    "mark",
    "parse",
    "parse_fragment",
    "patch",
    "prepare_for_preview",
    "serialize",
    "strip_instrumentation",
]
