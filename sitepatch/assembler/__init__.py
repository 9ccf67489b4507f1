"""Page assembly: templates, section tagging, snippets, and the form handler."""

from .models import CodeSnippet, SnippetLocation, TemplateSet
from .page_assembler import PageAssembler, assemble, tag_section
from .snippets import group_snippets, inject_snippets

__all__ = [
    "CodeSnippet",
    "PageAssembler",
    "SnippetLocation",
    "TemplateSet",
    "assemble",
    "group_snippets",
    "inject_snippets",
    "tag_section",
]
