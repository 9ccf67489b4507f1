"""Assemble generated website pages and patch them live, one component at a time.

This package provides the page assembler (templates, snippets, form handler),
the document tree adapter, the component patch engine, the section extractor,
and the editing session that ties them together with undo, autosave, and the
draft/publish lifecycle. The ``sitepatch`` console command exposes assembly,
patching, and extraction for saved files.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from sitepatch import main
>>> main()  # doctest: +SKIP
>>> from sitepatch import app
>>> app.name[0]
'sitepatch'
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
