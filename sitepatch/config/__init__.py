"""Load and validate the editor configuration YAML.

This subpackage parses the project's ``sitepatch.yaml`` file: the wrapper,
header, and footer templates (inline or from files), the edit and persistence
service endpoints, editor tunables such as the component-lookup policy and the
autosave delay, and the code snippets injected at assembly time. The primary
entry point is :func:`load_editor_config`, which validates every value and
returns an :class:`EditorConfig`.

Examples
--------
>>> from pathlib import Path
>>> from sitepatch.config import load_editor_config
>>> config = load_editor_config(Path("sitepatch.yaml"))  # doctest: +SKIP
>>> assembler = config.build_assembler()  # doctest: +SKIP
"""

from .loader import load_editor_config
from .models import EditorConfig, EditorSettings, ProjectConfig, ServiceSettings

__all__ = [
    "EditorConfig",
    "EditorSettings",
    "ProjectConfig",
    "ServiceSettings",
    "load_editor_config",
]
