"""Utility helpers shared by the editor configuration loader."""

from __future__ import annotations

import enum
import typing as typ
from pathlib import Path

from sitepatch.errors import ConfigurationError

EnumT = typ.TypeVar("EnumT", bound=enum.Enum)


def _mapping(value: object, section: str) -> typ.Mapping[str, typ.Any]:
    """Return ``value`` as a mapping, treating ``None`` as empty."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        msg = f"'{section}' must be a mapping."
        raise ConfigurationError(msg)
    return value


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _enum_value(enum_type: type[EnumT], value: object, key: str) -> EnumT:
    """Coerce ``value`` into ``enum_type`` or raise ConfigurationError."""
    try:
        return enum_type(str(value))
    except ValueError as exc:
        choices = ", ".join(str(member.value) for member in enum_type)
        msg = f"'{key}' must be one of {choices}; got {value!r}."
        raise ConfigurationError(msg) from exc


def _number(value: object, key: str, *, minimum: float = 0.0) -> float:
    """Return ``value`` as a float no smaller than ``minimum``."""
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        msg = f"'{key}' must be a number; got {value!r}."
        raise ConfigurationError(msg) from exc
    if number < minimum:
        msg = f"'{key}' must be at least {minimum}; got {number}."
        raise ConfigurationError(msg)
    return number


def _template_text(
    payload: typ.Mapping[str, typ.Any], key: str, base_dir: Path, default: str
) -> str:
    """Return inline template text or the contents of ``<key>_path``."""
    inline = payload.get(key)
    path_value = payload.get(f"{key}_path")
    if inline is not None and path_value is not None:
        msg = f"Set either 'project.{key}' or 'project.{key}_path', not both."
        raise ConfigurationError(msg)
    if path_value is not None:
        path = Path(str(path_value))
        if not path.is_absolute():
            path = base_dir / path
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            msg = f"Could not read project.{key}_path '{path}': {exc}"
            raise ConfigurationError(msg) from exc
    if inline is None:
        return default
    return str(inline)
