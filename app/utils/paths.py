"""Dotted-path access into nested candidate dicts ("profile.contact.email")."""

import copy
from typing import Any


def get_path(data: dict[str, Any], path: str) -> Any:
    """Return the value at ``path`` or None if any segment is missing."""
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def set_path(data: dict[str, Any], path: str, value: Any) -> dict[str, Any]:
    """Return a deep copy of ``data`` with ``value`` stored at ``path``.

    Intermediate dicts are created as needed. The input is not mutated.
    """
    result = copy.deepcopy(data)
    parts = path.split(".")
    current = result
    for part in parts[:-1]:
        nested = current.get(part)
        if not isinstance(nested, dict):
            nested = {}
            current[part] = nested
        current = nested
    current[parts[-1]] = value
    return result


def pop_path(data: dict[str, Any], path: str) -> dict[str, Any]:
    """Return a deep copy of ``data`` without the key at ``path``."""
    result = copy.deepcopy(data)
    parts = path.split(".")
    current = result
    for part in parts[:-1]:
        current = current.get(part)
        if not isinstance(current, dict):
            return result
    current.pop(parts[-1], None)
    return result
