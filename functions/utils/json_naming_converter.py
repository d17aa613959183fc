"""
functions/utils/json_naming_converter.py

Recursive snake_case -> camelCase key conversion for HTTP responses.

Python-side models (ChangeRecord, AdapterEnvelope) stay snake_case;
api.py converts right before serializing, so
    {"change_ticket_number": "CHG0030001", "work_start": "..."}
goes out as
    {"changeTicketNumber": "CHG0030001", "workStart": "..."}

Values are never touched and the input is never mutated. Non-string
keys and keys without underscores pass through unchanged.
"""

from __future__ import annotations

from typing import Any


def snake_to_camel(s: str) -> str:
    """
    Convert snake_case string to camelCase.

    Leading/trailing underscores are preserved; "___" stays "___".
    """
    core = s.strip("_")
    if "_" not in core:
        return s

    leading = s[: len(s) - len(s.lstrip("_"))]
    trailing = s[len(s.rstrip("_")) :]
    first, *rest = [part for part in core.split("_") if part]
    return leading + first + "".join(part[:1].upper() + part[1:] for part in rest) + trailing


def convert_keys_snake_to_camel(obj: Any) -> Any:
    """Return a new JSON-like object with every dict key camelCased."""
    if isinstance(obj, list):
        return [convert_keys_snake_to_camel(item) for item in obj]

    if isinstance(obj, dict):
        return {
            (snake_to_camel(key) if isinstance(key, str) else key): convert_keys_snake_to_camel(value)
            for key, value in obj.items()
        }

    return obj
