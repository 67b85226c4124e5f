# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Canonical query string encoding for list and read options.

Options are pydantic models whose field aliases are the wire parameter
names (``page[number]``, ``filter[status]``, ``include``). Encoding is
deterministic: keys are sorted, and multi-valued ``include`` and
``filter[...]`` parameters collapse into a single comma-joined value.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import quote_plus

from pydantic import BaseModel

__all__ = ("encode_query_params", "query_values")

INCLUDE_QUERY_PARAM = "include"


def valid_slice_key(key: str) -> bool:
    """Return True when a multi-valued key is sent comma-joined."""
    return key == INCLUDE_QUERY_PARAM or "filter[" in key


def _format_value(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, bytes, list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def _is_zero(value: Any) -> bool:
    return isinstance(value, (bool, int, float)) and not isinstance(value, Enum) and not value


def query_values(options: BaseModel | Mapping[str, Any] | None) -> dict[str, list[str]]:
    """
    Flatten an options value into a mapping of parameter name to values.

    Nested option models (such as an embedded ``ListOptions``) are merged
    into the parent. Absent and empty values are skipped, and so are zero
    numbers and false flags on option models. Mappings are sent as given.
    """
    if options is None:
        return {}

    if isinstance(options, BaseModel):
        pairs = [(alias, getattr(options, name)) for name, alias in _alias_map(options).items()]
        pairs = [(key, value) for key, value in pairs if not _is_zero(value)]
    else:
        pairs = list(options.items())

    values: dict[str, list[str]] = {}
    for key, value in pairs:
        if isinstance(value, BaseModel):
            for nested_key, nested_values in query_values(value).items():
                values.setdefault(nested_key, []).extend(nested_values)
            continue
        if _is_empty(value):
            continue
        if isinstance(value, Iterable) and not isinstance(value, (str, bytes)):
            formatted = [_format_value(v) for v in value if not _is_empty(v)]
            if formatted:
                values.setdefault(key, []).extend(formatted)
            continue
        values.setdefault(key, []).append(_format_value(value))
    return values


def _alias_map(options: BaseModel) -> dict[str, str]:
    fields = type(options).model_fields
    return {name: (info.serialization_alias or info.alias or name) for name, info in fields.items()}


def encode_query_params(values: BaseModel | Mapping[str, Any] | None) -> str:
    """
    Encode options into a URL query string (``bar=baz&foo=quux``) sorted by key.

    Args:
        values: An options model, or a mapping of parameter name to a value
            or list of values.

    Returns:
        The canonical query string, or an empty string when there is
        nothing to send.
    """
    flattened = query_values(values)
    parts: list[str] = []
    for key in sorted(flattened):
        vs = flattened[key]
        if len(vs) > 1 and valid_slice_key(key):
            vs = [",".join(vs)]
        key_escaped = quote_plus(key, safe="")
        for v in vs:
            parts.append(f"{key_escaped}={quote_plus(v, safe='')}")
    return "&".join(parts)
