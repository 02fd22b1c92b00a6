"""
Conversion between JSON / YAML text and Oro values.

Parsed data uses the Oro value set: objects become maps, arrays become
arrays, and every number becomes a float.
"""
from __future__ import annotations

import collections.abc
import json
from typing import Any

import yaml

from oro.oro_datatypes import OroCallable, OroInstance, oro_native, require
from oro.oro_errors import OroRuntimeError


# --------------------------
# Helpers
# --------------------------

def _to_oro(obj: Any) -> Any:
    """Normalize parsed data into Oro values."""
    if isinstance(obj, bool) or obj is None or isinstance(obj, str):
        return obj
    if isinstance(obj, (int, float)):
        return float(obj)
    if isinstance(obj, list):
        return [_to_oro(x) for x in obj]
    if isinstance(obj, collections.abc.Mapping):
        return {str(k): _to_oro(v) for k, v in obj.items()}
    # YAML timestamps and the like
    return str(obj)


def to_builtin(obj: Any) -> Any:
    """Convert Oro values into plain Python data for dumping."""
    if isinstance(obj, float) and obj.is_integer():
        return int(obj)
    if isinstance(obj, list):
        return [to_builtin(x) for x in obj]
    if isinstance(obj, collections.abc.Mapping):
        return {str(k): to_builtin(v) for k, v in obj.items()}
    if isinstance(obj, OroInstance):
        return {k: to_builtin(v) for k, v in obj.fields.items()}
    if isinstance(obj, OroCallable):
        raise OroRuntimeError(f"Cannot serialize {obj!r}.")
    return obj


# --------------------------
# Public API
# --------------------------

def deserialize(text: str, *, fmt: str) -> Any:
    """Parse `text` as 'json' or 'yaml' into Oro values."""
    f = (fmt or '').lower()
    try:
        if f == 'json':
            return _to_oro(json.loads(text))
        if f == 'yaml':
            return _to_oro(yaml.safe_load(text))
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise OroRuntimeError(f"Invalid {f.upper()}: {e}") from None
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def serialize(value: Any, *, fmt: str, pretty: bool = False) -> str:
    """Render an Oro value as 'json' or 'yaml' text."""
    f = (fmt or '').lower()
    built = to_builtin(value)
    try:
        if f == 'json':
            return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
        if f == 'yaml':
            return yaml.safe_dump(built, sort_keys=False)
    except (TypeError, ValueError, yaml.YAMLError) as e:
        raise OroRuntimeError(f"Cannot serialize value: {e}") from None
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


# --------------------------
# Natives
# --------------------------

@oro_native("parseJSON")
def parse_json(text):
    require(text, "string", "parseJSON")
    return deserialize(text, fmt='json')


@oro_native("toJSON")
def to_json(value):
    return serialize(value, fmt='json')


@oro_native("parseYAML")
def parse_yaml(text):
    require(text, "string", "parseYAML")
    return deserialize(text, fmt='yaml')


@oro_native("toYAML")
def to_yaml(value):
    return serialize(value, fmt='yaml')


__all__ = [
    "deserialize",
    "serialize",
    "to_builtin",
]
