"""
Helpers for composite keys and parsed configuration trees.

A composite key looks like ``"<relative file>|<segment>:<segment>:..."``. The
file part selects a YAML document under the bundle directory, the subpath
walks into the parsed tree.
"""

from __future__ import annotations

import base64
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Set, Tuple, Type

import yaml
from pydantic import TypeAdapter, ValidationError

from remote_config.domain.models import ErrorKind, Result

KEY_SEPARATOR = "|"
SUBKEY_SEPARATOR = ":"

_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0"}
_NOT_CONVERTED: Any = object()


def split_key(key: str) -> Result[Tuple[str, List[str]]]:
    """
    Split a composite key into its file part and its ordered subpath segments.

    Exactly one KEY_SEPARATOR is required; nothing touches the filesystem here.
    """
    parts = key.split(KEY_SEPARATOR)
    if len(parts) != 2:
        return Result.err(ErrorKind.INVALID_ARGUMENTS, f"key does not contain two parts: {key}")
    return Result.ok((parts[0], parts[1].split(SUBKEY_SEPARATOR)))


def join_key(file_name: str, segments: List[str]) -> str:
    return f"{file_name}{KEY_SEPARATOR}{SUBKEY_SEPARATOR.join(segments)}"


def _key_text(key: Any) -> str:
    # Mirrors how a JSON serializer writes non-string YAML keys.
    if isinstance(key, bool):
        return "true" if key else "false"
    if key is None:
        return "null"
    if isinstance(key, (date, datetime)):
        return key.isoformat()
    return str(key)


def normalize_tree(value: Any) -> Any:
    """
    Recursively convert a YAML object graph into a JSON-compatible tree.

    Mapping keys become strings, sequences and sets become lists, dates become
    ISO-8601 strings and binary values become base64 text. A node reached
    through several aliases is converted once and shared, so alias chains stay
    linear. A node that contains itself raises ValueError.
    """
    return _normalize(value, set(), {})


def _normalize(value: Any, active: Set[int], done: Dict[int, Any]) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if not isinstance(value, (dict, list, tuple, set, frozenset)):
        return str(value)

    node_id = id(value)
    if node_id in done:
        return done[node_id]
    if node_id in active:
        raise ValueError("configuration tree contains a recursive alias")

    active.add(node_id)
    try:
        if isinstance(value, dict):
            result: Any = {_key_text(k): _normalize(v, active, done) for k, v in value.items()}
        elif isinstance(value, (set, frozenset)):
            result = [_normalize(v, active, done) for v in sorted(value, key=_key_text)]
        else:
            result = [_normalize(v, active, done) for v in value]
    finally:
        active.discard(node_id)

    done[node_id] = result
    return result


def parse_document(text: str) -> Optional[Any]:
    """
    Parse YAML text into a normalized tree.

    Returns None when the document is empty. Raises yaml.YAMLError on invalid
    syntax and ValueError on a recursive alias; callers decide how to report
    those.
    """
    loaded = yaml.safe_load(text)
    if loaded is None:
        return None
    return normalize_tree(loaded)


def walk(tree: Any, segments: List[str]) -> Result[Any]:
    """
    Descend into a parsed tree one segment at a time.

    Mapping children are addressed by name, list children by a non-negative
    integer index. A missing child and an explicit null are both failures.
    """
    node = tree
    for segment in segments:
        child = None
        if isinstance(node, dict):
            child = node.get(segment)
        elif isinstance(node, list) and segment.isascii() and segment.isdecimal():
            index = int(segment)
            if index < len(node):
                child = node[index]

        if child is None:
            return Result.err(
                ErrorKind.INVALID_ARGUMENTS,
                f"expected a value for sub key '{segment}' but got null instead",
            )
        node = child
    return Result.ok(node)


def _coerce_scalar(value: Any, value_type: Type[Any]) -> Any:
    if value_type is str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    if value_type is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise ValueError(f"cannot convert {value!r} to bool")

    if value_type is int:
        if isinstance(value, bool):
            raise ValueError(f"cannot convert {value!r} to int")
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            return int(value.strip())
        raise ValueError(f"cannot convert {value!r} to int")

    if value_type is float:
        if isinstance(value, bool):
            raise ValueError(f"cannot convert {value!r} to float")
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            return float(value.strip())
        raise ValueError(f"cannot convert {value!r} to float")

    return _NOT_CONVERTED


def coerce(node: Any, value_type: Type[Any] = object) -> Result[Any]:
    """
    Convert a tree node to the requested type.

    Composite nodes (mappings and lists) are validated as a whole into
    value_type with a pydantic TypeAdapter, so Pydantic models, TypedDicts and
    parametrized collections all work. Scalars go through a small converter for
    str, int, float and bool; any other target falls back to TypeAdapter.
    """
    if node is None:
        return Result.err(ErrorKind.INVALID_ARGUMENTS, "failed to get value: node is null")
    if value_type is object or value_type is Any:
        return Result.ok(node)

    try:
        value = _NOT_CONVERTED
        if not isinstance(node, (dict, list)):
            value = _coerce_scalar(node, value_type)
        if value is _NOT_CONVERTED:
            value = TypeAdapter(value_type).validate_python(node)
    except (ValidationError, TypeError, ValueError) as e:
        name = getattr(value_type, "__name__", repr(value_type))
        return Result.err(ErrorKind.INVALID_ARGUMENTS, f"failed to get value as {name}: {e}")

    if value is None:
        return Result.err(ErrorKind.INVALID_ARGUMENTS, "failed to get value")
    return Result.ok(value)
