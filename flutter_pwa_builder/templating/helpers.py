"""Built-in template helpers.

Each helper is a plain function.  The case and inflection helpers double as
the named transforms a :class:`~flutter_pwa_builder.models.Template` can
apply to context fields before rendering.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any


# ---------------------------------------------------------------------------
# Case conversion
# ---------------------------------------------------------------------------

def _join_words(value: str) -> str:
    return re.sub(r"[-_\s]+(.)?", lambda m: m.group(1).upper() if m.group(1) else "", value)


def camel_case(value: Any) -> str:
    """Convert ``some-thing``, ``some_thing`` or ``SomeThing`` to ``someThing``."""
    if not value:
        return ""
    joined = _join_words(str(value))
    return joined[:1].lower() + joined[1:]


def pascal_case(value: Any) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    if not value:
        return ""
    joined = _join_words(str(value))
    return joined[:1].upper() + joined[1:]


def snake_case(value: Any) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    if not value:
        return ""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", str(value))
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


def kebab_case(value: Any) -> str:
    """Convert ``SomeThing`` or ``some_thing`` to ``some-thing``."""
    if not value:
        return ""
    return snake_case(value).replace("_", "-")


# ---------------------------------------------------------------------------
# Inflection
# ---------------------------------------------------------------------------

def pluralize(value: Any) -> str:
    if not value:
        return ""
    word = str(value)
    if word.endswith(("s", "x", "z")):
        return word + "es"
    if re.search(r"[^aeiou]y$", word, flags=re.IGNORECASE):
        return word[:-1] + "ies"
    return word + "s"


def singularize(value: Any) -> str:
    if not value:
        return ""
    word = str(value)
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith("es"):
        return word[:-2]
    if word.endswith("s"):
        return word[:-1]
    return word


def upper_case(value: Any) -> str:
    return str(value).upper() if value is not None else ""


def lower_case(value: Any) -> str:
    return str(value).lower() if value is not None else ""


# ---------------------------------------------------------------------------
# Dart helpers
# ---------------------------------------------------------------------------

_DART_TYPES: dict[str, str] = {
    "string": "String",
    "number": "num",
    "integer": "int",
    "float": "double",
    "boolean": "bool",
    "date": "DateTime",
    "json": "Map<String, dynamic>",
    "text": "String",
    "array": "List",
    "object": "Map<String, dynamic>",
}

_DART_DEFAULTS: dict[str, str] = {
    "String": "''",
    "int": "0",
    "double": "0.0",
    "num": "0",
    "bool": "false",
    "DateTime": "DateTime.now()",
    "List": "[]",
    "Map": "{}",
}


def dart_type(value: Any) -> str:
    """Map a schema type literal (``string``, ``integer``...) to a Dart type.

    Unknown literals pass through unchanged; a missing value maps to
    ``dynamic``.
    """
    if value is None or value == "":
        return "dynamic"
    return _DART_TYPES.get(str(value).lower(), str(value))


def dart_default_value(value: Any) -> str:
    return _DART_DEFAULTS.get(str(value), "null")


def dart_comment(text: Any) -> str:
    if not text:
        return ""
    return "\n".join(f"/// {line}" for line in str(text).split("\n"))


def dart_block_comment(text: Any) -> str:
    if not text:
        return ""
    return f"/* {text} */"


# ---------------------------------------------------------------------------
# Logic / comparison helpers
# ---------------------------------------------------------------------------

def _compare(left: Any, right: Any, op: Callable[[Any, Any], bool]) -> bool:
    try:
        return bool(op(left, right))
    except TypeError:
        return False


def if_cond(left: Any, operator: str, right: Any) -> bool:
    """Compare two values with a textual operator (``==``, ``<=``, ``&&``...)."""
    if operator in ("==", "==="):
        return left == right
    if operator in ("!=", "!=="):
        return left != right
    if operator == "<":
        return _compare(left, right, lambda a, b: a < b)
    if operator == "<=":
        return _compare(left, right, lambda a, b: a <= b)
    if operator == ">":
        return _compare(left, right, lambda a, b: a > b)
    if operator == ">=":
        return _compare(left, right, lambda a, b: a >= b)
    if operator == "&&":
        return bool(left) and bool(right)
    if operator == "||":
        return bool(left) or bool(right)
    return False


def _join(items: Any, separator: Any = ",") -> str:
    if not isinstance(items, (list, tuple)):
        return ""
    return str(separator).join(str(item) for item in items)


def _includes(items: Any, value: Any) -> bool:
    return isinstance(items, (list, tuple)) and value in items


def _first(items: Any) -> Any:
    return items[0] if isinstance(items, (list, tuple)) and items else None


def _last(items: Any) -> Any:
    return items[-1] if isinstance(items, (list, tuple)) and items else None


def _length(value: Any) -> int:
    try:
        return len(value)
    except TypeError:
        return 0


def _json(value: Any, indent: Any = 2) -> str:
    return json.dumps(value, indent=indent if isinstance(indent, int) else 2, default=str)


def _keys(value: Any) -> list[Any]:
    return list(value.keys()) if isinstance(value, Mapping) else []


def _values(value: Any) -> list[Any]:
    return list(value.values()) if isinstance(value, Mapping) else []


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _date(fmt: Any = "YYYY-MM-DD") -> str:
    today = datetime.now(timezone.utc)
    return (
        str(fmt)
        .replace("YYYY", f"{today.year:04d}")
        .replace("MM", f"{today.month:02d}")
        .replace("DD", f"{today.day:02d}")
    )


# ---------------------------------------------------------------------------
# Registry of built-ins
# ---------------------------------------------------------------------------

TRANSFORMS: dict[str, Callable[[Any], str]] = {
    "camelCase": camel_case,
    "pascalCase": pascal_case,
    "snakeCase": snake_case,
    "kebabCase": kebab_case,
    "pluralize": pluralize,
    "singularize": singularize,
}


def builtin_helpers() -> dict[str, Callable[..., Any]]:
    """Return a fresh name -> function mapping of every built-in helper."""
    return {
        **TRANSFORMS,
        "upperCase": upper_case,
        "lowerCase": lower_case,
        "eq": lambda a, b: a == b,
        "neq": lambda a, b: a != b,
        "gt": lambda a, b: _compare(a, b, lambda x, y: x > y),
        "gte": lambda a, b: _compare(a, b, lambda x, y: x >= y),
        "lt": lambda a, b: _compare(a, b, lambda x, y: x < y),
        "lte": lambda a, b: _compare(a, b, lambda x, y: x <= y),
        "and": lambda *args: all(args),
        "or": lambda *args: any(args),
        "not": lambda value: not value,
        "join": _join,
        "includes": _includes,
        "first": _first,
        "last": _last,
        "length": _length,
        "json": _json,
        "keys": _keys,
        "values": _values,
        "now": _now,
        "date": _date,
        "dartType": dart_type,
        "dartDefaultValue": dart_default_value,
        "dartComment": dart_comment,
        "dartBlockComment": dart_block_comment,
        "ifCond": if_cond,
    }
