# OSL syntax helpers for the declarative shader group language:
# type names, literal formatting and identifier sanitizing.

import re
from typing import Optional

from ..ir.types import DataType

# Value emitted for types that have no literal form (closures, shaders).
# A parameter that formats to this is never emitted.
NULL_VALUE = "null"

CLOSURE_TYPE_NAME = "closure color"

# MaterialX type -> OSL type
TYPE_MAP = {
    DataType.BOOLEAN: "int",
    DataType.INTEGER: "int",
    DataType.FLOAT: "float",
    DataType.COLOR3: "color",
    DataType.COLOR4: "color4",
    DataType.VECTOR2: "vector2",
    DataType.VECTOR3: "vector",
    DataType.VECTOR4: "vector4",
    DataType.MATRIX33: "matrix",
    DataType.MATRIX44: "matrix",
    DataType.STRING: "string",
    DataType.FILENAME: "string",
    DataType.INTEGERARRAY: "int[]",
    DataType.FLOATARRAY: "float[]",
}

_INVALID_CHARS = re.compile(r'[^a-zA-Z0-9_]')
_UNDERSCORE_RUNS = re.compile(r'_+')


def type_name(type: str) -> str:
    """OSL type name for a MaterialX type name. Custom types pass through."""
    dtype = DataType.lookup(type)
    if dtype is None:
        return type
    if dtype.is_closure():
        return CLOSURE_TYPE_NAME
    return TYPE_MAP[dtype]


def sanitize_name(name: str) -> str:
    """Turns any name into a valid OSL identifier."""
    # Replace non-alphanumeric chars with underscore
    s = _INVALID_CHARS.sub('_', name)
    # Collapse multiple underscores to avoid reserved identifiers
    s = _UNDERSCORE_RUNS.sub('_', s)
    if not s:
        return "_"
    # Ensure it doesn't start with digit
    if s[0].isdigit():
        s = "_" + s
    return s


def format_float(value: float) -> str:
    """Fixed notation, at most six decimals, no trailing zeros beyond one."""
    text = f"{value:.6f}".rstrip('0')
    if text.endswith('.'):
        text += '0'
    if text == "-0.0":
        text = "0.0"
    return text


def _components(value: str):
    return [c.strip() for c in value.split(',') if c.strip()]


def _quote(value: str) -> str:
    escaped = value.replace('\\', '\\\\').replace('"', '\\"')
    return f'"{escaped}"'


def format_value(value: Optional[str], type: str) -> Optional[str]:
    """
    Format a MaterialX value string as an OSL parameter literal.

    Returns None when there is no value at all, and NULL_VALUE for types
    without a literal form.

    Raises:
        ValueError: if the value does not parse as the given type
    """
    dtype = DataType.lookup(type)

    if dtype is not None and dtype.is_closure():
        return NULL_VALUE
    if value is None:
        return None
    if dtype is None:
        # Custom type: pass the value through, empty means unset
        return value.strip() or NULL_VALUE

    if dtype.is_string():
        return _quote(value)

    if dtype == DataType.BOOLEAN:
        text = value.strip().lower()
        if text in ("true", "1"):
            return "1"
        if text in ("false", "0"):
            return "0"
        raise ValueError(f"Invalid boolean value: {value!r}")

    parts = _components(value)
    if dtype.is_array():
        if dtype.is_integer():
            return " ".join(str(int(p)) for p in parts)
        return " ".join(format_float(float(p)) for p in parts)

    expected = dtype.component_count()
    if len(parts) != expected:
        raise ValueError(f"Expected {expected} components for {type}, got {len(parts)}: {value!r}")

    if dtype == DataType.INTEGER:
        return str(int(parts[0]))
    return " ".join(format_float(float(p)) for p in parts)
