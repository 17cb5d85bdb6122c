"""
finreport/mappers/tagged_value_codec.py

Conversion between tagged wire values and native Python values.

decode:  StrValue -> str, NumValue -> float, ListValue -> list, MapValue -> dict
encode:  the inverse, guided by an optional expected shape

Numbers are written as plain decimal strings: no exponent, no trailing
``.0``, and no binary floating-point noise beyond what ``repr`` of the
source float already carries. ``decode(encode(x)) == x`` holds for every
representable ``x``.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Union

from finreport.domain.errors import MalformedNumber
from finreport.domain.tagged_value import (
    ListValue,
    MapValue,
    NumValue,
    StrValue,
    Tag,
    TaggedValue,
    from_wire,
)

_NUMERAL_PATTERN = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")


@dataclass(frozen=True)
class ListOf:
    """Expected shape of a list whose items all share ``item`` (inferred when None)."""

    item: "Shape | None" = None


@dataclass(frozen=True)
class MapOf:
    """
    Expected shape of a map.

    ``fields`` pins the shape of named keys; ``values`` applies to any other key.
    """

    fields: Mapping[str, "Shape"] = field(default_factory=dict)
    values: "Shape | None" = None


Shape = Union[str, ListOf, MapOf]


def parse_number(raw: Any, *, path: str | None = None) -> float:
    """
    Parse a numeric-string payload, raising ``MalformedNumber`` for anything else.
    """

    if not isinstance(raw, str):
        raise MalformedNumber(raw, path=path)
    text = raw.strip()
    if not _NUMERAL_PATTERN.match(text):
        raise MalformedNumber(raw, path=path)
    value = float(text)
    if not math.isfinite(value):
        raise MalformedNumber(raw, path=path)
    return value


def format_number(value: int | float | Decimal) -> str:
    """
    Format a number as a plain decimal string.

    >>> format_number(82.0)
    '82'
    >>> format_number(0.68)
    '0.68'
    >>> format_number(1e21)
    '1000000000000000000000'
    """

    if isinstance(value, bool):
        raise TypeError("Booleans are not numeric wire values.")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Cannot encode non-finite number {value!r}.")
        # repr() is the shortest string that round-trips the float.
        decimal_value = Decimal(repr(value))
    elif isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"Cannot encode non-finite number {value!r}.")
        decimal_value = value
    else:
        raise TypeError(f"Expected a number, got {type(value).__name__}.")

    text = format(decimal_value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text == "-0":
        text = "0"
    return text


def decode(value: TaggedValue | Mapping[str, Any], *, path: str = "$") -> Any:
    """
    Decode a tagged value tree into native Python values.
    """

    if isinstance(value, Mapping):
        value = from_wire(value, path=path)

    if isinstance(value, StrValue):
        return value.value
    if isinstance(value, NumValue):
        return parse_number(value.value, path=path)
    if isinstance(value, ListValue):
        return [decode(item, path=f"{path}[{index}]") for index, item in enumerate(value.items)]
    if isinstance(value, MapValue):
        return {key: decode(item, path=f"{path}.{key}") for key, item in value.entries.items()}
    raise TypeError(f"{path}: not a tagged value: {type(value).__name__}.")


def encode(value: Any, shape: Shape | None = None, *, path: str = "$") -> TaggedValue:
    """
    Encode a native value as a tagged value.

    Without ``shape`` the tag is inferred: ``str`` -> S, numbers -> N,
    sequences -> L, mappings -> M. With ``shape`` the tag is enforced, and a
    numeric string is accepted where ``Tag.N`` is expected. ``None`` entries
    inside maps are treated as absent fields and skipped.
    """

    if shape is None:
        shape = _infer_shape(value, path=path)

    if shape == Tag.S:
        if not isinstance(value, str):
            raise TypeError(f"{path}: expected a string, got {type(value).__name__}.")
        return StrValue(value)

    if shape == Tag.N:
        if isinstance(value, str):
            parse_number(value, path=path)
            return NumValue(value.strip())
        try:
            return NumValue(format_number(value))
        except TypeError as exc:
            raise TypeError(f"{path}: {exc}") from exc

    if isinstance(shape, ListOf):
        if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
            raise TypeError(f"{path}: expected a list, got {type(value).__name__}.")
        return ListValue(
            tuple(encode(item, shape.item, path=f"{path}[{index}]") for index, item in enumerate(value))
        )

    if isinstance(shape, MapOf):
        if not isinstance(value, Mapping):
            raise TypeError(f"{path}: expected a mapping, got {type(value).__name__}.")
        entries: dict[str, TaggedValue] = {}
        for key, item in value.items():
            if item is None:
                continue
            item_shape = shape.fields.get(key, shape.values)
            entries[str(key)] = encode(item, item_shape, path=f"{path}.{key}")
        return MapValue(entries)

    raise TypeError(f"{path}: unsupported shape {shape!r}.")


def _infer_shape(value: Any, *, path: str) -> Shape:
    if isinstance(value, str):
        return Tag.S
    if isinstance(value, bool) or value is None:
        raise TypeError(f"{path}: {value!r} has no tagged representation.")
    if isinstance(value, (int, float, Decimal)):
        return Tag.N
    if isinstance(value, (list, tuple)):
        return ListOf()
    if isinstance(value, Mapping):
        return MapOf()
    raise TypeError(f"{path}: {type(value).__name__} has no tagged representation.")
