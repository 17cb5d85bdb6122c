"""
finreport/domain/tagged_value.py

Tagged wire values used by the reporting backend.

Every scalar on the wire is wrapped in a one-key object naming its type:

    {"S": "MultiChoice Group"}     string
    {"N": "1.85"}                  number serialized as a decimal string
    {"L": [ ... ]}                 ordered list of tagged values
    {"M": {"key": { ... }}}        map of tagged values

The classes below model that union explicitly. A node is always exactly one
variant, so "no tag" and "several tags" are rejected at the parsing
boundary (``from_wire``) instead of being discovered deep inside the
normalizer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Union

from finreport.domain.errors import MalformedTaggedValue


class Tag:
    """
    Wire tag names.
    """

    S = "S"
    N = "N"
    L = "L"
    M = "M"


TAGS: tuple[str, ...] = (Tag.S, Tag.N, Tag.L, Tag.M)


@dataclass(frozen=True)
class StrValue:
    value: str

    def to_wire(self) -> dict[str, Any]:
        return {Tag.S: self.value}


@dataclass(frozen=True)
class NumValue:
    """
    Numeric node. The payload stays a string so it round-trips byte for byte.
    """

    value: str

    def to_wire(self) -> dict[str, Any]:
        return {Tag.N: self.value}


@dataclass(frozen=True)
class ListValue:
    items: tuple["TaggedValue", ...] = ()

    def to_wire(self) -> dict[str, Any]:
        return {Tag.L: [item.to_wire() for item in self.items]}


@dataclass(frozen=True)
class MapValue:
    """
    Map node. A key that is absent means the field is not present, which is
    not the same thing as a present-but-empty value.
    """

    entries: Mapping[str, "TaggedValue"] = field(default_factory=dict)

    def get(self, key: str) -> "TaggedValue | None":
        return self.entries.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def to_wire(self) -> dict[str, Any]:
        return {Tag.M: {key: value.to_wire() for key, value in self.entries.items()}}


TaggedValue = Union[StrValue, NumValue, ListValue, MapValue]

TAGGED_TYPES: tuple[type, ...] = (StrValue, NumValue, ListValue, MapValue)


def is_tagged_node(obj: Any) -> bool:
    """
    Return True when ``obj`` looks like a wire node: a dict with exactly one known tag.
    """

    if not isinstance(obj, Mapping) or len(obj) != 1:
        return False
    (key,) = obj.keys()
    return key in TAGS


def from_wire(obj: Any, *, path: str = "$") -> TaggedValue:
    """
    Parse the JSON wire form into a tagged value tree.
    """

    if isinstance(obj, TAGGED_TYPES):
        return obj  # type: ignore[return-value]
    if not isinstance(obj, Mapping):
        raise MalformedTaggedValue(f"{path}: expected a tagged object, got {type(obj).__name__}.")

    present = [tag for tag in TAGS if tag in obj]
    if len(present) != 1 or len(obj) != 1:
        raise MalformedTaggedValue(
            f"{path}: expected exactly one of S/N/L/M, got keys {sorted(map(str, obj.keys()))}."
        )

    tag = present[0]
    payload = obj[tag]

    if tag == Tag.S:
        if not isinstance(payload, str):
            raise MalformedTaggedValue(f"{path}: S payload must be a string.")
        return StrValue(payload)
    if tag == Tag.N:
        # Some producers emit raw JSON numbers under N; keep their text form.
        if isinstance(payload, bool) or not isinstance(payload, (str, int, float)):
            raise MalformedTaggedValue(f"{path}: N payload must be a numeric string.")
        return NumValue(payload if isinstance(payload, str) else repr(payload))
    if tag == Tag.L:
        if not isinstance(payload, list):
            raise MalformedTaggedValue(f"{path}: L payload must be a list.")
        return ListValue(
            tuple(from_wire(item, path=f"{path}[{index}]") for index, item in enumerate(payload))
        )
    if not isinstance(payload, Mapping):
        raise MalformedTaggedValue(f"{path}: M payload must be an object.")
    return MapValue({str(key): from_wire(value, path=f"{path}.{key}") for key, value in payload.items()})
