from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

"""Source record models.

A Record is one item fetched from the record source. Its ``fields`` carry
attribute values as a tagged union: exactly one of ``text``, ``value`` or
``flag``. Values carrying none of the three tags become UnrecognizedValue so
that field resolution can decide explicitly what to do with them.
"""

__all__ = [
    "AttributeField",
    "AttributeValue",
    "FlagValue",
    "PrimitiveValue",
    "Record",
    "TextValue",
    "UnrecognizedValue",
    "attribute_value_from_dict",
]


@dataclass(frozen=True)
class TextValue:
    text: str | None


@dataclass(frozen=True)
class PrimitiveValue:
    value: Any  # number / str / bool / None


@dataclass(frozen=True)
class FlagValue:
    flag: bool


@dataclass(frozen=True)
class UnrecognizedValue:
    raw: Any  # 元の dict (デバッグ用)


AttributeValue = Union[TextValue, PrimitiveValue, FlagValue, UnrecognizedValue]


def attribute_value_from_dict(data: Any) -> AttributeValue:
    """Build an AttributeValue from its JSON form.

    Key precedence is text > value > flag when several keys are present.
    """
    if not isinstance(data, Mapping):
        return UnrecognizedValue(raw=data)
    if "text" in data:
        return TextValue(text=data["text"])
    if "value" in data:
        return PrimitiveValue(value=data["value"])
    if "flag" in data:
        return FlagValue(flag=bool(data["flag"]))
    return UnrecognizedValue(raw=dict(data))


@dataclass(frozen=True)
class AttributeField:
    name: str
    values: tuple[AttributeValue, ...] = ()

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> AttributeField:
        raw_values: Sequence[Any] = data.get("values") or ()
        return AttributeField(
            name=data["name"],
            values=tuple(attribute_value_from_dict(v) for v in raw_values),
        )


@dataclass(frozen=True)
class Record:
    """One source record to upsert into the sheet.

    ``id`` is the matching key written to column 1. It is kept with its JSON
    type (usually int) because matching is type-aware.
    """
    id: Any
    name: str | None
    email: str | None
    phone: str | None
    fields: tuple[AttributeField, ...] = ()

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> Record:
        """Build a Record from the JSON record shape.

        Raises:
            KeyError: if ``id`` is missing
        """
        return Record(
            id=data["id"],
            name=data.get("name"),
            email=data.get("email"),
            phone=data.get("phone"),
            fields=tuple(AttributeField.from_dict(f) for f in (data.get("fields") or ())),
        )
