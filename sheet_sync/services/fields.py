from __future__ import annotations

import logging
import math
from typing import Any, Literal

from ..errors import FieldResolutionError
from ..models.record import (
    AttributeValue,
    FlagValue,
    PrimitiveValue,
    Record,
    TextValue,
    UnrecognizedValue,
)

logger = logging.getLogger(__name__)

"""Field extraction: attribute bags -> flat display strings.

A field's display value is its resolved values joined with ", ". Resolution
of one value:

- text  -> the text verbatim
- value -> its textual form (``true``/``false`` for booleans, integral floats
           without a trailing ``.0``, empty for null)
- flag  -> "Yes" / "No"

Values without any of the three tags are handled by ``unrecognized``:
``"empty"`` resolves them to "" (logged as WARN), ``"error"`` raises
FieldResolutionError.
"""

__all__ = [
    "FIELD_SEPARATOR",
    "UnrecognizedPolicy",
    "extract_field",
    "resolve_value",
]

FIELD_SEPARATOR = ", "

UnrecognizedPolicy = Literal["empty", "error"]


def _primitive_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def resolve_value(
    value: AttributeValue,
    *,
    field_name: str = "",
    record_id: object = None,
    unrecognized: UnrecognizedPolicy = "empty",
) -> str:
    """Resolve one tagged attribute value to its display string."""
    if isinstance(value, TextValue):
        return "" if value.text is None else str(value.text)
    if isinstance(value, PrimitiveValue):
        return _primitive_text(value.value)
    if isinstance(value, FlagValue):
        return "Yes" if value.flag else "No"
    if isinstance(value, UnrecognizedValue):
        if unrecognized == "error":
            raise FieldResolutionError(
                f"field '{field_name}' of record {record_id!r} has a value without text/value/flag: {value.raw!r}",
                field_name=field_name,
                record_id=record_id,
            )
        logger.warning(
            f"record {record_id!r}: field '{field_name}' has unrecognized value {value.raw!r} -> empty"
        )
        return ""
    raise TypeError(f"unsupported attribute value: {value!r}")


def extract_field(
    field_name: str,
    record: Record,
    *,
    unrecognized: UnrecognizedPolicy = "empty",
) -> str | None:
    """Return the display value of the first field named ``field_name``.

    Returns:
        The resolved values joined with ", ", or None when the record has no
        such field or the field has no values
    """
    field = next((f for f in record.fields if f.name == field_name), None)
    if field is None or not field.values:
        return None
    return FIELD_SEPARATOR.join(
        resolve_value(v, field_name=field_name, record_id=record.id, unrecognized=unrecognized)
        for v in field.values
    )
