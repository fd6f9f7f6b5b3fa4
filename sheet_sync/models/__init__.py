"""Domain models for the records -> spreadsheet synchronization tool."""

from .error_record import ErrorRecord
from .record import (
    AttributeField,
    AttributeValue,
    FlagValue,
    PrimitiveValue,
    Record,
    TextValue,
    UnrecognizedValue,
)
from .sync_result import DocumentBuild, SyncResult, UploadOutcome

__all__ = [
    # Source records
    "AttributeField",
    "AttributeValue",
    "FlagValue",
    "PrimitiveValue",
    "Record",
    "TextValue",
    "UnrecognizedValue",
    # Run results
    "DocumentBuild",
    "ErrorRecord",
    "SyncResult",
    "UploadOutcome",
]
