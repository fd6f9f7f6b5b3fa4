from __future__ import annotations

"""Error taxonomy of a synchronization run.

Every failure below the sync engine is raised as a SyncError subclass; the
engine never continues past one, so a failed run performs no partial remote
write.
"""

__all__ = [
    "DeserializeError",
    "FieldResolutionError",
    "SerializeError",
    "SourceUnavailableError",
    "SyncError",
    "UploadFailedError",
]


class SyncError(Exception):
    """Base exception for fatal synchronization errors."""

    error_type = "SYNC_ERROR"


class SourceUnavailableError(SyncError):
    """The remote document could not be downloaded or was empty."""

    error_type = "SOURCE_UNAVAILABLE"


class DeserializeError(SyncError):
    """Downloaded bytes are not a readable workbook."""

    error_type = "DESERIALIZE_ERROR"


class SerializeError(SyncError):
    """The updated workbook could not be written back to bytes."""

    error_type = "SERIALIZE_ERROR"


class FieldResolutionError(SyncError):
    """An attribute value carries none of the text/value/flag tags."""

    error_type = "FIELD_RESOLUTION_AMBIGUOUS"

    def __init__(self, message: str, *, field_name: str, record_id: object) -> None:
        super().__init__(message)
        self.field_name = field_name
        self.record_id = record_id


class UploadFailedError(SyncError):
    """Persisting the workbook failed.

    ``stage`` is one of ``write`` (first write, not a lock), ``delete``
    (removing the locked file failed) or ``recreate`` (write after delete).
    """

    error_type = "UPLOAD_FAILED"

    def __init__(self, message: str, *, stage: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.cause = cause
