from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the run error log.

One record per fatal failure of a synchronization run, serialized as a JSON
line with a fixed key set. ``record_id`` is ``None`` for failures that are not
tied to a single source record (download, upload, ...).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        stage: Run stage that failed (config, source, download, sync, upload, ...)
        record_id: Source record identifier, or None for run-level failures
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable error message
    """
    timestamp: str  # ISO8601 UTC
    stage: str
    record_id: object | None
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(stage: str, error_type: str, message: str, record_id: object | None = None) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            stage=stage,
            record_id=record_id,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize to a single JSON line (no extra keys)."""
        # id は int/str 以外の型もあり得る
        return json.dumps(asdict(self), ensure_ascii=False, default=str)
