from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Run result models.

SyncResult aggregates what a synchronization run did; it feeds the SUMMARY
line printed by the CLI.
"""


@dataclass(frozen=True)
class UploadOutcome:
    """Result of a successful upload through the lock-tolerant protocol."""
    attempts: int  # 1 = 直接書き込み成功, 2 = delete 後の再作成
    recreated: bool


@dataclass(frozen=True)
class DocumentBuild:
    """Serialized workbook plus the row counters of the in-memory upsert."""
    content: bytes
    total_records: int
    updated_rows: int
    inserted_rows: int


@dataclass(frozen=True)
class SyncResult:
    """Aggregated result of one run."""
    total_records: int
    updated_rows: int  # 既存行の更新回数 (重複 id は回数分)
    inserted_rows: int
    recreated: bool  # lock 回復 (delete + recreate) を行ったか
    uploaded: bool  # dry run (--output) では False
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
