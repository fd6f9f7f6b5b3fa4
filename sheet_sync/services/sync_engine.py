from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from openpyxl.worksheet.worksheet import Worksheet

from ..config.loader import SyncSettings
from ..errors import SourceUnavailableError
from ..excel.rows import RowIndex, append_record, apply_record, make_fill
from ..excel.workbook import load_workbook_bytes, save_workbook_bytes, select_sheet
from ..models.record import Record
from ..models.sync_result import DocumentBuild, SyncResult
from ..remote.store import DocumentStore, RemoteStoreError
from .fields import extract_field
from .progress import ProgressTracker
from .uploader import ConflictRetryUploader

logger = logging.getLogger(__name__)

"""Synchronization engine.

One run:
1. download the current workbook (empty / failed download -> SourceUnavailableError)
2. deserialize it (DeserializeError, fatal)
3. upsert every record in input order: extract the configured fields, look
   the id up, update the matched row or append a new one
4. serialize (SerializeError, fatal)
5. upload through ConflictRetryUploader

Records are processed strictly in order. A record may match a row appended
by an earlier record of the same batch, in which case the later one wins.
Any error aborts the remaining steps, so nothing partial is uploaded.
"""

__all__ = [
    "SyncEngine",
]


class SyncEngine:
    """Upsert a batch of records into one remote workbook."""

    def __init__(
        self,
        store: DocumentStore,
        resource_id: str,
        settings: SyncSettings | None = None,
        *,
        uploader: ConflictRetryUploader | None = None,
        show_progress: bool = True,
    ) -> None:
        self._store = store
        self._resource_id = resource_id
        self._settings = settings or SyncSettings()
        self._uploader = uploader or ConflictRetryUploader(store)
        self._show_progress = show_progress

    def download(self) -> bytes:
        """Fetch the current document bytes.

        Raises:
            SourceUnavailableError: the store failed or returned nothing
        """
        try:
            data = self._store.download(self._resource_id)
        except RemoteStoreError as e:
            raise SourceUnavailableError(f"download of '{self._resource_id}' failed: {e}") from e
        if not data:
            raise SourceUnavailableError(f"remote document '{self._resource_id}' is empty or missing")
        logger.info(f"remote document fetched ({len(data)} bytes)")
        return data

    def apply_records(self, sheet: Worksheet, records: Sequence[Record]) -> tuple[int, int]:
        """Upsert ``records`` into ``sheet`` in place.

        Returns:
            (updated_rows, inserted_rows)
        """
        settings = self._settings
        fill = make_fill(settings.fill_color)
        insert_fill = fill if settings.mark_inserted_rows else None
        index = RowIndex.build(sheet)
        updated = inserted = 0

        tracker = ProgressTracker(len(records)) if self._show_progress else None
        try:
            for record in records:
                extracted = [
                    extract_field(name, record, unrecognized=settings.unrecognized_values)
                    for name in settings.fields
                ]
                row_number = index.get(record.id)
                if row_number is not None:
                    logger.debug(f"..updating row {row_number} id={record.id!r}")
                    apply_record(sheet, row_number, record, extracted, fill)
                    updated += 1
                    action = "updated"
                else:
                    row_number = append_record(sheet, record, extracted, insert_fill)
                    index.add(record.id, row_number)
                    logger.debug(f"..adding row {row_number} id={record.id!r}")
                    inserted += 1
                    action = "inserted"
                if tracker is not None:
                    tracker.advance(action)
        finally:
            if tracker is not None:
                tracker.close()
        return updated, inserted

    def build_document(self, records: Sequence[Record]) -> DocumentBuild:
        """Run download -> upsert -> serialize without uploading."""
        data = self.download()
        workbook = load_workbook_bytes(data)
        sheet = select_sheet(workbook, self._settings.worksheet)
        updated, inserted = self.apply_records(sheet, records)
        content = save_workbook_bytes(workbook)
        return DocumentBuild(
            content=content,
            total_records=len(records),
            updated_rows=updated,
            inserted_rows=inserted,
        )

    def sync(self, records: Sequence[Record]) -> SyncResult:
        """Full run: build the updated workbook and persist it.

        Raises:
            SyncError: any fatal failure (see sheet_sync.errors)
        """
        start_time = datetime.now(UTC)
        build = self.build_document(records)
        outcome = self._uploader.upload(build.content, self._resource_id)
        logger.info("Successfully saved to remote drive")
        end_time = datetime.now(UTC)
        return SyncResult(
            total_records=build.total_records,
            updated_rows=build.updated_rows,
            inserted_rows=build.inserted_rows,
            recreated=outcome.recreated,
            uploaded=True,
            start_time=start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - start_time).total_seconds(),
        )
