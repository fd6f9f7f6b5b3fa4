from __future__ import annotations

from ..models.sync_result import SyncResult

"""SUMMARY line rendering.

Format:
SUMMARY records={n} updated={u} inserted={i} recreated={yes|no} uploaded={yes|no} elapsed_sec={s}
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: SyncResult) -> str:
    """Render the SUMMARY line for a finished run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> r = SyncResult(
        ...     total_records=3, updated_rows=2, inserted_rows=1, recreated=False,
        ...     uploaded=True, start_time=t, end_time=t, elapsed_seconds=1.5,
        ... )
        >>> render_summary_line(r)
        'SUMMARY records=3 updated=2 inserted=1 recreated=no uploaded=yes elapsed_sec=1.5'
    """
    return (
        f"SUMMARY records={result.total_records} "
        f"updated={result.updated_rows} "
        f"inserted={result.inserted_rows} "
        f"recreated={'yes' if result.recreated else 'no'} "
        f"uploaded={'yes' if result.uploaded else 'no'} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
