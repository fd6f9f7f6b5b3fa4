from __future__ import annotations

import argparse
import sys
from datetime import UTC, datetime
from pathlib import Path

import requests
from dotenv import load_dotenv

from sheet_sync.config.loader import AppConfig, ConfigError, load_config
from sheet_sync.errors import (
    DeserializeError,
    FieldResolutionError,
    SerializeError,
    SourceUnavailableError,
    SyncError,
    UploadFailedError,
)
from sheet_sync.excel.workbook import read_sheet_preview
from sheet_sync.logging.error_log import ErrorLogBuffer, ErrorRecord
from sheet_sync.logging.init import log_summary, setup_logging
from sheet_sync.models.record import Record
from sheet_sync.models.sync_result import SyncResult
from sheet_sync.remote.auth import AuthenticationError, ClientCredentialsTokenProvider
from sheet_sync.remote.graph_store import GraphDocumentStore
from sheet_sync.remote.record_source import HttpRecordSource, RecordSourceError
from sheet_sync.services.summary import render_summary_line
from sheet_sync.services.sync_engine import SyncEngine

"""CLI entrypoint.

Flow:
- load .env (overrides existing environment) and the YAML config
- fetch the records from the record source
- download the workbook, upsert the records, upload it back
  (or write it to --output / SHEET_SYNC_OUTPUT for a dry run)
- print the SUMMARY line

Exit code 0 on success, 1 on any fatal error.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1

DEFAULT_CONFIG_PATH = Path("config/sync.yml")


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; values in .env win over the process env."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Upsert source records into a remote Excel workbook")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--output", type=Path, help="Write the updated workbook here instead of uploading it")
    p.add_argument("--inspect-data", action="store_true", help="Print sheet header & first rows then exit")
    return p.parse_args(argv)


def _build_engine(cfg: AppConfig, session: requests.Session) -> SyncEngine:
    tokens = ClientCredentialsTokenProvider(
        tenant_id=cfg.remote.tenant_id,
        client_id=cfg.remote.client_id,
        client_secret=cfg.remote.client_secret,
        session=session,
        authority_url=cfg.remote.authority_url,
        timeout_s=cfg.remote.timeout_seconds,
    )
    store = GraphDocumentStore(
        site_id=cfg.remote.site_id,
        token_supplier=tokens.bearer,
        session=session,
        base_url=cfg.remote.graph_base_url,
        timeout_s=cfg.remote.timeout_seconds,
    )
    return SyncEngine(store, cfg.remote.file_name, cfg.sync)


def _stage_of(exc: Exception) -> str:
    if isinstance(exc, RecordSourceError):
        return "source"
    if isinstance(exc, AuthenticationError):
        return "auth"
    if isinstance(exc, SourceUnavailableError):
        return "download"
    if isinstance(exc, DeserializeError):
        return "deserialize"
    if isinstance(exc, SerializeError):
        return "serialize"
    if isinstance(exc, UploadFailedError):
        return f"upload:{exc.stage}"
    return "sync"


def _error_type_of(exc: Exception) -> str:
    if isinstance(exc, SyncError):
        return exc.error_type
    if isinstance(exc, RecordSourceError):
        return "RECORD_SOURCE_ERROR"
    return "AUTHENTICATION_ERROR"


def _inspect_data(engine: SyncEngine, cfg: AppConfig) -> int:
    data = engine.download()
    df = read_sheet_preview(data, cfg.sync.worksheet)
    print(f"FILE: {cfg.remote.file_name}")
    print(f"  SHEET: {cfg.sync.worksheet or '<first>'} cols={[str(c) for c in df.columns]}")
    # datetime 含む場合に備えて isoformat に寄せる
    for _, row in df.iterrows():
        safe = {str(k): (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in row.items()}
        print("    row=", safe)
    return EXIT_SUCCESS


def _dry_run(engine: SyncEngine, records: list[Record], output: Path) -> SyncResult:
    start_time = datetime.now(UTC)
    build = engine.build_document(records)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(build.content)
    end_time = datetime.now(UTC)
    return SyncResult(
        total_records=build.total_records,
        updated_rows=build.updated_rows,
        inserted_rows=build.inserted_rows,
        recreated=False,
        uploaded=False,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
    )


def main(argv: list[str] | None = None) -> int:
    # argv=[] (テストからの呼び出し) のときに sys.argv を読まないよう None のみ判定
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    error_log = ErrorLogBuffer()
    with requests.Session() as session:
        engine = _build_engine(cfg, session)
        try:
            if args.inspect_data:
                return _inspect_data(engine, cfg)

            records = HttpRecordSource(
                cfg.source.url,
                payload_format=cfg.source.format,
                session=session,
                timeout_s=cfg.remote.timeout_seconds,
            ).fetch()
            logger.info(f"{len(records)} records fetched from {cfg.source.url}")

            output = args.output or (Path(cfg.output_path) if cfg.output_path else None)
            if output is not None:
                result = _dry_run(engine, records, output)
                logger.info(f"dry run: workbook written to {output}")
            else:
                result = engine.sync(records)
        except (SyncError, RecordSourceError, AuthenticationError) as e:
            logger.error(f"{_stage_of(e)}: {e}", exc_info=True)
            record_id = e.record_id if isinstance(e, FieldResolutionError) else None
            error_log.append(ErrorRecord.create(_stage_of(e), _error_type_of(e), str(e), record_id))
            path = error_log.flush()
            if path is not None:
                logger.info(f"error log written to {path}")
            return EXIT_FATAL

    # log_summary が "SUMMARY " を付けるので先頭ラベルを除く
    log_summary(render_summary_line(result)[len("SUMMARY "):])
    return EXIT_SUCCESS
