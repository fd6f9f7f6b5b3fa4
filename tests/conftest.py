# Shared pytest fixtures
from __future__ import annotations
import tempfile
from io import BytesIO
from pathlib import Path
from typing import Any, Callable

import pytest
from openpyxl import Workbook

from sheet_sync.logging.init import reset_logging
from sheet_sync.models.record import Record
from sheet_sync.remote.store import RemoteErrorKind, RemoteStoreError

HEADER = ["ID", "Notes", "Name", "Email", "Phone", "Position Applied For", "Company", "City"]


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """remote:
  tenant_id: tenant-1
  client_id: client-1
  client_secret: secret-1
  site_id: site-1
  file_name: Candidates/candidates.xlsx
  timeout_seconds: 10
source:
  url: https://example.test/users
  format: users
sync:
  fields: ["Position Applied For", "Company", "City"]
  fill_color: FFD3D3D3
  mark_inserted_rows: false
  unrecognized_values: empty
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "sync.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def clean_env(monkeypatch):
    for var in (
        "AZURE_TENANT_ID",
        "AZURE_CLIENT_ID",
        "AZURE_CLIENT_SECRET",
        "AZURE_SHAREPOINT_SITE_ID",
        "AZURE_FILE_NAME",
        "RECORD_SOURCE_URL",
        "EXCEL_FILE_PATH",
        "SHEET_SYNC_OUTPUT",
    ):
        monkeypatch.delenv(var, raising=False)


def build_workbook_bytes(rows: list[list[Any]], *, header: bool = True, title: str = "Candidates") -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = title
    if header:
        ws.append(HEADER)
    for r in rows:
        ws.append(r)
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture()
def make_workbook_bytes() -> Callable[..., bytes]:
    return build_workbook_bytes


def make_record(
    record_id: Any,
    name: str = "Ana",
    email: str = "a@x.com",
    phone: str = "555",
    fields: list[dict[str, Any]] | None = None,
) -> Record:
    return Record.from_dict(
        {"id": record_id, "name": name, "email": email, "phone": phone, "fields": fields or []}
    )


class FakeStore:
    """In-memory DocumentStore recording every call.

    ``upload_errors`` is consumed one item per upload call: an exception is
    raised, None means success.
    """

    def __init__(
        self,
        content: bytes = b"",
        *,
        download_error: Exception | None = None,
        upload_errors: list[Exception | None] | None = None,
        delete_error: Exception | None = None,
    ) -> None:
        self.content = content
        self.download_error = download_error
        self.upload_errors = list(upload_errors or [])
        self.delete_error = delete_error
        self.calls: list[tuple[str, str]] = []
        self.uploaded: list[bytes] = []

    def download(self, resource_id: str) -> bytes:
        self.calls.append(("download", resource_id))
        if self.download_error is not None:
            raise self.download_error
        return self.content

    def upload(self, resource_id: str, data: bytes) -> None:
        self.calls.append(("upload", resource_id))
        if self.upload_errors:
            err = self.upload_errors.pop(0)
            if err is not None:
                raise err
        self.uploaded.append(data)
        self.content = data

    def delete(self, resource_id: str) -> None:
        self.calls.append(("delete", resource_id))
        if self.delete_error is not None:
            raise self.delete_error
        self.content = b""


def locked_error() -> RemoteStoreError:
    return RemoteStoreError(
        RemoteErrorKind.LOCKED,
        "The resource you are attempting to access is locked",
        status_code=423,
        code="resourceLocked",
    )


def auth_error() -> RemoteStoreError:
    return RemoteStoreError(RemoteErrorKind.AUTH, "Access denied", status_code=403, code="accessDenied")


@pytest.fixture()
def fake_store_factory() -> Callable[..., FakeStore]:
    return FakeStore


@pytest.fixture()
def record_factory() -> Callable[..., Record]:
    return make_record


@pytest.fixture()
def store_errors():
    class _Errors:
        locked = staticmethod(locked_error)
        auth = staticmethod(auth_error)
    return _Errors
