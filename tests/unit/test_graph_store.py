from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from sheet_sync.remote.graph_store import XLSX_CONTENT_TYPE, GraphDocumentStore, classify_error
from sheet_sync.remote.store import RemoteErrorKind, RemoteStoreError

BASE = "https://graph.test/v1.0"


def _resp(status: int, *, json_body=None, content: bytes = b"", text: str = ""):
    resp = MagicMock()
    resp.status_code = status
    resp.content = content
    resp.text = text
    resp.reason = "reason"
    if json_body is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = json_body
    return resp


def _store(session):
    return GraphDocumentStore(
        site_id="site-1", token_supplier=lambda: "tok", session=session, base_url=BASE, timeout_s=5
    )


@pytest.mark.parametrize(
    "status, code, message, kind",
    [
        (423, None, "", RemoteErrorKind.LOCKED),
        (409, "resourceLocked", "", RemoteErrorKind.LOCKED),
        (400, "notAllowed", "The resource you are attempting to access is locked", RemoteErrorKind.LOCKED),
        (401, "InvalidAuthenticationToken", "expired", RemoteErrorKind.AUTH),
        (403, "accessDenied", "denied", RemoteErrorKind.AUTH),
        (404, "itemNotFound", "missing", RemoteErrorKind.NOT_FOUND),
        (500, "generalException", "boom", RemoteErrorKind.OTHER),
    ],
)
def test_classify_error(status, code, message, kind):
    assert classify_error(status, code, message) is kind


def test_download_resolves_download_url_then_fetches_bytes():
    session = MagicMock()
    session.request.side_effect = [
        _resp(200, json_body={"@microsoft.graph.downloadUrl": "https://dl.test/file"}),
        _resp(200, content=b"xlsx-bytes"),
    ]

    assert _store(session).download("Folder/My File.xlsx") == b"xlsx-bytes"

    first, second = session.request.call_args_list
    assert first.args == (
        "GET",
        f"{BASE}/sites/site-1/drive/root:/Folder/My%20File.xlsx:?$select=@microsoft.graph.downloadUrl",
    )
    assert first.kwargs["headers"] == {"Authorization": "Bearer tok"}
    assert first.kwargs["timeout"] == 5
    assert second.args == ("GET", "https://dl.test/file")
    assert "headers" not in second.kwargs


def test_download_not_found_returns_empty_bytes():
    session = MagicMock()
    session.request.return_value = _resp(404, json_body={"error": {"code": "itemNotFound", "message": "nope"}})
    assert _store(session).download("missing.xlsx") == b""


def test_download_auth_failure_raises():
    session = MagicMock()
    session.request.return_value = _resp(401, json_body={"error": {"code": "InvalidAuthenticationToken", "message": "bad"}})
    with pytest.raises(RemoteStoreError) as e:
        _store(session).download("f.xlsx")
    assert e.value.kind is RemoteErrorKind.AUTH
    assert e.value.status_code == 401


def test_upload_sends_put_with_bypass_lock_header():
    session = MagicMock()
    session.request.return_value = _resp(200, json_body={"id": "x"})

    _store(session).upload("f.xlsx", b"data")

    call = session.request.call_args
    assert call.args == ("PUT", f"{BASE}/sites/site-1/drive/root:/f.xlsx:/content")
    assert call.kwargs["data"] == b"data"
    assert call.kwargs["headers"]["Content-Type"] == XLSX_CONTENT_TYPE
    assert call.kwargs["headers"]["Prefer"] == "bypass-shared-lock"


def test_upload_locked_is_classified():
    session = MagicMock()
    session.request.return_value = _resp(
        423, json_body={"error": {"code": "resourceLocked", "message": "The resource you are attempting to access is locked"}}
    )
    with pytest.raises(RemoteStoreError) as e:
        _store(session).upload("f.xlsx", b"data")
    assert e.value.is_locked
    assert e.value.code == "resourceLocked"


def test_delete_uses_item_url():
    session = MagicMock()
    session.request.return_value = _resp(204)
    _store(session).delete("f.xlsx")
    assert session.request.call_args.args == ("DELETE", f"{BASE}/sites/site-1/drive/root:/f.xlsx")


def test_connection_error_is_network_kind():
    session = MagicMock()
    session.request.side_effect = requests.ConnectionError("refused")
    with pytest.raises(RemoteStoreError) as e:
        _store(session).upload("f.xlsx", b"data")
    assert e.value.kind is RemoteErrorKind.NETWORK


def test_non_json_error_body_uses_text():
    session = MagicMock()
    session.request.return_value = _resp(502, text="Bad Gateway")
    with pytest.raises(RemoteStoreError) as e:
        _store(session).delete("f.xlsx")
    assert e.value.kind is RemoteErrorKind.OTHER
    assert "Bad Gateway" in str(e.value)


@pytest.mark.parametrize(
    "meta",
    [
        _resp(200, text="<html>maintenance</html>"),
        _resp(200, json_body=["not", "an", "object"]),
        _resp(200, json_body={"id": "item-without-url"}),
    ],
)
def test_download_bad_metadata_is_remote_error(meta):
    """2xx でも downloadUrl を取り出せない応答は RemoteStoreError(OTHER)。"""
    session = MagicMock()
    session.request.return_value = meta
    with pytest.raises(RemoteStoreError) as e:
        _store(session).download("f.xlsx")
    assert e.value.kind is RemoteErrorKind.OTHER
    assert session.request.call_count == 1
