from __future__ import annotations

from typing import Any, Callable, Optional
from urllib.parse import quote

import requests

from .store import RemoteErrorKind, RemoteStoreError

"""Microsoft Graph drive store (SharePoint site document library).

Files are addressed by their path relative to the site drive root.

- download: resolve ``@microsoft.graph.downloadUrl`` then fetch the bytes
- upload:   PUT .../root:/{path}:/content (replace or create)
- delete:   DELETE .../root:/{path}

Failures are classified into RemoteErrorKind here, once. Graph reports a
locked file either with HTTP 423 or with an error body whose code or message
says so; both end up as RemoteErrorKind.LOCKED.
"""

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
LOCKED_ERROR_CODES = {"resourceLocked", "lockMismatch", "lockNotFoundOrAlreadyExpired"}


def _error_details(resp: requests.Response) -> tuple[Optional[str], str]:
    """Return (graph error code, message) from an error response."""
    try:
        body = resp.json()
    except ValueError:
        return None, resp.text or resp.reason or ""
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict):
        return err.get("code"), str(err.get("message") or "")
    return None, resp.text


def classify_error(status_code: int, code: Optional[str], message: str) -> RemoteErrorKind:
    if status_code == 423 or (code in LOCKED_ERROR_CODES) or "locked" in message.lower():
        return RemoteErrorKind.LOCKED
    if status_code in (401, 403):
        return RemoteErrorKind.AUTH
    if status_code == 404:
        return RemoteErrorKind.NOT_FOUND
    return RemoteErrorKind.OTHER


class GraphDocumentStore:
    """DocumentStore backed by a SharePoint site drive via Microsoft Graph."""

    def __init__(
        self,
        *,
        site_id: str,
        token_supplier: Callable[[], str],
        session: Optional[requests.Session] = None,
        base_url: str = "https://graph.microsoft.com/v1.0",
        timeout_s: float = 30,
    ) -> None:
        self._site_id = site_id
        self._token_supplier = token_supplier
        self._session = session or requests.Session()
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s

    def _item_url(self, path: str) -> str:
        return f"{self._base_url}/sites/{self._site_id}/drive/root:/{quote(path.lstrip('/'))}"

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self._token_supplier()}"}
        headers.update(extra)
        return headers

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            resp = self._session.request(method, url, timeout=self._timeout_s, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise RemoteStoreError(RemoteErrorKind.NETWORK, f"{method} {url}: {e}") from e
        except requests.RequestException as e:
            raise RemoteStoreError(RemoteErrorKind.OTHER, f"{method} {url}: {e}") from e

        if 200 <= resp.status_code < 300:
            return resp

        code, message = _error_details(resp)
        raise RemoteStoreError(
            classify_error(resp.status_code, code, message),
            message or f"{method} {url} failed",
            status_code=resp.status_code,
            code=code,
        )

    def download(self, resource_id: str) -> bytes:
        """Return the file bytes, or ``b""`` when the file does not exist."""
        meta_url = f"{self._item_url(resource_id)}:?$select=@microsoft.graph.downloadUrl"
        try:
            meta = self._request("GET", meta_url, headers=self._headers())
        except RemoteStoreError as e:
            if e.kind is RemoteErrorKind.NOT_FOUND:
                return b""
            raise

        try:
            body = meta.json()
        except ValueError as e:
            raise RemoteStoreError(RemoteErrorKind.OTHER, f"invalid metadata response for '{resource_id}': {e}") from e
        download_url = body.get("@microsoft.graph.downloadUrl") if isinstance(body, dict) else None
        if not download_url:
            raise RemoteStoreError(RemoteErrorKind.OTHER, f"no download url for '{resource_id}'")
        # 事前認証済み URL なので Authorization ヘッダは付けない
        return self._request("GET", download_url).content

    def upload(self, resource_id: str, data: bytes) -> None:
        headers = self._headers(**{"Content-Type": XLSX_CONTENT_TYPE, "Prefer": "bypass-shared-lock"})
        self._request("PUT", f"{self._item_url(resource_id)}:/content", data=data, headers=headers)

    def delete(self, resource_id: str) -> None:
        headers = self._headers(Prefer="bypass-shared-lock")
        self._request("DELETE", self._item_url(resource_id), headers=headers)
