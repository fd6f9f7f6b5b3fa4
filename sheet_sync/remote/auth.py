from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

import requests

"""OAuth2 client-credentials token acquisition (Microsoft identity platform).

The token is requested once and reused until shortly before it expires.
"""

GRAPH_SCOPE = "https://graph.microsoft.com/.default"
EXPIRY_MARGIN_S = 60


class AuthenticationError(RuntimeError):
    """Token endpoint rejected the credentials or returned garbage."""


@dataclass(frozen=True)
class AccessToken:
    token: str
    expires_at: float  # time.time() 基準

    def is_valid(self, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now < self.expires_at - EXPIRY_MARGIN_S


class ClientCredentialsTokenProvider:
    """Bearer token provider for an app registration (client id + secret)."""

    def __init__(
        self,
        *,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        session: Optional[requests.Session] = None,
        authority_url: str = "https://login.microsoftonline.com",
        scope: str = GRAPH_SCOPE,
        timeout_s: float = 30,
    ) -> None:
        self._tenant_id = tenant_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._session = session or requests.Session()
        self._authority_url = authority_url.rstrip("/")
        self._scope = scope
        self._timeout_s = timeout_s
        self._cached: Optional[AccessToken] = None

    @property
    def token_endpoint(self) -> str:
        return f"{self._authority_url}/{self._tenant_id}/oauth2/v2.0/token"

    def acquire(self) -> AccessToken:
        """Return a valid token, requesting a new one when needed.

        Raises:
            AuthenticationError: request failed or response had no access_token
        """
        if self._cached is not None and self._cached.is_valid():
            return self._cached

        data = {
            "client_id": self._client_id,
            "scope": self._scope,
            "client_secret": self._client_secret,
            "grant_type": "client_credentials",
        }
        try:
            resp = self._session.post(self.token_endpoint, data=data, timeout=self._timeout_s)
        except requests.RequestException as e:
            raise AuthenticationError(f"token request failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise AuthenticationError(f"token request failed {resp.status_code}: {resp.text}")

        try:
            payload = resp.json()
            token = payload["access_token"]
        except (ValueError, KeyError) as e:
            raise AuthenticationError("token response has no access_token") from e

        expires_in = float(payload.get("expires_in", 3600))
        self._cached = AccessToken(token=token, expires_at=time.time() + expires_in)
        return self._cached

    def bearer(self) -> str:
        return self.acquire().token
