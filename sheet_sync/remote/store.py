from __future__ import annotations

from enum import Enum
from typing import Protocol

"""Remote document store contract.

The sync core only talks to a DocumentStore. Implementations classify their
failures into a RemoteErrorKind once, so callers never inspect error message
text to decide what happened.
"""

__all__ = [
    "DocumentStore",
    "RemoteErrorKind",
    "RemoteStoreError",
]


class RemoteErrorKind(Enum):
    """Failure classes a remote store can report.

    - LOCKED: another holder has a lock on the resource
    - AUTH: token rejected or missing permission
    - NOT_FOUND: resource does not exist
    - NETWORK: connection error / timeout
    - OTHER: anything else
    """
    LOCKED = "locked"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    NETWORK = "network"
    OTHER = "other"


class RemoteStoreError(Exception):
    """A remote store request failed."""

    def __init__(
        self,
        kind: RemoteErrorKind,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.code = code

    @property
    def is_locked(self) -> bool:
        return self.kind is RemoteErrorKind.LOCKED

    def __str__(self) -> str:
        status = f" status={self.status_code}" if self.status_code is not None else ""
        return f"[{self.kind.value}{status}] {self.message}"


class DocumentStore(Protocol):
    def download(self, resource_id: str) -> bytes:
        """Return the resource bytes; ``b""`` means "not found"."""
        ...

    def upload(self, resource_id: str, data: bytes) -> None:
        """Replace (or create) the resource with ``data``."""
        ...

    def delete(self, resource_id: str) -> None:
        ...
