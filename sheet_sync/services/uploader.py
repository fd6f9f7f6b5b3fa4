from __future__ import annotations

import logging
from enum import Enum

from ..errors import UploadFailedError
from ..models.sync_result import UploadOutcome
from ..remote.auth import AuthenticationError
from ..remote.store import DocumentStore, RemoteStoreError

logger = logging.getLogger(__name__)

"""Lock tolerant upload of the serialized workbook.

State transitions: WRITING -> (DONE | FAILED)

1. write the bytes (replace)
2. on a LOCKED failure: delete the remote file, then write once more
   (recreate). A failing delete or a failing second write is final.
3. any other failure is final immediately; delete is never attempted

There is exactly one recovery cycle and no backoff. A lock is expected to be
held by a single external party and released once the file it holds is
deleted.
"""

__all__ = [
    "ConflictRetryUploader",
    "UploadState",
]


class UploadState(Enum):
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


class ConflictRetryUploader:
    """Upload through a DocumentStore, recovering once from a locked file."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self.state = UploadState.WRITING

    def upload(self, data: bytes, resource_id: str) -> UploadOutcome:
        """Persist ``data`` to ``resource_id``.

        Raises:
            UploadFailedError: the write failed for a reason other than a lock,
                or the delete/recreate recovery failed
        """
        self.state = UploadState.WRITING
        try:
            self._store.upload(resource_id, data)
        except AuthenticationError as e:
            # token refresh failed before the request was sent
            self.state = UploadState.FAILED
            raise UploadFailedError(
                f"upload of '{resource_id}' failed: {e}", stage="write", cause=e
            ) from e
        except RemoteStoreError as e:
            if not e.is_locked:
                self.state = UploadState.FAILED
                raise UploadFailedError(
                    f"upload of '{resource_id}' failed: {e}", stage="write", cause=e
                ) from e
            logger.warning(f"'{resource_id}' is locked. Deleting and creating a new one.")
            return self._recreate(data, resource_id)

        self.state = UploadState.DONE
        return UploadOutcome(attempts=1, recreated=False)

    def _recreate(self, data: bytes, resource_id: str) -> UploadOutcome:
        try:
            self._store.delete(resource_id)
        except (RemoteStoreError, AuthenticationError) as e:
            self.state = UploadState.FAILED
            raise UploadFailedError(
                f"failed to delete locked '{resource_id}': {e}", stage="delete", cause=e
            ) from e

        try:
            self._store.upload(resource_id, data)
        except (RemoteStoreError, AuthenticationError) as e:
            self.state = UploadState.FAILED
            raise UploadFailedError(
                f"failed to recreate '{resource_id}': {e}", stage="recreate", cause=e
            ) from e

        self.state = UploadState.DONE
        logger.info(f"'{resource_id}' recreated after lock")
        return UploadOutcome(attempts=2, recreated=True)
