from __future__ import annotations

import pytest

from sheet_sync.errors import UploadFailedError
from sheet_sync.remote.auth import AuthenticationError
from sheet_sync.remote.store import RemoteErrorKind, RemoteStoreError
from sheet_sync.services.uploader import ConflictRetryUploader, UploadState

RESOURCE = "Candidates/candidates.xlsx"


def test_direct_write_success(fake_store_factory):
    store = fake_store_factory()
    uploader = ConflictRetryUploader(store)

    outcome = uploader.upload(b"data", RESOURCE)

    assert outcome.attempts == 1
    assert outcome.recreated is False
    assert store.calls == [("upload", RESOURCE)]
    assert uploader.state is UploadState.DONE


def test_locked_write_deletes_once_then_recreates(fake_store_factory, store_errors):
    store = fake_store_factory(upload_errors=[store_errors.locked(), None])
    uploader = ConflictRetryUploader(store)

    outcome = uploader.upload(b"data", RESOURCE)

    assert outcome.recreated is True
    assert outcome.attempts == 2
    assert store.calls == [("upload", RESOURCE), ("delete", RESOURCE), ("upload", RESOURCE)]
    assert store.uploaded == [b"data"]
    assert uploader.state is UploadState.DONE


def test_non_lock_failure_never_deletes(fake_store_factory, store_errors):
    store = fake_store_factory(upload_errors=[store_errors.auth()])
    uploader = ConflictRetryUploader(store)

    with pytest.raises(UploadFailedError) as e:
        uploader.upload(b"data", RESOURCE)

    assert e.value.stage == "write"
    assert e.value.cause.kind is RemoteErrorKind.AUTH
    assert ("delete", RESOURCE) not in store.calls
    assert uploader.state is UploadState.FAILED


@pytest.mark.parametrize("kind", [RemoteErrorKind.NETWORK, RemoteErrorKind.OTHER, RemoteErrorKind.NOT_FOUND])
def test_other_kinds_surface_immediately(fake_store_factory, kind):
    store = fake_store_factory(upload_errors=[RemoteStoreError(kind, "boom")])
    with pytest.raises(UploadFailedError):
        ConflictRetryUploader(store).upload(b"data", RESOURCE)
    assert store.calls == [("upload", RESOURCE)]


def test_delete_failure_is_final(fake_store_factory, store_errors):
    store = fake_store_factory(
        upload_errors=[store_errors.locked()],
        delete_error=RemoteStoreError(RemoteErrorKind.AUTH, "cannot delete", status_code=403),
    )

    with pytest.raises(UploadFailedError) as e:
        ConflictRetryUploader(store).upload(b"data", RESOURCE)

    assert e.value.stage == "delete"
    assert store.calls == [("upload", RESOURCE), ("delete", RESOURCE)]


def test_recreate_failure_is_final_even_if_locked_again(fake_store_factory, store_errors):
    store = fake_store_factory(upload_errors=[store_errors.locked(), store_errors.locked(), None])

    with pytest.raises(UploadFailedError) as e:
        ConflictRetryUploader(store).upload(b"data", RESOURCE)

    assert e.value.stage == "recreate"
    # 再試行は 1 サイクルのみ
    assert store.calls == [("upload", RESOURCE), ("delete", RESOURCE), ("upload", RESOURCE)]


def test_token_failure_on_write_is_upload_failure(fake_store_factory):
    """トークン更新失敗 (AuthenticationError) も stage=write の UploadFailedError になる。"""
    store = fake_store_factory(upload_errors=[AuthenticationError("token request failed 401: invalid_client")])
    uploader = ConflictRetryUploader(store)

    with pytest.raises(UploadFailedError) as e:
        uploader.upload(b"data", RESOURCE)

    assert e.value.stage == "write"
    assert isinstance(e.value.cause, AuthenticationError)
    assert uploader.state is UploadState.FAILED
    assert store.calls == [("upload", RESOURCE)]


def test_token_failure_during_recovery_is_final(fake_store_factory, store_errors):
    store = fake_store_factory(
        upload_errors=[store_errors.locked()],
        delete_error=AuthenticationError("token request failed: timeout"),
    )
    uploader = ConflictRetryUploader(store)

    with pytest.raises(UploadFailedError) as e:
        uploader.upload(b"data", RESOURCE)

    assert e.value.stage == "delete"
    assert uploader.state is UploadState.FAILED
