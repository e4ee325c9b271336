"""Unit tests for the error taxonomy."""

from __future__ import annotations

from animatch.errors import (
    AnimatchError,
    StorageError,
    StorageReadFailure,
    StorageWriteFailure,
    ValidationError,
    exit_code_for_exception,
)


def test_exit_codes() -> None:
    assert exit_code_for_exception(AnimatchError("x")) == 1
    assert exit_code_for_exception(ValidationError("x")) == 2
    assert exit_code_for_exception(StorageError("x")) == 3


def test_storage_failures_share_exit_code() -> None:
    assert exit_code_for_exception(StorageReadFailure("x")) == StorageError.exit_code
    assert exit_code_for_exception(StorageWriteFailure("x")) == StorageError.exit_code
    assert issubclass(StorageReadFailure, AnimatchError)


def test_os_error_maps_to_storage() -> None:
    assert exit_code_for_exception(OSError("disk")) == 3


def test_unknown_error_is_generic() -> None:
    assert exit_code_for_exception(RuntimeError("boom")) == 1
    assert exit_code_for_exception(ValueError("bad")) == 1
