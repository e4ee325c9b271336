"""Error taxonomy and exit code mapping for CLI."""

from __future__ import annotations


class AnimatchError(Exception):
    """Base error for deterministic CLI exit codes."""

    exit_code: int = 1


class ValidationError(AnimatchError):
    """Invalid user input or command usage."""

    exit_code = 2


class StorageError(AnimatchError):
    """Catalog storage failure."""

    exit_code = 3


class StorageReadFailure(StorageError):
    """Reading the catalog failed."""


class StorageWriteFailure(StorageError):
    """Writing to the catalog failed."""


def exit_code_for_exception(exc: BaseException) -> int:
    """Resolve a deterministic exit code for an exception."""
    if isinstance(exc, AnimatchError):
        return exc.exit_code
    if isinstance(exc, OSError):
        return StorageError.exit_code
    return AnimatchError.exit_code
