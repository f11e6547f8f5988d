"""Errors raised at the backend boundary.

Every call into the Supabase client goes through :mod:`studio.services.queries`
or :mod:`studio.services.uploads`, which translate client exceptions into one of
these types. Route handlers catch :class:`BackendError` and decide what the
visitor sees.
"""

from __future__ import annotations

from typing import Optional


class BackendError(Exception):
    """Base class; ``cause`` keeps the client exception for logging."""

    kind = "backend"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def log_extra(self) -> dict:
        return {
            "error_kind": self.kind,
            "error": self.message,
            "cause": repr(self.cause) if self.cause is not None else None,
        }


class AuthError(BackendError):
    kind = "auth"
    # Only this text is ever shown to the visitor
    public_message = "Invalid credentials."


class QueryError(BackendError):
    kind = "query"


class _RowError(BackendError):
    def __init__(
        self, message: str, cause: Optional[BaseException] = None, not_found: bool = False
    ):
        super().__init__(message, cause)
        self.not_found = not_found


class RowInsertError(BackendError):
    kind = "row_insert"


class RowUpdateError(_RowError):
    kind = "row_update"


class RowDeleteError(_RowError):
    kind = "row_delete"


class StorageWriteError(BackendError):
    kind = "storage_write"


class StorageDeleteError(BackendError):
    kind = "storage_delete"


class UploadRejected(BackendError):
    """File refused before touching the backend (size or type)."""

    kind = "upload_rejected"
