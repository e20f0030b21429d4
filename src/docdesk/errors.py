"""Error types and failure reason codes shared across docdesk."""

from __future__ import annotations

__all__ = ["DocdeskError", "DocumentIntegrityError", "FailureReason"]


class FailureReason:
    """Constants describing why an open or save attempt did not succeed."""

    # Transport/persistence
    FETCH_FAILED = "fetch_failed"
    SAVE_FAILED = "save_failed"
    EMPTY_RESPONSE = "empty_response"
    ID_MISMATCH = "id_mismatch"

    # Access
    NOT_AVAILABLE = "not_available"


class DocdeskError(Exception):
    """Base class for errors raised by docdesk."""


class DocumentIntegrityError(DocdeskError, ValueError):
    """Raised when document metadata violates the data model.

    Examples are permission masks outside ``[0, 7]`` or a payload without an
    identifier. These indicate corrupt data from the document service rather
    than a recoverable user input.
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field
