"""
Lending Errors

Every failure of a lending operation is a typed exception carrying:
- kind: one of five categories (not found, forbidden, conflict,
  validation, timeout), which decides the HTTP status
- code: a stable machine-readable string clients can branch on
- message: human-readable explanation

"Already borrowed" and "not authorized" have different codes and
different kinds, so API consumers never have to parse messages.

Only TIMEOUT is worth retrying. Retrying a borrow after a CONFLICT is a
new decision and belongs to the caller.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Error categories, one HTTP status each."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    TIMEOUT = "timeout"


class LendingErrorCode(str, Enum):
    """Stable error codes returned in the "code" field of error responses."""

    # Not found (404)
    BOOK_NOT_FOUND = "book_not_found"
    NO_ACTIVE_LOAN = "no_active_loan"

    # Forbidden (403)
    OWN_BOOK = "own_book"
    NOT_BORROWER = "not_borrower"
    NOT_OWNER = "not_owner"

    # Conflict (409)
    NOT_SHAREABLE = "not_shareable"
    ALREADY_BORROWED = "already_borrowed"
    ALREADY_RETURNED = "already_returned"
    NOT_YET_RETURNED = "not_yet_returned"
    INVALID_TRANSITION = "invalid_transition"
    DUPLICATE_ISBN = "duplicate_isbn"

    # Validation (422)
    INVALID_REQUEST = "invalid_request"
    INVALID_FILE = "invalid_file"

    # Timeout (503)
    LOCK_TIMEOUT = "lock_timeout"
    STORE_TIMEOUT = "store_timeout"


KIND_TO_STATUS: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.CONFLICT: 409,
    ErrorKind.VALIDATION: 422,
    ErrorKind.TIMEOUT: 503,
}


class LendingError(Exception):
    """
    Base exception for lending failures.

    Attributes:
        kind: The error category
        code: The stable error code
        message: Human-readable error message
        status_code: HTTP status code (derived from kind)
    """

    kind: ErrorKind = ErrorKind.CONFLICT

    def __init__(self, code: LendingErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = KIND_TO_STATUS[self.kind]
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.kind is ErrorKind.TIMEOUT

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value!r}, message={self.message!r})"


class NotFoundError(LendingError):
    """Referenced book or record does not exist."""

    kind = ErrorKind.NOT_FOUND


class ForbiddenError(LendingError):
    """Actor lacks permission for the requested transition."""

    kind = ErrorKind.FORBIDDEN


class ConflictError(LendingError):
    """Requested transition is invalid given the current state."""

    kind = ErrorKind.CONFLICT


class InvalidRequestError(LendingError):
    """Malformed input, such as a missing id."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        code: LendingErrorCode = LendingErrorCode.INVALID_REQUEST,
        message: str = "Invalid request",
    ):
        super().__init__(code, message)


class OperationTimeoutError(LendingError):
    """Lock acquisition or store access exceeded its bound."""

    kind = ErrorKind.TIMEOUT

    def __init__(
        self,
        code: LendingErrorCode = LendingErrorCode.LOCK_TIMEOUT,
        message: str = "The book is busy, please retry",
    ):
        super().__init__(code, message)


_ERROR_CLASSES: dict[ErrorKind, type[LendingError]] = {
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.FORBIDDEN: ForbiddenError,
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.VALIDATION: InvalidRequestError,
    ErrorKind.TIMEOUT: OperationTimeoutError,
}

CODE_TO_KIND: dict[LendingErrorCode, ErrorKind] = {
    LendingErrorCode.BOOK_NOT_FOUND: ErrorKind.NOT_FOUND,
    LendingErrorCode.NO_ACTIVE_LOAN: ErrorKind.NOT_FOUND,
    LendingErrorCode.OWN_BOOK: ErrorKind.FORBIDDEN,
    LendingErrorCode.NOT_BORROWER: ErrorKind.FORBIDDEN,
    LendingErrorCode.NOT_OWNER: ErrorKind.FORBIDDEN,
    LendingErrorCode.NOT_SHAREABLE: ErrorKind.CONFLICT,
    LendingErrorCode.ALREADY_BORROWED: ErrorKind.CONFLICT,
    LendingErrorCode.ALREADY_RETURNED: ErrorKind.CONFLICT,
    LendingErrorCode.NOT_YET_RETURNED: ErrorKind.CONFLICT,
    LendingErrorCode.INVALID_TRANSITION: ErrorKind.CONFLICT,
    LendingErrorCode.DUPLICATE_ISBN: ErrorKind.CONFLICT,
    LendingErrorCode.INVALID_REQUEST: ErrorKind.VALIDATION,
    LendingErrorCode.INVALID_FILE: ErrorKind.VALIDATION,
    LendingErrorCode.LOCK_TIMEOUT: ErrorKind.TIMEOUT,
    LendingErrorCode.STORE_TIMEOUT: ErrorKind.TIMEOUT,
}


def error_for(code: LendingErrorCode, message: str) -> LendingError:
    """
    Build the exception matching an error code.

    Example:
        >>> err = error_for(LendingErrorCode.ALREADY_BORROWED, "Book is out")
        >>> isinstance(err, ConflictError), err.status_code
        (True, 409)
    """
    return _ERROR_CLASSES[CODE_TO_KIND[code]](code, message)
