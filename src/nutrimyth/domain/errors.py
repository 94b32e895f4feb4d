"""Error taxonomy for user data operations."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Machine-readable category of a failure."""

    INVALID_ARGUMENT = "invalid_argument"
    UNAUTHENTICATED = "unauthenticated"
    UNAVAILABLE = "unavailable"
    PERMISSION_DENIED = "permission_denied"
    UNKNOWN = "unknown"


class UserDataError(Exception):
    """Base error for user data operations."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidArgument(UserDataError):
    """Caller supplied malformed input."""

    kind = ErrorKind.INVALID_ARGUMENT


class Unauthenticated(UserDataError):
    """No valid identity could be established."""

    kind = ErrorKind.UNAUTHENTICATED


class StoreUnavailable(UserDataError):
    """The document store could not be reached."""

    kind = ErrorKind.UNAVAILABLE


class PermissionDenied(UserDataError):
    """The document store rejected the caller."""

    kind = ErrorKind.PERMISSION_DENIED


class UnknownError(UserDataError):
    """Unclassified failure."""

    kind = ErrorKind.UNKNOWN


def error_kind(exc: BaseException) -> ErrorKind:
    """Classify an exception into an error kind."""
    if isinstance(exc, UserDataError):
        return exc.kind
    return ErrorKind.UNKNOWN
