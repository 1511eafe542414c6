"""
Application error taxonomy.

Every error raised by the domain, repositories and services derives from
AppError. Each class carries the short ``kind`` tag rendered in the JSON
error envelope and the HTTP status the transport maps it to.
"""
from typing import Optional


class AppError(Exception):
    """Base class for all structured application errors."""

    kind = "unknown"
    status_code = 500

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.message


class IncorrectInputError(AppError):
    kind = "incorrect-input"
    status_code = 400


class NotFoundError(AppError):
    kind = "not-found"
    status_code = 404


class UnauthorizedError(AppError):
    kind = "unauthorized"
    status_code = 401


class ConflictError(AppError):
    kind = "conflict"
    status_code = 409


class DependencyError(AppError):
    kind = "dependency"
    status_code = 500


class UnknownError(AppError):
    kind = "unknown"
    status_code = 500


class CurrencyMismatchError(IncorrectInputError):
    """Raised when two non-zero totals in different currencies are added."""


class UserNotFoundError(NotFoundError):
    pass


class WrongPasswordError(UnauthorizedError):
    pass


class UserAlreadyExistsError(ConflictError):
    pass


class ExchangeRateFetchError(DependencyError):
    """The remote rate provider replied with an error or could not be reached."""


class ExchangeRateAuthError(ExchangeRateFetchError):
    """The remote rate provider rejected the configured API key."""


class CategoryMoveError(DependencyError):
    """
    A subtree move stopped partway.

    ``update_count`` is the number of documents already rewritten; re-issuing
    the same move completes the remaining ones.
    """

    def __init__(self, message: str, update_count: int, *, cause: Optional[BaseException] = None):
        super().__init__(message, cause=cause)
        self.update_count = update_count
