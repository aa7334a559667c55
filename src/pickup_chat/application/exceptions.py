from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ValidationError(AppError):
    pass


class UnauthorizedError(AppError):
    pass


class TransportError(AppError):
    """Push channel could not be opened or was lost."""


class FetchError(AppError):
    """Conversations or messages could not be loaded."""


class SendError(AppError):
    """A message, read-receipt or delete request was rejected."""
