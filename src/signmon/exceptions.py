"""Exception types raised and recorded by signmon."""

from __future__ import annotations


class SignmonError(Exception):
    """Base class for signmon errors."""


class ApiError(SignmonError):
    """An error surfaced by the HTTP layer, recorded under its code."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: str = "INTERNAL_ERROR",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code

    @property
    def kind(self) -> str:
        return self.code


class BackendError(SignmonError):
    """Transport-level failure talking to the database/storage backend."""
