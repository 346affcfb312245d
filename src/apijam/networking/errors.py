"""Typed errors raised by the apijam request pipeline.

Every failure that leaves the pipeline is one of the classes below. Errors
are created at the failure boundary and never mutated afterwards.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Tag identifying which branch of the taxonomy an error belongs to."""

    INVALID_URL = "invalid_url"
    INVALID_HEADER = "invalid_header"
    HTTP_STATUS = "http_status"
    NETWORK = "network"
    APPLICATION = "application"
    UNKNOWN = "unknown"


class ApiJamError(Exception):
    """Base class for all typed pipeline errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN
    default_status: int = 0

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        details: Any = None,
        original_error: Any = None,
    ) -> None:
        super().__init__(message)
        self._message = message
        self._status = self.default_status if status is None else status
        self._details = details
        self._original_error = original_error

    @property
    def message(self) -> str:
        return self._message

    @property
    def status(self) -> int:
        return self._status

    @property
    def details(self) -> Any:
        return self._details

    @property
    def original_error(self) -> Any:
        return self._original_error

    @property
    def is_network_error(self) -> bool:
        return self.kind is ErrorKind.NETWORK

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(status={self.status!r}, "
            f"message={self.message!r})"
        )


class InvalidUrlError(ApiJamError):
    """Relative path without a base URL, or a malformed URL."""

    kind = ErrorKind.INVALID_URL


class InvalidHeaderError(ApiJamError):
    """Header name outside the token grammar, or a rejected header set."""

    kind = ErrorKind.INVALID_HEADER


class HttpStatusError(ApiJamError):
    """Transport succeeded but the response status is not 2xx."""

    kind = ErrorKind.HTTP_STATUS

    def __init__(
        self,
        status: int,
        message: str,
        *,
        details: Any = None,
        original_error: Any = None,
    ) -> None:
        super().__init__(
            message,
            status=status,
            details=details,
            original_error=original_error,
        )


class NetworkError(ApiJamError):
    """The transport call itself failed (DNS, refused, offline, timeout)."""

    kind = ErrorKind.NETWORK


class ApplicationError(ApiJamError):
    """A generic exception that is not a recognised network failure."""

    kind = ErrorKind.APPLICATION


class UnknownError(ApiJamError):
    """Something that is not an exception at all was raised or reported."""

    kind = ErrorKind.UNKNOWN
    default_status = 500
