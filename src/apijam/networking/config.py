"""Configuration models for the apijam networking layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

DEFAULT_STATUS_MESSAGES: Mapping[int, str] = MappingProxyType(
    {
        400: "Invalid request",
        401: "Unauthorized - Please login",
        403: "Forbidden - Insufficient permissions",
        404: "Resource not found",
        500: "Internal server error",
    }
)

ErrorLogger = Callable[[Mapping[str, Any]], None]


def _default_headers() -> Mapping[str, str]:
    """Return immutable empty default headers mapping."""

    return MappingProxyType({})


def _default_status_messages() -> Mapping[int, str]:
    return MappingProxyType(dict(DEFAULT_STATUS_MESSAGES))


@dataclass(frozen=True)
class HttpClientConfig:
    """Configuration for the requests-backed transport.

    Headers given here are session-level headers sent on every request;
    the per-call header layering is the job of ``HeaderFactory``.
    """

    user_agent: str | None = None
    default_headers: Mapping[str, str] = field(default_factory=_default_headers)
    verify_tls: bool = True
    allow_redirects: bool = True
    connect_timeout_seconds: float | None = None
    read_timeout_seconds: float | None = None
    timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        has_connect_timeout = self.connect_timeout_seconds is not None
        has_read_timeout = self.read_timeout_seconds is not None
        if has_connect_timeout != has_read_timeout:
            raise ValueError(
                "connect_timeout_seconds and read_timeout_seconds "
                "must be set together"
            )
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0 when provided")
        if (
            self.connect_timeout_seconds is not None
            and self.connect_timeout_seconds <= 0
        ):
            raise ValueError(
                "connect_timeout_seconds must be > 0 when provided"
            )
        if (
            self.read_timeout_seconds is not None
            and self.read_timeout_seconds <= 0
        ):
            raise ValueError("read_timeout_seconds must be > 0 when provided")

        # Freeze copied headers to avoid post-init mutation side effects.
        object.__setattr__(
            self,
            "default_headers",
            MappingProxyType(dict(self.default_headers)),
        )

    @property
    def timeout(self) -> float | tuple[float, float] | None:
        """Timeout value in the shape ``requests`` expects."""
        if (
            self.connect_timeout_seconds is not None
            and self.read_timeout_seconds is not None
        ):
            return (self.connect_timeout_seconds, self.read_timeout_seconds)
        return self.timeout_seconds


@dataclass(frozen=True)
class ErrorHandlerConfig:
    """Configuration for ``ApiErrorHandler``.

    ``status_messages`` is layered over ``DEFAULT_STATUS_MESSAGES``, so a
    caller only lists the codes it wants to reword or add.
    """

    log_errors: bool = True
    logger: ErrorLogger | None = None
    status_messages: Mapping[int, str] = field(
        default_factory=_default_status_messages
    )

    def __post_init__(self) -> None:
        for status in self.status_messages:
            if not isinstance(status, int) or isinstance(status, bool):
                raise ValueError(
                    f"status_messages keys must be int status codes, got {status!r}"
                )
        if self.logger is not None and not callable(self.logger):
            raise ValueError("logger must be callable when provided")

        merged = dict(DEFAULT_STATUS_MESSAGES)
        merged.update(self.status_messages)
        object.__setattr__(self, "status_messages", MappingProxyType(merged))

    def message_for(self, status: int) -> str:
        """Return the human-readable message for ``status``."""
        return self.status_messages.get(status, f"HTTP Error {status}")
