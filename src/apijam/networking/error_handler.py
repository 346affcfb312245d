"""Classification of arbitrary failures into the typed error taxonomy."""

from __future__ import annotations

from typing import Any, Callable

import requests
import structlog

from .config import ErrorHandlerConfig
from .errors import (
    ApiJamError,
    ApplicationError,
    HttpStatusError,
    NetworkError,
    UnknownError,
)

logger = structlog.get_logger()

StatusHook = Callable[[ApiJamError], None]

NETWORK_ERROR_PHRASES = (
    "network error",
    "failed to fetch",
    "connection refused",
    "connection reset",
    "connection aborted",
    "max retries exceeded",
    "name or service not known",
    "temporary failure in name resolution",
    "nodename nor servname provided",
    "network is unreachable",
    "timed out",
)

HTTP_STATUS_UNAUTHORIZED = 401
HTTP_STATUS_FORBIDDEN = 403
HTTP_STATUS_TOO_MANY_REQUESTS = 429

_BUILTIN_STATUS_WARNINGS = {
    HTTP_STATUS_UNAUTHORIZED: "authentication_failed",
    HTTP_STATUS_FORBIDDEN: "insufficient_permissions",
    HTTP_STATUS_TOO_MANY_REQUESTS: "rate_limit_exceeded",
}


def is_network_failure(error: BaseException) -> bool:
    """Return True when ``error`` describes a transport-level failure."""
    if isinstance(
        error,
        (requests.exceptions.ConnectionError, requests.exceptions.Timeout),
    ):
        return True
    text = str(error).lower()
    return any(phrase in text for phrase in NETWORK_ERROR_PHRASES)


class ApiErrorHandler:
    """Normalizes failures, logs them and notifies status observers.

    ``handle`` never raises: it returns the typed error for the caller to
    raise.
    """

    def __init__(self, config: ErrorHandlerConfig | None = None) -> None:
        self._config = config or ErrorHandlerConfig()
        self._hooks: dict[int, list[StatusHook]] = {}
        self._log = logger.bind(component="error_handler")

    @property
    def config(self) -> ErrorHandlerConfig:
        return self._config

    def add_hook(self, status: int, hook: StatusHook) -> None:
        """Register an observer called when an error with ``status`` is handled.

        Hooks for one status run in registration order.
        """
        self._hooks.setdefault(status, []).append(hook)

    def on_unauthorized(self, hook: StatusHook) -> None:
        self.add_hook(HTTP_STATUS_UNAUTHORIZED, hook)

    def on_forbidden(self, hook: StatusHook) -> None:
        self.add_hook(HTTP_STATUS_FORBIDDEN, hook)

    def on_rate_limited(self, hook: StatusHook) -> None:
        self.add_hook(HTTP_STATUS_TOO_MANY_REQUESTS, hook)

    def handle(self, error: Any) -> ApiJamError:
        """Classify ``error`` and run logging and status hooks.

        Args:
            error: Anything that was raised or reported as a failure.

        Returns:
            The typed error to raise.
        """
        api_error = self.normalize(error)
        if self._config.log_errors:
            self._log_error(api_error)
        self._dispatch_hooks(api_error)
        return api_error

    def normalize(self, error: Any) -> ApiJamError:
        if isinstance(error, HttpStatusError):
            return HttpStatusError(
                error.status,
                self._config.message_for(error.status),
                details=error.details,
                original_error=error,
            )

        if isinstance(error, ApiJamError):
            return error

        if isinstance(error, Exception):
            if is_network_failure(error):
                return NetworkError(
                    "Network error - Please check your connection",
                    status=0,
                    details={"reason": str(error)},
                    original_error=error,
                )
            return ApplicationError(
                "Unexpected application error",
                status=0,
                details={"reason": str(error)},
                original_error=error,
            )

        return UnknownError(
            "Unknown error occurred",
            details={"reason": str(error)} if error is not None else None,
            original_error=error,
        )

    def _log_error(self, error: ApiJamError) -> None:
        entry = {
            "message": error.message,
            "status": error.status,
            "details": error.details,
        }
        if self._config.logger is None:
            self._log.error(
                "api_error",
                kind=error.kind.value,
                status=error.status,
                error_message=error.message,
                is_network_error=error.is_network_error,
            )
            return
        try:
            self._config.logger(entry)
        except Exception:
            self._log.exception("error_logger_failed", status=error.status)

    def _dispatch_hooks(self, error: ApiJamError) -> None:
        warning = _BUILTIN_STATUS_WARNINGS.get(error.status)
        if warning is not None:
            self._log.warning(warning, status=error.status)

        for hook in self._hooks.get(error.status, ()):
            try:
                hook(error)
            except Exception:
                self._log.exception(
                    "status_hook_failed",
                    status=error.status,
                    hook=getattr(hook, "__name__", repr(hook)),
                )
