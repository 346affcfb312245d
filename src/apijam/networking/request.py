"""Request dispatch: one call through the transport, typed errors out."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Mapping

import structlog

from .errors import ApiJamError, ApplicationError, NetworkError
from .response import ApiResponse, RawResponse, normalize_response
from .transport import Transport
from .urls import ResolvedUrl

logger = structlog.get_logger()


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @classmethod
    def coerce(cls, method: HttpMethod | str) -> HttpMethod:
        """Return the member for ``method`` (case-insensitive).

        Raises:
            ValueError: ``method`` is not one of the supported verbs.
        """
        if isinstance(method, cls):
            return method
        try:
            return cls(str(method).upper())
        except ValueError:
            raise ValueError(f"Unsupported HTTP method: {method!r}") from None


def parse_options(
    method: HttpMethod | str,
    options: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Copy ``options`` and set the method; the method argument always wins."""
    processed = dict(options or {})
    processed["method"] = HttpMethod.coerce(method).value
    return processed


class RequestDispatcher:
    """Sends one request and returns the normalized envelope.

    Any failure leaves as an ``ApiJamError``: already-typed errors pass
    through untouched, everything else raised while talking to the transport
    becomes a ``NetworkError`` with status 0.
    """

    def __init__(
        self,
        transport: Transport,
        normalizer: Callable[[RawResponse], ApiResponse] = normalize_response,
    ) -> None:
        self._transport = transport
        self._normalizer = normalizer
        self._log = logger.bind(component="dispatcher")

    @property
    def transport(self) -> Transport:
        return self._transport

    def send(
        self,
        url: ResolvedUrl | str,
        method: HttpMethod | str,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        options: Mapping[str, Any] | None = None,
    ) -> ApiResponse:
        """Dispatch a request and normalize its response.

        Args:
            url: Resolved target URL.
            method: HTTP verb; overrides any ``method`` in ``options``.
            headers: Assembled header set.
            body: Optional payload.
            options: Extra transport options.

        Returns:
            The response envelope for a 2xx response.

        Raises:
            HttpStatusError: The server answered with a non-2xx status.
            NetworkError: The transport call failed.
            ApplicationError: ``method`` is not a supported verb or the
                payload cannot be encoded.
        """
        request_options = dict(options or {})
        if headers is not None:
            request_options["headers"] = headers
        if body is not None:
            request_options["body"] = body
        try:
            request_options = parse_options(method, request_options)
        except ValueError as exc:
            raise ApplicationError(str(exc), original_error=exc) from exc
        href = str(url)

        try:
            raw = self._transport.dispatch(href, request_options)
            return self._normalizer(raw)
        except ApiJamError as exc:
            self._log.debug(
                "request_failed",
                method=request_options["method"],
                url=href,
                kind=exc.kind.value,
                status=exc.status,
            )
            raise
        except Exception as exc:
            self._log.debug(
                "request_network_error",
                method=request_options["method"],
                url=href,
                error=str(exc),
            )
            raise NetworkError(
                f"Network Error: {exc}", status=0, original_error=exc
            ) from exc
