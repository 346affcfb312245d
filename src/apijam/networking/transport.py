"""Fetch-like transport primitive backed by ``requests``.

The pipeline only depends on the ``Transport`` protocol; ``RequestsTransport``
is the default implementation for server-side Python.
"""

from __future__ import annotations

import json
from types import TracebackType
from typing import Any, Mapping, Protocol

import requests
import structlog

from ..observability.logging import redact_headers
from .config import HttpClientConfig
from .errors import ApplicationError
from .forms import FormData, decode_multipart
from .response import RawResponse, media_type

logger = structlog.get_logger()

# Mirrors the fetch ``Response.type`` of a same-origin, non-browser request.
DEFAULT_RESPONSE_TYPE = "default"


class Transport(Protocol):
    """Executes one HTTP exchange.

    ``options`` holds ``method``, ``headers`` and ``body``; anything else is
    transport specific. Failures are raised as plain exceptions.
    """

    def dispatch(self, url: str, options: Mapping[str, Any]) -> RawResponse: ...


class RequestsRawResponse:
    """``RawResponse`` view over a ``requests.Response``."""

    def __init__(self, response: requests.Response) -> None:
        self._response = response

    @property
    def status(self) -> int:
        return self._response.status_code

    @property
    def status_text(self) -> str:
        return self._response.reason or ""

    @property
    def headers(self) -> Mapping[str, str]:
        return self._response.headers

    @property
    def final_url(self) -> str:
        return self._response.url

    @property
    def redirected(self) -> bool:
        return bool(self._response.history)

    @property
    def response_type(self) -> str:
        return DEFAULT_RESPONSE_TYPE

    def json(self) -> Any:
        return self._response.json()

    def text(self) -> str:
        return self._response.text

    def form(self) -> FormData:
        return decode_multipart(
            self._response.content,
            self._response.headers.get("Content-Type", ""),
        )

    def blob(self) -> bytes:
        return self._response.content


class RequestsTransport:
    """Transport over one ``requests.Session``."""

    def __init__(self, config: HttpClientConfig | None = None) -> None:
        """Create a transport.

        Args:
            config: Session headers, timeouts, TLS and redirect settings.
        """
        self._config = config or HttpClientConfig()
        self._session = requests.Session()
        if self._config.user_agent:
            self._session.headers["User-Agent"] = self._config.user_agent
        self._session.headers.update(self._config.default_headers)
        self._log = logger.bind(component="transport")

    @property
    def session(self) -> requests.Session:
        return self._session

    def dispatch(self, url: str, options: Mapping[str, Any]) -> RequestsRawResponse:
        method = str(options.get("method", "GET")).upper()
        headers = dict(options.get("headers") or {})
        body_kwargs = self._body_kwargs(options.get("body"), headers)
        timeout = options.get("timeout", self._config.timeout)
        allow_redirects = options.get("allow_redirects", self._config.allow_redirects)

        self._log.debug(
            "dispatch",
            method=method,
            url=url,
            headers=redact_headers(headers),
            timeout_s=timeout,
        )
        response = self._session.request(
            method,
            url,
            headers=headers,
            timeout=timeout,
            allow_redirects=allow_redirects,
            verify=self._config.verify_tls,
            **body_kwargs,
        )
        self._log.debug(
            "dispatch_complete",
            method=method,
            url=response.url,
            status_code=response.status_code,
        )
        return RequestsRawResponse(response)

    @staticmethod
    def _body_kwargs(body: Any, headers: dict[str, str]) -> dict[str, Any]:
        """Map a payload onto ``requests`` keyword arguments.

        Multipart mappings are sent as ``files`` with the Content-Type header
        dropped so ``requests`` can write the boundary itself.

        Raises:
            ApplicationError: The payload cannot be encoded as JSON.
        """
        if body is None:
            return {}
        if isinstance(body, (bytes, bytearray, str)) or hasattr(body, "read"):
            return {"data": body}

        content_type_key = next(
            (key for key in headers if key.lower() == "content-type"), None
        )
        mime = media_type(headers.get(content_type_key) if content_type_key else None)

        if "multipart/form-data" in mime and isinstance(body, Mapping):
            if content_type_key is not None:
                del headers[content_type_key]
            files = {
                name: value if isinstance(value, tuple) else (None, value)
                for name, value in body.items()
            }
            return {"files": files}
        if "application/x-www-form-urlencoded" in mime:
            return {"data": body}
        try:
            encoded = json.dumps(body)
        except (TypeError, ValueError) as exc:
            raise ApplicationError(
                f"Request body is not JSON serializable: {exc}", original_error=exc
            ) from exc
        return {"data": encoded.encode("utf-8")}

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> RequestsTransport:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
