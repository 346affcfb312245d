"""End-to-end request construction: URL, headers, dispatch, classification."""

from __future__ import annotations

from typing import Any, Callable, Mapping, TypeVar

from .error_handler import ApiErrorHandler
from .errors import ApiJamError
from .headers import HeaderFactory, HeaderPresets
from .request import HttpMethod, RequestDispatcher
from .response import ApiResponse
from .transport import RequestsTransport, Transport
from .urls import Endpoint, ResolvedUrl, UrlResolver

T = TypeVar("T")


class ApiPipeline:
    """Wires the resolver, header factory, dispatcher and error handler.

    Each ``construct_*`` entry point routes its failures through the error
    handler exactly once and raises the typed error it returns.
    """

    def __init__(
        self,
        *,
        transport: Transport | None = None,
        resolver: UrlResolver | None = None,
        header_factory: HeaderFactory | None = None,
        error_handler: ApiErrorHandler | None = None,
        base_headers: Mapping[str, str] | None = None,
    ) -> None:
        """Create a pipeline.

        Args:
            transport: Transport primitive; a ``RequestsTransport`` by default.
            resolver: URL resolver.
            header_factory: Owner of the default header layer.
            error_handler: Failure classifier.
            base_headers: Per-call headers applied under the caller's own;
                the JSON preset when omitted.
        """
        self._dispatcher = RequestDispatcher(transport or RequestsTransport())
        self._resolver = resolver or UrlResolver()
        self._headers = header_factory or HeaderFactory()
        self._errors = error_handler or ApiErrorHandler()
        self._base_headers = dict(
            HeaderPresets.json() if base_headers is None else base_headers
        )

    @property
    def header_factory(self) -> HeaderFactory:
        return self._headers

    @property
    def error_handler(self) -> ApiErrorHandler:
        return self._errors

    @property
    def resolver(self) -> UrlResolver:
        return self._resolver

    def construct_url(
        self,
        endpoint: Endpoint,
        payload: Any = None,
        headers: Mapping[str, str] | None = None,
        method: HttpMethod | str | None = None,
    ) -> ApiResponse:
        """Resolve ``endpoint`` and run the rest of the pipeline."""
        return self._guard(
            lambda: self._send(
                self._resolver.resolve_endpoint(endpoint), payload, headers, method
            )
        )

    def construct_headers(
        self,
        url: ResolvedUrl,
        payload: Any = None,
        headers: Mapping[str, str] | None = None,
        method: HttpMethod | str | None = None,
    ) -> ApiResponse:
        """Assemble headers for an already resolved URL and send."""
        return self._guard(lambda: self._send(url, payload, headers, method))

    def construct_api(
        self,
        url: ResolvedUrl,
        payload: Any = None,
        header_set: Mapping[str, str] | None = None,
        method: HttpMethod | str | None = None,
    ) -> ApiResponse:
        """Send with a fully assembled header set."""
        return self._guard(lambda: self._dispatch(url, payload, header_set, method))

    def _send(
        self,
        url: ResolvedUrl,
        payload: Any,
        headers: Mapping[str, str] | None,
        method: HttpMethod | str | None,
    ) -> ApiResponse:
        overlay = dict(self._base_headers)
        if headers:
            overlay.update(headers)
        return self._dispatch(url, payload, self._headers.create(overlay), method)

    def _dispatch(
        self,
        url: ResolvedUrl,
        payload: Any,
        header_set: Mapping[str, str] | None,
        method: HttpMethod | str | None,
    ) -> ApiResponse:
        if method is None:
            raise ValueError("Please provide the HTTP Method")
        return self._dispatcher.send(url, method, header_set, payload)

    def _guard(self, operation: Callable[[], T]) -> T:
        try:
            return operation()
        except Exception as exc:
            typed: ApiJamError = self._errors.handle(exc)
            if typed is exc:
                raise
            raise typed from exc
