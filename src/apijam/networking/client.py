"""Per-verb client facade over ``ApiPipeline``."""

from __future__ import annotations

from typing import Any, Mapping

from .error_handler import ApiErrorHandler
from .headers import HeaderFactory
from .pipeline import ApiPipeline
from .request import HttpMethod
from .response import ApiResponse
from .transport import Transport
from .urls import Endpoint, QueryParams


class JamClient:
    """Convenience client holding a base URL, access token and headers.

    Every verb method returns an ``ApiResponse`` or raises an
    ``ApiJamError``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        transport: Transport | None = None,
        header_factory: HeaderFactory | None = None,
        error_handler: ApiErrorHandler | None = None,
        pipeline: ApiPipeline | None = None,
    ) -> None:
        self._base_url = base_url
        self._access_token: str | None = None
        self._headers: dict[str, str] = {}
        self._pipeline = pipeline or ApiPipeline(
            transport=transport,
            header_factory=header_factory,
            error_handler=error_handler,
        )

    @property
    def base_url(self) -> str | None:
        return self._base_url

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    @property
    def pipeline(self) -> ApiPipeline:
        return self._pipeline

    def configure(
        self,
        *,
        base_url: str | None = None,
        access_token: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Update only the settings that are passed."""
        if base_url is not None:
            self._base_url = base_url
        if access_token is not None:
            self._access_token = access_token
        if headers is not None:
            self.set_headers(headers)

    def set_base_url(self, base_url: str) -> None:
        self._base_url = base_url

    def set_access_token(self, token: str) -> None:
        self._access_token = token

    def set_headers(self, headers: Mapping[str, str]) -> None:
        self._headers = {**self._headers, **headers}

    def set_auth_headers(self, header: str = "Authorization") -> None:
        """Send the access token, as is, under ``header`` on every call."""
        if not self._access_token:
            raise ValueError("Access token must be set before setting auth headers")
        self._headers = {**self._headers, header: self._access_token}

    def get(
        self, path: str, payload: Any = None, query_params: QueryParams | None = None
    ) -> ApiResponse:
        return self._call(HttpMethod.GET, path, payload, query_params)

    def post(
        self, path: str, payload: Any = None, query_params: QueryParams | None = None
    ) -> ApiResponse:
        return self._call(HttpMethod.POST, path, payload, query_params)

    def put(
        self, path: str, payload: Any = None, query_params: QueryParams | None = None
    ) -> ApiResponse:
        return self._call(HttpMethod.PUT, path, payload, query_params)

    def patch(
        self, path: str, payload: Any = None, query_params: QueryParams | None = None
    ) -> ApiResponse:
        return self._call(HttpMethod.PATCH, path, payload, query_params)

    def delete(
        self, path: str, payload: Any = None, query_params: QueryParams | None = None
    ) -> ApiResponse:
        return self._call(HttpMethod.DELETE, path, payload, query_params)

    def _call(
        self,
        method: HttpMethod,
        path: str,
        payload: Any,
        query_params: QueryParams | None,
    ) -> ApiResponse:
        endpoint = Endpoint(path=path, base_url=self._base_url, query_params=query_params)
        return self._pipeline.construct_url(
            endpoint, payload, dict(self._headers), method
        )
