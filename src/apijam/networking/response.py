"""Response normalization into a uniform envelope."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Callable, Mapping, Protocol

import structlog

from .cookies import Cookie, parse_set_cookies
from .errors import HttpStatusError

logger = structlog.get_logger()

HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 299


class RawResponse(Protocol):
    """What a transport hands back for a completed exchange.

    Each body reader may fail on its own; the normalizer decides which one
    to call and falls back to ``text()``.
    """

    @property
    def status(self) -> int: ...

    @property
    def status_text(self) -> str: ...

    @property
    def headers(self) -> Mapping[str, str]: ...

    @property
    def final_url(self) -> str: ...

    @property
    def redirected(self) -> bool: ...

    @property
    def response_type(self) -> str: ...

    def json(self) -> Any: ...

    def text(self) -> str: ...

    def form(self) -> Any: ...

    def blob(self) -> bytes: ...


def _empty_mapping() -> Mapping[str, str]:
    return MappingProxyType({})


@dataclass(frozen=True)
class ResponseMeta:
    url: str
    response_type: str
    redirected: bool
    status: int
    status_text: str = ""
    headers: Mapping[str, str] = field(default_factory=_empty_mapping)
    cookies: tuple[Cookie, ...] = ()


@dataclass(frozen=True)
class ApiResponse:
    """Envelope returned for every successful call."""

    body: Any
    headers: Mapping[str, str]
    cookies: tuple[Cookie, ...]
    meta: ResponseMeta

    @property
    def status(self) -> int:
        return self.meta.status


def media_type(content_type: str | None) -> str:
    """Lowercased MIME type of a Content-Type value, parameters dropped."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def select_body_reader(
    raw: RawResponse, content_type: str | None
) -> Callable[[], Any]:
    """Pick the body reader matching the declared content type."""
    mime = media_type(content_type)
    if "application/json" in mime:
        return raw.json
    if "text/" in mime:
        return raw.text
    if "multipart/form-data" in mime:
        return raw.form
    return raw.blob


def decode_body(raw: RawResponse) -> Any:
    """Decode the body by content type, falling back to text on failure."""
    content_type = _get_header(raw.headers, "content-type")
    reader = select_body_reader(raw, content_type)
    try:
        return reader()
    except Exception as exc:
        logger.debug(
            "body_decode_fallback",
            content_type=content_type,
            reader=getattr(reader, "__name__", repr(reader)),
            error=str(exc),
        )
        return raw.text()


def normalize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Lowercase header names; later duplicates overwrite earlier ones."""
    normalized: dict[str, str] = {}
    for name, value in headers.items():
        normalized[name.lower()] = value
    return normalized


def _get_header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    for key, candidate in headers.items():
        if key.lower() == name:
            return candidate
    return None


def is_success(status: int) -> bool:
    return HTTP_STATUS_OK_MIN <= status <= HTTP_STATUS_OK_MAX


def normalize_response(
    raw: RawResponse, now: datetime | None = None
) -> ApiResponse:
    """Turn a raw transport response into an ``ApiResponse``.

    Args:
        raw: Response delivered by the transport.
        now: Reference time for cookie ``Max-Age``; defaults to now.

    Returns:
        The immutable response envelope.

    Raises:
        HttpStatusError: The status is outside 200-299. ``details`` carries
            ``status``, ``status_text``, ``meta`` and the decoded ``body``.
    """
    body = decode_body(raw)
    headers = MappingProxyType(normalize_headers(raw.headers))
    cookies = tuple(parse_set_cookies(raw.headers, now=now))

    meta = ResponseMeta(
        url=raw.final_url,
        response_type=raw.response_type,
        redirected=raw.redirected,
        status=raw.status,
        status_text=raw.status_text,
        headers=headers,
        cookies=cookies,
    )

    if not is_success(raw.status):
        raise HttpStatusError(
            raw.status,
            raw.status_text or f"HTTP Error {raw.status}",
            details=MappingProxyType(
                {
                    "status": raw.status,
                    "status_text": raw.status_text,
                    "meta": meta,
                    "body": body,
                }
            ),
        )

    return ApiResponse(body=body, headers=headers, cookies=cookies, meta=meta)
