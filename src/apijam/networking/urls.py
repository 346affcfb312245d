"""URL resolution: endpoint path + optional base + query parameters.

The resolver turns whatever the caller hands in into one canonical absolute
URL value. Everything downstream (headers, dispatch, logging) consumes the
``ResolvedUrl`` it returns and never re-parses raw strings.
"""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass, replace
from typing import Mapping, Protocol, Sequence, Union
from urllib.parse import parse_qsl, quote, urlencode, urljoin, urlsplit, urlunsplit

import structlog

from .errors import InvalidUrlError

logger = structlog.get_logger()

QueryScalar = Union[str, int, float, bool, None]
QueryValue = Union[QueryScalar, Sequence[QueryScalar]]
QueryParams = Mapping[str, QueryValue]

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_FORBIDDEN_HOST_CHARS = re.compile(r"[\x00-\x20\x7f<>\\^`{|}\"]")

_PATH_SAFE = "/%:@!$&'()*+,;=-._~"
_QUERY_SAFE = _PATH_SAFE + "?"


class UrlEncryptor(Protocol):
    """Transforms a resolved href into an opaque fragment value."""

    def encrypt(self, data: str) -> str: ...


class Base64Encryptor:
    """Base64-encode the href into the fragment.

    This is an encoding, not encryption; it only hides the URL from casual
    inspection.
    """

    def encrypt(self, data: str) -> str:
        return base64.b64encode(data.encode("utf-8")).decode("ascii")


@dataclass(frozen=True)
class Endpoint:
    """Logical endpoint: path, optional base and query parameters."""

    path: str
    base_url: str | None = None
    query_params: QueryParams | None = None


@dataclass(frozen=True)
class ResolvedUrl:
    """Canonical absolute URL produced by ``UrlResolver``."""

    scheme: str
    netloc: str
    path: str = "/"
    query: str = ""
    fragment: str = ""

    @property
    def href(self) -> str:
        return urlunsplit(
            (self.scheme, self.netloc, self.path, self.query, self.fragment)
        )

    @property
    def hostname(self) -> str | None:
        return urlsplit(self.href).hostname

    @property
    def port(self) -> int | None:
        return urlsplit(self.href).port

    def query_pairs(self) -> list[tuple[str, str]]:
        """Decode the query string into ordered ``(key, value)`` pairs."""
        return parse_qsl(self.query, keep_blank_values=True)

    def with_query(self, query: str) -> ResolvedUrl:
        return replace(self, query=query)

    def with_fragment(self, fragment: str) -> ResolvedUrl:
        return replace(self, fragment=fragment)

    def __str__(self) -> str:
        return self.href


def is_relative_url(url: str) -> bool:
    """Return True when ``url`` cannot stand alone as an absolute URL.

    A leading ``/`` is always relative. Anything else is relative unless it
    carries both a scheme and an authority.
    """
    candidate = url.strip()
    if candidate.startswith("/"):
        return True
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return True
    return not (
        parts.scheme and _SCHEME_RE.match(parts.scheme) and parts.netloc
    )


def _stringify(value: QueryScalar) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, bytes, bytearray)):
        raise TypeError(
            f"unsupported query parameter value type: {type(value).__name__}"
        )
    return str(value)


def query_pairs(params: QueryParams) -> list[tuple[str, str]]:
    """Flatten query parameters into ordered ``(key, value)`` pairs.

    Sequence values produce one pair per element; key order and element
    order are preserved.
    """
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        if isinstance(value, Sequence) and not isinstance(
            value, (str, bytes, bytearray)
        ):
            pairs.extend((str(key), _stringify(item)) for item in value)
        else:
            pairs.append((str(key), _stringify(value)))
    return pairs


def build_query_string(params: QueryParams) -> str:
    """Encode query parameters as ``application/x-www-form-urlencoded``."""
    return urlencode(query_pairs(params))


def _remove_dot_segments(path: str) -> str:
    segments = path.split("/")
    resolved: list[str] = []
    for segment in segments:
        if segment == "..":
            if len(resolved) > 1:
                resolved.pop()
        elif segment != ".":
            resolved.append(segment)
    if segments[-1] in (".", ".."):
        resolved.append("")
    return "/".join(resolved)


def _parse_absolute(url: str) -> ResolvedUrl:
    """Parse and validate an absolute URL, raising ValueError when invalid."""
    parts = urlsplit(url.strip())
    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        raise ValueError("missing or invalid scheme")
    if not parts.netloc:
        raise ValueError("missing host")
    if _FORBIDDEN_HOST_CHARS.search(parts.netloc):
        raise ValueError("invalid character in host")
    if not parts.hostname:
        raise ValueError("missing host")
    # Accessing .port validates it (non-numeric or out of range raises).
    parts.port

    path = _remove_dot_segments(quote(parts.path, safe=_PATH_SAFE)) or "/"
    return ResolvedUrl(
        scheme=parts.scheme.lower(),
        netloc=parts.netloc,
        path=path,
        query=quote(parts.query, safe=_QUERY_SAFE),
        fragment=quote(parts.fragment, safe=_QUERY_SAFE),
    )


class UrlResolver:
    """Resolve endpoint strings into validated absolute URLs."""

    def __init__(
        self,
        encryptor: UrlEncryptor | None = None,
        *,
        merge_query: bool = False,
    ) -> None:
        """Create a resolver.

        Args:
            encryptor: Optional hook that writes an encoded copy of the
                resolved href into the URL fragment.
            merge_query: Append query parameters after a query string
                already present in the path instead of replacing it.
        """
        self._encryptor = encryptor
        self._merge_query = merge_query

    def resolve(
        self,
        path: str,
        base_url: str | None = None,
        query_params: QueryParams | None = None,
    ) -> ResolvedUrl:
        """Resolve ``path`` (against ``base_url`` when relative).

        Args:
            path: Absolute URL, or a path relative to ``base_url``.
            base_url: Base URL, required when ``path`` is relative.
            query_params: When given, replaces the query string of the
                resolved URL (or is appended to it with ``merge_query``).

        Returns:
            The resolved, immutable URL.

        Raises:
            InvalidUrlError: The path is relative without a base, or the
                combination does not parse as a URL.
        """
        if not isinstance(path, str):
            raise InvalidUrlError(f"Invalid URL: {path!r}. URL must be a string")

        if is_relative_url(path) and not base_url:
            raise InvalidUrlError(
                f"Invalid URL: {path}. Please provide the complete url "
                "else provide base url."
            )

        try:
            if base_url:
                _parse_absolute(base_url)
            joined = urljoin(base_url, path.strip()) if base_url else path
            url = _parse_absolute(joined)
            if query_params is not None:
                url = url.with_query(self._query_for(url, query_params))
        except (TypeError, ValueError) as exc:
            raise InvalidUrlError(
                f"Invalid URL: {path}. {exc}", original_error=exc
            ) from exc

        if self._encryptor is not None:
            url = url.with_fragment(self._encryptor.encrypt(url.href))

        logger.debug("url_resolved", url=url.href)
        return url

    def resolve_endpoint(self, endpoint: Endpoint) -> ResolvedUrl:
        return self.resolve(endpoint.path, endpoint.base_url, endpoint.query_params)

    def _query_for(self, url: ResolvedUrl, params: QueryParams) -> str:
        query = build_query_string(params)
        if self._merge_query and url.query:
            return f"{url.query}&{query}" if query else url.query
        return query
