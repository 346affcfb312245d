"""Structured parsing of ``Set-Cookie`` response headers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Mapping
from urllib.parse import unquote

import structlog

logger = structlog.get_logger()

# Recorded for an Expires/Max-Age value that cannot be turned into a date.
INVALID_EXPIRES = datetime.min.replace(tzinfo=timezone.utc)

# Segment whose last attribute is ``Expires=<weekday>``: the next comma
# belongs to the HTTP date, not to the cookie list.
_OPEN_EXPIRES_RE = re.compile(
    r"(?:^|;)\s*expires\s*=\s*[A-Za-z]{3,9}\s*$", re.IGNORECASE
)


@dataclass(frozen=True)
class Cookie:
    name: str
    value: str
    domain: str | None = None
    path: str | None = None
    expires: datetime | None = None
    secure: bool = False
    http_only: bool = False
    same_site: str | None = None

    @property
    def has_valid_expiry(self) -> bool:
        return self.expires is not None and self.expires != INVALID_EXPIRES


def split_set_cookie_header(value: str) -> list[str]:
    """Split a folded ``Set-Cookie`` value into one string per cookie.

    Commas separate cookies except the one inside an ``Expires`` HTTP date
    such as ``Expires=Wed, 09 Jun 2021 10:18:14 GMT``.
    """
    segments: list[str] = []
    for part in value.split(","):
        if segments and _OPEN_EXPIRES_RE.search(segments[-1]):
            segments[-1] = f"{segments[-1]},{part}"
        else:
            segments.append(part)
    return [segment.strip() for segment in segments if segment.strip()]


def parse_cookie_date(value: str) -> datetime:
    """Parse an ``Expires`` value; ``INVALID_EXPIRES`` when unparseable."""
    value = value.strip()
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return INVALID_EXPIRES
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _header_value(headers: Mapping[str, Any], name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        for key, candidate in headers.items():
            if key.lower() == name:
                value = candidate
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


def parse_cookie(segment: str, now: datetime) -> Cookie:
    """Parse one ``name=value; Attr=...`` segment."""
    name_value, *attributes = (piece.strip() for piece in segment.split(";"))
    name, _, value = name_value.partition("=")
    fields: dict[str, Any] = {}
    max_age_expires: datetime | None = None

    for attribute in attributes:
        key, _, attr_value = attribute.partition("=")
        key = key.strip().lower()
        attr_value = attr_value.strip()
        if key == "domain":
            fields["domain"] = attr_value
        elif key == "path":
            fields["path"] = attr_value
        elif key == "expires":
            fields["expires"] = parse_cookie_date(attr_value)
        elif key == "max-age":
            try:
                max_age_expires = now + timedelta(seconds=int(attr_value))
            except (ValueError, OverflowError):
                logger.debug(
                    "cookie_attribute_invalid", attribute=key, value=attr_value
                )
                max_age_expires = INVALID_EXPIRES
        elif key == "secure":
            fields["secure"] = True
        elif key == "httponly":
            fields["http_only"] = True
        elif key == "samesite":
            fields["same_site"] = attr_value

    # Max-Age wins over Expires whatever their order in the header.
    if max_age_expires is not None:
        fields["expires"] = max_age_expires

    return Cookie(name=unquote(name.strip()), value=unquote(value.strip()), **fields)


def parse_set_cookies(
    headers: Mapping[str, Any], now: datetime | None = None
) -> list[Cookie]:
    """Parse every cookie carried by the response's ``set-cookie`` header.

    Args:
        headers: Response headers (any case).
        now: Reference time for ``Max-Age``; defaults to the current UTC time.

    Returns:
        Cookies in header order; empty when there is no ``set-cookie``.
    """
    raw = _header_value(headers, "set-cookie")
    if not raw:
        return []
    reference = now or datetime.now(timezone.utc)
    return [parse_cookie(segment, reference) for segment in split_set_cookie_header(raw)]
