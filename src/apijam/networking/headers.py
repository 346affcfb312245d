"""Header assembly: default layer + per-call overlay, validated."""

from __future__ import annotations

import re
from typing import Callable, Iterable, Mapping

import structlog
from requests.structures import CaseInsensitiveDict

from .errors import InvalidHeaderError

logger = structlog.get_logger()

HeaderSet = CaseInsensitiveDict
HeaderValidator = Callable[[CaseInsensitiveDict], None]

# RFC 7230 token: visible ASCII minus delimiters.
HEADER_NAME_RE = re.compile(r"^[A-Za-z0-9!#$%&'*+\-.^_`|~]+$")


def invalid_header_names(headers: Iterable[str]) -> list[str]:
    """Return the names that fall outside the header token grammar."""
    return [
        name
        for name in headers
        if not isinstance(name, str) or not HEADER_NAME_RE.match(name)
    ]


class HeaderPresets:
    """Common header configurations."""

    @staticmethod
    def json() -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    @staticmethod
    def form_data() -> dict[str, str]:
        """Multipart content type; the transport fills in the boundary."""
        return {"Content-Type": "multipart/form-data"}

    @staticmethod
    def bearer_token(token: str) -> dict[str, str]:
        """Authorization header for an RFC 6750 bearer token.

        Raises:
            InvalidHeaderError: ``token`` is empty or only whitespace.
        """
        if not isinstance(token, str) or not token.strip():
            raise InvalidHeaderError("Bearer token cannot be empty")
        return {"Authorization": f"Bearer {token}"}


class HeaderFactory:
    """Builds per-call header sets on top of an owned default layer.

    The defaults are never handed out or mutated by ``create``; each call
    works on its own clone, so one call's overlay is invisible to the next.
    """

    def __init__(
        self,
        initial_headers: Mapping[str, str] | None = None,
        validators: Iterable[HeaderValidator] = (),
    ) -> None:
        """Create a factory.

        Args:
            initial_headers: Default headers included in every set.
            validators: Extra checks run after the built-in name check,
                in order. Each raises to reject the set.

        Raises:
            InvalidHeaderError: A default header name is invalid.
        """
        defaults: CaseInsensitiveDict = CaseInsensitiveDict(initial_headers or {})
        self._check_names(defaults)
        self._defaults = defaults
        self._validators: list[HeaderValidator] = list(validators)

    @property
    def default_headers(self) -> dict[str, str]:
        """Snapshot of the default layer."""
        return dict(self._defaults.items())

    @property
    def validators(self) -> tuple[HeaderValidator, ...]:
        return tuple(self._validators)

    def set_default_headers(self, headers: Mapping[str, str]) -> None:
        """Merge ``headers`` into the default layer, overwriting by name.

        Nothing is stored if any name is invalid.
        """
        updated = self._defaults.copy()
        updated.update(headers)
        self._check_names(updated)
        self._defaults = updated

    def add_validator(self, validator: HeaderValidator) -> None:
        self._validators.append(validator)

    def create(self, headers: Mapping[str, str] | None = None) -> HeaderSet:
        """Return defaults merged with ``headers`` (overlay wins).

        Raises:
            InvalidHeaderError: A merged header name is invalid or a
                registered validator rejected the set.
        """
        merged = self._defaults.copy()
        if headers:
            for name, value in headers.items():
                merged[name] = value
        self._validate(merged)
        return merged

    def clone(self) -> HeaderFactory:
        """Independent factory with the same defaults and validators."""
        return HeaderFactory(self._defaults, self._validators)

    def _validate(self, headers: CaseInsensitiveDict) -> None:
        self._check_names(headers)
        for validator in self._validators:
            try:
                validator(headers)
            except InvalidHeaderError:
                raise
            except Exception as exc:
                raise InvalidHeaderError(
                    f"Header validation failed: {exc}", original_error=exc
                ) from exc

    @staticmethod
    def _check_names(headers: CaseInsensitiveDict) -> None:
        invalid = invalid_header_names(headers.keys())
        if invalid:
            logger.debug("invalid_header_names", names=invalid)
            raise InvalidHeaderError(
                "Invalid header names detected", details={"names": invalid}
            )
