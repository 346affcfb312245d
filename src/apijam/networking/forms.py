"""Decoding of ``multipart/form-data`` response bodies."""

from __future__ import annotations

from dataclasses import dataclass
from email import policy
from email.parser import BytesParser


@dataclass(frozen=True)
class FormField:
    """One part of a multipart body.

    File parts (those with a filename) keep their raw bytes; plain fields are
    decoded with the part charset, UTF-8 by default.
    """

    name: str | None
    value: str | bytes
    filename: str | None = None
    content_type: str = "text/plain"


@dataclass(frozen=True)
class FormData:
    fields: tuple[FormField, ...] = ()

    def get(self, name: str) -> str | bytes | None:
        """First value submitted under ``name``."""
        for field in self.fields:
            if field.name == name:
                return field.value
        return None

    def get_all(self, name: str) -> list[str | bytes]:
        return [field.value for field in self.fields if field.name == name]

    def keys(self) -> list[str]:
        seen: dict[str, None] = {}
        for field in self.fields:
            if field.name is not None:
                seen.setdefault(field.name, None)
        return list(seen)

    def __len__(self) -> int:
        return len(self.fields)


def decode_multipart(content: bytes, content_type: str) -> FormData:
    """Split a multipart body into its fields.

    Args:
        content: Raw response body.
        content_type: Full Content-Type header, including the boundary.

    Raises:
        ValueError: The body is not a well-formed multipart payload.
    """
    head = f"Content-Type: {content_type}\r\nMIME-Version: 1.0\r\n\r\n"
    message = BytesParser(policy=policy.HTTP).parsebytes(
        head.encode("latin-1") + content
    )
    if not message.is_multipart():
        raise ValueError("response body is not valid multipart/form-data")

    fields: list[FormField] = []
    for part in message.iter_parts():
        payload = part.get_payload(decode=True) or b""
        filename = part.get_filename()
        value: str | bytes = payload
        if filename is None:
            charset = part.get_content_charset() or "utf-8"
            value = payload.decode(charset, errors="replace")
        fields.append(
            FormField(
                name=part.get_param("name", header="content-disposition"),
                value=value,
                filename=filename,
                content_type=part.get_content_type(),
            )
        )
    return FormData(tuple(fields))
