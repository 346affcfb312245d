import json
from typing import Any

import pytest
from requests.structures import CaseInsensitiveDict


class FakeRawResponse:
    """In-memory RawResponse with per-reader failure switches."""

    def __init__(
        self,
        *,
        status: int = 200,
        status_text: str = "OK",
        headers: dict[str, str] | None = None,
        content: bytes = b"",
        final_url: str = "https://example.com/",
        redirected: bool = False,
        response_type: str = "default",
        failing_readers: tuple[str, ...] = (),
    ) -> None:
        self.status = status
        self.status_text = status_text
        self.headers = CaseInsensitiveDict(headers or {})
        self.content = content
        self.final_url = final_url
        self.redirected = redirected
        self.response_type = response_type
        self.failing_readers = failing_readers
        self.calls: list[str] = []

    def _read(self, reader: str) -> None:
        self.calls.append(reader)
        if reader in self.failing_readers:
            raise ValueError(f"{reader} decoding failed")

    def json(self) -> Any:
        self._read("json")
        return json.loads(self.content)

    def text(self) -> str:
        self._read("text")
        return self.content.decode("utf-8")

    def form(self) -> Any:
        self._read("form")
        return {"form": self.content}

    def blob(self) -> bytes:
        self._read("blob")
        return self.content


@pytest.fixture
def make_raw_response():
    return FakeRawResponse
