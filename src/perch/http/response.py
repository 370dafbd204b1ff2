"""The response type every handler ends up producing."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from perch.http.encoding import dumps

JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


@dataclass(frozen=True, slots=True)
class Response:
    """Status, content type, extra headers and a body.

    Frozen; the ``with_*`` methods hand back modified copies::

        Response.from_json({"ok": True}).with_status(201).with_header("location", "/todos/1")
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = TEXT_CONTENT_TYPE
    headers: tuple[tuple[str, str], ...] = ()

    @classmethod
    def from_json(cls, value: Any, status: int = 200) -> Response:
        """Encode *value* as JSON. Dataclasses, datetimes and tuples are handled."""
        return cls(body=dumps(value), status=status, content_type=JSON_CONTENT_TYPE)

    def with_status(self, status: int) -> Response:
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        return self.with_headers({name: value})

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        return replace(self, headers=self.headers + tuple(headers.items()))

    @property
    def body_bytes(self) -> bytes:
        body = self.body
        return body.encode("utf-8") if isinstance(body, str) else body

    @property
    def text(self) -> str:
        body = self.body
        return body.decode("utf-8") if isinstance(body, bytes) else body

    def json(self) -> Any:
        return json.loads(self.body_bytes)
