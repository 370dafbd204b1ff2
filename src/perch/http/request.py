"""The request handlers and endpoints receive."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any

from perch._internal.asgi import Receive
from perch.errors import HTTPError
from perch.http.multidict import Headers, QueryParams


@dataclass(frozen=True, slots=True)
class Request:
    """Method, path, headers and query of one HTTP request.

    Everything but the body is known up front. The body is pulled from
    the ASGI channel on first ``body()`` or ``json()`` and kept for later
    calls, including calls on copies made by ``with_path_params``.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    path_params: dict[str, str]
    client: tuple[str, int] | None
    _receive: Receive
    _state: dict[str, bytes] = field(default_factory=dict, repr=False, compare=False)
    max_content_length: int | None = None

    @classmethod
    def from_asgi(
        cls,
        scope: dict[str, Any],
        receive: Receive,
        *,
        max_content_length: int | None = None,
    ) -> Request:
        peer = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=Headers.from_asgi(scope.get("headers", ())),
            query=QueryParams.from_query_string(scope.get("query_string", b"")),
            path_params={},
            client=tuple(peer) if peer else None,
            _receive=receive,
            max_content_length=max_content_length,
        )

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    def with_path_params(self, path_params: dict[str, str]) -> Request:
        return replace(self, path_params=path_params)

    async def body(self) -> bytes:
        """The full body. Over ``max_content_length`` raises ``HTTPError(413)``."""
        if "body" not in self._state:
            self._state["body"] = await self._read_body()
        return self._state["body"]

    async def _read_body(self) -> bytes:
        received = bytearray()
        limit = self.max_content_length
        more = True
        while more:
            message = await self._receive()
            received += message.get("body", b"")
            if limit is not None and len(received) > limit:
                raise HTTPError(status=413, detail="Request body too large")
            more = message.get("more_body", False)
        return bytes(received)

    async def json(self) -> Any:
        """Decode the body as JSON; an empty body is ``None``.

        Malformed JSON raises ``HTTPError(400)``.
        """
        raw = await self.body()
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except ValueError:
            raise HTTPError(status=400, detail="Malformed JSON body") from None
