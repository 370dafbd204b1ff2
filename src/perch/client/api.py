"""API invoker: typed calls to plugin endpoints over HTTP.

Every network call a client plugin makes goes through an ``ApiClient``.
Endpoints are addressed by route key, the same path the backend mounts
them at relative to the stack base path. A key may carry its method::

    api = create_api_client(base_url="https://example.com", base_path="/api/data")
    todos = await api("/todos")
    await api("@put/todos/:id", params={"id": "42"}, body={"completed": True})

Transport failures surface as ``TransientFetchError``; error statuses as
``ApiError`` carrying the server's ``message``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from perch.errors import ApiError, TransientFetchError
from perch.http.encoding import to_jsonable
from perch.routing.paths import join_url

if TYPE_CHECKING:
    from perch.config import ClientConfig

logger = logging.getLogger("perch.client")

DEFAULT_TIMEOUT = 30.0

_METHOD_PREFIX = re.compile(r"^@(?P<method>[a-zA-Z]+)(?P<path>/.*)$")
_PATH_PARAM = re.compile(r":(?P<name>[A-Za-z_][A-Za-z0-9_]*)|\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass(frozen=True, slots=True)
class ApiResponse:
    """A successful API call: decoded JSON body plus status."""

    data: Any
    status: int


def parse_route_key(key: str, method: str | None = None) -> tuple[str, str]:
    """Split a route key into ``(METHOD, path)``.

    ``"@put/todos/:id"`` gives ``("PUT", "/todos/:id")``; a bare path uses
    *method* or ``GET``.
    """
    m = _METHOD_PREFIX.match(key)
    if m is not None:
        return m.group("method").upper(), m.group("path")
    return (method or "GET").upper(), key


def expand_path(path: str, params: Mapping[str, Any] | None = None) -> str:
    """Substitute ``:name`` and ``{name}`` segments with quoted values."""
    params = params or {}

    def substitute(m: re.Match[str]) -> str:
        name = m.group("name") or m.group("braced")
        if name not in params:
            msg = f"Missing path parameter {name!r} for {path!r}"
            raise KeyError(msg)
        return quote(str(params[name]), safe="")

    return _PATH_PARAM.sub(substitute, path)


class ApiClient:
    """Calls plugin endpoints relative to ``base_url + base_path``.

    Without a shared ``httpx.AsyncClient`` each call opens its own
    client for the duration of the request.
    """

    __slots__ = ("_client", "base_path", "base_url", "headers", "timeout", "transport")

    def __init__(
        self,
        base_url: str,
        base_path: str = "",
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url
        self.base_path = base_path
        self.headers = dict(headers or {})
        self.timeout = timeout
        self.transport = transport
        self._client = client

    def url_for(self, key: str, params: Mapping[str, Any] | None = None) -> str:
        """The absolute URL a route key resolves to."""
        _, path = parse_route_key(key)
        return join_url(self.base_url, self.base_path, expand_path(path, params))

    async def __call__(
        self,
        key: str,
        *,
        method: str | None = None,
        params: Mapping[str, Any] | None = None,
        body: Any = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> ApiResponse:
        http_method, _ = parse_route_key(key, method)
        url = self.url_for(key, params)
        request_headers = {**self.headers, **(headers or {})}
        json_body = to_jsonable(body) if body is not None else None

        try:
            if self._client is not None:
                response = await self._client.request(
                    http_method, url, json=json_body, params=query, headers=request_headers,
                    timeout=self.timeout,
                )
            else:
                async with httpx.AsyncClient(transport=self.transport) as client:
                    response = await client.request(
                        http_method, url, json=json_body, params=query, headers=request_headers,
                        timeout=self.timeout,
                    )
        except httpx.TransportError as exc:
            logger.debug("%s %s failed: %s", http_method, url, exc)
            raise TransientFetchError(f"{http_method} {url} failed: {exc}") from exc

        data = _decode(response)
        if response.status_code >= 400:
            raise ApiError(response.status_code, _error_message(response, data))
        return ApiResponse(data=data, status=response.status_code)


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    if "json" in response.headers.get("content-type", ""):
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


def _error_message(response: httpx.Response, data: Any) -> str:
    if isinstance(data, Mapping) and isinstance(data.get("message"), str):
        return data["message"]
    if isinstance(data, str) and data:
        return data
    return response.reason_phrase or f"Request failed with status {response.status_code}"


def create_api_client(
    *,
    base_url: str,
    base_path: str = "",
    transport: httpx.AsyncBaseTransport | None = None,
    client: httpx.AsyncClient | None = None,
    headers: Mapping[str, str] | None = None,
) -> ApiClient:
    """Build an ``ApiClient`` for one backend mount."""
    return ApiClient(base_url, base_path, client=client, transport=transport, headers=headers)


def api_client_for(config: ClientConfig) -> ApiClient:
    """The ``ApiClient`` a client plugin uses for *config*."""
    return create_api_client(
        base_url=config.api_base_url,
        base_path=config.api_base_path,
        transport=config.transport,
        headers=dict(config.headers),
    )
