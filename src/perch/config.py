"""Stack and client configuration.

Config objects are frozen dataclasses: immutable after creation,
IDE-autocompletable, no string-key dict lookups.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from perch.client.cache import QueryClient

DEFAULT_BASE_URL = "http://localhost:3000"


@dataclass(frozen=True, slots=True)
class StackConfig:
    """Backend configuration. Immutable after creation.

    ``base_path`` is the prefix every plugin endpoint is mounted under::

        config = StackConfig(base_path="/api/data")
        # todos plugin -> GET /api/data/todos
    """

    base_path: str = "/api/data"
    debug: bool = False

    # Limits
    max_content_length: int = 1024 * 1024  # 1 MB


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Client-side plugin configuration.

    ``api_*`` locate the backend, ``site_*`` locate the pages (used for
    metadata URLs and sitemap entries). The query client is owned by the
    host session; the config only carries the reference.
    """

    query_client: QueryClient
    api_base_url: str
    api_base_path: str
    site_base_url: str
    site_base_path: str = ""
    headers: tuple[tuple[str, str], ...] = ()
    # httpx transport override (tests pass httpx.MockTransport)
    transport: httpx.AsyncBaseTransport | None = None

    @classmethod
    def from_env(
        cls,
        query_client: QueryClient,
        *,
        api_base_path: str = "/api/data",
        site_base_path: str = "/pages",
        environ: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ClientConfig:
        """Build a config whose API and site share one origin.

        The origin comes from ``PERCH_BASE_URL``, falling back to
        ``http://localhost:3000``.
        """
        env = os.environ if environ is None else environ
        base_url = env.get("PERCH_BASE_URL", DEFAULT_BASE_URL).rstrip("/")
        return cls(
            query_client=query_client,
            api_base_url=base_url,
            api_base_path=api_base_path,
            site_base_url=base_url,
            site_base_path=site_base_path,
            transport=transport,
        )
