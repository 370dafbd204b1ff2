"""Path helpers shared by the backend mount and the client composer."""

from collections.abc import Iterable


def join_path(*parts: str) -> str:
    """Join path pieces with exactly one slash between them.

    Empty pieces are skipped; the result always starts with ``/`` and never
    ends with one (except the root itself)::

        join_path("/app/", "/todos")  -> "/app/todos"
        join_path("", "/todos")       -> "/todos"
        join_path("", "")             -> "/"
    """
    pieces = [p.strip("/") for p in parts]
    joined = "/".join(p for p in pieces if p)
    return f"/{joined}"


def join_url(base_url: str, *parts: str) -> str:
    """Join an origin (``https://example.com``) with path pieces.

    ``join_url("https://example.com/", "/app", "/todos")`` gives
    ``https://example.com/app/todos``.
    """
    return base_url.rstrip("/") + join_path(*parts)


def normalize_path(segments: Iterable[str] | str | None) -> str:
    """Turn catch-all segments (``["todos", "add"]``) into ``/todos/add``.

    ``None`` and empty input resolve to ``/``.
    """
    if segments is None:
        return "/"
    if isinstance(segments, str):
        return join_path(segments)
    return join_path(*segments)
