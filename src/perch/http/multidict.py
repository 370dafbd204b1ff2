"""Read-only multi-valued mappings for request headers and query strings.

Both keep every ``(name, value)`` pair in arrival order. Indexing returns
the first value; ``get_list()`` returns all of them. Header names compare
case-insensitively, query keys exactly.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from urllib.parse import parse_qsl


class _MultiMapping(Mapping[str, str]):
    __slots__ = ("_pairs",)

    def __init__(self, pairs: Iterable[tuple[str, str]] = ()) -> None:
        self._pairs: tuple[tuple[str, str], ...] = tuple(
            (self._fold(name), value) for name, value in pairs
        )

    @staticmethod
    def _fold(name: str) -> str:
        return name

    def __getitem__(self, key: str) -> str:
        wanted = self._fold(key)
        for name, value in self._pairs:
            if name == wanted:
                return value
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return iter(dict.fromkeys(name for name, _ in self._pairs))

    def __len__(self) -> int:
        return len(dict.fromkeys(name for name, _ in self._pairs))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self._pairs)!r})"

    def get_list(self, key: str) -> list[str]:
        wanted = self._fold(key)
        return [value for name, value in self._pairs if name == wanted]


class Headers(_MultiMapping):
    """Request headers, decoded from the raw ASGI byte pairs."""

    __slots__ = ()

    @staticmethod
    def _fold(name: str) -> str:
        return name.lower()

    @classmethod
    def from_asgi(cls, raw: Iterable[tuple[bytes, bytes]]) -> Headers:
        return cls((name.decode("latin-1"), value.decode("latin-1")) for name, value in raw)


class QueryParams(_MultiMapping):
    """Query string parameters. Blank values are kept."""

    __slots__ = ()

    @classmethod
    def from_query_string(cls, query_string: bytes | str) -> QueryParams:
        if isinstance(query_string, bytes):
            query_string = query_string.decode("latin-1")
        return cls(parse_qsl(query_string, keep_blank_values=True))
