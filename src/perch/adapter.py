"""Storage adapter contract.

Plugins never talk to a database directly. The host hands every backend
plugin an object satisfying ``Adapter``: a narrow CRUD capability over
named models, where rows are plain mappings keyed by field name.

Concrete adapters (SQL, document stores, in-memory) live with the host.
Anything with these four coroutines works::

    class MemoryAdapter:
        async def find_many(self, model, *, where=(), sort_by=None,
                            limit=None, offset=None): ...
        async def create(self, model, data): ...
        async def update(self, model, where, data): ...
        async def delete(self, model, where): ...

Schema declarations (``Schema``, ``Model``, ``Field``) let a plugin tell
the host which models and fields it needs so the host can provision them.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

from perch.errors import ConfigurationError

type Row = dict[str, Any]
type SortDirection = Literal["asc", "desc"]
type FieldType = Literal["string", "boolean", "number", "date"]


@dataclass(frozen=True, slots=True)
class Where:
    """One equality (or comparison) condition. Multiple conditions are ANDed."""

    field: str
    value: Any
    operator: str = "eq"


@dataclass(frozen=True, slots=True)
class SortBy:
    """Sort order for ``find_many``."""

    field: str
    direction: SortDirection = "asc"

    def __post_init__(self) -> None:
        if self.direction not in ("asc", "desc"):
            msg = f"Sort direction must be 'asc' or 'desc', got {self.direction!r}"
            raise ValueError(msg)


@runtime_checkable
class Adapter(Protocol):
    """The CRUD surface a backend plugin may use.

    ``find_many`` may return ``None`` when the store has nothing to say;
    callers treat that as an empty collection. ``update`` returns ``None``
    when no row matched.
    """

    async def find_many(
        self,
        model: str,
        *,
        where: Sequence[Where] = (),
        sort_by: SortBy | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Row] | None: ...

    async def create(self, model: str, data: Mapping[str, Any]) -> Row: ...

    async def update(
        self, model: str, where: Sequence[Where], data: Mapping[str, Any]
    ) -> Row | None: ...

    async def delete(self, model: str, where: Sequence[Where]) -> None: ...


# -- Schema declarations --


@dataclass(frozen=True, slots=True)
class Field:
    """A stored field. ``default`` is applied by the adapter when omitted."""

    type: FieldType
    required: bool = True
    default: Any = None


@dataclass(frozen=True, slots=True)
class Model:
    """A named model and its fields."""

    fields: Mapping[str, Field] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Schema:
    """Models keyed by name.

    Schemas from several plugins merge with ``|``; a model declared by two
    plugins must be identical.
    """

    models: Mapping[str, Model] = field(default_factory=dict)

    def __or__(self, other: Schema) -> Schema:
        merged = dict(self.models)
        for name, model in other.models.items():
            existing = merged.get(name)
            if existing is not None and existing != model:
                msg = f"Model {name!r} is declared twice with different fields"
                raise ConfigurationError(msg)
            merged[name] = model
        return Schema(models=merged)

    def __contains__(self, name: object) -> bool:
        return name in self.models
