"""Todo data types and request bodies."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class Todo:
    """A stored todo. ``id`` and ``created_at`` are assigned by the adapter."""

    id: str
    title: str
    created_at: datetime
    completed: bool = False

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Todo:
        """Build a Todo from the wire (or adapter) shape.

        Accepts ``createdAt`` as an ISO-8601 string or a ``datetime``.
        """
        created = data["createdAt"]
        if isinstance(created, str):
            created = datetime.fromisoformat(created.replace("Z", "+00:00"))
        if created.tzinfo is None:
            created = created.replace(tzinfo=UTC)
        return cls(
            id=str(data["id"]),
            title=data["title"],
            completed=bool(data.get("completed", False)),
            created_at=created,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
            "createdAt": self.created_at.isoformat(),
        }


def todos_from_json(items: Iterable[Mapping[str, Any] | Todo] | None) -> tuple[Todo, ...]:
    """Decode a list payload into an immutable collection."""
    return tuple(
        item if isinstance(item, Todo) else Todo.from_json(item) for item in items or ()
    )


@dataclass(frozen=True, slots=True)
class TodoCreate:
    title: str = field(metadata={"min_length": 1})
    completed: bool | None = None


@dataclass(frozen=True, slots=True)
class TodoUpdate:
    """A partial change. Only the fields that were sent are applied."""

    title: str | None = field(default=None, metadata={"min_length": 1})
    completed: bool | None = None

    def changes(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in (("title", self.title), ("completed", self.completed))
            if value is not None
        }
