"""JSON encoding for wire payloads.

Frozen dataclasses cross the wire as JSON objects. A type may provide
``to_json()`` to choose its own wire shape (camelCase keys, for example);
otherwise its fields are encoded as-is. Datetimes become ISO-8601 strings.
"""

import dataclasses
import json
from datetime import date, datetime
from typing import Any


def to_jsonable(value: Any) -> Any:
    """Convert *value* into plain JSON-compatible structures."""
    to_json = getattr(value, "to_json", None)
    if callable(to_json) and not isinstance(value, type):
        return to_jsonable(to_json())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple | set | frozenset):
        return [to_jsonable(v) for v in value]
    return value


def dumps(value: Any) -> str:
    """Serialize *value* to a compact JSON string."""
    return json.dumps(to_jsonable(value), separators=(",", ":"))
