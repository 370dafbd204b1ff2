"""Typed extraction of JSON request bodies.

Populates frozen dataclass instances from a parsed JSON body, checking each
value against the field's annotation. Unlike query-string extraction there
is no silent coercion: a body that does not fit the schema is rejected with
a ``ValidationError`` listing every failing field, before any endpoint code
runs.

Supported field types: ``str``, ``bool``, ``int``, ``float`` and their
``| None`` variants. Fields without a default are required. A ``str`` field
may declare ``metadata={"min_length": n}``; leading and trailing whitespace
does not count toward the length. Keys the schema does not name are dropped.
"""

from __future__ import annotations

import dataclasses
import types
from collections.abc import Mapping
from typing import Any, Union, get_args, get_origin, get_type_hints

from perch.errors import ValidationError

REQUIRED_MESSAGE = "This field is required"

_TYPE_MESSAGES: dict[type, str] = {
    str: "Must be a string",
    bool: "Must be a boolean",
    int: "Must be an integer",
    float: "Must be a number",
}


def extract_body[T](cls: type[T], data: Any) -> T:
    """Create a *cls* instance from a parsed JSON body.

    Raises ``ValidationError`` when *data* is not an object, a required
    field is missing, or a value has the wrong type.
    """
    if isinstance(data, cls):
        return data
    if not isinstance(data, Mapping):
        raise ValidationError({"body": ["Expected a JSON object"]})

    hints = get_type_hints(cls)
    kwargs: dict[str, Any] = {}
    errors: dict[str, list[str]] = {}

    for f in dataclasses.fields(cls):  # type: ignore[arg-type]
        if f.name not in data:
            if _is_required(f):
                errors[f.name] = [REQUIRED_MESSAGE]
            continue

        value = data[f.name]
        message = _check(value, hints[f.name], f.metadata)
        if message is not None:
            errors[f.name] = [message]
        else:
            kwargs[f.name] = value

    if errors:
        raise ValidationError(errors)
    return cls(**kwargs)


def _is_required(f: dataclasses.Field[Any]) -> bool:
    return f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING


def _check(value: Any, annotation: Any, metadata: Mapping[str, Any]) -> str | None:
    """Return an error message for *value*, or ``None`` when it fits."""
    allowed = _allowed_types(annotation)
    if value is None:
        return None if type(None) in allowed else REQUIRED_MESSAGE

    for target in allowed:
        if target is type(None):
            continue
        if _is_instance(value, target):
            if target is str:
                min_length = metadata.get("min_length")
                if min_length is not None and len(value.strip()) < min_length:
                    if min_length == 1:
                        return REQUIRED_MESSAGE
                    return f"Must be at least {min_length} characters"
            return None

    first = next(t for t in allowed if t is not type(None))
    return _TYPE_MESSAGES.get(first, f"Must be {getattr(first, '__name__', first)}")


def _allowed_types(annotation: Any) -> tuple[Any, ...]:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        return get_args(annotation)
    return (annotation,)


def _is_instance(value: Any, target: Any) -> bool:
    # bool is an int subclass; JSON true must not pass as an integer.
    if target in (int, float) and isinstance(value, bool):
        return False
    if target is float:
        return isinstance(value, int | float)
    return isinstance(value, target)
