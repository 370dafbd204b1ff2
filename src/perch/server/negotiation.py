"""Content negotiation: maps handler return values to Response objects.

isinstance-based dispatch, no magic, fully predictable.
"""

from typing import Any

from perch.http.response import Response


def negotiate(value: Any) -> Response:
    """Convert a handler's return value to a Response.

    Dispatch order:

    1. ``Response``              -> pass through
    2. ``(value, int)``          -> negotiate value, override status
    3. ``str``                   -> 200, text/plain
    4. ``bytes``                 -> 200, application/octet-stream
    5. anything else             -> 200, application/json (dataclasses,
                                    datetimes and tuples are encoded)
    """
    match value:
        case Response():
            return value
        case tuple([inner, int() as status]):
            return negotiate(inner).with_status(status)
        case str():
            return Response(body=value)
        case bytes():
            return Response(body=value, content_type="application/octet-stream")
        case _:
            return Response.from_json(value)
