"""Writes a ``Response`` to the ASGI ``send`` channel."""

from perch._internal.asgi import Send
from perch.http.response import Response

# 1xx, 204 and 304 responses carry no body.
_BODILESS = frozenset({204, 304})


def _latin1(value: str) -> bytes:
    return value.encode("latin-1")


async def send_response(response: Response, send: Send) -> None:
    """Send the start and body messages for *response*.

    Header names go out lowercased; ``content-type`` comes first and
    ``content-length`` is always computed from the body actually sent.
    """
    status = response.status
    body = b"" if status < 200 or status in _BODILESS else response.body_bytes

    headers = [(b"content-type", _latin1(response.content_type))]
    headers += [(_latin1(name.lower()), _latin1(value)) for name, value in response.headers]
    headers.append((b"content-length", _latin1(str(len(body)))))

    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": body})
