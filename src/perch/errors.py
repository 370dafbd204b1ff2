"""Perch exception hierarchy.

Shared by the backend (router, app, handler) and the client half (API
invoker, cache, mutations) so every module raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when stack or plugin configuration is invalid.

    Raised while compiling routes in ``App`` or during ``StackClient`` construction.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by the router and by endpoints. The ASGI handler catches these
    and renders a JSON error body with the same status.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        return self.detail or str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched, or the adapter confirmed the row is absent."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405: route exists but not for this HTTP method."""

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )


class ValidationError(HTTPError):
    """400: a request body failed validation before reaching the adapter.

    ``errors`` maps field names to lists of messages::

        {"title": ["This field is required"]}
    """

    errors: dict[str, list[str]]

    def __init__(self, errors: dict[str, list[str]], detail: str = "") -> None:
        fields = ", ".join(sorted(errors))
        super().__init__(status=400, detail=detail or f"Invalid body: {fields}")
        object.__setattr__(self, "errors", errors)


class ApiError(HTTPError):
    """The server answered an API call with an error status."""

    def __init__(self, status: int, detail: str = "") -> None:
        super().__init__(status=status, detail=detail or f"Request failed with status {status}")


class TransientFetchError(PerchError):
    """A network call never produced a response (connect, timeout, protocol).

    Recovered locally: the prefetch loader caches an empty collection and
    mutations roll back their optimistic write.
    """
