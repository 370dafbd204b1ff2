"""Perch: full-stack resource plugins for Python web stacks.

A plugin ships both halves of a feature. The backend half mounts CRUD
endpoints over a host-supplied storage adapter; the client half
contributes pages, SSR data loaders, metadata, and sitemap entries, and
keeps its data in a session query cache with optimistic mutations.

Backend::

    from perch import App, StackConfig
    from perch.plugins.todos import todos_backend_plugin

    app = App(StackConfig(base_path="/api/data"), adapter=adapter)
    app.register_plugin("todos", todos_backend_plugin)

Client::

    from perch import ClientConfig, StackClient, make_query_client, render_route
    from perch.plugins.todos import todos_client_plugin

    config = ClientConfig.from_env(make_query_client())
    stack = StackClient({"todos": todos_client_plugin(config)})
    result = await render_route(stack, "/todos")
"""

__version__ = "0.1.0"
__all__ = [
    "ApiError",
    "App",
    "ClientConfig",
    "ConfigurationError",
    "HTTPError",
    "NotFound",
    "PerchError",
    "QueryClient",
    "StackClient",
    "StackConfig",
    "TransientFetchError",
    "ValidationError",
    "make_query_client",
    "render_route",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import perch`` light: the client half (httpx, anyio, kida)
    only loads when one of its names is used.
    """
    if name == "App":
        from perch.app import App

        return App

    if name in ("StackConfig", "ClientConfig"):
        from perch import config as _config

        return getattr(_config, name)

    if name in ("QueryClient", "make_query_client"):
        from perch.client import cache as _cache

        return getattr(_cache, name)

    if name == "StackClient":
        from perch.client.stack import StackClient

        return StackClient

    if name == "render_route":
        from perch.client.render import render_route

        return render_route

    if name in (
        "ApiError",
        "ConfigurationError",
        "HTTPError",
        "NotFound",
        "PerchError",
        "TransientFetchError",
        "ValidationError",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
