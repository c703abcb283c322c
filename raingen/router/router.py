"""Per-request context and the named middleware registry."""

from __future__ import annotations

import dataclasses
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from flask import Flask, Request, g, request
from flask import Response as FlaskResponse

from .response import error

Middleware = Callable[["Context"], Any]
View = Callable[..., Any]

_CONTEXT_KEY = "raingen_context"

_lock = threading.Lock()
_middlewares: dict[str, Middleware] = {}


@dataclass
class Context:
    """What a handler sees of the request it serves.

    ``values`` carries data set by middleware. Handlers that opt out of the
    JSON envelope write their answer to ``response``.
    """

    request: Request
    values: dict[str, Any] = field(default_factory=dict)
    response: FlaskResponse = field(default_factory=FlaskResponse)

    def copy(self) -> Context:
        """A detached copy; changes to its values or response stay local."""
        return dataclasses.replace(self, values=dict(self.values), response=FlaskResponse())

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)


def context() -> Context:
    """The context of the current request, created on first use."""
    ctx = g.get(_CONTEXT_KEY)
    if ctx is None:
        ctx = Context(request=request._get_current_object())
        setattr(g, _CONTEXT_KEY, ctx)
    return ctx


def set_value(key: str, value: Any) -> None:
    context().values[key] = value


def register_middleware(name: str, func: Middleware | None = None) -> Any:
    """Register ``func`` under ``name``; usable as a decorator.

    A middleware receives the request context. Returning a response stops
    the chain and answers the request with it; returning None continues.
    """

    def register(f: Middleware) -> Middleware:
        with _lock:
            _middlewares[name] = f
        return f

    if func is None:
        return register
    return register(func)


@dataclass(frozen=True)
class Resolved:
    chain: tuple[Middleware, ...]


@dataclass(frozen=True)
class Missing:
    name: str


def resolve_middlewares(names: Sequence[str]) -> Resolved | Missing:
    """Look ``names`` up in the registry; the first unknown name is reported."""
    chain: list[Middleware] = []
    with _lock:
        for name in names:
            func = _middlewares.get(name)
            if func is None:
                return Missing(name)
            chain.append(func)
    return Resolved(tuple(chain))


def handle(
    app: Flask,
    method: str,
    path: str,
    endpoint: str,
    middlewares: Sequence[str],
    view: View,
    *,
    error_code: int = 500,
) -> None:
    """Register ``view`` behind a middleware chain.

    Middleware is resolved now. When a name is not registered the route
    still exists but always answers with an error envelope naming it.
    """
    match resolve_middlewares(middlewares):
        case Missing(name=name):

            def not_found(**kwargs: Any) -> FlaskResponse:
                return error(error_code, f"middleware: {name} not found")

            app.add_url_rule(path, endpoint, not_found, methods=[method])

        case Resolved(chain=chain):

            def chained(**kwargs: Any) -> Any:
                ctx = context()
                for func in chain:
                    rv = func(ctx)
                    if rv is not None:
                        return rv
                return view(**kwargs)

            app.add_url_rule(path, endpoint, chained, methods=[method])
