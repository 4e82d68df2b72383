"""
Helios — Middleware Composition
=================================

What:  Wraps a terminal handler with an ordered list of middleware.
How:   A middleware is a function Handler → Handler. The list is folded from
       last to first, so the FIRST middleware ends up outermost and runs
       first. The chain is built once, at registration time.

Given [m1, m2, m3] and handler f, a request runs:
    m1 → m2 → m3 → f
"""

from functools import reduce
from typing import Awaitable, Callable, Optional, Sequence

from starlette.requests import Request as StarletteRequest
from starlette.responses import Response

from helios.request import Handler, handle
from helios.sessions import CookieSessionStore

# A function that receives a Handler and returns a new Handler
Middleware = Callable[[Handler], Handler]


def make_middleware(f: Handler, middlewares: Sequence[Middleware]) -> Handler:
    """Chain `middlewares` around `f`; middlewares[0] is outermost."""
    return reduce(lambda wrapped, middleware: middleware(wrapped), reversed(middlewares), f)


def with_middleware(
    f: Handler,
    middlewares: Sequence[Middleware],
    session_store: Optional[CookieSessionStore] = None,
) -> Callable[[StarletteRequest], Awaitable[Response]]:
    """
    Build a Starlette endpoint that wraps each request into an HTTPRequest
    and passes it through `middlewares`, first to last, then to `f`.
    """
    return handle(make_middleware(f, list(middlewares)), session_store)
