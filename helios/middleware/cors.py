"""
Helios — CORS Middleware
==========================

What:  Sets Access-Control-Allow-Origin from the request's Origin header.
How:   The origin is echoed back when allowed ("*" in the list allows any
       origin); otherwise the header is set to "". The wrapped handler is
       always called: disallowed origins are not rejected here, the browser
       enforces the missing grant.
"""

from typing import Iterable

from helios.middleware.chain import Middleware
from helios.request import Handler, Request

ALLOW_ORIGIN_HEADER = "Access-Control-Allow-Origin"
WILDCARD = "*"


def create_cors_middleware(allowed_origins: Iterable[str]) -> Middleware:
    """
    Args:
        allowed_origins: Exact origins to allow, or a list containing "*".
    """
    origins = frozenset(allowed_origins)
    allow_all = WILDCARD in origins

    def middleware(f: Handler) -> Handler:
        async def wrapped(req: Request) -> None:
            origin = req.get_header("Origin")
            if allow_all or origin in origins:
                req.set_header(ALLOW_ORIGIN_HEADER, origin)
            else:
                req.set_header(ALLOW_ORIGIN_HEADER, "")
            await f(req)

        return wrapped

    return middleware
