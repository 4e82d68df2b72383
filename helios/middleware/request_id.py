"""
Helios — Request ID Middleware
================================

What:  Assigns a short unique ID to each request and echoes it in the response.
How:   Reuses the client's X-Request-ID header when present, otherwise
       generates one; stores it in context data ("request_id") for handlers
       and in a ContextVar for loggers, and sets it on the response.
When:  Register before the logging middleware so access logs carry the ID.
"""

import uuid
from contextvars import ContextVar

from helios.request import Handler, Request

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_KEY = "request_id"

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def request_id_middleware(f: Handler) -> Handler:
    async def wrapped(req: Request) -> None:
        rid = req.get_header(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]

        token = request_id_var.set(rid)
        req.set_context_data(REQUEST_ID_KEY, rid)
        req.set_header(REQUEST_ID_HEADER, rid)
        try:
            await f(req)
        finally:
            request_id_var.reset(token)

    return wrapped
