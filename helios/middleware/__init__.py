"""
Helios — Middleware Package
=============================

What:  Cross-cutting behavior wrapped around Helios handlers.

Middleware Chain (order matters!):
    with_middleware(handler, [request_id_middleware, create_logging_middleware(), create_cors_middleware(["*"])])

    Request → [Request ID] → [Logging] → [CORS] → handler

    The first middleware in the list is the outermost and runs first.
"""

from helios.middleware.chain import Middleware, make_middleware, with_middleware
from helios.middleware.cors import create_cors_middleware
from helios.middleware.logging import create_logging_middleware
from helios.middleware.request_id import request_id_middleware, request_id_var

__all__ = [
    "Middleware",
    "make_middleware",
    "with_middleware",
    "create_cors_middleware",
    "create_logging_middleware",
    "request_id_middleware",
    "request_id_var",
]
