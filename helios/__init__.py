"""
Helios — JSON API Toolkit
===========================

What:  Small helpers for building JSON HTTP APIs on Starlette/FastAPI:
       an ORM bootstrap handle, a request/response wrapper, a structured
       error taxonomy and a middleware chain.

    ┌─────────────────────────────────────┐
    │   Middleware chain (CORS, logging)  │  ← helios.middleware
    ├─────────────────────────────────────┤
    │   Request (HTTPRequest/MockRequest) │  ← helios.request, helios.testing
    ├─────────────────────────────────────┤
    │   Errors (APIError, FormError)      │  ← helios.errors
    ├─────────────────────────────────────┤
    │   Helios handle (DB, sessions)      │  ← helios.app, helios.database
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"

from helios.app import AppState, Helios  # noqa: E402
from helios.config import Settings  # noqa: E402
from helios.database import Base  # noqa: E402
from helios.errors import (  # noqa: E402
    ERR_INTERNAL_SERVER_ERROR,
    ERR_JSON_PARSE_FAILED,
    ERR_UNSUPPORTED_CONTENT_TYPE,
    APIError,
    ArrayFieldError,
    AtomicFieldError,
    Error,
    FormError,
    NestedFieldError,
)
from helios.exceptions import (  # noqa: E402
    DatabaseInitializationError,
    HeliosError,
    InvalidURLParamError,
)
from helios.middleware import (  # noqa: E402
    Middleware,
    create_cors_middleware,
    create_logging_middleware,
    make_middleware,
    request_id_middleware,
    with_middleware,
)
from helios.request import Handler, HTTPRequest, Request, handle  # noqa: E402
from helios.testing import MockRequest  # noqa: E402
