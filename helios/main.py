"""
Helios — FastAPI Application Factory
======================================

What:  Creates a FastAPI application hosting Helios endpoints.
How:   create_app() wires the Helios handle's lifespan (logging, database
       open/migrate/close), mounts the given routes and registers the
       catch-all exception handler.
Who:   Application code; the returned app is served by any ASGI server.

Usage:
    helios = Helios()
    helios.register_model(Item)
    middlewares = default_middlewares(helios.settings)

    app = create_app(helios, [
        Route("/items/{id}", helios.with_middleware(get_item, middlewares), methods=["GET"]),
    ])

Routing (URL → endpoint, path params) is Starlette's; Helios endpoints read
path params through Request.get_url_param().
"""

import logging
from typing import List, Sequence

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.routing import BaseRoute

from helios import __version__
from helios.app import Helios
from helios.config import Settings
from helios.errors import ERR_INTERNAL_SERVER_ERROR
from helios.middleware import (
    Middleware,
    create_cors_middleware,
    create_logging_middleware,
    request_id_middleware,
    request_id_var,
)

logger = logging.getLogger(__name__)


def default_middlewares(settings: Settings) -> List[Middleware]:
    """
    The standard chain: request ID → access log → CORS (settings.cors_origins).
    """
    return [
        request_id_middleware,
        create_logging_middleware(),
        create_cors_middleware(settings.cors_origins_list),
    ]


def register_exception_handlers(app: FastAPI) -> None:
    """
    Catch-all for exceptions escaping a handler.

    Helios errors are returned values and never reach this point; anything
    that does is a bug and is answered with ERR_INTERNAL_SERVER_ERROR. The
    stack trace is logged server-side only.
    """

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error(
            "[%s] Unexpected error: %s",
            rid,
            str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=ERR_INTERNAL_SERVER_ERROR.get_status_code(),
            content=ERR_INTERNAL_SERVER_ERROR.get_message(),
        )


def create_app(
    helios: Helios,
    routes: Sequence[BaseRoute] = (),
    title: str = "Helios API",
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        helios:  Application handle; its lifespan opens and closes the store
        routes:  Starlette routes whose endpoints come from helios.handle()
                 or helios.with_middleware()
        title:   OpenAPI title
    """
    app = FastAPI(
        title=title,
        version=__version__,
        lifespan=helios.lifespan,
    )

    register_exception_handlers(app)

    for route in routes:
        app.router.routes.append(route)

    return app
