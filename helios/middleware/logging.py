"""
Helios — Access Logging Middleware
====================================

What:  One log record per request: method, path, status, duration, client IP.
How:   Times the wrapped handler and reads the status from the Request after
       it returns. 5xx → ERROR, 4xx → WARNING, everything else → INFO.

Log line:
    GET /items/3 200 1.2ms [a1b2c3d4] from 10.0.0.7

Request bodies and headers are never logged.
"""

import logging
import time
from typing import Optional

from helios.middleware.chain import Middleware
from helios.middleware.request_id import REQUEST_ID_KEY
from helios.request import Handler, Request

access_logger = logging.getLogger("helios.access")


def create_logging_middleware(logger: Optional[logging.Logger] = None) -> Middleware:
    """
    Args:
        logger: Destination logger; defaults to "helios.access".
    """
    log = logger or access_logger

    def middleware(f: Handler) -> Handler:
        async def wrapped(req: Request) -> None:
            start_time = time.perf_counter()
            try:
                await f(req)
            except Exception:
                duration_ms = (time.perf_counter() - start_time) * 1000
                log.error(
                    "%s %s raised after %.1fms from %s",
                    req.get_method(),
                    req.get_path(),
                    duration_ms,
                    req.client_ip(),
                    exc_info=True,
                )
                raise

            duration_ms = (time.perf_counter() - start_time) * 1000
            status = req.get_status_code()
            if status >= 500:
                log_level = logging.ERROR
            elif status >= 400:
                log_level = logging.WARNING
            else:
                log_level = logging.INFO

            rid = req.get_context_data(REQUEST_ID_KEY, "")
            client_ip = req.client_ip()
            log.log(
                log_level,
                "%s %s %d %.1fms [%s] from %s",
                req.get_method(),
                req.get_path(),
                status,
                duration_ms,
                rid,
                client_ip,
                extra={
                    "request_id": rid,
                    "method": req.get_method(),
                    "path": req.get_path(),
                    "status": status,
                    "duration_ms": round(duration_ms, 2),
                    "client_ip": client_ip,
                },
            )

        return wrapped

    return middleware
