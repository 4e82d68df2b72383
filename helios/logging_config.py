"""
Helios — Logging Configuration
================================

What:  One place that configures the root logger for a Helios application.
How:   Plain stdlib logging; every module logs through logging.getLogger(__name__),
       and the access log middleware uses the "helios.access" logger.
When:  Called once from Helios.lifespan() before any other startup work.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def setup_logging(level: Optional[str] = "INFO") -> None:
    """
    Configure logging with a consistent format across all modules.

    Args:
        level: Name of the root log level (DEBUG, INFO, ...). Unknown names
               fall back to INFO.
    """
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,  # Override any existing logging config
    )

    # These libraries log every statement / request at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
