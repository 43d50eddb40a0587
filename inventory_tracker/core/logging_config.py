# inventory_tracker/core/logging_config.py
"""
Centralized logging configuration for the application.

Keeps the application's own loggers at the configured level while holding
database drivers and the ASGI server's access log at WARNING.
"""

import logging
import os
from typing import Optional


def configure_logging(level: Optional[str] = None):
    """
    Configure logging for the application.

    - App code: INFO (or whatever LOG_LEVEL says)
    - Database drivers (sqlalchemy, aiosqlite, asyncpg): WARNING only
    - uvicorn access log and websockets: WARNING only
    """
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )

    # Quiet database loggers
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)

    # Quiet server loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("websockets").setLevel(logging.WARNING)

    # Keep app loggers at configured level
    logging.getLogger("inventory_tracker").setLevel(getattr(logging, log_level, logging.INFO))

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at level: {log_level}")
