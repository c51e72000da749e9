# artisan/_logging.py
"""
Logging configuration for applications embedding the core.

Library modules only ever call ``logging.getLogger(__name__)``; nothing is
configured on import.
"""

import logging

from artisan._config import get_settings


def configure_logging(level: str | None = None) -> None:
    """
    Configure logging for the marketplace core.

    - artisan loggers: LOG_LEVEL from settings (or ``level``)
    - Database drivers: WARNING only
    """
    log_level = (level or get_settings().LOG_LEVEL).upper()
    resolved = getattr(logging, log_level, logging.INFO)

    logging.basicConfig(
        level=resolved,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )

    # Quiet database loggers
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    logging.getLogger("artisan").setLevel(resolved)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at level: {log_level}")


__all__ = ("configure_logging",)
