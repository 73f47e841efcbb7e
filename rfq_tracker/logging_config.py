"""
logging_config.py — Centralized Logging Configuration for the RFQ Tracker

Loguru is the only logging backend. Service modules keep using
``logging.getLogger("rfq_tracker.<area>")``; those records are forwarded
into Loguru so everything shares one sink, one format and the request
context bound by main.py's middleware.

Business Rules:
- Production (ENVIRONMENT=production) writes JSON lines to stdout
- Development writes coloured lines, prefixed with the request id when
  the line was emitted inside a request
- LOG_LEVEL overrides settings.log_level
- SQL echo and access logs are held at WARNING; the request middleware
  already logs one line per request

Called by: rfq_tracker/main.py (lifespan), scripts/seed_data.py
Depends on: rfq_tracker/config.py (environment, log_level)
"""

import logging
import os
import sys

from loguru import logger

from .config import settings

QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine")

_DEV_PREFIX = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
)


def _dev_format(record) -> str:
    if "request_id" in record["extra"]:
        return _DEV_PREFIX + "<magenta>{extra[request_id]}</magenta> | {message}\n{exception}"
    return _DEV_PREFIX + "{message}\n{exception}"


def setup_logging() -> None:
    """Replace Loguru's default sink and route stdlib logging into it."""
    logger.remove()

    level = os.getenv("LOG_LEVEL", settings.log_level).upper()
    production = os.getenv("ENVIRONMENT", settings.environment) == "production"

    if production:
        logger.add(sys.stdout, level=level, format="{message}", serialize=True)
    else:
        logger.add(sys.stdout, level=level, format=_dev_format, colorize=True)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging configured", level=level, production=production)


class _InterceptHandler(logging.Handler):
    """Forward a stdlib LogRecord to Loguru, keeping the original caller."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk past logging's own frames so {name}:{line} points at the caller
        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())
