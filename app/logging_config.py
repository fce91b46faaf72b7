"""
logging_config.py — Loguru setup for the journal API and CLI

One Loguru sink on stdout for the web app and journal-manager alike.
Records emitted through stdlib logging (uvicorn, httpx) are forwarded to
the same sink, and each line carries the request ID bound by the
middleware ("-" outside a request).

Business Rules:
- Level comes from LOG_LEVEL (settings.log_level)
- A non-local APP_URL switches to JSON lines for log shipping
- Local runs get a colored single-line format

Called by: app/main.py (lifespan), app/cli.py
Depends on: app/config.py
"""

import logging
import sys

from loguru import logger

from .config import get_settings

_DEV_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "{extra[request_id]} | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - {message}"
)


def setup_logging() -> None:
    """Install the stdout sink and forward stdlib logging into Loguru."""
    cfg = get_settings()
    level = cfg.log_level.upper()

    logger.remove()
    if cfg.is_production:
        logger.add(sys.stdout, level=level, serialize=True)
    else:
        logger.add(sys.stdout, level=level, format=_DEV_FORMAT, colorize=True)
    logger.configure(extra={"request_id": "-"})

    logging.basicConfig(handlers=[_LoguruForwarder()], level=0, force=True)
    for name in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info("Logging configured", level=level, json_output=cfg.is_production)


class _LoguruForwarder(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Report the caller's frame, not logging's own
        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())
