import sys
import logging
from loguru import logger

import config

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

# uvicorn and SQLAlchemy log through stdlib logging; only warnings and up are kept
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")


class InterceptHandler(logging.Handler):
    """Send uvicorn's and SQLAlchemy's stdlib records to the booking service's loguru sinks."""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Report the library call site, not this handler
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = config.LOG_LEVEL, error_file: str = config.LOG_FILE):
    """Console sink at LOG_LEVEL; storage and request failures also go to LOG_FILE."""
    logger.remove()
    logger.add(sys.stdout, level=level, format=CONSOLE_FORMAT)

    if error_file:
        logger.add(
            error_file,
            level="ERROR",
            rotation="10 MB",
            retention="1 month",
            compression="zip",
            format=FILE_FORMAT,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["logger", "setup_logging"]
