"""
Logging Configuration
=====================

structlog on top of the standard library logging tree. Production writes one
JSON object per line; development gets the console renderer. Values bound with
bind_request_context() (request id, client) are attached to every line logged
while that request is being handled.
"""

import logging
import logging.config
import sys
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import structlog
from structlog.types import Processor

from .settings import get_settings

if TYPE_CHECKING:
    from .settings import Settings

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("playwright", "asyncio", "PIL")


def build_processors(settings: "Settings") -> List[Processor]:
    """Processor chain shared by every structlog logger."""
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_production:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    return processors


def get_logging_config(settings: "Settings") -> Dict[str, Any]:
    """Standard library dictConfig for the render server."""
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.log_level,
            "formatter": "json" if settings.is_production else "plain",
            "stream": sys.stdout,
        },
    }
    root_handlers = ["console"]

    # Tests never write log files
    if settings.log_file is not None and settings.environment != "testing":
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": settings.log_level,
            "formatter": "json",
            "filename": str(settings.log_file),
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUPS,
            "encoding": "utf-8",
        }
        root_handlers.append("file")

    loggers: Dict[str, Any] = {
        "": {"level": settings.log_level, "handlers": root_handlers, "propagate": False},
        "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
        # Access lines are emitted by the request middleware instead
        "uvicorn.access": {"level": "WARNING", "handlers": ["console"], "propagate": False},
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING", "handlers": root_handlers, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"format": "%(message)s"},
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
            },
        },
        "handlers": handlers,
        "loggers": loggers,
    }


def setup_logging(settings: Optional["Settings"] = None) -> None:
    """Configure structlog and the standard library from settings."""
    settings = settings or get_settings()

    structlog.configure(
        processors=build_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.config.dictConfig(get_logging_config(settings))


def bind_request_context(**values: Any) -> None:
    """Attach values to every log line of the current request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


# Initialize logging on import
setup_logging()
