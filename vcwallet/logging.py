import logging
import logging.config
from typing import Optional
from uuid import uuid4

from fastapi import Request

from vcwallet.config import Settings, settings

"""
Logging setup for the wallet.

Structured JSON logs by default (plain text when `log_format` is 'text'), shared by the
application and the Uvicorn loggers. Logs go to stderr so command output on stdout stays
clean for piping. Every record carries a `request_id`; records logged outside a request
get '-'.
"""

LOG_FORMATS = ("json", "text")
MANAGED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "vcwallet")


class RequestIdFilter(logging.Filter):
    """Guarantees every record carries a `request_id` attribute so the formatters never fail."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True


def configure_logging(app_settings: Optional[Settings] = None) -> str:
    """Configures application-wide logging from `app_settings` (the shared settings by default).

    Returns:
        The log format actually applied; unknown formats fall back to 'text'.
    """
    app_settings = app_settings or settings
    log_format = app_settings.log_format.lower()
    if log_format not in LOG_FORMATS:
        print(f"WARNING: Invalid log_format '{app_settings.log_format}' in settings. Falling back to 'text'.")
        log_format = "text"
    level = app_settings.log_level.upper()

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": RequestIdFilter}},
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "format": "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s",
                "rename_fields": {"levelname": "level", "asctime": "timestamp"},
            },
            "text": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": log_format,
                "filters": ["request_id"],
                "level": level,
                "stream": "ext://sys.stderr",
            }
        },
        "loggers": {
            name: {"handlers": ["console"], "level": level, "propagate": False}
            for name in MANAGED_LOGGERS
        },
        "root": {"handlers": ["console"], "level": level},
    })
    return log_format

def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Returns the named logger, the 'vcwallet' logger by default.

    Module loggers are created with `get_logger(__name__)` so they sit under 'vcwallet'.
    """
    return logging.getLogger(name or "vcwallet")

def request_id_middleware(request: Request) -> str:
    """Logs the incoming request under a fresh request id.

    Returns:
        str: The generated request id (UUID4 string), echoed back in `X-Request-ID`.
    """
    request_id = str(uuid4())
    get_logger("vcwallet.request").info(
        f"Incoming request: {request.method} {request.url.path}",
        extra={
            "request_id": request_id,
            "path": str(request.url.path),
            "method": request.method,
            "client_host": request.client.host if request.client else "unknown",
        }
    )
    return request_id

configure_logging()
