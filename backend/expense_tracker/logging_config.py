"""
Logging setup for the API process.
"""
import json
import logging
import os
from datetime import datetime, timezone

from expense_tracker.config import LoggerSettings
from expense_tracker.request_context import get_request_id

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"


class RequestIdFilter(logging.Filter):
    """Attach the current request id and service name to every record."""

    def __init__(self, service_name: str = ""):
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        record.service = self.service_name
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
            "service": getattr(record, "service", ""),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(settings: LoggerSettings, service_name: str = "") -> logging.Logger:
    """
    Configure the application logger.

    Handlers are attached to the ``settings.name`` logger, which is the parent
    of every module logger in the package. Calling this again replaces the
    handlers instead of stacking them.
    """
    logger = logging.getLogger(settings.name)
    logger.setLevel(settings.level.upper())
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter: logging.Formatter
    if settings.json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.file_writer.enabled:
        directory = os.path.dirname(settings.file_writer.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handlers.append(logging.FileHandler(settings.file_writer.path, encoding="utf-8"))

    request_filter = RequestIdFilter(service_name)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(request_filter)
        logger.addHandler(handler)

    return logger
