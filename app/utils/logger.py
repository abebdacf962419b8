import logging
import logging.config
import json
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from app.core.config import get_settings

_settings = get_settings()

# Production and staging always log JSON
LOG_FORMAT = (
    "json"
    if _settings.ENVIRONMENT.lower() in ["production", "staging"]
    else _settings.LOG_FORMAT
)

# Chatty third-party loggers kept at WARNING
QUIET_LOGGERS = ("sqlalchemy.engine", "kombu", "amqp", "authlib")


class JsonFormatter(logging.Formatter):
    """One JSON object per record, including anything passed through ``extra``."""

    RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update(
            (key, value) for key, value in vars(record).items()
            if key not in self.RESERVED_ATTRS and key not in entry
        )
        return json.dumps(entry, default=str)


def setup_logging(
    log_level: str = _settings.LOG_LEVEL.upper(),
    log_format: str = LOG_FORMAT,
    log_file: Optional[str] = _settings.LOG_FILE,
) -> None:
    """
    Configure logging for the API, the listener and the admin CLI.

    Args:
        log_level: Minimum level for application loggers
        log_format: ``json`` or ``text``
        log_file: Optional rotating log file written next to stdout
    """
    formatter = "json" if log_format == "json" else "text"
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": formatter,
            "stream": "ext://sys.stdout",
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": formatter,
            "filename": log_file,
            "maxBytes": 10485760,  # 10 MB
            "backupCount": 5,
            "encoding": "utf8",
        }

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JsonFormatter},
            "text": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "root": {"handlers": list(handlers), "level": log_level},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    })

    logging.getLogger("app.logging").info(
        f"Logging configured with level={log_level}, format={log_format}, file={log_file or 'none'}"
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LoggerAdapter(logging.LoggerAdapter):
    """Adds fixed context, such as the request ID, to every record's ``extra``."""

    def __init__(self, logger: logging.Logger, extra: Dict[str, Any] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def bind(self, **kwargs) -> "LoggerAdapter":
        return LoggerAdapter(self.logger, {**self.extra, **kwargs})
