"""Structured logging for the exchange-rate bot."""

import json
import logging
import logging.config
import os
import re
from datetime import datetime, timezone
from pathlib import Path

from .config import DEFAULT_LOG_PATH

# Bot API URLs embed the token: https://api.telegram.org/bot<id>:<secret>/...
_BOT_TOKEN = re.compile(r"bot\d+:[\w-]+")

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def redact(message: str) -> str:
    """Mask Telegram bot tokens in a log line."""
    return _BOT_TOKEN.sub("bot<redacted>", message)


class JSONFormatter(logging.Formatter):
    """One JSON object per line; `extra={"context": {...}}` is kept as a field."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact(record.getMessage()),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        if record.exc_info:
            entry["exception"] = redact(self.formatException(record.exc_info))

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context

        return json.dumps(entry, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable console lines with tokens masked."""

    def __init__(self):
        super().__init__(TEXT_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        return redact(super().format(record))


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    console_format: str | None = None,
) -> None:
    """
    Configure the root logger: JSON to a rotating file, plus the console.

    Args:
        log_level: DEBUG, INFO, ... Defaults to LOG_LEVEL or INFO.
        log_file: Defaults to LOG_FILE or logs/app.log.
        console_format: "json" or "text". Defaults to LOG_FORMAT or json.
    """
    log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = log_file or os.getenv("LOG_FILE") or str(DEFAULT_LOG_PATH)
    console_format = (console_format or os.getenv("LOG_FORMAT", "json")).lower()

    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": "ratebot.logging_config.JSONFormatter"},
                "text": {"()": "ratebot.logging_config.TextFormatter"},
            },
            "handlers": {
                "file": {
                    "class": "logging.handlers.RotatingFileHandler",
                    "filename": log_file,
                    "maxBytes": 10 * 1024 * 1024,
                    "backupCount": 5,
                    "formatter": "json",
                    "encoding": "utf-8",
                },
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "text" if console_format == "text" else "json",
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {"level": log_level, "handlers": ["file", "console"]},
            # httpx logs every request URL at INFO; one per poll is noise
            "loggers": {"httpx": {"level": "WARNING"}},
        }
    )


def get_logger(name: str) -> logging.Logger:
    """Module logger; call as get_logger(__name__)."""
    return logging.getLogger(name)
