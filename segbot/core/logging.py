from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from core.config import LoggingConfig

CONTEXT_FIELDS = ("guild_id", "channel", "user_id", "ticket_number")

PLAIN_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s%(context)s"


def log_context(
    guild: Any = None,
    channel: Any = None,
    user: Any = None,
    ticket_number: int | None = None,
) -> dict[str, Any]:
    """Build an ``extra=`` mapping from whichever Discord objects are at hand."""
    context: dict[str, Any] = {}
    if guild is not None:
        context["guild_id"] = guild.id
    if channel is not None:
        context["channel"] = channel.name
    if user is not None:
        context["user_id"] = user.id
    if ticket_number is not None:
        context["ticket_number"] = ticket_number
    return context


def _context_of(record: logging.LogRecord) -> dict[str, Any]:
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if getattr(record, key, None) is not None}


class PlainFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(fmt=PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        context = _context_of(record)
        record.context = " | " + " ".join(f"{k}={v}" for k, v in context.items()) if context else ""
        return super().format(record)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context_of(record),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(config: LoggingConfig) -> None:
    log_dir = Path(config.directory)
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(JsonFormatter() if config.json_console else PlainFormatter())

    # one JSON object per line
    file_handler = RotatingFileHandler(
        filename=log_dir / config.file_name,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(JsonFormatter())

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    for noisy in ("discord.http", "discord.gateway", "aiohttp", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
