from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv


class ConfigError(RuntimeError):
    pass


@dataclass(slots=True)
class DiscordConfig:
    token: str
    prefix: str = "!"
    application_id: int | None = None
    guild_id: int | None = None
    sync_commands_on_start: bool = True
    status_text: str = "Managing security tickets"
    activity_type: str = "watching"


@dataclass(slots=True)
class TicketConfig:
    category_id: int
    staff_role_id: int | None = None
    support_role_names: list[str] = field(default_factory=list)
    log_channel_id: int | None = None
    security_category_ids: list[int] = field(default_factory=list)
    panel_channel_id: int | None = None
    channel_prefix: str = "seg-"
    delete_delay_seconds: float = 3.0
    modal_reason_max_length: int = 500
    command_reason_max_length: int = 200
    stale_max_age_hours: int = 168
    cleanup_interval_hours: int = 0
    counter_path: str = "data/ticket-counter.json"


@dataclass(slots=True)
class RateLimitConfig:
    limit: int = 5
    window_seconds: int = 60


@dataclass(slots=True)
class TranscriptConfig:
    storage_directory: str = "transcripts"
    batch_size: int = 100
    max_batches: int = 50
    pause_every: int = 10
    pause_seconds: float = 0.1
    timestamp_format: str = "%d/%m/%Y %H:%M:%S"
    timezone: str = "UTC"


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    directory: str = "logs"
    file_name: str = "bot.log"
    max_bytes: int = 10_000_000
    backup_count: int = 10
    json_console: bool = False


@dataclass(slots=True)
class WebhookLogConfig:
    enabled: bool = False
    url: str = ""


@dataclass(slots=True)
class FastApiConfig:
    enabled: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    api_key: str = ""


@dataclass(slots=True)
class I18NConfig:
    default_locale: str = "en-US"
    supported_locales: list[str] = field(default_factory=lambda: ["en-US", "pt-BR"])


@dataclass(slots=True)
class AppConfig:
    discord: DiscordConfig
    tickets: TicketConfig
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    transcripts: TranscriptConfig = field(default_factory=TranscriptConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    webhook_log: WebhookLogConfig = field(default_factory=WebhookLogConfig)
    fastapi: FastApiConfig = field(default_factory=FastApiConfig)
    i18n: I18NConfig = field(default_factory=I18NConfig)
    enabled_extensions: list[str] = field(
        default_factory=lambda: [
            "cogs.events",
            "cogs.tickets",
        ]
    )


def _get_env_str(key: str, fallback: str | None = None) -> str | None:
    value = os.getenv(key)
    if value is None:
        return fallback
    cleaned = value.strip()
    return cleaned if cleaned else fallback


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _as_int(value: Any, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_optional_id(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid snowflake id: {value!r}") from exc
    return parsed or None


def _deep_get(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    node: Any = data
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")
    return raw


def _load_ticket_config(raw: dict[str, Any]) -> TicketConfig:
    category_id = _as_optional_id(
        _get_env_str("TICKET_CATEGORY_ID", _deep_get(raw, "tickets", "category_id"))
    )
    if category_id is None:
        raise ConfigError("tickets.category_id (TICKET_CATEGORY_ID) is required")

    return TicketConfig(
        category_id=category_id,
        staff_role_id=_as_optional_id(
            _get_env_str("STAFF_ROLE_ID", _deep_get(raw, "tickets", "staff_role_id"))
        ),
        support_role_names=[
            str(name) for name in list(_deep_get(raw, "tickets", "support_role_names", default=[]))
        ],
        log_channel_id=_as_optional_id(
            _get_env_str("LOG_CHANNEL_ID", _deep_get(raw, "tickets", "log_channel_id"))
        ),
        security_category_ids=[
            int(cat_id) for cat_id in list(_deep_get(raw, "tickets", "security_category_ids", default=[]))
        ],
        panel_channel_id=_as_optional_id(_deep_get(raw, "tickets", "panel_channel_id")),
        channel_prefix=str(_deep_get(raw, "tickets", "channel_prefix", default="seg-")),
        delete_delay_seconds=_as_float(_deep_get(raw, "tickets", "delete_delay_seconds"), 3.0),
        modal_reason_max_length=_as_int(_deep_get(raw, "tickets", "modal_reason_max_length"), 500),
        command_reason_max_length=_as_int(_deep_get(raw, "tickets", "command_reason_max_length"), 200),
        stale_max_age_hours=_as_int(_deep_get(raw, "tickets", "stale_max_age_hours"), 168),
        cleanup_interval_hours=_as_int(_deep_get(raw, "tickets", "cleanup_interval_hours"), 0),
        counter_path=str(_deep_get(raw, "tickets", "counter_path", default="data/ticket-counter.json")),
    )


def load_config(config_path: Path) -> AppConfig:
    env_path = config_path.parent.parent / ".env"
    load_dotenv(env_path)
    raw = _load_yaml(config_path)

    discord_token = _get_env_str("DISCORD_TOKEN", _deep_get(raw, "discord", "token"))
    if not discord_token or "${" in discord_token:
        raise ConfigError("DISCORD_TOKEN is required")

    discord_cfg = DiscordConfig(
        token=discord_token,
        prefix=str(_get_env_str("BOT_PREFIX", _deep_get(raw, "discord", "prefix", default="!"))),
        application_id=_as_optional_id(
            _get_env_str("DISCORD_APPLICATION_ID", _deep_get(raw, "discord", "application_id"))
        ),
        guild_id=_as_optional_id(_get_env_str("GUILD_ID", _deep_get(raw, "discord", "guild_id"))),
        sync_commands_on_start=_as_bool(
            _get_env_str("SYNC_COMMANDS"),
            _as_bool(_deep_get(raw, "discord", "sync_commands_on_start"), True),
        ),
        status_text=str(_deep_get(raw, "discord", "status_text", default="Managing security tickets")),
        activity_type=str(_deep_get(raw, "discord", "activity_type", default="watching")),
    )

    ticket_cfg = _load_ticket_config(raw)

    rate_limit_cfg = RateLimitConfig(
        limit=_as_int(_deep_get(raw, "rate_limit", "limit"), 5),
        window_seconds=_as_int(_deep_get(raw, "rate_limit", "window_seconds"), 60),
    )

    transcript_cfg = TranscriptConfig(
        storage_directory=str(_deep_get(raw, "transcripts", "storage_directory", default="transcripts")),
        batch_size=_as_int(_deep_get(raw, "transcripts", "batch_size"), 100),
        max_batches=_as_int(_deep_get(raw, "transcripts", "max_batches"), 50),
        pause_every=_as_int(_deep_get(raw, "transcripts", "pause_every"), 10),
        pause_seconds=_as_float(_deep_get(raw, "transcripts", "pause_seconds"), 0.1),
        timestamp_format=str(
            _deep_get(raw, "transcripts", "timestamp_format", default="%d/%m/%Y %H:%M:%S")
        ),
        timezone=str(_deep_get(raw, "transcripts", "timezone", default="UTC")),
    )

    logging_cfg = LoggingConfig(
        level=str(_get_env_str("LOG_LEVEL", _deep_get(raw, "logging", "level", default="INFO"))),
        directory=str(_deep_get(raw, "logging", "directory", default="logs")),
        file_name=str(_deep_get(raw, "logging", "file_name", default="bot.log")),
        max_bytes=_as_int(_deep_get(raw, "logging", "max_bytes"), 10_000_000),
        backup_count=_as_int(_deep_get(raw, "logging", "backup_count"), 10),
        json_console=_as_bool(_deep_get(raw, "logging", "json_console"), False),
    )

    webhook_cfg = WebhookLogConfig(
        enabled=_as_bool(_deep_get(raw, "webhook_log", "enabled"), False),
        url=str(_get_env_str("WEBHOOK_LOG_URL", _deep_get(raw, "webhook_log", "url", default=""))),
    )

    fastapi_cfg = FastApiConfig(
        enabled=_as_bool(_deep_get(raw, "fastapi", "enabled"), False),
        host=str(_deep_get(raw, "fastapi", "host", default="0.0.0.0")),
        port=_as_int(_deep_get(raw, "fastapi", "port"), 8000),
        api_key=str(_get_env_str("STATUS_API_KEY", _deep_get(raw, "fastapi", "api_key", default=""))),
    )

    i18n_cfg = I18NConfig(
        default_locale=str(_deep_get(raw, "i18n", "default_locale", default="en-US")),
        supported_locales=list(_deep_get(raw, "i18n", "supported_locales", default=["en-US", "pt-BR"])),
    )

    enabled_extensions = [
        str(ext)
        for ext in list(
            _deep_get(
                raw,
                "enabled_extensions",
                default=["cogs.events", "cogs.tickets"],
            )
        )
    ]

    return AppConfig(
        discord=discord_cfg,
        tickets=ticket_cfg,
        rate_limit=rate_limit_cfg,
        transcripts=transcript_cfg,
        logging=logging_cfg,
        webhook_log=webhook_cfg,
        fastapi=fastapi_cfg,
        i18n=i18n_cfg,
        enabled_extensions=enabled_extensions,
    )
