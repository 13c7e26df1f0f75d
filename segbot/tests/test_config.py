from __future__ import annotations

from pathlib import Path

import pytest

from core.config import ConfigError, load_config

ENV_KEYS = (
    "DISCORD_TOKEN",
    "BOT_PREFIX",
    "DISCORD_APPLICATION_ID",
    "GUILD_ID",
    "SYNC_COMMANDS",
    "LOG_LEVEL",
    "TICKET_CATEGORY_ID",
    "STAFF_ROLE_ID",
    "LOG_CHANNEL_ID",
    "WEBHOOK_LOG_URL",
    "STATUS_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def write_config(tmp_path: Path, body: str) -> Path:
    config_dir = tmp_path / "config"
    config_dir.mkdir(parents=True, exist_ok=True)
    config_path = config_dir / "config.yaml"
    config_path.write_text(body.strip(), encoding="utf-8")
    return config_path


def test_load_config_reads_yaml(tmp_path: Path) -> None:
    config_path = write_config(
        tmp_path,
        """
discord:
  token: test-token
  prefix: "?"
  guild_id: 1234
tickets:
  category_id: 500
  staff_role_id: 77
  support_role_names: [Support, Staff]
  security_category_ids: [500, 501]
  delete_delay_seconds: 5
rate_limit:
  limit: 3
""",
    )

    cfg = load_config(config_path)

    assert cfg.discord.token == "test-token"
    assert cfg.discord.prefix == "?"
    assert cfg.discord.guild_id == 1234
    assert cfg.tickets.category_id == 500
    assert cfg.tickets.staff_role_id == 77
    assert cfg.tickets.support_role_names == ["Support", "Staff"]
    assert cfg.tickets.security_category_ids == [500, 501]
    assert cfg.tickets.delete_delay_seconds == 5.0
    assert cfg.tickets.channel_prefix == "seg-"
    assert cfg.rate_limit.limit == 3
    assert cfg.rate_limit.window_seconds == 60
    assert cfg.transcripts.batch_size == 100
    assert cfg.enabled_extensions == ["cogs.events", "cogs.tickets"]


def test_env_overrides_yaml(tmp_path: Path, monkeypatch) -> None:
    config_path = write_config(
        tmp_path,
        """
discord:
  token: yaml-token
tickets:
  category_id: 500
""",
    )
    monkeypatch.setenv("DISCORD_TOKEN", "env-token")
    monkeypatch.setenv("TICKET_CATEGORY_ID", "900")
    monkeypatch.setenv("LOG_CHANNEL_ID", "901")
    monkeypatch.setenv("SYNC_COMMANDS", "false")

    cfg = load_config(config_path)

    assert cfg.discord.token == "env-token"
    assert cfg.tickets.category_id == 900
    assert cfg.tickets.log_channel_id == 901
    assert cfg.discord.sync_commands_on_start is False


def test_missing_token_is_rejected(tmp_path: Path) -> None:
    config_path = write_config(
        tmp_path,
        """
discord:
  token: ${DISCORD_TOKEN}
tickets:
  category_id: 500
""",
    )
    with pytest.raises(ConfigError):
        load_config(config_path)


def test_missing_category_is_rejected(tmp_path: Path) -> None:
    config_path = write_config(tmp_path, "discord:\n  token: test-token\n")
    with pytest.raises(ConfigError):
        load_config(config_path)


def test_invalid_id_is_rejected(tmp_path: Path) -> None:
    config_path = write_config(
        tmp_path,
        """
discord:
  token: test-token
tickets:
  category_id: not-a-number
""",
    )
    with pytest.raises(ConfigError):
        load_config(config_path)


def test_missing_file_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "config" / "missing.yaml")
