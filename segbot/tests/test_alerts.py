from __future__ import annotations

import logging
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from core.config import WebhookLogConfig
from services.alerts import OperatorAlerts


@pytest.mark.asyncio
async def test_disabled_alerts_make_no_requests() -> None:
    alerts = OperatorAlerts(WebhookLogConfig(enabled=False, url="https://example.invalid/hook"))

    with patch("services.alerts.aiohttp.ClientSession") as session:
        await alerts.send("Transcript failed", {"channel": "seg-bob"})

    assert alerts.enabled is False
    session.assert_not_called()


def test_enabled_requires_url() -> None:
    assert OperatorAlerts(WebhookLogConfig(enabled=True, url="")).enabled is False
    assert OperatorAlerts(WebhookLogConfig(enabled=True, url="https://example.invalid/hook")).enabled is True


@pytest.mark.asyncio
async def test_rejected_alert_is_logged_and_released(caplog: pytest.LogCaptureFixture) -> None:
    alerts = OperatorAlerts(WebhookLogConfig(enabled=True, url="https://example.invalid/hook"))

    with patch("services.alerts.aiohttp.ClientSession") as session_cls:
        session = MagicMock()
        session_cls.return_value.__aenter__.return_value = session
        post = session.post.return_value
        post.__aenter__.return_value = SimpleNamespace(status=404)
        with caplog.at_level(logging.WARNING, logger="services.alerts"):
            await alerts.send("Ticket log channel missing", {"guild_id": 1})

    assert session.post.call_args.args == ("https://example.invalid/hook",)
    assert session.post.call_args.kwargs["json"]["embeds"][0]["title"] == "Ticket log channel missing"
    post.__aexit__.assert_awaited_once()
    assert "rejected with status 404" in caplog.text
