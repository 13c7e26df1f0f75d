from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

import aiohttp

from core.config import WebhookLogConfig

LOGGER = logging.getLogger(__name__)


class OperatorAlerts:
    """Surfaces failures that need an operator, via a Discord webhook."""

    def __init__(self, config: WebhookLogConfig) -> None:
        self.config = config

    @property
    def enabled(self) -> bool:
        return self.config.enabled and bool(self.config.url)

    async def send(self, title: str, payload: dict[str, Any]) -> None:
        if not self.enabled:
            return
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.config.url,
                    json={
                        "content": None,
                        "embeds": [
                            {
                                "title": title,
                                "description": f"```json\n{json.dumps(payload, indent=2, default=str)[:3500]}\n```",
                                "timestamp": datetime.now(UTC).isoformat(),
                                "color": 0xFF0000,
                            }
                        ],
                    },
                    timeout=aiohttp.ClientTimeout(total=10),
                ) as response:
                    if response.status >= 300:
                        LOGGER.warning("Operator alert %r rejected with status %s", title, response.status)
        except (aiohttp.ClientError, TimeoutError):
            LOGGER.exception("Failed to send operator alert %r", title)
