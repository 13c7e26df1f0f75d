from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from core.api import create_api_app
from core.config import TicketConfig
from services.counter_store import CounterStore
from services.scheduler import DeletionScheduler
from services.ticket_service import TicketService
from utils.rate_limit import SlidingWindowRateLimiter


def build_bot(tmp_path: Path, guild, api_key: str = "") -> SimpleNamespace:
    scheduler = DeletionScheduler()
    service = TicketService(
        TicketConfig(category_id=500),
        counter=MagicMock(),
        transcripts=MagicMock(),
        scheduler=scheduler,
        alerts=MagicMock(),
        i18n=MagicMock(),
    )
    limiter = SlidingWindowRateLimiter()
    limiter.admit(1)
    return SimpleNamespace(
        config=SimpleNamespace(fastapi=SimpleNamespace(api_key=api_key)),
        guilds=[guild],
        get_guild=lambda guild_id: guild if guild_id == guild.id else None,
        is_ready=lambda: True,
        counter_store=CounterStore(tmp_path / "counter.json"),
        rate_limiter=limiter,
        scheduler=scheduler,
        ticket_service=service,
    )


def test_health_and_status(tmp_path: Path, guild) -> None:
    client = TestClient(create_api_app(build_bot(tmp_path, guild)))

    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/status").json() == {
        "guilds": 1,
        "next_ticket_number": 1,
        "rate_limited_users": 1,
        "pending_deletions": 0,
    }


def test_ticket_listing(tmp_path: Path, guild, make_channel) -> None:
    make_channel(guild, "seg-bob")
    make_channel(guild, "general")
    client = TestClient(create_api_app(build_bot(tmp_path, guild)))

    items = client.get(f"/guilds/{guild.id}/tickets").json()["items"]

    assert [item["name"] for item in items] == ["seg-bob"]
    assert items[0]["state"] == "open"
    assert items[0]["deletion_pending"] is False
    assert client.get("/guilds/1/tickets").status_code == 404


def test_api_key_is_enforced(tmp_path: Path, guild) -> None:
    client = TestClient(create_api_app(build_bot(tmp_path, guild, api_key="secret")))

    assert client.get("/status").status_code == 401
    assert client.get("/status", headers={"X-Api-Key": "secret"}).status_code == 200
    assert client.get("/health").status_code == 200
