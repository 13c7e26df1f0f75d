from __future__ import annotations

from fastapi import FastAPI, Header, HTTPException

from core.bot import TicketBot


def _auth(x_api_key: str | None, expected: str) -> None:
    if not expected:
        return
    if x_api_key != expected:
        raise HTTPException(status_code=401, detail="Unauthorized")


def create_api_app(bot: TicketBot) -> FastAPI:
    app = FastAPI(title="Security Ticket Bot API", version="1.0.0")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok" if bot.is_ready() else "starting"}

    @app.get("/status")
    async def status(x_api_key: str | None = Header(default=None)) -> dict[str, object]:
        _auth(x_api_key, bot.config.fastapi.api_key)
        return {
            "guilds": len(bot.guilds),
            "next_ticket_number": bot.counter_store.peek(),
            "rate_limited_users": bot.rate_limiter.tracked_users,
            "pending_deletions": bot.scheduler.pending_count,
        }

    @app.get("/guilds/{guild_id}/tickets")
    async def tickets(guild_id: int, x_api_key: str | None = Header(default=None)) -> dict[str, object]:
        _auth(x_api_key, bot.config.fastapi.api_key)
        guild = bot.get_guild(guild_id)
        if guild is None:
            raise HTTPException(status_code=404, detail="Guild not found")
        service = bot.ticket_service
        return {
            "items": [
                {
                    "channel_id": channel.id,
                    "name": channel.name,
                    "state": service.state_of(channel).value,
                    "created_at": channel.created_at.isoformat(),
                    "deletion_pending": bot.scheduler.is_pending(channel.id),
                }
                for channel in service.list_ticket_channels(guild)
            ]
        }

    return app
