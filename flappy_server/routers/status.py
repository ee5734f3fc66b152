from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from flappy_server.dependencies import get_settings
from flappy_server.domain.pricing import format_price
from flappy_server.load_secrets import Settings
from flappy_server.models.dc_models import HealthResponse

status_router = APIRouter(prefix="/api")


class StatusAPI:
    @staticmethod
    @status_router.get("/health", response_model=HealthResponse)
    async def health(settings: Settings = Depends(get_settings)):
        return HealthResponse(
            status="ok",
            pay_to=settings.pay_to,
            network=settings.network,
            game_price=format_price(settings.game_price),
        )

    @staticmethod
    @status_router.get("/test")
    async def debug_echo(request: Request):
        """Echo endpoint for debugging client and proxy setups."""
        return {
            "message": "Server is working!",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "headers": dict(request.headers),
        }
