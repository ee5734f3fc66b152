import argparse
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
from x402.http import PAYMENT_REQUIRED_HEADER, PAYMENT_RESPONSE_HEADER

from flappy_server.domain.pricing import format_price
from flappy_server.errors import ConfigurationError, GameServerError
from flappy_server.identity import IdentityProvider, PatreonIdentityProvider
from flappy_server.ledger import GameLedger
from flappy_server.load_secrets import ENV_TEMPLATE, Settings, load_settings
from flappy_server.payment import (
    FacilitatorPaymentVerifier,
    PaymentVerifier,
    install_payment_gate,
)
from flappy_server.routers import auth, deposit, game
from flappy_server.routers import status as status_routes


async def handle_game_server_error(request: Request, exc: GameServerError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def create_app(
    settings: Settings,
    ledger: Optional[GameLedger] = None,
    payment_verifier: Optional[PaymentVerifier] = None,
    identity_provider: Optional[IdentityProvider] = None,
) -> FastAPI:
    """Assemble the game server.

    Collaborators that are not passed in are built from the settings and share
    one httpx client, closed when the app shuts down.

    Args:
        settings (Settings): Validated configuration
        ledger (Optional[GameLedger], optional): Session/deposit store. Defaults to a fresh one.
        payment_verifier (Optional[PaymentVerifier], optional): Defaults to the x402 facilitator.
        identity_provider (Optional[IdentityProvider], optional): Defaults to Patreon.

    Returns:
        FastAPI: The application
    """
    http_client: Optional[httpx.AsyncClient] = None
    if payment_verifier is None or identity_provider is None:
        http_client = httpx.AsyncClient(timeout=settings.http_timeout)
    if payment_verifier is None:
        payment_verifier = FacilitatorPaymentVerifier(
            settings.facilitator_url, http_client, timeout=settings.http_timeout
        )
    if identity_provider is None:
        identity_provider = PatreonIdentityProvider(settings, http_client)
    if ledger is None:
        ledger = GameLedger(deposit_credits=settings.deposit_credits)

    @asynccontextmanager
    async def lifespan(app):
        logging.info(f"Flappy x402 Server starting on port {settings.port}")
        logging.info(f"Accepting payments to: {settings.pay_to}")
        logging.info(f"Network: {settings.network}")
        logging.info(f"Price per game: {format_price(settings.game_price)} USDC")
        try:
            yield
        finally:
            if http_client is not None:
                await http_client.aclose()
            logging.info("Stop Server")

    app = FastAPI(title="Flappy x402 Server", lifespan=lifespan)
    app.state.settings = settings
    app.state.ledger = ledger
    app.state.payment_verifier = payment_verifier
    app.state.identity_provider = identity_provider

    app.add_exception_handler(GameServerError, handle_game_server_error)
    install_payment_gate(app, payment_verifier, settings)
    # Added last so it wraps the gate and 402 responses carry CORS headers.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[PAYMENT_REQUIRED_HEADER, PAYMENT_RESPONSE_HEADER],
    )

    app.include_router(deposit.deposit_router)
    app.include_router(game.game_router)
    app.include_router(auth.auth_router)
    app.include_router(status_routes.status_router)
    return app


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Flappy x402 game server")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Interface to bind")
    parser.add_argument("--port", type=int, default=None, help="Overrides PORT")
    return parser


def main(argv=None):
    args = get_parser().parse_args(argv)
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.INFO)
        logging.error(str(e))
        logging.error(ENV_TEMPLATE)
        sys.exit(1)

    logging.basicConfig(level=settings.log_level)
    if args.port is not None:
        settings.port = args.port
    uvicorn.run(create_app(settings), host=args.host, port=settings.port)


if __name__ == "__main__":
    main()
