from typing import Optional

from fastapi import Request

from flappy_server.identity import IdentityProvider
from flappy_server.ledger import GameLedger
from flappy_server.load_secrets import Settings
from flappy_server.payment import payment_id_for


def get_ledger(request: Request) -> GameLedger:
    return request.app.state.ledger


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def get_payment_id(request: Request) -> Optional[str]:
    """Reference to the verified payment; the x402 gate sets the payload on priced routes only."""
    payload = getattr(request.state, "payment_payload", None)
    if payload is None:
        return None
    return payment_id_for(payload)
