import os
from decimal import Decimal
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from flappy_server.domain.pricing import credits_for_deposit, parse_price, payment_network
from flappy_server.errors import ConfigurationError

load_dotenv()

PLACEHOLDER_ADDRESS = "0x_YOUR_WALLET_ADDRESS_HERE"
DEFAULT_FACILITATOR_URL = "https://x402.org/facilitator"
DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://localhost:3000"

ENV_TEMPLATE = """Create a .env file with:
FACILITATOR_URL=https://x402.org/facilitator
NETWORK=base-sepolia
ADDRESS=0xYourWalletAddress
PORT=3001"""


class Settings(BaseModel):
    """Runtime configuration, read once at startup."""

    facilitator_url: str = DEFAULT_FACILITATOR_URL
    pay_to: str
    network: str = "base-sepolia"
    port: int = 3001
    game_price: Decimal = Decimal("0.001")
    continue_price: Decimal = Decimal("1.00")
    deposit_price: Decimal = Decimal("1.00")
    deposit_credits: int = 1000
    patreon_client_id: str = ""
    patreon_client_secret: str = ""
    patreon_redirect_uri: str = ""
    cors_origins: List[str] = DEFAULT_CORS_ORIGINS.split(",")
    http_timeout: float = 10.0
    log_level: str = "INFO"


def _split_origins(value: str) -> List[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def load_settings(environ: Optional[dict] = None) -> Settings:
    """Build the settings from the environment (and the .env file, if any).

    Args:
        environ (Optional[dict], optional): Mapping to read instead of os.environ. Defaults to None.

    Raises:
        ConfigurationError: The payout address is missing or a value is malformed

    Returns:
        Settings: Validated configuration
    """
    env = os.environ if environ is None else environ

    pay_to = env.get("ADDRESS", "").strip()
    if not pay_to or pay_to == PLACEHOLDER_ADDRESS:
        raise ConfigurationError("Please set your wallet ADDRESS in the .env file")

    try:
        game_price = parse_price(env.get("GAME_PRICE", "0.001"))
        continue_price = parse_price(env.get("CONTINUE_PRICE", "1.00"))
        deposit_price = parse_price(env.get("DEPOSIT_PRICE", "1.00"))
        network = env.get("NETWORK", "base-sepolia")
        payment_network(network)
    except ValueError as e:
        raise ConfigurationError(str(e))

    try:
        port = int(env.get("PORT", "3001"))
        http_timeout = float(env.get("HTTP_TIMEOUT", "10"))
        raw_credits = env.get("DEPOSIT_CREDITS")
        if raw_credits:
            deposit_credits = int(raw_credits)
        else:
            deposit_credits = credits_for_deposit(deposit_price, game_price)
    except ValueError as e:
        raise ConfigurationError(f"Invalid numeric setting: {e}")
    if deposit_credits < 0:
        raise ConfigurationError("DEPOSIT_CREDITS must not be negative")

    return Settings(
        facilitator_url=env.get("FACILITATOR_URL", DEFAULT_FACILITATOR_URL).rstrip("/"),
        pay_to=pay_to,
        network=network,
        port=port,
        game_price=game_price,
        continue_price=continue_price,
        deposit_price=deposit_price,
        deposit_credits=deposit_credits,
        patreon_client_id=env.get("PATREON_CLIENT_ID", ""),
        patreon_client_secret=env.get("PATREON_CLIENT_SECRET", ""),
        patreon_redirect_uri=env.get("PATREON_REDIRECT_URI", ""),
        cors_origins=_split_origins(env.get("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)),
        http_timeout=http_timeout,
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
    )
