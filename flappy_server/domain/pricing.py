"""Price arithmetic and network names for the x402 payment gate.

Prices are configured as USD strings ("0.001" or "$0.001") and settled in the
network's default USDC contract, as listed by the x402 SDK.
"""

from decimal import ROUND_FLOOR, Decimal, InvalidOperation

from x402.mechanisms.evm.default_assets import get_default_asset
from x402.mechanisms.evm.v1.constants import V1_NETWORK_CHAIN_IDS


def parse_price(price: str) -> Decimal:
    """Parse a USD price string.

    Args:
        price (str): "0.001" or "$0.001"

    Raises:
        ValueError: The price is not a positive decimal

    Returns:
        Decimal: The price in USD
    """
    try:
        amount = Decimal(price.strip().lstrip("$"))
    except InvalidOperation:
        raise ValueError(f"Invalid price: {price!r}")
    if not amount.is_finite() or amount <= 0:
        raise ValueError(f"Price must be positive: {price!r}")
    return amount


def format_price(amount: Decimal) -> str:
    return f"${amount:f}"


def credits_for_deposit(deposit_price: Decimal, game_price: Decimal) -> int:
    """Number of games a deposit buys, floored to an integer."""
    return int((deposit_price / game_price).to_integral_value(rounding=ROUND_FLOOR))


def payment_network(network: str) -> str:
    """CAIP-2 id of a configured network.

    Args:
        network (str): A legacy x402 name ("base-sepolia") or a CAIP-2 id ("eip155:84532")

    Raises:
        ValueError: The network is unknown or has no default USDC contract

    Returns:
        str: The CAIP-2 id, e.g. "eip155:84532"
    """
    if ":" not in network:
        chain_id = V1_NETWORK_CHAIN_IDS.get(network)
        if chain_id is None:
            raise ValueError(f"Unsupported network: {network}")
        network = f"eip155:{chain_id}"
    try:
        get_default_asset(network)
    except ValueError:
        raise ValueError(f"Unsupported network: {network}")
    return network
