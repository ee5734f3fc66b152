"""x402 payment gate.

Priced routes are protected by the x402 SDK's FastAPI middleware. It builds
the payment requirements for each route (USDC contract and EIP-712 domain come
from the SDK's per-network asset table), reads the ``PAYMENT-SIGNATURE``
header, asks the facilitator to verify it before the handler runs and settles
once the handler has answered successfully. The facilitator itself sits behind
``PaymentVerifier``, so the server can be run against any implementation.
"""

import hashlib
import json
import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict

import httpx
from x402 import x402ResourceServer
from x402.http import FacilitatorConfig, HTTPFacilitatorClient
from x402.http.facilitator_client_base import FacilitatorResponseError
from x402.http.middleware.fastapi import PaymentMiddlewareASGI
from x402.mechanisms.evm.exact.server import ExactEvmScheme
from x402.schemas import (
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SupportedResponse,
    VerifyResponse,
)

from flappy_server.domain.pricing import format_price, payment_network
from flappy_server.errors import UpstreamFailure
from flappy_server.load_secrets import Settings

PAYMENT_SCHEME = "exact"
MAX_TIMEOUT_SECONDS = 60


class FacilitatorUnavailable(UpstreamFailure, FacilitatorResponseError):
    """The facilitator could not be reached or answered with something unusable.

    Also a ``FacilitatorResponseError`` so the x402 middleware answers 502
    when it happens while loading the facilitator's supported kinds.
    """

    def __init__(self):
        super().__init__(None, "Payment facilitator unavailable")


class PaymentVerifier(ABC):
    """Verifies and settles payments. The ledger never calls this directly.

    This is the facilitator client the x402 resource server talks to.
    """

    @abstractmethod
    async def verify(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> VerifyResponse:
        ...

    @abstractmethod
    async def settle(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> SettleResponse:
        ...

    @abstractmethod
    def get_supported(self) -> SupportedResponse:
        """Payment kinds (scheme, network) the verifier can handle."""
        ...


class FacilitatorPaymentVerifier(PaymentVerifier):
    """Delegates to a remote x402 facilitator through the SDK's HTTP client."""

    def __init__(self, facilitator_url: str, client: httpx.AsyncClient, timeout: float = 10.0):
        self.facilitator_url = facilitator_url.rstrip("/")
        self.facilitator = HTTPFacilitatorClient(
            FacilitatorConfig(url=self.facilitator_url, timeout=timeout, http_client=client)
        )

    def _unavailable(self, operation: str, error: Exception) -> FacilitatorUnavailable:
        logging.error(f"Facilitator {operation} at {self.facilitator_url} failed: {error}")
        return FacilitatorUnavailable()

    async def verify(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> VerifyResponse:
        # ValueError covers non-2xx answers, bodies that are not JSON and bodies of the wrong shape
        try:
            verification = await self.facilitator.verify(payload, requirements)
        except (httpx.HTTPError, ValueError) as e:
            raise self._unavailable("verify", e)
        if not verification.is_valid:
            logging.warning(f"Payment rejected by facilitator: {verification.invalid_reason}")
        return verification

    async def settle(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> SettleResponse:
        try:
            return await self.facilitator.settle(payload, requirements)
        except (httpx.HTTPError, ValueError) as e:
            raise self._unavailable("settle", e)

    def get_supported(self) -> SupportedResponse:
        try:
            return self.facilitator.get_supported()
        except (httpx.HTTPError, ValueError) as e:
            raise self._unavailable("supported", e)


def payment_id_for(payload: PaymentPayload) -> str:
    """Opaque reference to a payment, safe to store and log.

    Digest of the signed scheme payload, so the same authorization always maps
    to the same reference.
    """
    signed = json.dumps(payload.payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(signed.encode()).hexdigest()


def _priced_route(settings: Settings, price: Decimal, description: str) -> Dict[str, Any]:
    return {
        "accepts": {
            "scheme": PAYMENT_SCHEME,
            "payTo": settings.pay_to,
            "price": format_price(price),
            "network": payment_network(settings.network),
            "maxTimeoutSeconds": MAX_TIMEOUT_SECONDS,
        },
        "description": description,
        "mimeType": "application/json",
    }


def build_priced_routes(settings: Settings) -> Dict[str, Dict[str, Any]]:
    """x402 route table: "METHOD /path" -> payment options for that route."""
    return {
        "POST /api/game/session": _priced_route(
            settings, settings.game_price, "One game of Flappy x402"
        ),
        "POST /api/game/continue": _priced_route(
            settings, settings.continue_price, "Continue a game from the current score"
        ),
        "POST /api/deposit": _priced_route(
            settings, settings.deposit_price, "Prepaid game credits"
        ),
    }


def build_resource_server(verifier: PaymentVerifier, settings: Settings) -> x402ResourceServer:
    server = x402ResourceServer(verifier)
    server.register(payment_network(settings.network), ExactEvmScheme())
    return server


def install_payment_gate(app, verifier: PaymentVerifier, settings: Settings) -> None:
    """Put the priced routes behind the x402 middleware.

    The facilitator's supported kinds are loaded when the middleware stack is
    built, i.e. on application startup.
    """
    routes = build_priced_routes(settings)
    for route, config in routes.items():
        logging.info(f"{route} costs {config['accepts']['price']} on {config['accepts']['network']}")
    app.add_middleware(
        PaymentMiddlewareASGI,
        routes=routes,
        server=build_resource_server(verifier, settings),
    )
