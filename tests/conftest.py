from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from x402.http import (
    PAYMENT_REQUIRED_HEADER,
    PAYMENT_SIGNATURE_HEADER,
    decode_payment_required_header,
    encode_payment_signature_header,
)
from x402.mechanisms.evm.default_assets import DEFAULT_ASSETS
from x402.schemas import (
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SupportedKind,
    SupportedResponse,
    VerifyResponse,
)

from flappy_server.errors import UpstreamFailure
from flappy_server.identity import IdentityProvider
from flappy_server.ledger import GameLedger
from flappy_server.load_secrets import Settings
from flappy_server.main import create_app
from flappy_server.models.dc_models import TokenBundle
from flappy_server.payment import PaymentVerifier

PAY_TO = "0x1111111111111111111111111111111111111111"
PAYER = "0x3333333333333333333333333333333333333333"
VALID_SIGNATURE = "0xpaid"


class FakePaymentVerifier(PaymentVerifier):
    """Supports every network with a default USDC contract and accepts signature "0xpaid"."""

    def __init__(self, settle_success: bool = True):
        self.settle_success = settle_success
        self.verified = []
        self.settled = []

    def get_supported(self) -> SupportedResponse:
        return SupportedResponse(
            kinds=[
                SupportedKind(x402_version=2, scheme="exact", network=network)
                for network in DEFAULT_ASSETS
            ]
        )

    async def verify(self, payload: PaymentPayload, requirements: PaymentRequirements) -> VerifyResponse:
        self.verified.append((payload, requirements))
        if payload.payload.get("signature") == VALID_SIGNATURE:
            return VerifyResponse(is_valid=True, payer=PAYER)
        return VerifyResponse(is_valid=False, invalid_reason="invalid_exact_evm_payload_signature")

    async def settle(self, payload: PaymentPayload, requirements: PaymentRequirements) -> SettleResponse:
        self.settled.append((payload, requirements))
        if not self.settle_success:
            return SettleResponse(
                success=False,
                error_reason="insufficient_funds",
                transaction="",
                network=requirements.network,
            )
        return SettleResponse(
            success=True, transaction="0xtx", network=requirements.network, payer=PAYER
        )


def sign_payment(payment_required: str, signature: str = VALID_SIGNATURE) -> str:
    """Answer a PAYMENT-REQUIRED header with a payment for its first option."""
    required = decode_payment_required_header(payment_required)
    accepted = required.accepts[0]
    payload = PaymentPayload(
        payload={
            "signature": signature,
            "authorization": {"from": PAYER, "to": accepted.pay_to, "value": accepted.amount},
        },
        accepted=accepted,
        resource=required.resource,
    )
    return encode_payment_signature_header(payload)


class FakeIdentityProvider(IdentityProvider):
    def __init__(self, fail_exchange: bool = False):
        self.fail_exchange = fail_exchange
        self.codes = []

    def authorization_url(self, state: str) -> str:
        return f"https://patreon.test/authorize?state={state}"

    async def exchange_code(self, code: str) -> TokenBundle:
        self.codes.append(code)
        if self.fail_exchange:
            raise UpstreamFailure(401, "Failed to get token")
        return TokenBundle(
            access_token="access-123",
            refresh_token="refresh-456",
            expires_in=2678400,
            scope="identity identity[email]",
            token_type="Bearer",
        )

    async def refresh_token(self, refresh_token: str) -> TokenBundle:
        return TokenBundle(access_token="access-789", refresh_token=refresh_token)

    async def fetch_identity(self, access_token: str) -> dict:
        return {"data": {"id": "42", "attributes": {"email": "patron@example.com"}}}


@pytest.fixture()
def settings():
    return Settings(
        pay_to=PAY_TO,
        network="base-sepolia",
        game_price=Decimal("0.001"),
        continue_price=Decimal("1.00"),
        deposit_price=Decimal("1.00"),
        deposit_credits=1000,
    )


@pytest.fixture()
def ledger(settings):
    return GameLedger(deposit_credits=settings.deposit_credits)


@pytest.fixture()
def verifier():
    return FakePaymentVerifier()


@pytest.fixture()
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture()
def game_app(settings, ledger, verifier, identity_provider):
    return create_app(
        settings,
        ledger=ledger,
        payment_verifier=verifier,
        identity_provider=identity_provider,
    )


@pytest.fixture()
def client(game_app):
    with TestClient(game_app) as test_client:
        yield test_client


@pytest.fixture()
def paid(client):
    """Headers carrying a valid payment for a priced POST route."""

    def headers_for(path: str, signature: str = VALID_SIGNATURE) -> dict:
        required = client.post(path).headers[PAYMENT_REQUIRED_HEADER]
        return {PAYMENT_SIGNATURE_HEADER: sign_payment(required, signature)}

    return headers_for
