from typing import Optional

from fastapi import APIRouter, Depends

from flappy_server.dependencies import get_ledger, get_payment_id
from flappy_server.ledger import GameLedger
from flappy_server.models.dc_models import DepositResponse

deposit_router = APIRouter(prefix="/api/deposit")


class DepositAPI:
    @staticmethod
    @deposit_router.post("", response_model=DepositResponse)
    async def create_deposit(
        ledger: GameLedger = Depends(get_ledger),
        payment_id: Optional[str] = Depends(get_payment_id),
    ):
        """Buy a batch of game credits. Priced by the payment gate."""
        deposit = ledger.create_deposit(payment_id)
        return DepositResponse(deposit_id=deposit.deposit_id, credits=deposit.credits)

    @staticmethod
    @deposit_router.get("/{deposit_id}", response_model=DepositResponse)
    async def get_deposit(deposit_id: str, ledger: GameLedger = Depends(get_ledger)):
        deposit = ledger.get_deposit(deposit_id)
        return DepositResponse(deposit_id=deposit.deposit_id, credits=deposit.credits)
