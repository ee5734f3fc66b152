from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel


class GameSession(BaseModel):
    """One authorized play of the game, redeemable exactly once."""

    session_id: str
    created_at: datetime
    used: bool = False
    payment_id: Optional[str] = None  # None for credit-funded sessions
    continue_score: Optional[Union[int, float]] = None

    class Config:
        from_attributes = True


class Deposit(BaseModel):
    """Prepaid credit balance, spent one credit per game session."""

    deposit_id: str
    credits: int
    payment_id: Optional[str] = None

    class Config:
        from_attributes = True


class SessionValidation(BaseModel):
    valid: bool
    used: bool
