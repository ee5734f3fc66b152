from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    class Config:
        populate_by_name = True


class CreditSessionRequest(WireModel):
    deposit_id: Any = Field(default=None, alias="depositId")


class ContinueRequest(WireModel):
    # Validated by the ledger so that bad input maps to "Invalid score", not a 422.
    score: Any = None


class ScoreRequest(WireModel):
    session_id: Any = Field(default=None, alias="sessionId")
    score: Any = None


class DepositResponse(WireModel):
    deposit_id: str = Field(alias="depositId")
    credits: int


class SessionResponse(WireModel):
    session_id: str = Field(alias="sessionId")
    message: str


class CreditSessionResponse(WireModel):
    session_id: str = Field(alias="sessionId")
    credits_remaining: int = Field(alias="creditsRemaining")


class ContinueResponse(WireModel):
    session_id: str = Field(alias="sessionId")
    message: str
    continue_score: Union[int, float] = Field(alias="continueScore")


class SessionStatusResponse(WireModel):
    valid: bool
    session_id: str = Field(alias="sessionId")
    used: bool


class ScoreResponse(WireModel):
    success: bool
    score: Any = None
    message: str


class LeaderboardEntry(BaseModel):
    rank: int
    score: int
    player: str


class LeaderboardResponse(BaseModel):
    leaderboard: List[LeaderboardEntry]


class HealthResponse(WireModel):
    status: str
    pay_to: str = Field(alias="payTo")
    network: str
    game_price: str = Field(alias="gamePrice")


class TokenBundle(BaseModel):
    """OAuth token response from the identity provider."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None
    token_type: Optional[str] = None

