import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from flappy_server.dependencies import get_ledger, get_payment_id
from flappy_server.domain.leaderboard import get_leaderboard
from flappy_server.errors import AlreadyUsed, SessionNotFound
from flappy_server.ledger import GameLedger
from flappy_server.models.dc_models import (
    ContinueRequest,
    ContinueResponse,
    CreditSessionRequest,
    CreditSessionResponse,
    LeaderboardResponse,
    ScoreRequest,
    ScoreResponse,
    SessionResponse,
    SessionStatusResponse,
)

SESSION_MESSAGE = "Payment accepted! Press SPACE to start your game."
CONTINUE_MESSAGE = "Pay to win activated! Your score has been restored. 🎉"
GAME_OVER_MESSAGE = "Game over! Insert coin to play again."

game_router = APIRouter(prefix="/api")


class SessionAPI:
    @staticmethod
    @game_router.post("/game/session", response_model=SessionResponse)
    async def create_session(
        ledger: GameLedger = Depends(get_ledger),
        payment_id: Optional[str] = Depends(get_payment_id),
    ):
        session_id = ledger.create_session(payment_id)
        return SessionResponse(session_id=session_id, message=SESSION_MESSAGE)

    @staticmethod
    @game_router.post("/game/session/credit", response_model=CreditSessionResponse)
    async def create_credit_session(
        body: CreditSessionRequest, ledger: GameLedger = Depends(get_ledger)
    ):
        """Start a game paid for with one deposit credit instead of a payment."""
        session_id, remaining = ledger.create_session_from_credit(body.deposit_id)
        return CreditSessionResponse(session_id=session_id, credits_remaining=remaining)

    @staticmethod
    @game_router.get("/game/session/{session_id}", response_model=SessionStatusResponse)
    async def validate_session(session_id: str, ledger: GameLedger = Depends(get_ledger)):
        """Check that a session exists and has not been played yet.

        Args:
            session_id (str): Session returned by one of the create endpoints

        Returns:
            SessionStatusResponse: valid/used flags; 404 when unknown, 410 when already played
        """
        try:
            validation = ledger.validate_session(session_id)
        except SessionNotFound as e:
            return JSONResponse(
                status_code=e.status_code, content={"valid": False, "message": e.message}
            )
        if validation.used:
            return JSONResponse(
                status_code=status.HTTP_410_GONE,
                content={"valid": False, "message": AlreadyUsed.message},
            )
        return SessionStatusResponse(valid=True, session_id=session_id, used=validation.used)

    @staticmethod
    @game_router.post("/game/continue", response_model=ContinueResponse)
    async def continue_game(
        body: ContinueRequest,
        ledger: GameLedger = Depends(get_ledger),
        payment_id: Optional[str] = Depends(get_payment_id),
    ):
        """Pay to win: start a new session that keeps the score reached so far."""
        session_id = ledger.create_continue_session(body.score, payment_id)
        return ContinueResponse(
            session_id=session_id, message=CONTINUE_MESSAGE, continue_score=body.score
        )


class ScoreAPI:
    @staticmethod
    @game_router.post("/game/score", response_model=ScoreResponse)
    async def submit_score(body: ScoreRequest, ledger: GameLedger = Depends(get_ledger)):
        try:
            ledger.redeem_session(body.session_id, body.score)
        except SessionNotFound:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED, content={"error": "Invalid session"}
            )
        except AlreadyUsed:
            logging.info(f"Rejected second score for session {body.session_id}")
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"error": "Game already completed"},
            )
        return ScoreResponse(success=True, score=body.score, message=GAME_OVER_MESSAGE)

    @staticmethod
    @game_router.get("/leaderboard", response_model=LeaderboardResponse)
    async def leaderboard():
        return {"leaderboard": get_leaderboard()}
