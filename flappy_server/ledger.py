import logging
import math
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from flappy_server.errors import (
    AlreadyUsed,
    DepositNotFound,
    InvalidScore,
    NoCreditsAvailable,
    SessionNotFound,
)
from flappy_server.models.ledger_models import Deposit, GameSession, SessionValidation


def new_id() -> str:
    return str(uuid4())


def is_valid_score(score: Any) -> bool:
    """A score is a finite, non-negative JSON number. Booleans are rejected."""
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return False
    if isinstance(score, float) and not math.isfinite(score):
        return False
    return score >= 0


class GameLedger:
    """In-memory store of game sessions and prepaid deposits.

    Each map has its own lock, held for a single read-modify-write, so the
    ledger stays consistent when handlers run on worker threads.
    Nothing is persisted and nothing is ever deleted.
    """

    def __init__(self, deposit_credits: int = 1000):
        self.deposit_credits = deposit_credits
        self._sessions: Dict[str, GameSession] = {}
        self._deposits: Dict[str, Deposit] = {}
        self._sessions_lock = threading.Lock()
        self._deposits_lock = threading.Lock()

    def _insert_session(
        self, payment_id: Optional[str], continue_score: Any = None
    ) -> GameSession:
        session = GameSession(
            session_id=new_id(),
            created_at=datetime.now(timezone.utc),
            payment_id=payment_id,
            continue_score=continue_score,
        )
        with self._sessions_lock:
            self._sessions[session.session_id] = session
        return session

    def create_session(self, payment_id: Optional[str] = None) -> str:
        """Create a session for a request that already passed the payment gate.

        Args:
            payment_id (Optional[str], optional): Reference to the payment proof. Defaults to None.

        Returns:
            str: New session id
        """
        session = self._insert_session(payment_id)
        logging.info(f"Created paid session {session.session_id}")
        return session.session_id

    def create_session_from_credit(self, deposit_id: Any) -> Tuple[str, int]:
        """Spend one deposit credit on a new session.

        Args:
            deposit_id (Any): Deposit to charge, as sent by the client

        Raises:
            NoCreditsAvailable: The deposit is unknown or has no credits left

        Returns:
            Tuple[str, int]: New session id and the credits remaining on the deposit
        """
        with self._deposits_lock:
            deposit = self._deposits.get(deposit_id) if isinstance(deposit_id, str) else None
            if deposit is None or deposit.credits <= 0:
                raise NoCreditsAvailable()
            deposit.credits -= 1
            remaining = deposit.credits

        session = self._insert_session(payment_id=None)
        logging.info(
            f"Created credit session {session.session_id} from deposit {deposit_id} ({remaining} left)"
        )
        return session.session_id, remaining

    def create_continue_session(self, score: Any, payment_id: Optional[str] = None) -> str:
        """Create a pay-to-win session that restores a previous score.

        Args:
            score (Any): Score to continue from, as sent by the client
            payment_id (Optional[str], optional): Reference to the payment proof. Defaults to None.

        Raises:
            InvalidScore: The score is not a non-negative number

        Returns:
            str: New session id
        """
        if not is_valid_score(score):
            raise InvalidScore()
        session = self._insert_session(payment_id, continue_score=score)
        logging.info(f"Created continue session {session.session_id} at score {score}")
        return session.session_id

    def get_session(self, session_id: str) -> GameSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound()
        return session

    def validate_session(self, session_id: str) -> SessionValidation:
        session = self.get_session(session_id)
        return SessionValidation(valid=True, used=session.used)

    def redeem_session(self, session_id: Any, score: Any) -> GameSession:
        """Mark a session as played and record its score.

        Any score value is accepted. Ids that are not strings never match a
        session. The used flag is never rolled back.

        Raises:
            SessionNotFound: Unknown session id
            AlreadyUsed: The session was already redeemed

        Returns:
            GameSession: The redeemed session
        """
        with self._sessions_lock:
            session = self._sessions.get(session_id) if isinstance(session_id, str) else None
            if session is None:
                raise SessionNotFound()
            if session.used:
                raise AlreadyUsed()
            session.used = True

        logging.info(f"Score submitted: {score} for session {session_id}")
        return session

    def create_deposit(self, payment_id: Optional[str] = None) -> Deposit:
        deposit = Deposit(
            deposit_id=new_id(),
            credits=self.deposit_credits,
            payment_id=payment_id,
        )
        with self._deposits_lock:
            self._deposits[deposit.deposit_id] = deposit
        logging.info(f"Created deposit {deposit.deposit_id} with {deposit.credits} credits")
        return deposit

    def get_deposit(self, deposit_id: str) -> Deposit:
        deposit = self._deposits.get(deposit_id)
        if deposit is None:
            raise DepositNotFound()
        return deposit

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    @property
    def deposit_count(self) -> int:
        return len(self._deposits)
