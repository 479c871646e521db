"""
Session Manager - Creates and manages game sessions.

LIFECYCLE:
1. Caller starts a session from a board (or a generated one) and a seat plan
2. Each seat is a bot (a personality name, "random" or "first") or human
3. During the game, steps are played by bots or with caller-supplied moves
4. Game ends, or caller ends the session: it is removed from memory

PERSISTENCE RULES:
- Sessions are in-memory only
- Nothing about a game is written to storage
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
import logging
import random
import threading
import time
from typing import Any
import uuid

from ..bots import BotPolicy, ExpectimaxBot, FirstLegalPolicy, RandomPolicy, PERSONALITIES
from ..engine_core.rules import Ruleset, CLASSIC
from ..engine_core.state import Board, Player
from ..errors import InvalidOption
from ..search.engine import SearchConfig
from .game_loop import GameLoop
from .setup import DEFAULT_PLAYERS, random_board

logger = logging.getLogger(__name__)

HUMAN = "human"


class SessionState(Enum):
    """State of a game session."""
    ACTIVE = "active"  # Game in progress
    GAME_OVER = "game_over"  # Game completed
    ABANDONED = "abandoned"  # Caller quit


@dataclass
class Session:
    """
    An ephemeral game session.

    Contains:
    - The game loop (board, turn, rng, history)
    - What plays each seat
    - Session metadata
    """
    session_id: str
    loop: GameLoop
    created_at: float
    seats: dict[Player, str] = field(default_factory=dict)

    state: SessionState = SessionState.ACTIVE
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_active(self) -> bool:
        """Check if session is still active."""
        return self.state is SessionState.ACTIVE

    def is_human_turn(self) -> bool:
        return not self.loop.is_over and self.seats.get(self.loop.to_move) == HUMAN


def make_bot(kind: str, config: SearchConfig | None = None, seed: int | None = None) -> BotPolicy | None:
    """
    Bot for a seat description.

    kind is a personality name, "random", "first" or "human" (no bot).
    """
    name = kind.lower()
    if name == HUMAN:
        return None
    if name == "random":
        return RandomPolicy(seed=seed)
    if name == "first":
        return FirstLegalPolicy()
    if name in PERSONALITIES:
        return ExpectimaxBot(personality=name, config=config)
    raise InvalidOption(
        f"Unknown seat '{kind}'. Use human, random, first or one of: {', '.join(PERSONALITIES)}"
    )


class SessionManager:
    """
    Manages game sessions.

    Responsibilities:
    - Create sessions from boards or generated positions
    - Track active sessions
    - Clean up completed sessions

    No persistence - sessions are in-memory only.
    """

    def __init__(self, default_config: SearchConfig | None = None):
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()
        self.default_config = default_config or SearchConfig()

    def create_session(
        self,
        board: Board | None = None,
        seats: dict[Player, str] | None = None,
        columns: int = 3,
        rows: int = 2,
        players: tuple = DEFAULT_PLAYERS,
        rules: Ruleset = CLASSIC,
        config: SearchConfig | None = None,
        seed: int | None = None,
    ) -> Session:
        """
        Create a new game session.

        Args:
            board: Starting board; generated from columns/rows/players if omitted
            seats: player -> seat kind; unlisted players get the balanced bot
            rules: Ruleset for the game
            config: Search options for expectimax seats
            seed: Seeds board generation, dice rolls and random bots

        Returns:
            New Session, already advanced past any forced passes
        """
        if board is None:
            board = random_board(columns, rows, players, rng=random.Random(seed))

        config = config or self.default_config
        if config.rules != rules:
            config = replace(config, rules=rules)

        seat_plan = {p: "balanced" for p in board.players()}
        seat_plan.update(seats or {})

        bots = {}
        for index, (player, kind) in enumerate(sorted(seat_plan.items(), key=lambda s: repr(s[0]))):
            bot = make_bot(kind, config, None if seed is None else seed + index)
            if bot is not None:
                bots[player] = bot

        loop = GameLoop(board, bots=bots, rules=rules, seed=seed)
        session = Session(
            session_id=str(uuid.uuid4()),
            loop=loop,
            created_at=time.time(),
            seats=seat_plan,
            metadata={"rules": rules.name, "seed": seed},
        )
        if loop.is_over:
            session.state = SessionState.GAME_OVER

        with self._lock:
            self._sessions[session.session_id] = session
        logger.info(f"Session {session.session_id} created with seats {seat_plan}")
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def mark_finished(self, session: Session) -> None:
        if session.loop.is_over and session.is_active():
            session.state = SessionState.GAME_OVER
            logger.info(
                f"Session {session.session_id} finished: {session.loop.progression.value}"
            )

    def end_session(self, session_id: str, reason: str = "completed") -> Session | None:
        """
        End a session and remove it from memory.
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session:
            if reason == "completed" and session.loop.is_over:
                session.state = SessionState.GAME_OVER
            else:
                session.state = SessionState.ABANDONED
            logger.info(f"Session {session_id} ended ({reason})")
        return session

    def list_sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def list_active_sessions(self) -> list[str]:
        """List IDs of active sessions."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def cleanup_stale_sessions(self, max_age_seconds: int = 3600) -> int:
        """
        Remove finished sessions older than max_age.

        Returns the number removed.
        """
        current_time = time.time()
        to_remove = [
            session_id for session_id, session in self._sessions.items()
            if current_time - session.created_at > max_age_seconds and not session.is_active()
        ]
        for session_id in to_remove:
            self.end_session(session_id, reason="stale")
        return len(to_remove)
