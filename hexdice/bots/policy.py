"""
Bot Policy - Interface for bot decision-making.

A BotPolicy takes a board, the player to move and the legal moves, and
returns a decision:
- Which move to play
- An explanation (for UI/debugging)
- How it was evaluated
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
import logging
import random
from typing import Any

from ..engine_core.move import Move
from ..engine_core.state import Board, Player
from ..players import TurnOrder
from ..search.cache import TranspositionCache
from ..search.engine import SearchConfig, SearchResult, search
from .personality import BALANCED, HeuristicChoice, Personality, get_personality

logger = logging.getLogger(__name__)


@dataclass
class BotDecision:
    """
    A decision made by a bot.

    Contains:
    - The move to play
    - Explanation (for UI/debugging)
    - Confidence in the decision
    """
    move: Move
    explanation: str = ""
    confidence: float = 1.0

    # Evaluation details (for debugging)
    evaluated_moves: int = 0
    best_score: float = 0.0
    evaluation_details: dict[str, Any] = field(default_factory=dict)


class BotPolicy(ABC):
    """
    Abstract base class for bot policies.

    Implementations range from trivial baselines to the expectimax search.
    """

    @abstractmethod
    def select_move(
        self,
        board: Board,
        player: Player,
        legal_moves: list[Move],
        turn_order: TurnOrder | None = None,
    ) -> BotDecision:
        """
        Select a move from the legal moves.

        Args:
            board: Current board
            player: The player to move
            legal_moves: Moves to choose from (pass included)
            turn_order: Seating, when the game has one

        Returns:
            BotDecision with the selected move
        """
        pass

    def get_name(self) -> str:
        """Get the bot's name/identifier."""
        return self.__class__.__name__


class RandomPolicy(BotPolicy):
    """
    Random policy - selects moves uniformly at random.

    Used for:
    - Testing
    - Baseline comparison
    """

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def select_move(
        self,
        board: Board,
        player: Player,
        legal_moves: list[Move],
        turn_order: TurnOrder | None = None,
    ) -> BotDecision:
        if not legal_moves:
            raise ValueError("No legal moves available")

        move = self.rng.choice(legal_moves)
        return BotDecision(
            move=move,
            explanation="Selected randomly",
            confidence=1.0 / len(legal_moves),
            evaluated_moves=len(legal_moves),
        )


class FirstLegalPolicy(BotPolicy):
    """
    First-legal policy - always selects the first legal move.

    Moves are enumerated attacks first, so this bot attacks whenever it can.
    """

    def select_move(
        self,
        board: Board,
        player: Player,
        legal_moves: list[Move],
        turn_order: TurnOrder | None = None,
    ) -> BotDecision:
        if not legal_moves:
            raise ValueError("No legal moves available")

        return BotDecision(
            move=legal_moves[0],
            explanation="Selected first legal move",
            evaluated_moves=1,
        )


class ExpectimaxBot(BotPolicy):
    """
    Search-backed bot.

    Keeps one transposition cache for its whole life, so each turn reuses
    the subtrees built on the previous ones.

    Usage:
        bot = ExpectimaxBot(personality="aggressive", config=SearchConfig(search_depth=3))
        decision = bot.select_move(board, "red", enumerate_moves(board, "red"))
    """

    def __init__(
        self,
        personality: str | Personality = BALANCED,
        config: SearchConfig | None = None,
        cache: TranspositionCache | None = None,
    ):
        if isinstance(personality, str):
            personality = get_personality(personality)
        self.personality = personality

        base = config or SearchConfig()
        heuristic: HeuristicChoice = personality.heuristic(base.rules)
        self.config = replace(base, heuristic=heuristic)
        self.cache = cache if cache is not None else self.config.new_cache()
        self.last_result: SearchResult | None = None

    def get_name(self) -> str:
        return f"Expectimax({self.personality.name})"

    def select_move(
        self,
        board: Board,
        player: Player,
        legal_moves: list[Move],
        turn_order: TurnOrder | None = None,
    ) -> BotDecision:
        if not legal_moves:
            raise ValueError("No legal moves available")

        result = search(board, player, self.config, cache=self.cache, turn_order=turn_order)
        self.last_result = result

        move = result.move
        if move not in legal_moves:
            # The caller offered a narrower list than the search explored
            ranked = [m for m, _ in result.move_scores if m in legal_moves]
            move = ranked[0] if ranked else legal_moves[0]

        logger.debug(f"{self.get_name()} chose {move} for {player!r}")
        return BotDecision(
            move=move,
            explanation=self._explain(move, result),
            evaluated_moves=len(result.move_scores),
            best_score=dict(result.move_scores).get(move, result.score),
            evaluation_details={
                "move_scores": [(str(m), s) for m, s in result.move_scores],
                "stats": result.stats.to_dict(),
                "cache": self.cache.stats(),
            },
        )

    def _explain(self, move: Move, result: SearchResult) -> str:
        return (
            f"{self.personality.name}: {move} "
            f"(expected {dict(result.move_scores).get(move, result.score):.3f} "
            f"at depth {self.config.search_depth})"
        )
