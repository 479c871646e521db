"""
Search Engine - select the best move for a player.

Ties the pieces together:

    board, player, config
        -> TreeBuilder (move generator, combat model, pruning, cache)
        -> ExpectimaxEvaluator (heuristic)
        -> best move

Usage:
    move = select_best_move(board, "red", SearchConfig(search_depth=3))

Pass a TranspositionCache to reuse work between calls (successive turns of
the same game).
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Union

from ..engine_core.move import Move
from ..engine_core.rules import Ruleset, CLASSIC
from ..engine_core.state import Board, Player
from ..errors import InvalidOption, InvalidState
from ..players import TurnOrder
from .builder import BuildStats, TreeBuilder
from .cache import TranspositionCache
from .expectimax import Evaluation, ExpectimaxEvaluator
from .pruning import PruningPolicy
from .tree import TreeNode

logger = logging.getLogger(__name__)

HeuristicChoice = Union[str, Callable[[Board, Player], float]]


@dataclass
class SearchConfig:
    """
    Options for one search.

    heuristic is a personality name ("balanced", "aggressive", "defensive",
    "territorial") or any score(board, player) -> float callable.
    """
    search_depth: int = 2
    probability_threshold: float = 0.0
    branching_cap: int | None = None
    heuristic: HeuristicChoice = "balanced"
    rules: Ruleset = field(default_factory=lambda: CLASSIC)

    # Hard limits
    max_nodes: int | None = None
    workers: int = 1
    cache_entries: int = 100_000

    def __post_init__(self):
        if self.search_depth < 1:
            raise InvalidOption("search_depth must be >= 1")
        if self.workers < 1:
            raise InvalidOption("workers must be >= 1")
        if self.cache_entries < 1:
            raise InvalidOption("cache_entries must be >= 1")

    def pruning(self) -> PruningPolicy:
        return PruningPolicy(
            max_depth=self.search_depth,
            probability_threshold=self.probability_threshold,
            branching_cap=self.branching_cap,
        )

    def resolve_heuristic(self) -> Callable[[Board, Player], float]:
        from ..bots.personality import get_heuristic
        return get_heuristic(self.heuristic, rules=self.rules)

    def new_cache(self) -> TranspositionCache:
        return TranspositionCache(max_entries=self.cache_entries)


@dataclass
class SearchResult:
    """Everything a search produced."""
    move: Move
    score: float
    move_scores: list[tuple[Move, float]]
    tree: TreeNode
    stats: BuildStats
    evaluation: Evaluation

    def to_dict(self) -> dict[str, Any]:
        return {
            "move": str(self.move),
            "score": self.score,
            "move_scores": [(str(m), s) for m, s in self.move_scores],
            "distance": self.evaluation.distance,
            "stats": self.stats.to_dict(),
        }


def search(
    board: Board,
    player: Player,
    config: SearchConfig | None = None,
    cache: TranspositionCache | None = None,
    turn_order: TurnOrder | None = None,
) -> SearchResult:
    """
    Build and evaluate the tree for player at board.

    Raises:
        InvalidState: board is not a valid Board
        InvalidPlayer: player is absent or eliminated
        ResourceExhausted: config.max_nodes was exceeded
    """
    if not isinstance(board, Board):
        raise InvalidState(f"Expected a Board, got {type(board).__name__}")

    config = config or SearchConfig()
    heuristic = config.resolve_heuristic()
    builder = TreeBuilder(
        rules=config.rules,
        pruning=config.pruning(),
        cache=cache if cache is not None else config.new_cache(),
        turn_order=turn_order,
        max_nodes=config.max_nodes,
        workers=config.workers,
    )

    tree = builder.build(board, player, config.search_depth)
    order = turn_order or TurnOrder.from_board(board)
    evaluation = ExpectimaxEvaluator(heuristic, players=order.players).evaluate(tree)

    logger.debug(
        f"Best move for {player!r}: {evaluation.best_move} "
        f"(score {evaluation.score:.4f}, {len(evaluation.move_scores)} candidates)"
    )
    return SearchResult(
        move=evaluation.best_move,
        score=evaluation.score,
        move_scores=evaluation.move_scores,
        tree=tree,
        stats=builder.stats,
        evaluation=evaluation,
    )


def select_best_move(
    board: Board,
    player: Player,
    config: SearchConfig | None = None,
    cache: TranspositionCache | None = None,
    turn_order: TurnOrder | None = None,
) -> Move:
    """The move with the highest expectimax score for player. Deterministic."""
    return search(board, player, config, cache, turn_order).move
