"""
Pruning Policy - Bounds on tree expansion.

Three knobs, all applied while the tree is being built:
- max_depth: plies to look ahead
- probability_threshold: outcome paths less likely than this become leaves
- branching_cap: keep only the top-K attacks per decision node

A pruned branch is still a child of its chance node, as a PRUNED leaf with
its full probability, so chance nodes always sum to 1.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence

from ..engine_core.move import Move
from ..engine_core.rules import Ruleset
from ..engine_core.state import Board
from ..errors import InvalidOption


def move_priority(board: Board, move: Move, rules: Ruleset) -> tuple:
    """
    Static ordering key, lower sorts first.

    Free captures of unowned cells come first, then attacks by how far the
    committed force outnumbers the defender. Ties keep enumeration order.
    """
    if move.is_pass:
        return (2, 0)
    source = board[move.source]
    target = board[move.target]
    if not target.is_owned:
        return (0, -rules.attacking_force(source.dice))
    advantage = rules.attacking_force(source.dice) - target.dice
    return (1, -advantage)


@dataclass(frozen=True)
class PruningPolicy:
    max_depth: int = 2
    probability_threshold: float = 0.0
    branching_cap: int | None = None

    def __post_init__(self):
        if self.max_depth < 0:
            raise InvalidOption("max_depth must be >= 0")
        if not 0.0 <= self.probability_threshold < 1.0:
            raise InvalidOption("probability_threshold must be in [0, 1)")
        if self.branching_cap is not None and self.branching_cap < 1:
            raise InvalidOption("branching_cap must be >= 1")

    def should_expand(self, path_probability: float) -> bool:
        return path_probability >= self.probability_threshold

    def select_moves(self, board: Board, moves: Sequence[Move], rules: Ruleset) -> list[Move]:
        """
        Apply the branching cap.

        The pass move is always retained on top of the capped attacks. The
        result keeps the original enumeration order.
        """
        attacks = [m for m in moves if m.is_attack]
        if self.branching_cap is None or len(attacks) <= self.branching_cap:
            return list(moves)

        ranked = sorted(
            range(len(attacks)),
            key=lambda i: (move_priority(board, attacks[i], rules), i),
        )
        keep = {attacks[i] for i in ranked[:self.branching_cap]}
        return [m for m in moves if m.is_pass or m in keep]
