"""
Engine Core - Boards, rules, combat and state transitions.

The core is pure:
1. Holds immutable Boards
2. Computes exact combat distributions
3. Generates legal moves
4. Applies moves via the reducer
"""

from .state import Board, Cell, MAX_DICE
from .rules import Ruleset, RULESETS, CLASSIC, get_ruleset
from .combat import (
    CombatLoss,
    FREE_CAPTURE,
    roll_distribution,
    resolve_combat,
    attacker_win_probability,
)
from .move import Move, MoveKind, Outcome, PASS
from .move_generator import MoveGenerator, enumerate_moves, is_legal
from .reducer import Reducer, apply_move, move_outcomes, sample_outcome

__all__ = [
    "Board",
    "Cell",
    "MAX_DICE",
    "Ruleset",
    "RULESETS",
    "CLASSIC",
    "get_ruleset",
    "CombatLoss",
    "FREE_CAPTURE",
    "roll_distribution",
    "resolve_combat",
    "attacker_win_probability",
    "Move",
    "MoveKind",
    "Outcome",
    "PASS",
    "MoveGenerator",
    "enumerate_moves",
    "is_legal",
    "Reducer",
    "apply_move",
    "move_outcomes",
    "sample_outcome",
]
