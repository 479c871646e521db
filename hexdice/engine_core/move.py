"""
Moves and Outcomes.

A Move is a candidate player action:
1. Attack from an owned cell into an adjacent cell the player does not own
2. Pass (end the turn)

An Outcome is one probabilistic result of resolving a move: the combat loss
class, the board it produces and its probability, plus what it captured.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, TYPE_CHECKING

from .combat import CombatLoss

if TYPE_CHECKING:
    from .state import Board, Coordinate


class MoveKind(Enum):
    """Types of moves."""
    ATTACK = "attack"
    PASS = "pass"


@dataclass(frozen=True)
class Move:
    """
    A fully specified move. Hashable, so it can key dictionaries.

    Sorting puts attacks first (by source, then target) and pass last,
    which is the enumeration order used for tie-breaking.
    """
    kind: MoveKind
    source: Any = None
    target: Any = None

    @classmethod
    def attack(cls, source: Coordinate, target: Coordinate) -> Move:
        """Factory for an attack."""
        return cls(kind=MoveKind.ATTACK, source=source, target=target)

    @classmethod
    def pass_turn(cls) -> Move:
        """Factory for a pass."""
        return cls(kind=MoveKind.PASS)

    @property
    def is_attack(self) -> bool:
        return self.kind == MoveKind.ATTACK

    @property
    def is_pass(self) -> bool:
        return self.kind == MoveKind.PASS

    def sort_key(self) -> tuple:
        if self.is_pass:
            return (1,)
        return (0, self.source, self.target)

    def __str__(self) -> str:
        if self.is_pass:
            return "Pass turn."
        return f"Attack from {self.source} into {self.target}."


PASS = Move.pass_turn()


@dataclass(frozen=True)
class Outcome:
    """One result of a move. Probabilities of a move's outcomes sum to 1."""
    loss: CombatLoss
    board: Board
    probability: float
    captured: bool = False
    captured_dice: int = 0  # Defending dice taken along with the cell
