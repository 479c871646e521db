"""
Move Generator - Enumerates all legal moves from a board.

The move generator is used by:
1. The tree builder to expand decision nodes
2. UIs to show available options without running a search
3. Validation (is this move legal?)

Order is stable: attacks sorted by source then target, pass last. Downstream
tie-breaking depends on it.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from ..errors import InvalidPlayer
from .move import Move, PASS
from .rules import Ruleset, CLASSIC
from .state import Board, Cell, Player


@dataclass
class MoveGenerator:
    """
    Generates legal moves for a player.

    Stateless apart from the ruleset.
    """
    rules: Ruleset = field(default_factory=lambda: CLASSIC)

    def generate(self, board: Board, player: Player) -> list[Move]:
        """
        Generate all legal moves for the player, pass included.

        Raises InvalidPlayer if the player owns nothing on the board, and
        InvalidState if the board breaks the ruleset.
        """
        self.rules.validate_board(board)
        if player not in board.players():
            raise InvalidPlayer(f"Player {player!r} is not present on the board")

        moves = self.attacks(board, player)
        moves.append(PASS)
        return moves

    def attacks(self, board: Board, player: Player) -> list[Move]:
        """Attack moves only, in stable order."""
        moves = []
        for cell in board:
            if cell.owner != player:
                continue
            for neighbour in self.targets(board, cell):
                moves.append(Move.attack(cell.coordinate, neighbour.coordinate))
        return moves

    def targets(self, board: Board, cell: Cell, include_immobile: bool = False) -> list[Cell]:
        """
        Cells the stack on cell may attack now.

        With include_immobile, a stack frozen for this turn counts as if the
        turn had passed.
        """
        if not self._can_launch(cell, include_immobile):
            return []
        return [n for n in board.neighbors(cell.coordinate) if self._can_target(cell, n)]

    def has_attack(self, board: Board, player: Player, include_immobile: bool = False) -> bool:
        """
        Cheaper than attacks(): stops at the first legal attack.

        include_immobile asks whether the player could attack once its
        frozen stacks are free again, which is what decides a stalemate.
        """
        for cell in board.cells.values():
            if cell.owner != player or not self._can_launch(cell, include_immobile):
                continue
            for neighbour in board.neighbors(cell.coordinate):
                if self._can_target(cell, neighbour):
                    return True
        return False

    def check(self, board: Board, move: Move, player: Player | None = None) -> str | None:
        """
        Validate a move against the board.

        Returns an error message if invalid, None if valid.
        """
        if move.is_pass:
            if player is not None and player not in board.players():
                return f"Player {player!r} is not present on the board"
            return None

        source = board.get(move.source)
        target = board.get(move.target)
        if source is None:
            return f"No cell at source {move.source}"
        if target is None:
            return f"No cell at target {move.target}"
        if not source.is_owned:
            return f"Source {move.source} is unowned"
        if player is not None and source.owner != player:
            return f"Source {move.source} is not owned by {player!r}"
        if not source.mobile:
            return f"Source {move.source} already captured this turn"
        if not self._can_launch(source):
            return (
                f"Source {move.source} has {source.dice} dice; "
                f"{self.rules.min_attack_dice} needed to attack"
            )
        if move.target not in board.grid.neighbors(move.source):
            return f"Target {move.target} is not adjacent to {move.source}"
        if target.owner == source.owner:
            return f"Target {move.target} is already owned by {source.owner!r}"
        if not self._can_target(source, target):
            return f"Source {move.source} is not stronger than target {move.target}"
        return None

    def _can_launch(self, cell: Cell, include_immobile: bool = False) -> bool:
        if not (cell.mobile or include_immobile):
            return False
        return cell.dice is not None and cell.dice >= self.rules.min_attack_dice

    def _can_target(self, source: Cell, target: Cell) -> bool:
        if target.owner == source.owner:
            return False
        if self.rules.require_superiority and target.is_owned:
            return target.dice < source.dice
        return True


def enumerate_moves(board: Board, player: Player, rules: Ruleset = CLASSIC) -> list[Move]:
    """
    Convenience function to get legal moves.

    Creates a MoveGenerator and generates moves.
    """
    return MoveGenerator(rules=rules).generate(board, player)


def is_legal(board: Board, move: Move, player: Player | None = None, rules: Ruleset = CLASSIC) -> bool:
    """Check if a specific move is legal."""
    return MoveGenerator(rules=rules).check(board, move, player) is None
