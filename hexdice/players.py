"""
Player Bookkeeping - Turn order and elimination.

The engine consumes two capabilities from here:
    next_player(current, board) -> Player
    is_eliminated(player, board) -> bool

A player is eliminated once they own no cell. Eliminated players are skipped
in the rotation.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence

from .errors import InvalidPlayer
from .engine_core.state import Board, Player


@dataclass(frozen=True)
class TurnOrder:
    """Fixed seating order of every player that started the game."""
    players: tuple

    def __post_init__(self):
        if not self.players:
            raise InvalidPlayer("Turn order needs at least one player")
        if len(set(self.players)) != len(self.players):
            raise InvalidPlayer("Turn order lists a player twice")

    @classmethod
    def of(cls, players: Sequence[Player]) -> TurnOrder:
        return cls(players=tuple(players))

    @classmethod
    def from_board(cls, board: Board) -> TurnOrder:
        """Seat every owner on the board in sorted order."""
        owners = board.players()
        try:
            seated = sorted(owners)
        except TypeError:
            seated = sorted(owners, key=repr)
        return cls(players=tuple(seated))

    def is_eliminated(self, player: Player, board: Board) -> bool:
        return player not in board.players()

    def alive(self, board: Board) -> list[Player]:
        owners = board.players()
        return [p for p in self.players if p in owners]

    def next_player(self, current: Player, board: Board) -> Player:
        """
        The next living player after current, wrapping around.

        Returns current itself when it is the only one left.
        """
        if current not in self.players:
            raise InvalidPlayer(f"Player {current!r} is not seated in this game")

        owners = board.players()
        start = self.players.index(current)
        count = len(self.players)
        for step in range(1, count + 1):
            candidate = self.players[(start + step) % count]
            if candidate in owners:
                return candidate
        raise InvalidPlayer("No living players remain on the board")

    def winner(self, board: Board) -> Player | None:
        alive = self.alive(board)
        return alive[0] if len(alive) == 1 else None
