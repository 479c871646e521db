"""
Game setup - starting positions.
"""

from __future__ import annotations
import random
from typing import Sequence

from ..engine_core.state import Board, Cell, Player
from ..errors import InvalidState
from ..grid import Cube, HexGrid

DEFAULT_PLAYERS = ("red", "blue")


def random_board(
    columns: int,
    rows: int,
    players: Sequence[Player] = DEFAULT_PLAYERS,
    rng: random.Random | None = None,
    max_dice: int = 5,
) -> Board:
    """
    A rectangular hex board with every cell owned by a random player.

    Each player is guaranteed at least one cell; stacks hold 1..max_dice dice.
    """
    if columns < 1 or rows < 1:
        raise InvalidState(f"Board must be at least 1x1, got {columns}x{rows}")
    if len(players) < 2:
        raise InvalidState("A game needs at least two players")
    if columns * rows < len(players):
        raise InvalidState(
            f"A {columns}x{rows} board cannot seat {len(players)} players"
        )
    if not 1 <= max_dice <= 6:
        raise InvalidState("max_dice must be within 1-6")

    rng = rng or random.Random()
    grid = HexGrid.rectangle(columns, rows)
    coordinates: list[Cube] = sorted(grid.coordinates)
    rng.shuffle(coordinates)

    cells = []
    for index, coordinate in enumerate(coordinates):
        owner = players[index] if index < len(players) else rng.choice(players)
        cells.append(Cell(coordinate, owner, rng.randint(1, max_dice)))
    return Board(cells, grid)
