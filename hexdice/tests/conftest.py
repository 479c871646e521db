"""
Pytest fixtures for Hexdice tests.
"""

import pytest

from ..engine_core.state import Board
from ..grid import GraphGrid, HexGrid


@pytest.fixture
def line_board() -> Board:
    """A - B - C: red 3 dice on A, B empty, blue 3 dice on C."""
    return Board.from_holdings(
        {"A": ("red", 3), "B": None, "C": ("blue", 3)},
        GraphGrid.line("A", "B", "C"),
    )


@pytest.fixture
def duel_board() -> Board:
    """Red 4 dice next to blue 2 dice, blue backed up by 3 more on C."""
    return Board.from_holdings(
        {"A": ("red", 4), "B": ("blue", 2), "C": ("blue", 3)},
        GraphGrid.line("A", "B", "C"),
    )


@pytest.fixture
def transposition_board() -> Board:
    """
    Two independent free captures for red (X->U1, Y->U2), so both move
    orders reach the same board. Blue sits apart on Z with a free capture of W.
    """
    grid = GraphGrid.from_edges({"X": ["U1"], "Y": ["U2"], "Z": ["W"]})
    return Board.from_holdings(
        {
            "X": ("red", 2),
            "Y": ("red", 2),
            "U1": None,
            "U2": None,
            "Z": ("blue", 2),
            "W": None,
        },
        grid,
    )


@pytest.fixture
def hex_board() -> Board:
    """A 3x2 hex rectangle, owners alternating by column."""
    grid = HexGrid.rectangle(3, 2)
    holdings = {}
    for coordinate in sorted(grid.coordinates):
        owner = "red" if coordinate.x % 2 == 0 else "blue"
        holdings[coordinate] = (owner, 2 + (coordinate.z % 2))
    return Board.from_holdings(holdings, grid)


@pytest.fixture
def stalemate_board() -> Board:
    """Red can take B for free, after which nobody can attack."""
    return Board.from_holdings(
        {"A": ("red", 2), "B": None, "C": ("blue", 1)},
        GraphGrid.line("A", "B", "C"),
    )
