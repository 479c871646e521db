"""
Board State - Immutable snapshot of territory ownership and dice strength.

Design principles:
- Immutable: every change returns a new Board
- Structurally shared: derived boards reuse every unchanged Cell and the grid
- Canonical: equality and hashing go through a cheap fingerprint, so two boards
  reached by different move orders compare equal
- Validated once: malformed input is rejected at construction, never normalised
"""

from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Hashable, Iterable, Iterator, Mapping

from ..errors import InvalidState
from ..grid import Adjacency

Player = Hashable
Coordinate = Hashable
Fingerprint = tuple

# Upper bound on a stack for validation; rulesets may be stricter.
MAX_DICE = 6


@dataclass(frozen=True)
class Cell:
    """
    One territory.

    An owned cell carries 1..6 dice. An unowned cell carries none. A stack
    that is not mobile has already captured this turn and may not attack
    again until the turn passes.
    """
    coordinate: Coordinate
    owner: Player | None = None
    dice: int | None = None
    mobile: bool = True

    @property
    def is_owned(self) -> bool:
        return self.owner is not None

    def problems(self) -> list[str]:
        """Invariant violations for this cell (empty when valid)."""
        if self.owner is None:
            if self.dice is not None:
                return [f"Unowned cell {self.coordinate} carries {self.dice} dice"]
            if not self.mobile:
                return [f"Unowned cell {self.coordinate} is marked immobile"]
            return []
        if not isinstance(self.dice, int) or isinstance(self.dice, bool):
            return [f"Owned cell {self.coordinate} has no dice count"]
        if not 1 <= self.dice <= MAX_DICE:
            return [f"Cell {self.coordinate} owned by {self.owner} has {self.dice} dice (1-{MAX_DICE})"]
        return []

    def with_holding(self, owner: Player | None, dice: int | None, mobile: bool = True) -> Cell:
        return Cell(coordinate=self.coordinate, owner=owner, dice=dice, mobile=mobile)


class Board:
    """
    Mapping of coordinate -> Cell, plus a reference to the grid collaborator.

    The grid is shared by reference and plays no part in equality:
    two boards are equal when their cells are equal.
    """

    __slots__ = ("_cells", "_grid", "_fingerprint", "_hash", "__weakref__")

    def __init__(self, cells: Iterable[Cell], grid: Adjacency):
        cell_map: dict[Coordinate, Cell] = {}
        errors: list[str] = []

        for cell in cells:
            if cell.coordinate in cell_map:
                errors.append(f"Duplicate cell at {cell.coordinate}")
            errors.extend(cell.problems())
            cell_map[cell.coordinate] = cell

        if not cell_map:
            errors.append("Board has no cells")
        if not isinstance(grid, Adjacency):
            errors.append("Grid does not provide neighbors()")

        if errors:
            raise InvalidState(f"Malformed board: {len(errors)} problem(s)", errors)

        self._init(cell_map, grid)

    def _init(self, cell_map: dict[Coordinate, Cell], grid: Adjacency) -> None:
        self._cells = MappingProxyType(cell_map)
        self._grid = grid
        self._fingerprint = tuple(
            (c.coordinate, c.owner, c.dice, c.mobile)
            for c in (cell_map[k] for k in sorted(cell_map))
        )
        self._hash = hash(self._fingerprint)

    @classmethod
    def _trusted(cls, cell_map: dict[Coordinate, Cell], grid: Adjacency) -> Board:
        """Build without validation. Only for boards derived from valid ones."""
        board = cls.__new__(cls)
        board._init(cell_map, grid)
        return board

    @classmethod
    def from_holdings(
        cls,
        holdings: Mapping[Coordinate, tuple | None],
        grid: Adjacency,
    ) -> Board:
        """
        Convenience constructor.

        holdings maps coordinate -> (owner, dice), (owner, dice, mobile), or
        None for an unowned cell.
        """
        cells = []
        for coordinate, holding in holdings.items():
            if holding is None:
                cells.append(Cell(coordinate))
            else:
                cells.append(Cell(coordinate, *holding))
        return cls(cells, grid)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def cells(self) -> Mapping[Coordinate, Cell]:
        return self._cells

    @property
    def grid(self) -> Adjacency:
        return self._grid

    @property
    def fingerprint(self) -> Fingerprint:
        """Canonical identity of the board, used as the memoisation key."""
        return self._fingerprint

    def __getitem__(self, coordinate: Coordinate) -> Cell:
        return self._cells[coordinate]

    def get(self, coordinate: Coordinate) -> Cell | None:
        return self._cells.get(coordinate)

    def __contains__(self, coordinate: object) -> bool:
        return coordinate in self._cells

    def __iter__(self) -> Iterator[Cell]:
        for coordinate in sorted(self._cells):
            yield self._cells[coordinate]

    def __len__(self) -> int:
        return len(self._cells)

    def neighbors(self, coordinate: Coordinate) -> list[Cell]:
        """Neighbouring cells that exist on this board, in coordinate order."""
        return [
            self._cells[n]
            for n in sorted(self._grid.neighbors(coordinate))
            if n in self._cells
        ]

    def players(self) -> frozenset:
        """Players owning at least one cell."""
        return frozenset(c.owner for c in self._cells.values() if c.owner is not None)

    def cells_of(self, player: Player) -> list[Cell]:
        return [c for c in self if c.owner == player]

    def dice_of(self, player: Player) -> int:
        return sum(c.dice for c in self._cells.values() if c.owner == player)

    def total_dice(self) -> int:
        return sum(c.dice for c in self._cells.values() if c.owner is not None)

    def immobile(self) -> list[Cell]:
        """Stacks that already captured this turn."""
        return [c for c in self if not c.mobile]

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def mobilised(self) -> Board:
        """This board with every stack free to move again (the turn has passed)."""
        frozen = self.immobile()
        if not frozen:
            return self
        return self.with_cells(*(c.with_holding(c.owner, c.dice) for c in frozen))

    def with_cells(self, *changed: Cell) -> Board:
        """
        Return a new board with some cells replaced.

        Unchanged cells and the grid are shared with this board.
        """
        errors = []
        for cell in changed:
            if cell.coordinate not in self._cells:
                errors.append(f"No cell at {cell.coordinate}")
            errors.extend(cell.problems())
        if errors:
            raise InvalidState(f"Invalid board change: {len(errors)} problem(s)", errors)

        new_cells = dict(self._cells)
        for cell in changed:
            new_cells[cell.coordinate] = cell
        return Board._trusted(new_cells, self._grid)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self._hash == other._hash and self._fingerprint == other._fingerprint

    def __hash__(self) -> int:
        return self._hash

    def __repr__(self) -> str:
        holdings = ", ".join(
            f"{c.coordinate}={c.owner}{'|' if c.mobile else '#'}{c.dice}" if c.is_owned else f"{c.coordinate}=-"
            for c in self
        )
        return f"Board({holdings})"
