"""
Grid Adjacency - The neighbour-lookup capability the engine consumes.

The engine never owns grid geometry. It only needs:
    neighbors(coordinate) -> frozenset of coordinates

Two reference adapters are provided:
- HexGrid: cube-coordinate hexagons (x + y + z == 0), rectangular layouts
- GraphGrid: an explicit adjacency mapping (handy for small linear boards)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Hashable, Iterable, NamedTuple, Protocol, runtime_checkable

from .errors import InvalidCoordinate


@runtime_checkable
class Adjacency(Protocol):
    """Anything able to answer "which cells touch this one"."""

    def neighbors(self, coordinate: Any) -> frozenset:
        ...


class Cube(NamedTuple):
    """Cube coordinate of a hexagon. Ordered, hashable, cheap."""
    x: int
    y: int
    z: int

    @classmethod
    def construct(cls, x: int, y: int, z: int) -> Cube:
        """Build a cube coordinate, enforcing the zero-sum constraint."""
        if x + y + z != 0:
            raise InvalidCoordinate(
                f"Coordinates x: {x}, y: {y}, z: {z} fail 0 constraint. Equal {x + y + z}"
            )
        return cls(x, y, z)

    @classmethod
    def from_axial(cls, column: int, row: int) -> Cube:
        """Axial (column, row) to cube; z is the negated sum."""
        return cls(column, -column - row, row)

    def to_axial(self) -> tuple[int, int]:
        return self.x, self.z

    def __add__(self, other: Cube) -> Cube:  # type: ignore[override]
        return Cube(self.x + other.x, self.y + other.y, self.z + other.z)

    def distance(self, other: Cube) -> int:
        return max(abs(self.x - other.x), abs(self.y - other.y), abs(self.z - other.z))

    def __str__(self) -> str:
        return f"({self.x}, {self.y}, {self.z})"


# Pointy orientation: Left, Right, UpLeft, UpRight, DownLeft, DownRight
DIRECTIONS: tuple[Cube, ...] = (
    Cube(-1, 1, 0),
    Cube(1, -1, 0),
    Cube(0, 1, -1),
    Cube(1, 0, -1),
    Cube(-1, 0, 1),
    Cube(0, -1, 1),
)


@dataclass(frozen=True)
class HexGrid:
    """
    A finite set of hexagons addressed by cube coordinates.

    Neighbours outside the grid are ignored.
    """
    coordinates: frozenset[Cube]

    @classmethod
    def rectangle(cls, columns: int, rows: int) -> HexGrid:
        """
        Rectangular block of hexes, rows shifted alternately down-right
        and down-left so the outline stays rectangular.
        """
        if columns < 1 or rows < 1:
            raise InvalidCoordinate(f"Grid must be at least 1x1, got {columns}x{rows}")

        coords = []
        for row in range(rows):
            offset = row // 2
            for column in range(columns):
                coords.append(Cube.from_axial(column - offset, row))
        return cls(coordinates=frozenset(coords))

    @classmethod
    def from_coordinates(cls, coordinates: Iterable[tuple[int, int, int]]) -> HexGrid:
        return cls(coordinates=frozenset(Cube.construct(*c) for c in coordinates))

    def neighbors(self, coordinate: Cube) -> frozenset[Cube]:
        return frozenset(
            n for n in (coordinate + d for d in DIRECTIONS)
            if n in self.coordinates
        )

    def __contains__(self, coordinate: object) -> bool:
        return coordinate in self.coordinates

    def __len__(self) -> int:
        return len(self.coordinates)


@dataclass(frozen=True)
class GraphGrid:
    """
    Adjacency given explicitly. The relation is symmetrised on construction,
    so declaring A-B once is enough.
    """
    adjacency: dict[Hashable, frozenset] = field(default_factory=dict)

    @classmethod
    def from_edges(cls, edges: dict[Hashable, Iterable[Hashable]]) -> GraphGrid:
        links: dict[Hashable, set] = {}
        for node, others in edges.items():
            links.setdefault(node, set())
            for other in others:
                if other == node:
                    continue
                links[node].add(other)
                links.setdefault(other, set()).add(node)
        return cls(adjacency={k: frozenset(v) for k, v in links.items()})

    @classmethod
    def line(cls, *nodes: Hashable) -> GraphGrid:
        """A chain A-B-C-... ."""
        edges: dict[Hashable, list] = {n: [] for n in nodes}
        for left, right in zip(nodes, nodes[1:]):
            edges[left].append(right)
        return cls.from_edges(edges)

    def neighbors(self, coordinate: Hashable) -> frozenset:
        return self.adjacency.get(coordinate, frozenset())

    def __contains__(self, coordinate: object) -> bool:
        return coordinate in self.adjacency

    def __len__(self) -> int:
        return len(self.adjacency)
