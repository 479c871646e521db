"""
Game Tree - Immutable nodes produced by the tree builder.

Three node kinds:
- DecisionNode: the active player chooses among moves
- ChanceNode: the dice choose among a move's outcomes, by probability
- LeafNode: nothing more is expanded (terminal board, depth or pruning limit)

Nodes never change after construction. Scores live outside the tree, in the
evaluator's ScoreTable, keyed by node identity. Identical subtrees reached by
different paths are the same object (shared through the transposition cache).
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Union

from ..engine_core.combat import CombatLoss
from ..engine_core.move import Move
from ..engine_core.state import Board, Player


class LeafReason(Enum):
    """Why a node was not expanded."""
    DEPTH = "depth"  # Search depth exhausted
    PRUNED = "pruned"  # Path probability under the threshold
    WON = "won"  # A single player remains
    STALEMATE = "stalemate"  # Nobody can attack any more

    @property
    def terminal(self) -> bool:
        """Whether the game itself is over (the leaf is exact at any depth)."""
        return self in (LeafReason.WON, LeafReason.STALEMATE)


@dataclass(frozen=True, eq=False)
class LeafNode:
    board: Board
    player: Player
    reason: LeafReason


@dataclass(frozen=True, eq=False)
class Branch:
    """One weighted edge out of a chance node."""
    loss: CombatLoss
    probability: float
    node: TreeNode


@dataclass(frozen=True, eq=False)
class ChanceNode:
    """Resolution of one move. Branch probabilities sum to 1."""
    board: Board
    player: Player
    move: Move
    branches: tuple[Branch, ...]

    @property
    def total_probability(self) -> float:
        return sum(b.probability for b in self.branches)


@dataclass(frozen=True, eq=False)
class DecisionNode:
    """
    The active player's choice point.

    children is ordered like the move enumeration; depth is the search
    budget (in plies) the node was built with.
    """
    board: Board
    player: Player
    depth: int
    children: tuple[ChanceNode, ...]

    @property
    def moves(self) -> list[Move]:
        return [c.move for c in self.children]

    def child(self, move: Move) -> ChanceNode:
        for chance in self.children:
            if chance.move == move:
                return chance
        raise KeyError(move)


TreeNode = Union[DecisionNode, ChanceNode, LeafNode]


def walk(root: TreeNode) -> Iterator[TreeNode]:
    """
    Yield every distinct node once (shared subtrees are not revisited).
    """
    seen: set[int] = set()
    stack: list[TreeNode] = [root]
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        yield node
        if isinstance(node, DecisionNode):
            stack.extend(reversed(node.children))
        elif isinstance(node, ChanceNode):
            stack.extend(reversed([b.node for b in node.branches]))


def leaves(root: TreeNode) -> list[LeafNode]:
    return [n for n in walk(root) if isinstance(n, LeafNode)]


def count_nodes(root: TreeNode) -> int:
    return sum(1 for _ in walk(root))


def follow(root: TreeNode, move: Move, loss: CombatLoss) -> TreeNode | None:
    """
    The subtree reached by playing move and seeing loss, if it was built.

    Used to carry a searched subtree over to the next turn.
    """
    if not isinstance(root, DecisionNode):
        return None
    try:
        chance = root.child(move)
    except KeyError:
        return None
    for branch in chance.branches:
        if branch.loss == loss:
            return branch.node
    return None
