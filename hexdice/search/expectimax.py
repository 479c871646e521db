"""
Expectimax Evaluator - Scores a built tree without touching it.

Scores are vectors: one value per player, from that player's point of view.
- Leaf: heuristic(board, player) for every player
- Chance node: probability-weighted average of its branches
- Decision node: the child that is best for the player to move there
  (compared on that player's own component); on equal values the child
  whose leaves are fewer moves away wins, then the earlier move

Alongside every score the table keeps a distance: the expected number of
moves from the node to the leaves its score came from.

The tree is immutable, so scores live in a ScoreTable keyed by node identity.
Shared subtrees are scored once.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator

from ..engine_core.move import Move, PASS
from ..engine_core.state import Board, Player
from .tree import ChanceNode, DecisionNode, LeafNode, TreeNode

Heuristic = Callable[[Board, Player], float]
ScoreVector = dict


class ScoreTable:
    """
    node -> (score vector, distance), keyed by identity.

    Holds a reference to every scored node so identities stay valid for the
    table's lifetime.
    """

    def __init__(self):
        self._entries: dict[int, tuple[TreeNode, ScoreVector, float]] = {}

    def __setitem__(self, node: TreeNode, score: ScoreVector) -> None:
        self.record(node, score, 0.0)

    def record(self, node: TreeNode, score: ScoreVector, distance: float) -> None:
        self._entries[id(node)] = (node, score, distance)

    def __getitem__(self, node: TreeNode) -> ScoreVector:
        return self._entries[id(node)][1]

    def __contains__(self, node: object) -> bool:
        return id(node) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TreeNode]:
        return (node for node, _, _ in self._entries.values())

    def value(self, node: TreeNode, player: Player) -> float:
        """One player's component of a node's score."""
        return self[node][player]

    def distance(self, node: TreeNode) -> float:
        """Expected moves from node to the leaves behind its score."""
        return self._entries[id(node)][2]


@dataclass
class Evaluation:
    """Result of scoring a tree."""
    root: TreeNode
    best_move: Move
    score: float  # Root score for the player to move
    move_scores: list[tuple[Move, float]] = field(default_factory=list)  # Best first
    distance: float = 0.0  # Expected moves to the leaves behind the root score
    scores: ScoreTable = field(default_factory=ScoreTable)


class ExpectimaxEvaluator:
    """
    Expectimax over a built tree.

    Usage:
        evaluator = ExpectimaxEvaluator(heuristic, players=order.players)
        evaluation = evaluator.evaluate(root)
        evaluation.best_move
    """

    def __init__(self, heuristic: Heuristic, players: Iterable[Player] | None = None):
        self.heuristic = heuristic
        self.players = tuple(players) if players is not None else None

    def evaluate(self, root: TreeNode) -> Evaluation:
        players = self.players or tuple(sorted(root.board.players(), key=repr))
        scores = ScoreTable()
        leaf_memo: dict[Board, ScoreVector] = {}

        self._score(root, players, scores, leaf_memo)
        mover = root.player

        if not isinstance(root, DecisionNode):
            # Finished game or no lookahead: nothing to choose but passing
            return Evaluation(
                root=root,
                best_move=PASS,
                score=scores.value(root, mover),
                move_scores=[(PASS, scores.value(root, mover))],
                distance=scores.distance(root),
                scores=scores,
            )

        ranked = sorted(
            enumerate(root.children),
            key=lambda item: (-scores.value(item[1], mover), scores.distance(item[1]), item[0]),
        )
        move_scores = [(chance.move, scores.value(chance, mover)) for _, chance in ranked]
        return Evaluation(
            root=root,
            best_move=move_scores[0][0],
            score=scores.value(root, mover),
            move_scores=move_scores,
            distance=scores.distance(root),
            scores=scores,
        )

    def _score(
        self,
        node: TreeNode,
        players: tuple,
        scores: ScoreTable,
        leaf_memo: dict[Board, ScoreVector],
    ) -> ScoreVector:
        if node in scores:
            return scores[node]

        distance = 0.0
        if isinstance(node, LeafNode):
            vector = leaf_memo.get(node.board)
            if vector is None:
                vector = {p: float(self.heuristic(node.board, p)) for p in players}
                leaf_memo[node.board] = vector

        elif isinstance(node, ChanceNode):
            vector = {p: 0.0 for p in players}
            distance = 1.0
            for branch in node.branches:
                child = self._score(branch.node, players, scores, leaf_memo)
                for p in players:
                    vector[p] += branch.probability * child[p]
                distance += branch.probability * scores.distance(branch.node)

        else:
            best = None
            for chance in node.children:
                self._score(chance, players, scores, leaf_memo)
                if best is None or prefers(scores, chance, best, node.player):
                    best = chance
            vector = scores[best]
            distance = scores.distance(best)

        scores.record(node, vector, distance)
        return vector


def prefers(scores: ScoreTable, candidate: TreeNode, incumbent: TreeNode, player: Player) -> bool:
    """Whether player would rather have candidate: a higher value, else a nearer end."""
    value = scores.value(candidate, player)
    other = scores.value(incumbent, player)
    if value != other:
        return value > other
    return scores.distance(candidate) < scores.distance(incumbent)


def best_child(node: DecisionNode, scores: ScoreTable) -> ChanceNode:
    """The chance node chosen at a scored decision node."""
    best = None
    for chance in node.children:
        if best is None or prefers(scores, chance, best, node.player):
            best = chance
    return best
