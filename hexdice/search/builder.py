"""
Tree Builder - Expands a board into a decision/chance tree.

Algorithm, for a board and the player to move:
1. Finished games become leaves: one living player (WON), or no living
   player able to attack (STALEMATE)
2. An exhausted depth budget becomes a DEPTH leaf
3. The transposition cache is consulted; an entry deep enough and built on a
   path at least as likely is reused as is, any other decision node is
   extended in place of a fresh expansion
4. An outcome path less likely than the probability threshold becomes a
   PRUNED leaf
5. Otherwise: enumerate moves, apply the branching cap, resolve every move's
   outcomes and recurse on each resulting board

An attack keeps the turn with the attacker (unless the ruleset ends the turn
on attack); a pass hands it to the next living player. Every move costs one
ply of depth.

Nodes are built bottom-up and stored after their children, so a failed build
leaves nothing half-made behind.
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import logging
import threading
import time
from typing import Sequence

from ..engine_core.move import Move
from ..engine_core.move_generator import MoveGenerator
from ..engine_core.reducer import Reducer
from ..engine_core.rules import Ruleset, CLASSIC
from ..engine_core.state import Board, Player
from ..errors import InvalidOption, InvalidPlayer, ResourceExhausted
from ..players import TurnOrder
from .cache import Lookup, TranspositionCache
from .pruning import PruningPolicy
from .tree import Branch, ChanceNode, DecisionNode, LeafNode, LeafReason, TreeNode

logger = logging.getLogger(__name__)


@dataclass
class LayerStats:
    """Boards reached at one ply, and how many of them had to be expanded."""
    boards: int = 0
    inserted: int = 0

    @property
    def discarded(self) -> int:
        return self.boards - self.inserted


@dataclass
class BuildStats:
    """Counters for one build."""
    nodes: int = 0
    decisions: int = 0
    chances: int = 0
    leaves: int = 0
    pruned: int = 0
    hits: int = 0
    misses: int = 0
    extensions: int = 0
    elapsed: float = 0.0
    layers: dict[int, LayerStats] = field(default_factory=dict)

    @property
    def boards(self) -> int:
        return sum(layer.boards for layer in self.layers.values())

    @property
    def inserted(self) -> int:
        return sum(layer.inserted for layer in self.layers.values())

    @property
    def efficiency(self) -> float:
        """Share of reached boards that needed a fresh expansion."""
        if self.boards == 0:
            return 0.0
        return self.inserted / self.boards

    def to_dict(self) -> dict:
        return {
            "nodes": self.nodes,
            "decisions": self.decisions,
            "chances": self.chances,
            "leaves": self.leaves,
            "pruned": self.pruned,
            "hits": self.hits,
            "misses": self.misses,
            "extensions": self.extensions,
            "elapsed": self.elapsed,
            "efficiency": self.efficiency,
            "layers": {
                ply: {
                    "boards": layer.boards,
                    "inserted": layer.inserted,
                    "discarded": layer.discarded,
                }
                for ply, layer in sorted(self.layers.items())
            },
        }


class TreeBuilder:
    """
    Builds game trees against a shared transposition cache.

    The cache may outlive the builder; pass the same cache to successive
    builders to reuse work between turns.
    """

    def __init__(
        self,
        rules: Ruleset = CLASSIC,
        pruning: PruningPolicy | None = None,
        cache: TranspositionCache | None = None,
        turn_order: TurnOrder | None = None,
        max_nodes: int | None = None,
        workers: int = 1,
    ):
        if max_nodes is not None and max_nodes < 1:
            raise InvalidOption("max_nodes must be >= 1 or None")
        if workers < 1:
            raise InvalidOption("workers must be >= 1")

        self.rules = rules
        self.pruning = pruning or PruningPolicy()
        self.cache = cache if cache is not None else TranspositionCache()
        self.turn_order = turn_order
        self.max_nodes = max_nodes
        self.workers = workers

        self.generator = MoveGenerator(rules=rules)
        self.reducer = Reducer(rules=rules)
        self.stats = BuildStats()

        # Cached subtrees are only shared between builders that would build them alike
        self.context = (rules, self.pruning.probability_threshold, self.pruning.branching_cap)

        self._order: TurnOrder | None = None
        self._lock = threading.Lock()

    def build(self, board: Board, player: Player, depth: int | None = None) -> TreeNode:
        """
        Build the tree rooted at board with player to move.

        Args:
            board: Root board (already validated at construction)
            player: The player to move; must be seated and alive
            depth: Plies to look ahead (defaults to the pruning max_depth)

        Returns:
            The root node: a DecisionNode, or a LeafNode if the game is over
            or depth is 0

        Raises:
            InvalidPlayer: player is absent or eliminated
            ResourceExhausted: more than max_nodes nodes would be created
        """
        order = self._resolve_order(board, player)
        depth = self.pruning.max_depth if depth is None else depth
        if depth < 0:
            raise InvalidOption("depth must be >= 0")

        self._order = order
        self.stats = BuildStats()
        started = time.perf_counter()

        try:
            if self.workers > 1:
                root = self._build_parallel(board, player, depth)
            else:
                root = self._expand(board, player, depth, 1.0, 0)
        except ResourceExhausted:
            logger.warning(
                f"Tree build aborted after {self.stats.nodes} nodes (cap {self.max_nodes})"
            )
            raise
        finally:
            self.stats.elapsed = time.perf_counter() - started

        logger.debug(
            f"Built tree for {player!r} at depth {depth}: {self.stats.nodes} nodes, "
            f"{self.stats.hits} hits, {self.stats.extensions} extensions, "
            f"{self.stats.misses} misses in {self.stats.elapsed:.3f}s"
        )
        return root

    # ------------------------------------------------------------------
    # Expansion
    # ------------------------------------------------------------------

    def _resolve_order(self, board: Board, player: Player) -> TurnOrder:
        order = self.turn_order or TurnOrder.from_board(board)

        errors = []
        if player not in order.players:
            errors.append(f"Player {player!r} is not seated")
        elif order.is_eliminated(player, board):
            errors.append(f"Player {player!r} owns no cell")
        unseated = [p for p in board.players() if p not in order.players]
        if unseated:
            errors.append(f"Board owners missing from the turn order: {unseated!r}")
        if errors:
            raise InvalidPlayer(f"Cannot search for player {player!r}", errors)
        return order

    def _terminal(self, board: Board) -> LeafReason | None:
        alive = self._order.alive(board)
        if len(alive) <= 1:
            return LeafReason.WON
        if not any(self.generator.has_attack(board, p, include_immobile=True) for p in alive):
            return LeafReason.STALEMATE
        return None

    def _expand(
        self,
        board: Board,
        player: Player,
        depth: int,
        path_probability: float,
        ply: int,
    ) -> TreeNode:
        board = self.cache.arena.intern(board)
        self._count_board(ply)

        reason = self._terminal(board)
        if reason is not None:
            return self._leaf(board, player, reason)
        if depth <= 0:
            return self._leaf(board, player, LeafReason.DEPTH)

        key = self.cache.key(board, player, self.context)
        reach = self._reach(path_probability)
        result, entry = self.cache.lookup(key, depth, reach)
        if result is Lookup.HIT:
            self._bump("hits")
            return entry.node

        if not self.pruning.should_expand(path_probability):
            self._bump("pruned")
            return self._leaf(board, player, LeafReason.PRUNED)

        self._count_insert(ply)
        if result is Lookup.EXTEND:
            self._bump("extensions")
            depth = max(depth, entry.node.depth)
            children = self._extend(entry.node, depth, path_probability, ply)
        else:
            self._bump("misses")
            moves = self.pruning.select_moves(
                board, self.generator.generate(board, player), self.rules
            )
            children = tuple(
                self._chance(board, player, move, depth, path_probability, ply)
                for move in moves
            )

        node = DecisionNode(board=board, player=player, depth=depth, children=children)
        self._count_node("decisions")
        return self.cache.store(key, node, reach)

    def _chance(
        self,
        board: Board,
        player: Player,
        move: Move,
        depth: int,
        path_probability: float,
        ply: int,
    ) -> ChanceNode:
        branches = []
        for outcome in self.reducer.outcomes(board, move):
            mover = self._next_to_move(player, move, outcome.board)
            child = self._expand(
                outcome.board,
                mover,
                depth - 1,
                path_probability * outcome.probability,
                ply + 1,
            )
            branches.append(Branch(loss=outcome.loss, probability=outcome.probability, node=child))

        self._count_node("chances")
        return ChanceNode(board=board, player=player, move=move, branches=tuple(branches))

    def _extend(
        self,
        shallow: DecisionNode,
        depth: int,
        path_probability: float,
        ply: int,
    ) -> tuple[ChanceNode, ...]:
        """Rebuild a shallower node's children at the new depth, reusing its moves and outcomes."""
        return tuple(
            self._extend_chance(chance, depth, path_probability, ply)
            for chance in shallow.children
        )

    def _extend_chance(
        self,
        chance: ChanceNode,
        depth: int,
        path_probability: float,
        ply: int,
    ) -> ChanceNode:
        branches = []
        for branch in chance.branches:
            child = self._expand(
                branch.node.board,
                branch.node.player,
                depth - 1,
                path_probability * branch.probability,
                ply + 1,
            )
            branches.append(Branch(loss=branch.loss, probability=branch.probability, node=child))

        self._count_node("chances")
        return ChanceNode(
            board=chance.board,
            player=chance.player,
            move=chance.move,
            branches=tuple(branches),
        )

    def _reach(self, path_probability: float) -> float:
        """Path probability a subtree is stored under; without pruning every path builds alike."""
        if self.pruning.probability_threshold > 0.0:
            return path_probability
        return 1.0

    def _next_to_move(self, player: Player, move: Move, board: Board) -> Player:
        if move.is_attack and not self.rules.attack_ends_turn:
            return player
        return self._order.next_player(player, board)

    def _leaf(self, board: Board, player: Player, reason: LeafReason) -> LeafNode:
        self._count_node("leaves")
        return LeafNode(board=board, player=player, reason=reason)

    # ------------------------------------------------------------------
    # Parallel root
    # ------------------------------------------------------------------

    def _build_parallel(self, board: Board, player: Player, depth: int) -> TreeNode:
        """
        Expand each root move in its own worker.

        Workers share the cache; when two of them build the same position the
        first stored subtree is kept and the other is dropped.
        """
        board = self.cache.arena.intern(board)
        self._count_board(0)

        reason = self._terminal(board)
        if reason is not None:
            return self._leaf(board, player, reason)
        if depth <= 0:
            return self._leaf(board, player, LeafReason.DEPTH)

        key = self.cache.key(board, player, self.context)
        result, entry = self.cache.lookup(key, depth)
        if result is Lookup.HIT:
            self._bump("hits")
            return entry.node
        self._count_insert(0)

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            if result is Lookup.EXTEND:
                self._bump("extensions")
                depth = max(depth, entry.node.depth)
                futures = [
                    executor.submit(self._extend_chance, chance, depth, 1.0, 0)
                    for chance in entry.node.children
                ]
            else:
                self._bump("misses")
                moves: Sequence[Move] = self.pruning.select_moves(
                    board, self.generator.generate(board, player), self.rules
                )
                futures = [
                    executor.submit(self._chance, board, player, move, depth, 1.0, 0)
                    for move in moves
                ]
            children = tuple(future.result() for future in futures)

        node = DecisionNode(board=board, player=player, depth=depth, children=children)
        self._count_node("decisions")
        return self.cache.store(key, node)

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _count_node(self, kind: str) -> None:
        with self._lock:
            self.stats.nodes += 1
            setattr(self.stats, kind, getattr(self.stats, kind) + 1)
            if self.max_nodes is not None and self.stats.nodes > self.max_nodes:
                raise ResourceExhausted(
                    f"Node limit of {self.max_nodes} exceeded",
                    limit=self.max_nodes,
                )

    def _bump(self, counter: str) -> None:
        with self._lock:
            setattr(self.stats, counter, getattr(self.stats, counter) + 1)

    def _count_board(self, ply: int) -> None:
        with self._lock:
            self.stats.layers.setdefault(ply, LayerStats()).boards += 1

    def _count_insert(self, ply: int) -> None:
        with self._lock:
            self.stats.layers.setdefault(ply, LayerStats()).inserted += 1
