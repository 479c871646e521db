"""
Transposition Cache - Memoised subtrees keyed by board fingerprint.

The cache:
- Keys on (board, active player, search context); boards hash and compare by
  fingerprint, the context holds whatever changes how a subtree is built
  (ruleset, pruning threshold, branching cap)
- Stores the built node, the depth budget it was built for and its reach:
  the path probability it was expanded under
- Evicts least-recently-used entries past max_entries
- Is shared by worker threads; one lock guards the table
- Outlives a single search, so a session can reuse last turn's work

Lookups have three results:
- HIT: stored depth >= requested depth and stored reach >= the requesting
  path's probability, reuse the node as is
- EXTEND: a decision node exists but is too shallow, or was built on a less
  likely path (its pruned leaves may not be pruned any more); reuse its moves
  and outcome boards and rebuild below them
- MISS: nothing usable

Boards are interned in a BoardArena so identical positions share one object.
"""

from __future__ import annotations
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
import logging
import math
import threading
import time
import weakref
from typing import Any

from ..engine_core.state import Board, Player
from ..errors import InvalidOption
from .tree import DecisionNode, LeafNode, TreeNode

logger = logging.getLogger(__name__)

NodeKey = tuple  # (Board, Player, context)

# Slack for products of the same probabilities taken in another order
REACH_TOLERANCE = 1e-12


class Lookup(Enum):
    HIT = "hit"
    EXTEND = "extend"
    MISS = "miss"


@dataclass
class CacheEntry:
    """A cached subtree."""
    node: TreeNode
    depth: float  # math.inf for finished games
    reach: float = 1.0

    # Cache metadata
    created_at: float = 0.0
    access_count: int = 0


def covers(stored: float, requested: float) -> bool:
    """Whether a subtree built at reach stored may stand in at reach requested."""
    return stored + REACH_TOLERANCE >= requested


def node_depth(node: TreeNode) -> float:
    """Depth budget a node is valid for."""
    if isinstance(node, DecisionNode):
        return node.depth
    if isinstance(node, LeafNode) and node.reason.terminal:
        return math.inf
    return 0


class BoardArena:
    """
    Interns boards by fingerprint.

    Held weakly: a board disappears from the arena once nothing else
    refers to it, so the arena never outgrows the trees and the cache.
    """

    def __init__(self):
        self._boards: weakref.WeakValueDictionary = weakref.WeakValueDictionary()
        self._lock = threading.Lock()
        self.reused = 0

    def intern(self, board: Board) -> Board:
        """Return the canonical instance equal to board."""
        with self._lock:
            canonical = self._boards.get(board.fingerprint)
            if canonical is not None:
                if canonical is not board:
                    self.reused += 1
                return canonical
            self._boards[board.fingerprint] = board
            return board

    def __len__(self) -> int:
        return len(self._boards)


class TranspositionCache:
    """
    LRU-evicting, thread-safe map from (board, player, context) to built subtrees.

    Usage:
        cache = TranspositionCache(max_entries=50_000)
        key = cache.key(board, player, context)
        result, entry = cache.lookup(key, depth, reach)
        if result is Lookup.HIT:
            return entry.node
        ...
        node = cache.store(key, node, reach)
    """

    def __init__(self, max_entries: int = 100_000):
        if max_entries < 1:
            raise InvalidOption("max_entries must be >= 1")
        self._table: OrderedDict[NodeKey, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()
        self.max_entries = max_entries
        self.arena = BoardArena()
        self.hits = 0
        self.misses = 0
        self.extensions = 0
        self.evictions = 0

    @staticmethod
    def key(board: Board, player: Player, context: tuple = ()) -> NodeKey:
        return (board, player, context)

    def lookup(
        self, key: NodeKey, depth: int, reach: float = 1.0
    ) -> tuple[Lookup, CacheEntry | None]:
        """
        Find a usable entry for the requested depth and path probability,
        moving it to the most-recently-used end.
        """
        with self._lock:
            entry = self._table.get(key)
            if entry is None:
                self.misses += 1
                return Lookup.MISS, None

            self._table.move_to_end(key)
            entry.access_count += 1
            if entry.depth >= depth and covers(entry.reach, reach):
                self.hits += 1
                return Lookup.HIT, entry
            if isinstance(entry.node, DecisionNode):
                self.extensions += 1
                return Lookup.EXTEND, entry
            self.misses += 1
            return Lookup.MISS, None

    def store(self, key: NodeKey, node: TreeNode, reach: float = 1.0) -> TreeNode:
        """
        Insert a built node and return the canonical one for the key.

        An entry at least as deep and built on at least as likely a path is
        kept (a concurrent worker got there first); otherwise the new node
        replaces it.
        """
        depth = node_depth(node)
        with self._lock:
            existing = self._table.get(key)
            if existing is not None:
                self._table.move_to_end(key)
                if existing.depth >= depth and covers(existing.reach, reach):
                    return existing.node
                existing.node = node
                existing.depth = depth
                existing.reach = reach
                return node

            if len(self._table) >= self.max_entries:
                self._table.popitem(last=False)
                self.evictions += 1
            self._table[key] = CacheEntry(
                node=node, depth=depth, reach=reach, created_at=time.time()
            )
            return node

    def get(self, board: Board, player: Player, context: tuple = ()) -> TreeNode | None:
        """Peek without touching statistics or recency."""
        with self._lock:
            entry = self._table.get(self.key(board, player, context))
            return entry.node if entry else None

    def __contains__(self, key: Any) -> bool:
        with self._lock:
            return key in self._table

    def __len__(self) -> int:
        return len(self._table)

    def clear(self) -> None:
        """Clear all entries and reset stats."""
        with self._lock:
            self._table.clear()
            self.hits = 0
            self.misses = 0
            self.extensions = 0
            self.evictions = 0
        logger.debug("Transposition cache cleared")

    def stats(self) -> dict:
        """
        Usage statistics: entries, max_entries, hits, misses, extensions,
        evictions, hit_rate and interned boards.
        """
        with self._lock:
            lookups = self.hits + self.misses + self.extensions
            return {
                "entries": len(self._table),
                "max_entries": self.max_entries,
                "hits": self.hits,
                "misses": self.misses,
                "extensions": self.extensions,
                "evictions": self.evictions,
                "hit_rate": self.hits / lookups if lookups else 0.0,
                "interned_boards": len(self.arena),
            }
