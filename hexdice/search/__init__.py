"""
Search - Game-tree construction and expectimax evaluation.
"""

from .tree import (
    Branch,
    ChanceNode,
    DecisionNode,
    LeafNode,
    LeafReason,
    TreeNode,
    walk,
    leaves,
    count_nodes,
    follow,
)
from .cache import BoardArena, CacheEntry, Lookup, TranspositionCache
from .pruning import PruningPolicy, move_priority
from .builder import BuildStats, LayerStats, TreeBuilder
from .expectimax import Evaluation, ExpectimaxEvaluator, ScoreTable
from .engine import SearchConfig, SearchResult, search, select_best_move

__all__ = [
    "Branch",
    "ChanceNode",
    "DecisionNode",
    "LeafNode",
    "LeafReason",
    "TreeNode",
    "walk",
    "leaves",
    "count_nodes",
    "follow",
    "BoardArena",
    "CacheEntry",
    "Lookup",
    "TranspositionCache",
    "PruningPolicy",
    "move_priority",
    "BuildStats",
    "LayerStats",
    "TreeBuilder",
    "Evaluation",
    "ExpectimaxEvaluator",
    "ScoreTable",
    "SearchConfig",
    "SearchResult",
    "search",
    "select_best_move",
]
