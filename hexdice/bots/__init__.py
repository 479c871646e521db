"""
Bots module - Automated players.

Provides:
- BotPolicy: Interface for bot decision-making
- HeuristicEvaluator: Scores boards
- Personality: Configurable play styles
- ExpectimaxBot: Search-backed bot
"""

from .policy import BotPolicy, BotDecision, RandomPolicy, FirstLegalPolicy, ExpectimaxBot
from .evaluator import HeuristicEvaluator, EvaluationWeights, StateEvaluation
from .personality import (
    Personality,
    PERSONALITIES,
    get_heuristic,
    get_personality,
)

__all__ = [
    "BotPolicy",
    "BotDecision",
    "RandomPolicy",
    "FirstLegalPolicy",
    "ExpectimaxBot",
    "HeuristicEvaluator",
    "EvaluationWeights",
    "StateEvaluation",
    "Personality",
    "PERSONALITIES",
    "get_heuristic",
    "get_personality",
]
