"""
Bot Personalities - Configurable play styles.

A personality is a set of evaluation weights under a name. Every personality
runs on the same tree and evaluator machinery; only the scoring changes:
- balanced: territory first, some regard for strength and safety
- aggressive: values attack chances and hurting opponents, ignores exposure
- defensive: values dice strength and avoids outgunned borders
- territorial: cares about cell count above everything
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Union

from ..engine_core.rules import Ruleset, CLASSIC
from ..engine_core.state import Board, Player
from ..errors import InvalidOption
from .evaluator import EvaluationWeights, HeuristicEvaluator


@dataclass
class Personality:
    """
    A bot personality that defines play style.

    The predefined ones are listed in PERSONALITIES.
    """
    name: str
    description: str = ""

    # Evaluation weights
    weights: EvaluationWeights = field(default_factory=EvaluationWeights)

    # Metadata
    metadata: dict[str, Any] = field(default_factory=dict)

    def heuristic(self, rules: Ruleset = CLASSIC) -> HeuristicEvaluator:
        return HeuristicEvaluator(weights=self.weights, rules=rules)


# ============================================================================
# Predefined Personalities
# ============================================================================

BALANCED = Personality(
    name="Balanced",
    description="Well-rounded play style, expands while keeping borders safe",
    weights=EvaluationWeights(),
)


AGGRESSIVE = Personality(
    name="Aggressive",
    description="Attacks whenever it can and presses weakened opponents",
    weights=EvaluationWeights(
        territory=1.2,
        strength=0.3,
        attack_potential=0.4,  # Wants stacks ready to strike
        exposure=-0.05,  # Barely cares about counter-attacks
        opponent_penalty=-0.6,  # More weight on hurting opponents
    ),
)


DEFENSIVE = Personality(
    name="Defensive",
    description="Keeps big stacks on the border and avoids risky attacks",
    weights=EvaluationWeights(
        territory=0.8,
        strength=1.0,
        attack_potential=0.05,
        exposure=-0.8,
        opponent_penalty=-0.2,
    ),
)


TERRITORIAL = Personality(
    name="Territorial",
    description="Grabs as many cells as possible",
    weights=EvaluationWeights(
        territory=2.0,
        strength=0.2,
        exposure=-0.1,
    ),
)


# All predefined personalities
PERSONALITIES: dict[str, Personality] = {
    "balanced": BALANCED,
    "aggressive": AGGRESSIVE,
    "defensive": DEFENSIVE,
    "territorial": TERRITORIAL,
}


HeuristicChoice = Union[str, Personality, Callable[[Board, Player], float]]


def get_personality(name: str) -> Personality:
    try:
        return PERSONALITIES[name.lower()]
    except KeyError:
        raise InvalidOption(
            f"Unknown personality '{name}'. Known: {', '.join(PERSONALITIES)}"
        ) from None


def get_heuristic(
    choice: HeuristicChoice,
    rules: Ruleset = CLASSIC,
) -> Callable[[Board, Player], float]:
    """
    Resolve a heuristic selection.

    Accepts a personality name, a Personality, or any
    score(board, player) -> float callable (returned unchanged). Named
    personalities judge attack chances under the given rules.
    """
    if isinstance(choice, str):
        return get_personality(choice).heuristic(rules)
    if isinstance(choice, Personality):
        return choice.heuristic(rules)
    if callable(choice):
        return choice
    raise InvalidOption(f"Cannot use {choice!r} as a heuristic")
