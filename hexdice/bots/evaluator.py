"""
Heuristic Evaluator - Scores boards for search leaves.

The evaluator assigns a numeric score to a board from one player's point of
view, based on:
- Position features (territory share, dice share)
- Opportunity features (stacks able to attack)
- Threat features (own stacks outgunned by an adjacent enemy)
- Opponent strength (average of the opponents' own scores)
- Game end (win/loss bonus)

Weights can be adjusted to create different personalities. An evaluator is a
score(board, player) -> float callable, which is all the search needs.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from ..engine_core.move_generator import MoveGenerator
from ..engine_core.rules import Ruleset, CLASSIC
from ..engine_core.state import Board, Player


@dataclass
class EvaluationWeights:
    """
    Weights for the heuristic evaluator.

    Higher values = more importance. Shares are in [0, 1], so weights of
    similar size contribute comparably.
    """
    # Position
    territory: float = 1.0  # Share of all cells owned
    strength: float = 0.5  # Share of all dice on the board

    # Opportunity and threat
    attack_potential: float = 0.1  # Share of own cells able to attack
    exposure: float = -0.2  # Share of own cells next to a bigger enemy stack

    # Opponents
    opponent_penalty: float = -0.3  # Multiply the average opponent score by this

    # Game end
    win_bonus: float = 1000.0


@dataclass
class StateEvaluation:
    """Result of evaluating a board."""
    total_score: float
    player_scores: dict[Player, float] = field(default_factory=dict)
    feature_breakdown: dict[str, float] = field(default_factory=dict)


class HeuristicEvaluator:
    """
    Evaluates boards using weighted heuristics.

    Usage:
        heuristic = HeuristicEvaluator(EvaluationWeights(territory=2.0))
        heuristic(board, "red")
    """

    def __init__(self, weights: EvaluationWeights | None = None, rules: Ruleset = CLASSIC):
        self.weights = weights or EvaluationWeights()
        self.rules = rules
        self._generator = MoveGenerator(rules=rules)

    def __call__(self, board: Board, player: Player) -> float:
        return self.score(board, player)

    def score(self, board: Board, player: Player) -> float:
        return self.evaluate(board, player).total_score

    def evaluate(self, board: Board, player: Player) -> StateEvaluation:
        """
        Evaluate a board from a player's perspective.

        Returns a higher score the better the board is for the player. An
        eliminated player scores -win_bonus; the last player standing scores
        +win_bonus on top of its position.
        """
        owners = board.players()
        player_scores = {p: self._evaluate_player(p, board) for p in owners}

        my_score = player_scores.get(player, 0.0)
        opponent_scores = [s for p, s in player_scores.items() if p != player]

        features = {"own_score": my_score}
        if opponent_scores:
            avg_opponent = sum(opponent_scores) / len(opponent_scores)
            features["avg_opponent"] = avg_opponent
            relative_score = my_score + self.weights.opponent_penalty * avg_opponent
        else:
            relative_score = my_score

        if player not in owners:
            relative_score -= self.weights.win_bonus
        elif not opponent_scores:
            relative_score += self.weights.win_bonus

        features["relative_score"] = relative_score
        return StateEvaluation(
            total_score=relative_score,
            player_scores=player_scores,
            feature_breakdown=features,
        )

    def _evaluate_player(self, player: Player, board: Board) -> float:
        """A player's own position, ignoring the opponents."""
        own = board.cells_of(player)
        if not own:
            return 0.0

        territory = len(own) / len(board)
        total_dice = board.total_dice()
        strength = board.dice_of(player) / total_dice if total_dice else 0.0

        attackers = 0
        exposed = 0
        for cell in own:
            enemies = [n for n in board.neighbors(cell.coordinate) if n.owner != player]
            if self._generator.targets(board, cell, include_immobile=True):
                attackers += 1
            if any(n.is_owned and n.dice > cell.dice for n in enemies):
                exposed += 1

        return (
            territory * self.weights.territory
            + strength * self.weights.strength
            + attackers / len(own) * self.weights.attack_potential
            + exposed / len(own) * self.weights.exposure
        )
