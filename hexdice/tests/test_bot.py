"""
Tests for bot move selection and heuristics.

Tests:
- Bots select legal moves
- Personality affects weights
- Heuristic evaluator features and game-end bonuses
- The expectimax bot reuses its cache across turns
"""

import pytest

from ..bots import (
    BotPolicy,
    ExpectimaxBot,
    FirstLegalPolicy,
    HeuristicEvaluator,
    EvaluationWeights,
    RandomPolicy,
)
from ..bots.personality import (
    AGGRESSIVE,
    BALANCED,
    DEFENSIVE,
    PERSONALITIES,
    get_heuristic,
    get_personality,
)
from ..engine_core.combat import FREE_CAPTURE
from ..engine_core.move import Move, PASS
from ..engine_core.move_generator import enumerate_moves
from ..engine_core.reducer import apply_move
from ..engine_core.rules import get_ruleset
from ..engine_core.state import Board
from ..grid import GraphGrid
from ..search import SearchConfig


class TestBotMoveLegality:
    """Tests that bots only select legal moves."""

    def test_random_bot_selects_legal(self, hex_board):
        bot = RandomPolicy(seed=42)
        legal = enumerate_moves(hex_board, "red")

        for _ in range(10):
            decision = bot.select_move(hex_board, "red", legal)
            assert decision.move in legal

    def test_random_bot_is_seeded(self, hex_board):
        legal = enumerate_moves(hex_board, "red")
        first = [RandomPolicy(seed=3).select_move(hex_board, "red", legal).move for _ in range(3)]
        second = [RandomPolicy(seed=3).select_move(hex_board, "red", legal).move for _ in range(3)]
        assert first == second

    def test_first_legal_attacks(self, line_board):
        decision = FirstLegalPolicy().select_move(line_board, "red", enumerate_moves(line_board, "red"))
        assert decision.move == Move.attack("A", "B")

    def test_no_moves(self, line_board):
        with pytest.raises(ValueError):
            RandomPolicy().select_move(line_board, "red", [])
        with pytest.raises(ValueError):
            ExpectimaxBot().select_move(line_board, "red", [])

    def test_expectimax_bot(self, line_board):
        bot = ExpectimaxBot(config=SearchConfig(search_depth=2))
        decision = bot.select_move(line_board, "red", enumerate_moves(line_board, "red"))

        assert isinstance(bot, BotPolicy)
        assert decision.move == Move.attack("A", "B")
        assert decision.evaluated_moves == 2
        assert "stats" in decision.evaluation_details
        assert "Balanced" in decision.explanation

    def test_expectimax_bot_respects_narrow_list(self, line_board):
        bot = ExpectimaxBot()
        decision = bot.select_move(line_board, "red", [PASS])
        assert decision.move == PASS

    def test_bot_name(self):
        assert ExpectimaxBot(personality="aggressive").get_name() == "Expectimax(Aggressive)"
        assert RandomPolicy().get_name() == "RandomPolicy"


class TestCacheAcrossTurns:
    def test_next_turn_extends_previous_search(self, line_board):
        bot = ExpectimaxBot(config=SearchConfig(search_depth=2))
        bot.select_move(line_board, "red", enumerate_moves(line_board, "red"))
        assert len(bot.cache) > 0

        board = apply_move(line_board, Move.attack("A", "B"), FREE_CAPTURE)
        bot.select_move(board, "red", enumerate_moves(board, "red"))

        assert bot.last_result.stats.extensions >= 1
        assert bot.cache.stats()["extensions"] >= 1


class TestPersonalities:
    def test_predefined_personalities(self):
        assert set(PERSONALITIES) == {"balanced", "aggressive", "defensive", "territorial"}

    def test_lookup_is_case_insensitive(self):
        assert get_personality("Aggressive") is AGGRESSIVE

    def test_unknown_personality(self):
        with pytest.raises(ValueError):
            get_personality("reckless")

    def test_personality_affects_weights(self):
        assert AGGRESSIVE.weights.attack_potential > BALANCED.weights.attack_potential
        assert DEFENSIVE.weights.exposure < BALANCED.weights.exposure

    def test_get_heuristic(self, line_board):
        def custom(board, player):
            return 1.0

        assert get_heuristic(custom) is custom
        assert get_heuristic("balanced")(line_board, "red") == get_heuristic(BALANCED)(line_board, "red")
        with pytest.raises(ValueError):
            get_heuristic(42)

    def test_heuristic_follows_the_ruleset(self):
        superiority = get_ruleset("superiority")
        board = Board.from_holdings(
            {"A": ("red", 3), "B": ("blue", 3)}, GraphGrid.line("A", "B")
        )
        classic = get_heuristic("balanced")
        strict = get_heuristic("balanced", rules=superiority)

        assert strict.rules is superiority
        assert BALANCED.heuristic(superiority).rules is superiority
        # Under superiority neither equal stack can attack
        red_classic = classic.evaluate(board, "red").player_scores["red"]
        red_strict = strict.evaluate(board, "red").player_scores["red"]
        assert red_classic - red_strict == pytest.approx(BALANCED.weights.attack_potential)


class TestHeuristicEvaluator:
    def test_symmetric_board_is_even(self):
        board = Board.from_holdings(
            {"A": ("red", 2), "B": ("blue", 2)}, GraphGrid.line("A", "B")
        )
        heuristic = HeuristicEvaluator()
        assert heuristic(board, "red") == pytest.approx(heuristic(board, "blue"))

    def test_more_territory_scores_higher(self, line_board):
        heuristic = HeuristicEvaluator()
        after = apply_move(line_board, Move.attack("A", "B"))
        assert heuristic(after, "red") > heuristic(line_board, "red")

    def test_winner_bonus(self):
        board = Board.from_holdings({"A": ("red", 2), "B": None}, GraphGrid.line("A", "B"))
        heuristic = HeuristicEvaluator()

        assert heuristic(board, "red") > 999
        assert heuristic(board, "blue") < -999

    def test_feature_breakdown(self, line_board):
        evaluation = HeuristicEvaluator().evaluate(line_board, "red")

        assert set(evaluation.player_scores) == {"red", "blue"}
        assert "avg_opponent" in evaluation.feature_breakdown
        assert evaluation.total_score == evaluation.feature_breakdown["relative_score"]

    def test_exposure(self):
        """A small stack next to a big enemy stack is penalised."""
        weights = EvaluationWeights(territory=0, strength=0, attack_potential=0, exposure=-1, opponent_penalty=0)
        heuristic = HeuristicEvaluator(weights)
        board = Board.from_holdings(
            {"A": ("red", 1), "B": ("blue", 4)}, GraphGrid.line("A", "B")
        )

        assert heuristic(board, "red") == pytest.approx(-1.0)
        assert heuristic(board, "blue") == pytest.approx(0.0)
