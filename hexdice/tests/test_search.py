"""
Tests for expectimax evaluation and move selection.

Tests:
- Scores agree with an independent brute-force expectimax
- Tie-breaking (nearer ends first, then move order) and determinism
- Leaf roots and error cases
- End-to-end move selection
"""

import pytest

from ..engine_core.combat import FREE_CAPTURE, attacker_win_probability
from ..engine_core.move import Move, PASS
from ..engine_core.move_generator import MoveGenerator
from ..engine_core.reducer import Reducer
from ..engine_core.state import Board
from ..errors import InvalidPlayer, InvalidState, ResourceExhausted
from ..grid import GraphGrid
from ..players import TurnOrder
from ..search import (
    Branch,
    ChanceNode,
    DecisionNode,
    LeafNode,
    LeafReason,
    ExpectimaxEvaluator,
    SearchConfig,
    TranspositionCache,
    TreeBuilder,
    count_nodes,
    search,
    select_best_move,
)
from ..search.expectimax import best_child


def territory(board, player):
    return len(board.cells_of(player)) / len(board)


def brute_force(board, player, depth, heuristic, order):
    """Plain recursive expectimax straight off the reducer."""
    generator = MoveGenerator()
    reducer = Reducer()
    alive = order.alive(board)
    finished = len(alive) <= 1 or not any(generator.has_attack(board, p) for p in alive)
    if finished or depth == 0:
        return {p: heuristic(board, p) for p in order.players}

    best = None
    for move in generator.generate(board, player):
        vector = {p: 0.0 for p in order.players}
        for outcome in reducer.outcomes(board, move):
            mover = player if move.is_attack else order.next_player(player, outcome.board)
            child = brute_force(outcome.board, mover, depth - 1, heuristic, order)
            for p in order.players:
                vector[p] += outcome.probability * child[p]
        if best is None or vector[player] > best[player]:
            best = vector
    return best


class TestExpectimax:
    @pytest.mark.parametrize("depth", [1, 2])
    def test_matches_brute_force(self, line_board, depth):
        order = TurnOrder.from_board(line_board)
        root = TreeBuilder().build(line_board, "red", depth)
        evaluation = ExpectimaxEvaluator(territory, players=order.players).evaluate(root)

        expected = brute_force(line_board, "red", depth, territory, order)
        assert evaluation.score == pytest.approx(expected["red"])

    def test_matches_brute_force_contested(self, duel_board):
        order = TurnOrder.from_board(duel_board)
        root = TreeBuilder().build(duel_board, "red", 2)
        evaluation = ExpectimaxEvaluator(territory, players=order.players).evaluate(root)

        expected = brute_force(duel_board, "red", 2, territory, order)
        assert evaluation.score == pytest.approx(expected["red"])

    def test_ties_go_to_first_move(self, line_board):
        root = TreeBuilder().build(line_board, "red", 2)
        evaluation = ExpectimaxEvaluator(lambda board, player: 0.0).evaluate(root)

        assert evaluation.best_move == Move.attack("A", "B")
        assert [m for m, _ in evaluation.move_scores] == root.moves

    def test_equal_values_prefer_the_nearer_end(self, line_board):
        """A later move that settles the game in one move beats one that takes two."""
        def leaf():
            return LeafNode(board=line_board, player="red", reason=LeafReason.WON)

        def chance(move, node):
            branch = Branch(loss=FREE_CAPTURE, probability=1.0, node=node)
            return ChanceNode(board=line_board, player="red", move=move, branches=(branch,))

        detour = DecisionNode(
            board=line_board, player="red", depth=1, children=(chance(PASS, leaf()),)
        )
        slow = chance(Move.attack("A", "B"), detour)
        quick = chance(PASS, leaf())
        root = DecisionNode(board=line_board, player="red", depth=2, children=(slow, quick))

        evaluation = ExpectimaxEvaluator(lambda board, player: 1.0).evaluate(root)

        assert evaluation.best_move == PASS
        assert [m for m, _ in evaluation.move_scores] == [PASS, Move.attack("A", "B")]
        assert evaluation.scores.distance(slow) == pytest.approx(2.0)
        assert evaluation.distance == pytest.approx(1.0)
        assert best_child(root, evaluation.scores) is quick

    def test_move_scores_sorted(self, duel_board):
        root = TreeBuilder().build(duel_board, "red", 2)
        evaluation = ExpectimaxEvaluator(territory).evaluate(root)
        scores = [s for _, s in evaluation.move_scores]

        assert scores == sorted(scores, reverse=True)
        assert evaluation.move_scores[0] == (evaluation.best_move, evaluation.score)

    def test_every_node_scored_once(self, transposition_board):
        root = TreeBuilder().build(transposition_board, "red", 3)
        evaluation = ExpectimaxEvaluator(territory).evaluate(root)

        assert len(evaluation.scores) == count_nodes(root)

    def test_best_child(self, line_board):
        root = TreeBuilder().build(line_board, "red", 2)
        evaluation = ExpectimaxEvaluator(territory).evaluate(root)

        assert best_child(root, evaluation.scores).move == evaluation.best_move

    def test_opponent_maximises_own_component(self, line_board):
        """At blue's decision node the choice follows blue's score."""
        root = TreeBuilder().build(line_board, "blue", 1)
        evaluation = ExpectimaxEvaluator(territory).evaluate(root)

        assert isinstance(root, DecisionNode)
        assert evaluation.best_move == Move.attack("C", "B")

    def test_leaf_root_passes(self):
        board = Board.from_holdings({"A": ("red", 3), "B": None}, GraphGrid.line("A", "B"))
        root = TreeBuilder().build(board, "red", 2)
        evaluation = ExpectimaxEvaluator(territory).evaluate(root)

        assert evaluation.best_move == PASS
        assert evaluation.score == pytest.approx(0.5)


class TestSearch:
    def test_end_to_end(self, line_board):
        """Red takes the empty cell in front of it."""
        assert attacker_win_probability(3, 1) > 0.8
        assert select_best_move(line_board, "red", SearchConfig(search_depth=2)) == Move.attack("A", "B")

    def test_deterministic(self, duel_board):
        config = SearchConfig(search_depth=3)
        first = search(duel_board, "red", config)
        second = search(duel_board, "red", config)

        assert first.move == second.move
        assert first.move_scores == second.move_scores

    def test_every_personality_returns_a_legal_move(self, hex_board):
        from ..engine_core.move_generator import enumerate_moves

        legal = enumerate_moves(hex_board, "red")
        for name in ["balanced", "aggressive", "defensive", "territorial"]:
            move = select_best_move(hex_board, "red", SearchConfig(search_depth=1, heuristic=name))
            assert move in legal

    def test_custom_heuristic(self, line_board):
        config = SearchConfig(search_depth=1, heuristic=territory)
        result = search(line_board, "red", config)
        assert result.move == Move.attack("A", "B")

    def test_shared_cache(self, line_board):
        cache = TranspositionCache()
        search(line_board, "red", SearchConfig(search_depth=2), cache=cache)
        result = search(line_board, "red", SearchConfig(search_depth=2), cache=cache)

        assert result.stats.hits == 1

    def test_result_to_dict(self, line_board):
        data = search(line_board, "red").to_dict()

        assert data["move"] == str(Move.attack("A", "B"))
        assert "nodes" in data["stats"]

    def test_invalid_player(self, line_board):
        with pytest.raises(InvalidPlayer):
            select_best_move(line_board, "green")

    def test_not_a_board(self):
        with pytest.raises(InvalidState):
            select_best_move({"A": ("red", 3)}, "red")

    def test_node_cap(self, duel_board):
        with pytest.raises(ResourceExhausted):
            search(duel_board, "red", SearchConfig(search_depth=3, max_nodes=5))

    def test_unknown_heuristic(self, line_board):
        with pytest.raises(ValueError):
            search(line_board, "red", SearchConfig(heuristic="reckless"))

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            SearchConfig(search_depth=0)
        with pytest.raises(ValueError):
            SearchConfig(workers=0)
