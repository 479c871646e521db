"""
Tests for API layer.

Tests:
- API service methods
- HTTP endpoints through the FastAPI test client
- Engine errors mapped to error codes
- Session lifecycle via API
"""

import pytest
from fastapi.testclient import TestClient

from ..api.app import create_app
from ..api.schemas import (
    ApplyMoveRequest,
    BestMoveRequest,
    BoardModel,
    CombatRequest,
    CreateSessionRequest,
    ErrorCode,
    ErrorResponse,
    MoveKindName,
    MoveModel,
    MovesRequest,
    SessionStatus,
    StepRequest,
)
from ..api.service import APIService, board_from_model, board_to_model
from ..errors import InvalidCoordinate, InvalidMove, InvalidState
from ..grid import Cube, HexGrid


def line_board_json():
    return {
        "grid": "graph",
        "cells": [
            {"coordinate": "A", "owner": "red", "dice": 3},
            {"coordinate": "B"},
            {"coordinate": "C", "owner": "blue", "dice": 3},
        ],
        "edges": {"A": ["B"], "B": ["C"]},
    }


def duel_board_json():
    return {
        "grid": "graph",
        "cells": [
            {"coordinate": "A", "owner": "red", "dice": 4},
            {"coordinate": "B", "owner": "blue", "dice": 2},
            {"coordinate": "C", "owner": "blue", "dice": 3},
        ],
        "edges": {"A": ["B"], "B": ["C"]},
    }


def hex_board_json():
    return {
        "grid": "hex",
        "cells": [
            {"coordinate": [0, 0, 0], "owner": "red", "dice": 3},
            {"coordinate": [1, -1, 0], "owner": "blue", "dice": 2},
            {"coordinate": [0, -1, 1]},
        ],
    }


class TestBoardConversion:
    def test_graph_round_trip(self):
        model = BoardModel.model_validate(line_board_json())
        board = board_from_model(model)

        assert board["A"].dice == 3
        assert board["B"].owner is None
        assert board.grid.neighbors("B") == frozenset({"A", "C"})
        assert board_from_model(board_to_model(board)) == board

    def test_hex_board(self):
        board = board_from_model(BoardModel.model_validate(hex_board_json()))

        assert isinstance(board.grid, HexGrid)
        assert Cube(1, -1, 0) in board.grid.neighbors(Cube(0, 0, 0))
        assert board_to_model(board).cells[0].coordinate == [0, -1, 1]

    def test_bad_cube(self):
        data = hex_board_json()
        data["cells"][0]["coordinate"] = [1, 1, 1]
        with pytest.raises(InvalidCoordinate):
            board_from_model(BoardModel.model_validate(data))

    def test_malformed_board(self):
        data = line_board_json()
        data["cells"][0]["dice"] = 0
        data["cells"][1]["dice"] = 2
        with pytest.raises(InvalidState) as exc_info:
            board_from_model(BoardModel.model_validate(data))
        assert len(exc_info.value.errors) == 2


class TestAPIService:
    """Tests for APIService."""

    @pytest.fixture
    def service(self):
        """Create a fresh API service."""
        return APIService()

    def test_resolve_combat(self, service):
        response = service.resolve_combat(CombatRequest(attacker_dice=3, defender_dice=1))

        assert response.attacker_win_probability == pytest.approx(0.9164, abs=1e-4)
        assert sum(o.probability for o in response.outcomes) == pytest.approx(1.0)
        assert response.ruleset == "classic"

    def test_single_exchange(self, service):
        response = service.resolve_combat(
            CombatRequest(attacker_dice=3, defender_dice=2, single_exchange=True)
        )

        assert len(response.outcomes) == 3
        assert response.attacker_win_probability == pytest.approx(2890 / 7776)

    def test_enumerate_moves(self, service):
        response = service.enumerate_moves(
            MovesRequest(board=BoardModel.model_validate(line_board_json()), player="red")
        )

        assert response.count == 2
        assert response.moves[0].kind is MoveKindName.ATTACK
        assert (response.moves[0].source, response.moves[0].target) == ("A", "B")
        assert response.moves[1].kind is MoveKindName.PASS

    def test_apply_free_capture(self, service):
        response = service.apply_move(ApplyMoveRequest(
            board=BoardModel.model_validate(line_board_json()),
            move=MoveModel(kind=MoveKindName.ATTACK, source="A", target="B"),
        ))

        cells = {c.coordinate: c for c in response.board.cells}
        assert cells["B"].owner == "red"
        assert cells["B"].dice == 2
        assert response.outcome.captured
        assert response.outcome.probability == 1.0

    def test_apply_needs_outcome(self, service):
        with pytest.raises(InvalidMove):
            service.apply_move(ApplyMoveRequest(
                board=BoardModel.model_validate(duel_board_json()),
                move=MoveModel(kind=MoveKindName.ATTACK, source="A", target="B"),
            ))

    def test_attack_needs_endpoints(self, service):
        with pytest.raises(InvalidMove):
            service.apply_move(ApplyMoveRequest(
                board=BoardModel.model_validate(line_board_json()),
                move=MoveModel(kind=MoveKindName.ATTACK, source="A"),
            ))

    def test_best_move(self, service):
        response = service.best_move(BestMoveRequest(
            board=BoardModel.model_validate(line_board_json()), player="red", search_depth=2,
        ))

        assert (response.move.source, response.move.target) == ("A", "B")
        assert response.stats.nodes > 0
        assert len(response.move_scores) == 2

    def test_personalities_and_rulesets(self, service):
        keys = {p.key for p in service.personalities().personalities}
        names = {r.name for r in service.rulesets().rulesets}

        assert "balanced" in keys
        assert {"classic", "skirmish"} <= names

    def test_session_lifecycle(self, service):
        created = service.create_session(CreateSessionRequest(
            board=BoardModel.model_validate(line_board_json()),
            seats={"red": "first", "blue": "human"},
            random_seed=1,
        ))
        assert created.status is SessionStatus.YOUR_TURN
        assert created.to_move == "blue"

        # Human seat: a move is required
        step = service.step_session(created.session_id, StepRequest())
        assert not step.success

        step = service.step_session(created.session_id, StepRequest(
            move=MoveModel(kind=MoveKindName.ATTACK, source="C", target="B"),
        ))
        assert step.success
        assert step.turn.player == "blue"

        assert created.session_id in service.list_sessions()
        assert service.end_session(created.session_id)
        assert isinstance(service.get_session(created.session_id), ErrorResponse)

    def test_get_nonexistent_session(self, service):
        response = service.get_session("nonexistent-id")

        assert hasattr(response, "error")
        assert response.error_code == ErrorCode.SESSION_NOT_FOUND


class TestHTTPEndpoints:
    @pytest.fixture
    def client(self):
        return TestClient(create_app(APIService()))

    def test_health(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client):
        assert client.get("/").json()["health"] == "/api/v1/health"

    def test_combat(self, client):
        response = client.post("/api/v1/combat", json={"attacker_dice": 3, "defender_dice": 1})

        assert response.status_code == 200
        assert response.json()["attacker_win_probability"] == pytest.approx(0.9164, abs=1e-4)

    def test_combat_invalid_forces(self, client):
        response = client.post("/api/v1/combat", json={"attacker_dice": 0, "defender_dice": 2})

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_STATE"

    def test_unknown_ruleset(self, client):
        response = client.post(
            "/api/v1/combat", json={"attacker_dice": 3, "defender_dice": 2, "ruleset": "nope"}
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_OPTION"

    def test_unknown_heuristic(self, client):
        response = client.post("/api/v1/best-move", json={
            "board": line_board_json(), "player": "red", "heuristic": "reckless",
        })

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_OPTION"

    def test_moves(self, client):
        response = client.post("/api/v1/moves", json={"board": line_board_json(), "player": "blue"})

        body = response.json()
        assert response.status_code == 200
        assert body["moves"][0]["source"] == "C"
        assert body["moves"][-1]["kind"] == "pass"

    def test_moves_absent_player(self, client):
        response = client.post("/api/v1/moves", json={"board": line_board_json(), "player": "green"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_PLAYER"

    def test_apply_with_outcome(self, client):
        response = client.post("/api/v1/apply", json={
            "board": duel_board_json(),
            "move": {"kind": "attack", "source": "A", "target": "B"},
            "outcome": {"attacker_lost": 1, "defender_lost": 2},
        })

        body = response.json()
        assert response.status_code == 200
        assert body["outcome"]["captured"] is True
        cells = {c["coordinate"]: c for c in body["board"]["cells"]}
        assert cells["B"] == {"coordinate": "B", "owner": "red", "dice": 2, "mobile": True}

    def test_frozen_stack_round_trip(self, client):
        board = line_board_json()
        board["cells"][0]["mobile"] = False
        moves = client.post("/api/v1/moves", json={"board": board, "player": "red"}).json()

        assert [m["kind"] for m in moves["moves"]] == ["pass"]

        response = client.post("/api/v1/apply", json={"board": board, "move": {"kind": "pass"}})
        cells = {c["coordinate"]: c for c in response.json()["board"]["cells"]}
        assert response.status_code == 200
        assert cells["A"]["mobile"] is True

    def test_apply_impossible_outcome(self, client):
        response = client.post("/api/v1/apply", json={
            "board": duel_board_json(),
            "move": {"kind": "attack", "source": "A", "target": "B"},
            "outcome": {"attacker_lost": 5, "defender_lost": 0},
        })

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_MOVE"

    def test_malformed_board(self, client):
        board = line_board_json()
        board["cells"][0]["dice"] = 9
        response = client.post("/api/v1/moves", json={"board": board, "player": "red"})

        body = response.json()
        assert response.status_code == 400
        assert body["error_code"] == "INVALID_STATE"
        assert body["details"]["problems"]

    def test_bad_cube(self, client):
        board = hex_board_json()
        board["cells"][2]["coordinate"] = [2, 0, 0]
        response = client.post("/api/v1/moves", json={"board": board, "player": "red"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_COORDINATE"

    def test_best_move(self, client):
        response = client.post("/api/v1/best-move", json={
            "board": line_board_json(), "player": "red", "search_depth": 2,
        })

        body = response.json()
        assert response.status_code == 200
        assert body["move"]["kind"] == "attack"
        assert body["move"]["target"] == "B"

    def test_best_move_node_cap(self, client):
        response = client.post("/api/v1/best-move", json={
            "board": duel_board_json(), "player": "red", "search_depth": 3, "max_nodes": 2,
        })

        body = response.json()
        assert response.status_code == 422
        assert body["error_code"] == "RESOURCE_EXHAUSTED"
        assert body["details"]["limit"] == 2

    def test_best_move_request_validation(self, client):
        response = client.post("/api/v1/best-move", json={
            "board": line_board_json(), "player": "red", "search_depth": 0,
        })
        assert response.status_code == 422

    def test_personalities(self, client):
        body = client.get("/api/v1/personalities").json()
        assert {p["key"] for p in body["personalities"]} >= {"balanced", "aggressive"}

    def test_rulesets(self, client):
        body = client.get("/api/v1/rulesets").json()
        classic = next(r for r in body["rulesets"] if r["name"] == "classic")
        assert classic["attacker_dice_cap"] == 3
        hexagon = next(r for r in body["rulesets"] if r["name"] == "hexagon")
        assert hexagon["captors_immobile"] is True

    def test_session_flow(self, client):
        created = client.post("/api/v1/sessions", json={
            "board": line_board_json(),
            "seats": {"red": "first", "blue": "first"},
            "random_seed": 4,
        })
        assert created.status_code == 200
        session_id = created.json()["session_id"]

        step = client.post(f"/api/v1/sessions/{session_id}/step", json={})
        assert step.status_code == 200
        assert step.json()["turn"]["player"] == "blue"

        status = client.get(f"/api/v1/sessions/{session_id}")
        assert status.json()["turn_number"] == 1

        assert session_id in client.get("/api/v1/sessions").json()["sessions"]

        ended = client.delete(f"/api/v1/sessions/{session_id}")
        assert ended.json()["success"] is True

        missing = client.get(f"/api/v1/sessions/{session_id}")
        assert missing.status_code == 404
        assert missing.json()["error_code"] == "SESSION_NOT_FOUND"

    def test_step_illegal_move(self, client):
        created = client.post("/api/v1/sessions", json={
            "board": line_board_json(),
            "seats": {"red": "human", "blue": "human"},
        })
        session_id = created.json()["session_id"]

        response = client.post(f"/api/v1/sessions/{session_id}/step", json={
            "move": {"kind": "attack", "source": "A", "target": "B"},
        })
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_MOVE"

    def test_step_unknown_session(self, client):
        response = client.post("/api/v1/sessions/nope/step", json={})
        assert response.status_code == 404

    def test_unknown_seat(self, client):
        response = client.post("/api/v1/sessions", json={
            "board": line_board_json(), "seats": {"red": "wizard"},
        })
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_OPTION"
