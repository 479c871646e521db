"""
API Service - Business logic layer between API and engine.

The service:
1. Translates wire models to engine objects (boards, moves, rulesets)
2. Calls the engine's boundary operations
3. Manages sessions
4. Formats responses

Engine errors (InvalidState, InvalidPlayer, InvalidMove, InvalidOption, ...)
propagate to the caller; the HTTP layer maps them to ErrorResponse. A missing
session is reported as an ErrorResponse value.

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging

from ..bots import PERSONALITIES
from ..engine_core import (
    Board,
    Cell,
    CombatLoss,
    Move,
    PASS,
    Reducer,
    RULESETS,
    attacker_win_probability,
    enumerate_moves,
    get_ruleset,
    resolve_combat,
    roll_distribution,
)
from ..engine_core.combat import is_capture
from ..engine_core.move import Outcome
from ..errors import InvalidCoordinate, InvalidMove
from ..grid import Cube, GraphGrid, HexGrid
from ..search import SearchConfig, search
from ..session import Session, SessionManager, SessionState, TurnResult
from .schemas import (
    # Requests
    ApplyMoveRequest,
    BestMoveRequest,
    CombatRequest,
    CreateSessionRequest,
    MovesRequest,
    StepRequest,
    # Responses
    ApplyMoveResponse,
    BestMoveResponse,
    CombatResponse,
    ErrorResponse,
    MovesResponse,
    PersonalitiesResponse,
    RulesetsResponse,
    SessionResponse,
    StepResponse,
    # Shared
    BoardModel,
    CellModel,
    MoveModel,
    MoveScore,
    OutcomeInfo,
    PersonalityInfo,
    RulesetInfo,
    SearchStatsInfo,
    TurnInfo,
    # Enums
    ErrorCode,
    GridKind,
    MoveKindName,
    ProgressionName,
    SessionStatus,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Wire conversion
# =============================================================================

def _coordinate_in(value, kind: GridKind):
    if kind is GridKind.HEX:
        if not isinstance(value, list) or len(value) != 3:
            raise InvalidCoordinate(f"Hex coordinates are [x, y, z] triples, got {value!r}")
        return Cube.construct(*value)
    if not isinstance(value, str):
        raise InvalidCoordinate(f"Graph coordinates are names, got {value!r}")
    return value


def _coordinate_out(value):
    if isinstance(value, Cube):
        return list(value)
    return value


def board_from_model(model: BoardModel) -> Board:
    """Build (and validate) an engine Board from its wire form."""
    cells = [
        Cell(_coordinate_in(c.coordinate, model.grid), c.owner, c.dice, c.mobile)
        for c in model.cells
    ]
    if model.grid is GridKind.HEX:
        grid = HexGrid(coordinates=frozenset(c.coordinate for c in cells))
    else:
        grid = GraphGrid.from_edges(model.edges or {})
    return Board(cells, grid)


def grid_kind(board: Board) -> GridKind:
    return GridKind.HEX if isinstance(board.grid, HexGrid) else GridKind.GRAPH


def board_to_model(board: Board) -> BoardModel:
    kind = grid_kind(board)
    edges = None
    if isinstance(board.grid, GraphGrid):
        edges = {str(k): sorted(str(n) for n in v) for k, v in sorted(board.grid.adjacency.items())}
    return BoardModel(
        grid=kind,
        cells=[
            CellModel(
                coordinate=_coordinate_out(c.coordinate),
                owner=c.owner,
                dice=c.dice,
                mobile=c.mobile,
            )
            for c in board
        ],
        edges=edges,
    )


def move_from_model(model: MoveModel, kind: GridKind) -> Move:
    if model.kind is MoveKindName.PASS:
        return PASS
    if model.source is None or model.target is None:
        raise InvalidMove("An attack needs both a source and a target")
    return Move.attack(_coordinate_in(model.source, kind), _coordinate_in(model.target, kind))


def move_to_model(move: Move) -> MoveModel:
    if move.is_pass:
        return MoveModel(kind=MoveKindName.PASS, description=str(move))
    return MoveModel(
        kind=MoveKindName.ATTACK,
        source=_coordinate_out(move.source),
        target=_coordinate_out(move.target),
        description=str(move),
    )


def outcome_to_info(outcome: Outcome) -> OutcomeInfo:
    return OutcomeInfo(
        attacker_lost=outcome.loss.attacker_lost,
        defender_lost=outcome.loss.defender_lost,
        probability=outcome.probability,
        captured=outcome.captured,
        captured_dice=outcome.captured_dice,
    )


# =============================================================================
# Service
# =============================================================================

@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        # Odds before attacking
        response = service.resolve_combat(CombatRequest(attacker_dice=3, defender_dice=2))

        # Best move
        response = service.best_move(BestMoveRequest(board=..., player="red"))

        # Play a game
        session = service.create_session(CreateSessionRequest(random_seed=7))
        service.step_session(session.session_id, StepRequest())
    """
    session_manager: SessionManager = field(default_factory=SessionManager)
    default_depth: int = 2
    cache_entries: int = 100_000

    # ------------------------------------------------------------------
    # Engine operations
    # ------------------------------------------------------------------

    def resolve_combat(self, request: CombatRequest) -> CombatResponse:
        rules = get_ruleset(request.ruleset)
        if request.single_exchange:
            distribution = roll_distribution(request.attacker_dice, request.defender_dice, rules)
        else:
            distribution = resolve_combat(request.attacker_dice, request.defender_dice, rules)

        outcomes = [
            OutcomeInfo(
                attacker_lost=loss.attacker_lost,
                defender_lost=loss.defender_lost,
                probability=probability,
                captured=is_capture(loss, request.defender_dice),
            )
            for loss, probability in distribution.items()
        ]
        if request.single_exchange:
            win = sum(o.probability for o in outcomes if o.captured)
        else:
            win = attacker_win_probability(request.attacker_dice, request.defender_dice, rules)

        return CombatResponse(
            attacker_dice=request.attacker_dice,
            defender_dice=request.defender_dice,
            ruleset=rules.name,
            outcomes=outcomes,
            attacker_win_probability=win,
        )

    def enumerate_moves(self, request: MovesRequest) -> MovesResponse:
        board = board_from_model(request.board)
        moves = enumerate_moves(board, request.player, get_ruleset(request.ruleset))
        return MovesResponse(
            player=request.player,
            moves=[move_to_model(m) for m in moves],
            count=len(moves),
        )

    def apply_move(self, request: ApplyMoveRequest) -> ApplyMoveResponse:
        board = board_from_model(request.board)
        move = move_from_model(request.move, request.board.grid)
        reducer = Reducer(rules=get_ruleset(request.ruleset))

        chosen = None
        if request.outcome is not None:
            chosen = CombatLoss(request.outcome.attacker_lost, request.outcome.defender_lost)
        new_board = reducer.apply(board, move, chosen)

        outcomes = {o.loss: o for o in reducer.outcomes(board, move)}
        loss = chosen if chosen is not None else next(iter(outcomes))
        return ApplyMoveResponse(
            board=board_to_model(new_board),
            move=move_to_model(move),
            outcome=outcome_to_info(outcomes[loss]),
        )

    def best_move(self, request: BestMoveRequest) -> BestMoveResponse:
        board = board_from_model(request.board)
        config = SearchConfig(
            search_depth=request.search_depth or self.default_depth,
            probability_threshold=request.probability_threshold,
            branching_cap=request.branching_cap,
            heuristic=request.heuristic,
            rules=get_ruleset(request.ruleset),
            max_nodes=request.max_nodes,
            cache_entries=self.cache_entries,
        )
        result = search(board, request.player, config)
        stats = result.stats
        return BestMoveResponse(
            player=request.player,
            move=move_to_model(result.move),
            score=result.score,
            move_scores=[MoveScore(move=move_to_model(m), score=s) for m, s in result.move_scores],
            stats=SearchStatsInfo(
                nodes=stats.nodes,
                leaves=stats.leaves,
                pruned=stats.pruned,
                hits=stats.hits,
                misses=stats.misses,
                extensions=stats.extensions,
                efficiency=stats.efficiency,
                elapsed=stats.elapsed,
            ),
        )

    def personalities(self) -> PersonalitiesResponse:
        return PersonalitiesResponse(personalities=[
            PersonalityInfo(
                key=key,
                name=p.name,
                description=p.description,
                weights=dict(vars(p.weights)),
            )
            for key, p in PERSONALITIES.items()
        ])

    def rulesets(self) -> RulesetsResponse:
        return RulesetsResponse(
            rulesets=[RulesetInfo.model_validate(r) for r in RULESETS.values()]
        )

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, request: CreateSessionRequest) -> SessionResponse:
        """
        Create a new game session.
        """
        rules = get_ruleset(request.ruleset)
        config = SearchConfig(
            search_depth=request.search_depth or self.default_depth,
            rules=rules,
            cache_entries=self.cache_entries,
        )
        board = board_from_model(request.board) if request.board else None

        session = self.session_manager.create_session(
            board=board,
            seats=request.seats,
            columns=request.columns,
            rows=request.rows,
            players=tuple(request.players),
            rules=rules,
            config=config,
            seed=request.random_seed,
        )
        return self._session_to_response(session)

    def get_session(self, session_id: str) -> SessionResponse | ErrorResponse:
        """Get session status."""
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._not_found(session_id)
        return self._session_to_response(session)

    def step_session(self, session_id: str, request: StepRequest) -> StepResponse | ErrorResponse:
        """
        Play one move in a session.

        Without a move the seat's bot chooses; human seats must supply one.
        """
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._not_found(session_id)

        move = None
        if request.move is not None:
            move = move_from_model(request.move, grid_kind(session.loop.board))

        result = session.loop.step(move)
        self.session_manager.mark_finished(session)
        return StepResponse(
            session_id=session_id,
            success=result.success,
            turn=self._turn_info(result) if result.success else None,
            errors=result.errors,
            session=self._session_to_response(session),
        )

    def end_session(self, session_id: str, reason: str = "user_ended") -> bool:
        """End a session."""
        return self.session_manager.end_session(session_id, reason) is not None

    def list_sessions(self) -> list[str]:
        """List active sessions."""
        return self.session_manager.list_active_sessions()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _not_found(self, session_id: str) -> ErrorResponse:
        return ErrorResponse(
            error=f"Session {session_id} not found",
            error_code=ErrorCode.SESSION_NOT_FOUND,
        )

    def _session_to_response(self, session: Session) -> SessionResponse:
        loop = session.loop
        if session.state is SessionState.ABANDONED:
            status = SessionStatus.ABANDONED
        elif loop.is_over:
            status = SessionStatus.GAME_OVER
        elif session.is_human_turn():
            status = SessionStatus.YOUR_TURN
        else:
            status = SessionStatus.ACTIVE

        return SessionResponse(
            session_id=session.session_id,
            status=status,
            progression=ProgressionName(loop.progression.value),
            board=board_to_model(loop.board),
            to_move=None if loop.is_over else loop.to_move,
            winner=loop.winner,
            seats=dict(session.seats),
            legal_moves=[] if loop.is_over else [move_to_model(m) for m in loop.legal_moves()],
            turn_number=len(loop.history),
            created_at=session.created_at,
        )

    def _turn_info(self, result: TurnResult) -> TurnInfo:
        outcome = None
        if result.loss is not None:
            outcome = OutcomeInfo(
                attacker_lost=result.loss.attacker_lost,
                defender_lost=result.loss.defender_lost,
                probability=result.probability,
                captured=result.captured,
                captured_dice=result.captured_dice,
            )
        return TurnInfo(
            player=result.player,
            move=move_to_model(result.move) if result.move else None,
            outcome=outcome,
            explanation=result.explanation,
            auto_passes=[str(p) for p in result.auto_passes],
            turn_moves=result.turn_moves,
            turn_captured_dice=result.turn_captured_dice,
            summary=result.describe(),
        )
