"""
FastAPI Application - REST API for front-ends.

Endpoints:
    GET    /api/v1/health               Health check
    GET    /api/v1/personalities        Available bot personalities
    GET    /api/v1/rulesets             Named rule presets
    POST   /api/v1/combat               Odds of an attack
    POST   /api/v1/moves                Legal moves for a player
    POST   /api/v1/apply                Apply a move with a chosen outcome
    POST   /api/v1/best-move            Expectimax move selection
    POST   /api/v1/sessions             Create game session
    GET    /api/v1/sessions             List active sessions
    GET    /api/v1/sessions/{id}        Get session status
    POST   /api/v1/sessions/{id}/step   Play one move (bot or supplied)
    DELETE /api/v1/sessions/{id}        End session

All responses are JSON with explicit Pydantic schemas. Engine failures are
returned as ErrorResponse with a machine-readable error_code.
"""

from typing import Annotated, Optional, Union
import logging
import os

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..errors import EngineError, ResourceExhausted
from .service import APIService
from .schemas import (
    # Request models
    ApplyMoveRequest,
    BestMoveRequest,
    CombatRequest,
    CreateSessionRequest,
    MovesRequest,
    StepRequest,
    # Response models
    ApplyMoveResponse,
    BestMoveResponse,
    CombatResponse,
    EndSessionResponse,
    ErrorResponse,
    HealthResponse,
    MovesResponse,
    PersonalitiesResponse,
    RulesetsResponse,
    SessionListResponse,
    SessionResponse,
    StepResponse,
    # Enums
    ErrorCode,
)

logger = logging.getLogger(__name__)

# Environment configuration
HEXDICE_ENV = os.getenv("HEXDICE_ENV", "development")
HEXDICE_DEFAULT_DEPTH = int(os.getenv("HEXDICE_DEFAULT_DEPTH", "2"))
HEXDICE_CACHE_ENTRIES = int(os.getenv("HEXDICE_CACHE_ENTRIES", "100000"))
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")


def create_app(service: Optional[APIService] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    app = FastAPI(
        title="Hexdice Engine API",
        description="""
Decision engine for hexagonal dice-strategy games.

## Error Codes

| Code | Description |
|------|-------------|
| `INVALID_STATE` | Malformed board or ruleset |
| `INVALID_PLAYER` | Player absent from or eliminated on the board |
| `INVALID_MOVE` | Illegal move or impossible outcome |
| `INVALID_COORDINATE` | Cube coordinate does not sum to zero |
| `RESOURCE_EXHAUSTED` | Search exceeded `max_nodes` |
| `SESSION_NOT_FOUND` | Session does not exist |
| `INVALID_OPTION` | Unknown ruleset, personality or seat, or a bad search option |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or APIService(
        default_depth=HEXDICE_DEFAULT_DEPTH,
        cache_entries=HEXDICE_CACHE_ENTRIES,
    )

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    @app.exception_handler(EngineError)
    async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
        try:
            error_code = ErrorCode(exc.code)
        except ValueError:
            error_code = ErrorCode.INTERNAL_ERROR
        details = {"problems": exc.errors}
        status_code = 400
        if isinstance(exc, ResourceExhausted):
            details["limit"] = exc.limit
            status_code = 422
        logger.info(f"{request.url.path}: {error_code.value} {exc.message}")
        return make_error_response(error_code, exc.message, status_code, details)

    # =========================================================================
    # Engine Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/combat",
        response_model=CombatResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Engine"],
        summary="Outcome distribution of an attack",
    )
    async def combat(body: CombatRequest) -> CombatResponse:
        """
        Exact probabilities of every (attacker lost, defender lost) outcome.

        With `single_exchange=true` only one roll-off is resolved.
        """
        return api_service.resolve_combat(body)

    @app.post(
        "/api/v1/moves",
        response_model=MovesResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Engine"],
        summary="Legal moves for a player",
    )
    async def moves(body: MovesRequest) -> MovesResponse:
        """Attacks in stable order, pass last."""
        return api_service.enumerate_moves(body)

    @app.post(
        "/api/v1/apply",
        response_model=ApplyMoveResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Engine"],
        summary="Apply a move with a chosen outcome",
    )
    async def apply(body: ApplyMoveRequest) -> ApplyMoveResponse:
        return api_service.apply_move(body)

    @app.post(
        "/api/v1/best-move",
        response_model=BestMoveResponse,
        responses={
            400: {"model": ErrorResponse},
            422: {"model": ErrorResponse, "description": "Node cap exceeded"},
        },
        tags=["Engine"],
        summary="Select the best move for a player",
    )
    def best_move(body: BestMoveRequest) -> BestMoveResponse:
        """
        Expectimax search. Runs in the threadpool since it is CPU-bound.
        """
        return api_service.best_move(body)

    @app.get(
        "/api/v1/personalities",
        response_model=PersonalitiesResponse,
        tags=["Engine"],
        summary="Available heuristics",
    )
    async def personalities() -> PersonalitiesResponse:
        return api_service.personalities()

    @app.get(
        "/api/v1/rulesets",
        response_model=RulesetsResponse,
        tags=["Engine"],
        summary="Named rule presets",
    )
    async def rulesets() -> RulesetsResponse:
        return api_service.rulesets()

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=SessionResponse,
        responses={400: {"model": ErrorResponse, "description": "Invalid board or seats"}},
        tags=["Sessions"],
        summary="Create a new game session",
    )
    def create_session(body: CreateSessionRequest) -> SessionResponse:
        """
        Create a new game session.

        Supply a `board`, or let one be generated from `columns`, `rows` and
        `players`. Seats default to the balanced expectimax bot.
        """
        return api_service.create_session(body)

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List active sessions",
    )
    async def list_sessions() -> SessionListResponse:
        """List all active session IDs."""
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=SessionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Get session status",
    )
    async def get_session(session_id: str) -> Union[SessionResponse, JSONResponse]:
        """Get the current status of a game session."""
        response = api_service.get_session(session_id)
        if isinstance(response, ErrorResponse):
            return make_error_response(response.error_code, response.error, status_code=404)
        return response

    @app.post(
        "/api/v1/sessions/{session_id}/step",
        response_model=StepResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Illegal move"},
            404: {"model": ErrorResponse, "description": "Session not found"},
        },
        tags=["Sessions"],
        summary="Play one move",
    )
    def step_session(
        session_id: str,
        body: Optional[StepRequest] = None,
    ) -> Union[StepResponse, JSONResponse]:
        """
        Play one move. Without a `move` the seat's bot chooses; human seats
        must supply one.
        """
        response = api_service.step_session(session_id, body or StepRequest())
        if isinstance(response, ErrorResponse):
            return make_error_response(response.error_code, response.error, status_code=404)
        return response

    @app.delete(
        "/api/v1/sessions/{session_id}",
        response_model=EndSessionResponse,
        tags=["Sessions"],
        summary="End a game session",
    )
    async def end_session(
        session_id: str,
        reason: Annotated[str, Query(description="Reason for ending")] = "user_ended",
    ) -> EndSessionResponse:
        """End a game session and release resources."""
        success = api_service.end_session(session_id, reason)
        return EndSessionResponse(success=success, session_id=session_id)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="hexdice-engine",
            version=__version__,
            environment=HEXDICE_ENV,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Hexdice Engine API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/api/v1/health",
        }

    logger.info(f"Hexdice API created ({HEXDICE_ENV}, default depth {HEXDICE_DEFAULT_DEPTH})")
    return app


# For running directly: uvicorn hexdice.api.app:app
app = create_app()
