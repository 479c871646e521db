"""
API Module - Front-end interface.

Exposes the engine via REST API. A front-end can:
1. Ask for the odds of an attack
2. List legal moves and apply them with a chosen outcome
3. Ask for the best move on any board
4. Create game sessions and play them step by step against bots

All state is session-scoped. No persistent user accounts required.
"""

from .schemas import (
    # Requests
    CombatRequest,
    MovesRequest,
    ApplyMoveRequest,
    BestMoveRequest,
    CreateSessionRequest,
    StepRequest,
    # Responses
    CombatResponse,
    MovesResponse,
    ApplyMoveResponse,
    BestMoveResponse,
    SessionResponse,
    StepResponse,
    ErrorResponse,
    # Shared
    BoardModel,
    CellModel,
    MoveModel,
    OutcomeInfo,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CombatRequest",
    "MovesRequest",
    "ApplyMoveRequest",
    "BestMoveRequest",
    "CreateSessionRequest",
    "StepRequest",
    # Responses
    "CombatResponse",
    "MovesResponse",
    "ApplyMoveResponse",
    "BestMoveResponse",
    "SessionResponse",
    "StepResponse",
    "ErrorResponse",
    # Shared
    "BoardModel",
    "CellModel",
    "MoveModel",
    "OutcomeInfo",
    # Service
    "APIService",
    "create_app",
]
