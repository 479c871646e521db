"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the exact contract between front-ends and the engine.
All responses include explicit types for OpenAPI schema generation.

Boards travel as a list of cells plus the grid they live on:
- grid "hex": coordinates are cube [x, y, z] triples; adjacency is hexagonal
- grid "graph": coordinates are names; adjacency comes from "edges"

Dice counts are deliberately not range-checked here; the engine rejects
malformed boards itself and reports every problem (INVALID_STATE).

Error Codes:
- INVALID_STATE: Malformed board or ruleset
- INVALID_PLAYER: Player absent from or eliminated on the board
- INVALID_MOVE: Move fails the legality check, or impossible outcome
- INVALID_COORDINATE: Cube coordinate not summing to zero
- RESOURCE_EXHAUSTED: Search exceeded its node cap
- SESSION_NOT_FOUND: Session does not exist or has ended
- INVALID_OPTION: Unknown ruleset, personality or seat kind
"""

from enum import Enum
from typing import Optional, Any, Union
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class GridKind(str, Enum):
    """How cell coordinates are interpreted."""
    HEX = "hex"
    GRAPH = "graph"


class MoveKindName(str, Enum):
    ATTACK = "attack"
    PASS = "pass"


class SessionStatus(str, Enum):
    """Session status values."""
    ACTIVE = "active"
    YOUR_TURN = "your_turn"
    GAME_OVER = "game_over"
    ABANDONED = "abandoned"


class ProgressionName(str, Enum):
    PLAY_ON = "play_on"
    WINNER = "winner"
    STALEMATE = "stalemate"


class ErrorCode(str, Enum):
    """Structured error codes."""
    INVALID_STATE = "INVALID_STATE"
    INVALID_PLAYER = "INVALID_PLAYER"
    INVALID_MOVE = "INVALID_MOVE"
    INVALID_COORDINATE = "INVALID_COORDINATE"
    RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    INVALID_OPTION = "INVALID_OPTION"
    INTERNAL_ERROR = "INTERNAL_ERROR"


Coordinate = Union[list[int], str]


# =============================================================================
# Shared Models
# =============================================================================

class CellModel(BaseModel):
    """One territory."""
    coordinate: Coordinate = Field(..., description="Cube [x, y, z] on hex grids, a name on graph grids")
    owner: Optional[str] = Field(None, description="Owning player; null for an unowned cell")
    dice: Optional[int] = Field(None, description="Dice on an owned cell (1-6)")
    mobile: bool = Field(True, description="False once the stack has captured this turn")


class BoardModel(BaseModel):
    """A board snapshot."""
    grid: GridKind = GridKind.HEX
    cells: list[CellModel] = Field(..., min_length=1)
    edges: Optional[dict[str, list[str]]] = Field(
        None, description="Adjacency for graph grids: {cell: [neighbours]}, symmetrised"
    )


class MoveModel(BaseModel):
    """An attack or a pass."""
    kind: MoveKindName
    source: Optional[Coordinate] = None
    target: Optional[Coordinate] = None
    description: Optional[str] = None


class LossModel(BaseModel):
    """Dice lost by each side in one combat outcome."""
    attacker_lost: int = Field(..., ge=0)
    defender_lost: int = Field(..., ge=0)


class OutcomeInfo(BaseModel):
    """One possible result of a combat, with its probability."""
    attacker_lost: int
    defender_lost: int
    probability: float = Field(..., ge=0.0, le=1.0)
    captured: bool = False
    captured_dice: int = Field(0, description="Defending dice taken with the cell")


class MoveScore(BaseModel):
    move: MoveModel
    score: float


class SearchStatsInfo(BaseModel):
    """Counters from one tree build."""
    nodes: int = 0
    leaves: int = 0
    pruned: int = 0
    hits: int = 0
    misses: int = 0
    extensions: int = 0
    efficiency: float = 0.0
    elapsed: float = 0.0


class RulesetInfo(BaseModel):
    name: str
    die_faces: int
    attacker_dice_cap: int
    defender_dice_cap: int
    ties_favor_defender: bool
    max_stack: int
    min_attack_dice: int
    leave_behind: int
    max_rounds: Optional[int] = None
    require_superiority: bool = False
    attack_ends_turn: bool = False
    captors_immobile: bool = False

    model_config = {"from_attributes": True}


class PersonalityInfo(BaseModel):
    key: str
    name: str
    description: str = ""
    weights: dict[str, float] = Field(default_factory=dict)


class TurnInfo(BaseModel):
    """One played move and its rolled outcome."""
    player: Optional[str] = None
    move: Optional[MoveModel] = None
    outcome: Optional[OutcomeInfo] = None
    explanation: str = ""
    auto_passes: list[str] = Field(default_factory=list)
    turn_moves: int = Field(0, description="Moves the player has made this turn")
    turn_captured_dice: int = Field(0, description="Dice the player has captured this turn")
    summary: str = ""


# =============================================================================
# Request Models
# =============================================================================

class CombatRequest(BaseModel):
    """Odds of an attack before committing to it."""
    attacker_dice: int = Field(..., description="Dice committed by the attacker")
    defender_dice: int = Field(..., description="Dice on the defending cell")
    ruleset: str = Field("classic", description="Named rule preset")
    single_exchange: bool = Field(False, description="Only one roll-off instead of the whole battle")


class MovesRequest(BaseModel):
    board: BoardModel
    player: str
    ruleset: str = "classic"


class ApplyMoveRequest(BaseModel):
    board: BoardModel
    move: MoveModel
    outcome: Optional[LossModel] = Field(
        None, description="Chosen outcome; may be omitted for passes and free captures"
    )
    ruleset: str = "classic"


class BestMoveRequest(BaseModel):
    board: BoardModel
    player: str
    search_depth: Optional[int] = Field(None, ge=1, le=8, description="Plies to look ahead")
    probability_threshold: float = Field(0.0, ge=0.0, lt=1.0)
    branching_cap: Optional[int] = Field(None, ge=1)
    heuristic: str = Field("balanced", description="Personality name")
    ruleset: str = "classic"
    max_nodes: Optional[int] = Field(None, ge=1, description="Hard cap on tree size")


class CreateSessionRequest(BaseModel):
    """Request to create a new game session."""
    board: Optional[BoardModel] = Field(None, description="Starting board; generated when omitted")
    columns: int = Field(3, ge=1, le=8)
    rows: int = Field(2, ge=1, le=8)
    players: list[str] = Field(default_factory=lambda: ["red", "blue"], min_length=2)
    seats: dict[str, str] = Field(
        default_factory=dict,
        description="player -> human, random, first or a personality name (default balanced)",
    )
    ruleset: str = "classic"
    search_depth: Optional[int] = Field(None, ge=1, le=8)
    random_seed: Optional[int] = Field(None, description="Seed for reproducible games")


class StepRequest(BaseModel):
    """Advance a session: a bot moves, or the supplied move is played."""
    move: Optional[MoveModel] = None


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class CombatResponse(BaseModel):
    attacker_dice: int
    defender_dice: int
    ruleset: str
    outcomes: list[OutcomeInfo]
    attacker_win_probability: float
    api_version: str = "v1"


class MovesResponse(BaseModel):
    player: str
    moves: list[MoveModel]
    count: int
    api_version: str = "v1"


class ApplyMoveResponse(BaseModel):
    board: BoardModel
    move: MoveModel
    outcome: OutcomeInfo
    api_version: str = "v1"


class BestMoveResponse(BaseModel):
    player: str
    move: MoveModel
    score: float
    move_scores: list[MoveScore] = Field(default_factory=list)
    stats: SearchStatsInfo = Field(default_factory=SearchStatsInfo)
    api_version: str = "v1"


class SessionResponse(BaseModel):
    """Response containing session information."""
    session_id: str
    status: SessionStatus
    progression: ProgressionName
    board: BoardModel
    to_move: Optional[str] = None
    winner: Optional[str] = None
    seats: dict[str, str] = Field(default_factory=dict)
    legal_moves: list[MoveModel] = Field(default_factory=list)
    turn_number: int = 0
    created_at: float = 0.0
    api_version: str = "v1"


class StepResponse(BaseModel):
    session_id: str
    success: bool
    turn: Optional[TurnInfo] = None
    errors: list[str] = Field(default_factory=list)
    session: SessionResponse
    api_version: str = "v1"


class SessionListResponse(BaseModel):
    """Response listing active sessions."""
    sessions: list[str]
    count: int


class EndSessionResponse(BaseModel):
    """Response after ending a session."""
    success: bool
    session_id: str


class PersonalitiesResponse(BaseModel):
    personalities: list[PersonalityInfo]


class RulesetsResponse(BaseModel):
    rulesets: list[RulesetInfo]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
    environment: str = "development"
