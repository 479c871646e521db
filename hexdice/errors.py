"""
Engine Errors - Distinct, inspectable failure kinds.

Every error carries:
- A machine-readable code (mirrored by the API error codes)
- A human-readable message
- The list of individual problems found (validation can report several)

"No legal attacks" and similar game situations are NOT errors; they are
ordinary terminal states in the tree.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for all engine failures."""

    code = "ENGINE_ERROR"

    def __init__(self, message: str, errors: list[str] | None = None):
        self.message = message
        self.errors = errors or [message]
        super().__init__(message)


class InvalidState(EngineError):
    """Malformed board or ruleset (ownership/dice invariant violated)."""

    code = "INVALID_STATE"


class InvalidPlayer(EngineError):
    """Query or move against a player absent from (or eliminated on) the board."""

    code = "INVALID_PLAYER"


class InvalidMove(EngineError):
    """A move that fails the legality predicate, or an impossible outcome."""

    code = "INVALID_MOVE"


class ResourceExhausted(EngineError):
    """An explicit node cap was configured and exceeded."""

    code = "RESOURCE_EXHAUSTED"

    def __init__(self, message: str, limit: int, errors: list[str] | None = None):
        self.limit = limit
        super().__init__(message, errors)


class InvalidCoordinate(EngineError):
    """Cube coordinates failing x + y + z == 0."""

    code = "INVALID_COORDINATE"


class InvalidOption(EngineError, ValueError):
    """Unknown preset name or out-of-range search/session option."""

    code = "INVALID_OPTION"
