"""
Session Module - Plays games with the engine.

A session represents one play-through of a game:
- Created from a board (given or generated)
- Holds the game loop: board, player to move, seeded dice, history
- Advanced by bots or by moves supplied from outside
- Destroyed when the caller ends it

Sessions are in-memory only.
"""

from .manager import SessionManager, Session, SessionState, make_bot
from .game_loop import GameLoop, Progression, TurnResult
from .setup import random_board

__all__ = [
    "SessionManager",
    "Session",
    "SessionState",
    "make_bot",
    "GameLoop",
    "Progression",
    "TurnResult",
    "random_board",
]
