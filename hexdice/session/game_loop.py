"""
Game Loop - Advances a real game one move at a time.

The loop:
1. The player to move picks a move (a bot, or a move supplied by the caller)
2. The dice are rolled: one outcome is sampled with the loop's seeded rng
3. The board advances; an attack keeps the turn, a pass ends it. The loop
   counts the moves made and the dice captured in the current turn
4. Turns where the only legal move is passing are played automatically
5. The loop reports whether play goes on, somebody won, or nobody can attack

Bots keep their search caches between turns, so the subtree explored for the
position that actually arose is reused instead of rebuilt.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import logging
import random

from ..bots.policy import BotPolicy
from ..engine_core.combat import CombatLoss
from ..engine_core.move import Move, PASS
from ..engine_core.move_generator import MoveGenerator
from ..engine_core.reducer import Reducer
from ..engine_core.rules import Ruleset, CLASSIC
from ..engine_core.state import Board, Player
from ..errors import InvalidMove, InvalidPlayer
from ..players import TurnOrder

logger = logging.getLogger(__name__)


class Progression(Enum):
    """Whether the game goes on, and if not how it ended."""
    PLAY_ON = "play_on"
    WINNER = "winner"
    STALEMATE = "stalemate"


@dataclass
class TurnResult:
    """
    Result of one step of the loop.

    Contains the move played and its rolled outcome, plus any pass turns
    that were played automatically afterwards.
    """
    success: bool
    progression: Progression
    board: Board
    to_move: Player | None = None

    # The move played this step
    player: Player | None = None
    move: Move | None = None
    loss: CombatLoss | None = None
    probability: float = 0.0
    captured: bool = False
    captured_dice: int = 0
    explanation: str = ""

    # The mover's turn so far, this move included
    turn_moves: int = 0
    turn_captured_dice: int = 0

    # Players whose only option was to pass
    auto_passes: list[Player] = field(default_factory=list)

    # Errors/warnings
    errors: list[str] = field(default_factory=list)

    # Game over info
    winner: Player | None = None
    survivors: list[Player] = field(default_factory=list)

    def describe(self) -> str:
        if not self.success:
            return "; ".join(self.errors)
        text = f"{self.player}: {self.move}"
        if self.move is not None and self.move.is_attack:
            outcome = "captured" if self.captured else "repulsed"
            text += f" {outcome} (lost {self.loss.attacker_lost}, killed {self.loss.defender_lost})"
            if self.turn_captured_dice:
                text += f"; {self.turn_captured_dice} dice taken this turn"
        if self.auto_passes:
            text += f"; auto-passed: {', '.join(str(p) for p in self.auto_passes)}"
        return text


class GameLoop:
    """
    The game driver.

    Usage:
        loop = GameLoop(board, bots={"red": ExpectimaxBot(), "blue": RandomPolicy(1)}, seed=7)
        results = loop.run(max_steps=200)
        loop.progression, loop.winner
    """

    def __init__(
        self,
        board: Board,
        bots: dict[Player, BotPolicy] | None = None,
        rules: Ruleset = CLASSIC,
        turn_order: TurnOrder | None = None,
        first_player: Player | None = None,
        seed: int | None = None,
    ):
        self.rules = rules
        self.turn_order = turn_order or TurnOrder.from_board(board)
        self.bots = dict(bots or {})
        self.rng = random.Random(seed)
        self.generator = MoveGenerator(rules=rules)
        self.reducer = Reducer(rules=rules)

        unseated = [p for p in board.players() if p not in self.turn_order.players]
        if unseated:
            raise InvalidPlayer("Board owners missing from the turn order", [repr(p) for p in unseated])

        self.board = board
        alive = self.turn_order.alive(board)
        if first_player is None:
            first_player = alive[0]
        elif first_player not in alive:
            raise InvalidPlayer(f"Player {first_player!r} cannot move first: not on the board")
        self.to_move: Player = first_player

        self.history: list[TurnResult] = []
        self.turn_moves = 0
        self.turn_captured_dice = 0
        self.progression = Progression.PLAY_ON
        self.winner: Player | None = None
        self._update_progression()
        if self.progression is Progression.PLAY_ON:
            self._auto_pass([])

    @property
    def is_over(self) -> bool:
        return self.progression is not Progression.PLAY_ON

    def legal_moves(self) -> list[Move]:
        return self.generator.generate(self.board, self.to_move)

    def step(self, move: Move | None = None) -> TurnResult:
        """
        Play one move for the player to move.

        Args:
            move: The move to play; when omitted the player's bot chooses

        Returns:
            TurnResult; success is False when the game is already over or
            the player has no bot and no move was given

        Raises:
            InvalidMove: the supplied move is illegal for the player to move
        """
        if self.is_over:
            return self._failure("Game is over")

        player = self.to_move
        explanation = ""
        if move is None:
            bot = self.bots.get(player)
            if bot is None:
                return self._failure(f"No bot plays for {player!r}; a move is required")
            decision = bot.select_move(
                self.board, player, self.legal_moves(), turn_order=self.turn_order
            )
            move = decision.move
            explanation = decision.explanation
        else:
            error = self.generator.check(self.board, move, player)
            if error:
                raise InvalidMove(error)

        outcome = self.reducer.sample(self.board, move, self.rng)
        self.board = outcome.board
        self.turn_moves += 1
        self.turn_captured_dice += outcome.captured_dice
        turn_moves, turn_captured_dice = self.turn_moves, self.turn_captured_dice
        if move.is_pass or self.rules.attack_ends_turn:
            self.to_move = self.turn_order.next_player(player, self.board)
            self._end_turn()

        self._update_progression()
        auto_passes: list[Player] = []
        if not self.is_over:
            self._auto_pass(auto_passes)

        result = TurnResult(
            success=True,
            progression=self.progression,
            board=self.board,
            to_move=None if self.is_over else self.to_move,
            player=player,
            move=move,
            loss=outcome.loss,
            probability=outcome.probability,
            captured=outcome.captured,
            captured_dice=outcome.captured_dice,
            explanation=explanation,
            turn_moves=turn_moves,
            turn_captured_dice=turn_captured_dice,
            auto_passes=auto_passes,
            winner=self.winner,
            survivors=self.turn_order.alive(self.board),
        )
        self.history.append(result)
        logger.debug(result.describe())
        return result

    def run(self, max_steps: int = 500) -> list[TurnResult]:
        """
        Let the bots play until the game ends or max_steps moves were made.
        """
        results = []
        while not self.is_over and len(results) < max_steps:
            result = self.step()
            if not result.success:
                break
            results.append(result)
        return results

    def _update_progression(self) -> None:
        alive = self.turn_order.alive(self.board)
        if len(alive) == 1:
            self.progression = Progression.WINNER
            self.winner = alive[0]
        elif not any(self.generator.has_attack(self.board, p, include_immobile=True) for p in alive):
            self.progression = Progression.STALEMATE

    def _auto_pass(self, passed: list[Player]) -> None:
        """Pass for every player in turn who has nothing but the pass move."""
        while not self.generator.has_attack(self.board, self.to_move):
            passed.append(self.to_move)
            self.board = self.reducer.apply(self.board, PASS)
            self.to_move = self.turn_order.next_player(self.to_move, self.board)
            self._end_turn()

    def _end_turn(self) -> None:
        self.turn_moves = 0
        self.turn_captured_dice = 0

    def _failure(self, message: str) -> TurnResult:
        return TurnResult(
            success=False,
            progression=self.progression,
            board=self.board,
            to_move=None if self.is_over else self.to_move,
            errors=[message],
            winner=self.winner,
            survivors=self.turn_order.alive(self.board),
        )
