"""
Reducer - Applies moves to boards.

The reducer is the single place where a new board is derived from a move.

Design principles:
- Pure function: (board, move, outcome) -> new board
- Validates before applying; illegal moves raise InvalidMove, boards the
  ruleset does not allow raise InvalidState
- A capturing stack is frozen for the rest of the turn when the ruleset says
  so; a pass frees every stack again
- Never mutates: the input board is untouched on success and on failure
"""

from __future__ import annotations
from dataclasses import dataclass, field
import random
from typing import Union

from ..errors import InvalidMove
from .combat import CombatLoss, FREE_CAPTURE, resolve_combat, is_capture
from .move import Move, Outcome
from .move_generator import MoveGenerator
from .rules import Ruleset, CLASSIC
from .state import Board

ChosenOutcome = Union[CombatLoss, Outcome, tuple, None]


@dataclass
class Reducer:
    """
    Derives boards from moves.

    Stateless apart from the ruleset.
    """
    rules: Ruleset = field(default_factory=lambda: CLASSIC)

    def __post_init__(self):
        self._generator = MoveGenerator(rules=self.rules)

    def distribution(self, board: Board, move: Move) -> dict[CombatLoss, float]:
        """Loss distribution of a legal move. Pass and free captures are certain."""
        self._validate(board, move)
        if move.is_pass:
            return {FREE_CAPTURE: 1.0}
        source = board[move.source]
        target = board[move.target]
        if not target.is_owned:
            return {FREE_CAPTURE: 1.0}
        return resolve_combat(
            self.rules.attacking_force(source.dice), target.dice, self.rules
        )

    def outcomes(self, board: Board, move: Move) -> tuple[Outcome, ...]:
        """Every outcome of a move with the board it produces."""
        result = []
        for loss, probability in self.distribution(board, move).items():
            captured = move.is_attack and is_capture(loss, board[move.target].dice)
            result.append(Outcome(
                loss=loss,
                board=self._derive(board, move, loss),
                probability=probability,
                captured=captured,
                captured_dice=(board[move.target].dice or 0) if captured else 0,
            ))
        return tuple(result)

    def apply(self, board: Board, move: Move, outcome: ChosenOutcome = None) -> Board:
        """
        Apply a move with a chosen outcome.

        outcome may be omitted when the move has a single possible result
        (pass, capture of an unowned cell).
        """
        distribution = self.distribution(board, move)
        loss = self._coerce(outcome, distribution)
        if loss not in distribution:
            raise InvalidMove(
                f"Outcome {tuple(loss)} is impossible for {move}",
                [f"Possible outcomes: {[tuple(k) for k in distribution]}"],
            )
        return self._derive(board, move, loss)

    def sample(self, board: Board, move: Move, rng: random.Random) -> Outcome:
        """Draw one outcome according to its probability."""
        outcomes = self.outcomes(board, move)
        r = rng.random()
        cumulative = 0.0
        for outcome in outcomes:
            cumulative += outcome.probability
            if r < cumulative:
                return outcome
        return outcomes[-1]

    def _validate(self, board: Board, move: Move) -> None:
        self.rules.validate_board(board)
        error = self._generator.check(board, move)
        if error:
            raise InvalidMove(error)

    def _coerce(self, outcome: ChosenOutcome, distribution: dict) -> CombatLoss:
        if outcome is None:
            if len(distribution) != 1:
                raise InvalidMove(
                    "An outcome must be chosen for a contested attack",
                    [f"Possible outcomes: {[tuple(k) for k in distribution]}"],
                )
            return next(iter(distribution))
        if isinstance(outcome, Outcome):
            return outcome.loss
        if isinstance(outcome, tuple) and len(outcome) == 2:
            return CombatLoss(*outcome)
        raise InvalidMove(f"Unrecognised outcome: {outcome!r}")

    def _derive(self, board: Board, move: Move, loss: CombatLoss) -> Board:
        if move.is_pass:
            # The turn is over: every stack may move again
            return board.mobilised()
        if self.rules.attack_ends_turn:
            board = board.mobilised()

        source = board[move.source]
        target = board[move.target]
        force = self.rules.attacking_force(source.dice)

        if is_capture(loss, target.dice):
            survivors = force - loss.attacker_lost
            moved = min(survivors, self.rules.max_stack)
            captor_moves_on = not self.rules.captors_immobile or self.rules.attack_ends_turn
            return board.with_cells(
                source.with_holding(source.owner, self.rules.leave_behind + survivors - moved),
                target.with_holding(source.owner, moved, mobile=captor_moves_on),
            )

        # Repulsed (or the round limit ran out): survivors fall back to the source
        return board.with_cells(
            source.with_holding(source.owner, source.dice - loss.attacker_lost),
            target.with_holding(target.owner, target.dice - loss.defender_lost),
        )


def apply_move(
    board: Board,
    move: Move,
    outcome: ChosenOutcome = None,
    rules: Ruleset = CLASSIC,
) -> Board:
    """Deterministic state transition for a chosen outcome."""
    return Reducer(rules=rules).apply(board, move, outcome)


def move_outcomes(board: Board, move: Move, rules: Ruleset = CLASSIC) -> tuple[Outcome, ...]:
    """All outcomes of a move, with resulting boards and probabilities."""
    return Reducer(rules=rules).outcomes(board, move)


def sample_outcome(
    board: Board,
    move: Move,
    rng: random.Random,
    rules: Ruleset = CLASSIC,
) -> Outcome:
    """Simulated dice roll for a driver advancing a real game."""
    return Reducer(rules=rules).sample(board, move, rng)
