"""
Ruleset - Combat and capture rules as explicit configuration.

The combat table changes every downstream probability, so nothing here is a
hard-coded constant inside the combat model or the move generator. Variants are
built from a base ruleset:

    rules = RULESETS["classic"].variant(defender_dice_cap=3)

Classic rule table (the default):
- Each exchange: attacker rolls min(attackers, 3) d6, defender rolls min(defenders, 2) d6
- Both sides sort descending and compare pairwise; ties go to the defender
- Each comparison removes one die from the loser
- The battle continues until one side has no dice left
- The attacking force is the source stack minus one die left behind
- A captured cell receives the surviving attackers
- Stacks hold at most max_stack dice; boards breaking that are rejected
"""

from __future__ import annotations
from dataclasses import dataclass, replace

from ..errors import InvalidOption, InvalidState
from .state import Board, MAX_DICE


@dataclass(frozen=True)
class Ruleset:
    """
    Rules consumed by the combat model, the move generator and the reducer.
    """
    name: str = "classic"

    # Dice
    die_faces: int = 6
    attacker_dice_cap: int = 3  # Dice rolled per exchange, at most
    defender_dice_cap: int = 2
    ties_favor_defender: bool = True

    # Stacks
    max_stack: int = MAX_DICE
    min_attack_dice: int = 2  # A 1-die stack cannot attack
    leave_behind: int = 1  # Dice that stay on the source cell

    # Battle length: None = fight until one side is wiped out
    max_rounds: int | None = None

    # Hexagon rules: only strictly smaller stacks may be attacked
    require_superiority: bool = False

    # Turn structure
    attack_ends_turn: bool = False

    # Hexagon rules: a stack that captured stays put until the turn passes
    captors_immobile: bool = False

    def __post_init__(self):
        errors = self.problems()
        if errors:
            raise InvalidState(f"Invalid ruleset '{self.name}'", errors)

    def problems(self) -> list[str]:
        errors = []
        if self.die_faces < 2:
            errors.append("die_faces must be >= 2")
        if self.attacker_dice_cap < 1:
            errors.append("attacker_dice_cap must be >= 1")
        if self.defender_dice_cap < 1:
            errors.append("defender_dice_cap must be >= 1")
        if self.leave_behind < 1:
            errors.append("leave_behind must be >= 1")
        if self.min_attack_dice <= self.leave_behind:
            errors.append("min_attack_dice must exceed leave_behind")
        if not 1 <= self.max_stack <= MAX_DICE:
            errors.append(f"max_stack must be within 1-{MAX_DICE}")
        if self.max_stack < self.min_attack_dice:
            errors.append("max_stack must be >= min_attack_dice")
        if self.max_rounds is not None and self.max_rounds < 1:
            errors.append("max_rounds must be >= 1 or None")
        return errors

    def variant(self, **changes) -> Ruleset:
        """Return a validated copy with some rules changed."""
        return replace(self, **changes)

    def attacking_force(self, stack: int) -> int:
        """Dice committed to battle by a stack of the given size."""
        return stack - self.leave_behind

    def board_problems(self, board: Board) -> list[str]:
        """Cells a board holds that these rules do not allow."""
        return [
            f"Cell {cell.coordinate} holds {cell.dice} dice; {self.name} allows at most {self.max_stack}"
            for cell in board.cells.values()
            if cell.is_owned and cell.dice > self.max_stack
        ]

    def validate_board(self, board: Board) -> None:
        """Raise InvalidState if board breaks these rules."""
        errors = self.board_problems(board)
        if errors:
            raise InvalidState(f"Board does not fit ruleset '{self.name}'", errors)


CLASSIC = Ruleset()

RULESETS: dict[str, Ruleset] = {
    "classic": CLASSIC,
    "even_odds": CLASSIC.variant(name="even_odds", defender_dice_cap=3),
    "attacker_ties": CLASSIC.variant(name="attacker_ties", ties_favor_defender=False),
    "skirmish": CLASSIC.variant(name="skirmish", max_rounds=1),
    "superiority": CLASSIC.variant(name="superiority", require_superiority=True),
    "hexagon": CLASSIC.variant(name="hexagon", require_superiority=True, captors_immobile=True),
}


def get_ruleset(name: str) -> Ruleset:
    """Look up a named preset."""
    try:
        return RULESETS[name]
    except KeyError:
        raise InvalidOption(
            f"Unknown ruleset '{name}'. Known: {', '.join(sorted(RULESETS))}"
        ) from None
