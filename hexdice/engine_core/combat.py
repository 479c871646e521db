"""
Combat Model - Exact outcome distributions for dice battles.

Two levels:
- roll_distribution(a, d): one exchange. Every one of the faces^(dice rolled)
  equally likely rolls is enumerated and counted, so the table is exact.
- resolve_combat(a, d): a whole battle. Exchanges repeat until one side has no
  dice left (or the ruleset's round limit is hit).

Both return {CombatLoss(attacker_lost, defender_lost): probability}, ordered by
key, probabilities summing to 1. Pure functions, memoised per ruleset.
"""

from __future__ import annotations
from collections import Counter, defaultdict
from fractions import Fraction
from functools import lru_cache
from itertools import product
from typing import NamedTuple

from ..errors import InvalidState
from .rules import Ruleset, CLASSIC


class CombatLoss(NamedTuple):
    """Dice lost by each side. The outcome class of a combat."""
    attacker_lost: int
    defender_lost: int


# Free capture of an unowned cell: nobody loses anything.
FREE_CAPTURE = CombatLoss(0, 0)


def _check_forces(attacker_dice: int, defender_dice: int) -> None:
    errors = []
    if attacker_dice < 1:
        errors.append(f"Attacker must commit at least 1 die, got {attacker_dice}")
    if defender_dice < 1:
        errors.append(f"Defender must hold at least 1 die, got {defender_dice}")
    if errors:
        raise InvalidState("Invalid combat forces", errors)


@lru_cache(maxsize=None)
def _exchange_table(
    attacker_rolled: int,
    defender_rolled: int,
    faces: int,
    ties_favor_defender: bool,
) -> tuple[tuple[CombatLoss, Fraction], ...]:
    """Enumerate every roll of one exchange and count the loss classes."""
    counts: Counter[CombatLoss] = Counter()
    compared = min(attacker_rolled, defender_rolled)

    for roll in product(range(1, faces + 1), repeat=attacker_rolled + defender_rolled):
        attack = sorted(roll[:attacker_rolled], reverse=True)
        defend = sorted(roll[attacker_rolled:], reverse=True)

        attacker_lost = 0
        for a, d in zip(attack[:compared], defend[:compared]):
            if a > d or (a == d and not ties_favor_defender):
                continue
            attacker_lost += 1
        counts[CombatLoss(attacker_lost, compared - attacker_lost)] += 1

    total = faces ** (attacker_rolled + defender_rolled)
    return tuple(
        (loss, Fraction(count, total))
        for loss, count in sorted(counts.items())
    )


def _exchange(attacker_dice: int, defender_dice: int, rules: Ruleset):
    return _exchange_table(
        min(attacker_dice, rules.attacker_dice_cap),
        min(defender_dice, rules.defender_dice_cap),
        rules.die_faces,
        rules.ties_favor_defender,
    )


@lru_cache(maxsize=4096)
def _battle_table(
    attacker_dice: int,
    defender_dice: int,
    rules: Ruleset,
) -> tuple[tuple[CombatLoss, Fraction], ...]:
    """
    Propagate probability mass exchange by exchange.

    Every exchange removes at least one die, so the loop ends after at most
    attacker_dice + defender_dice - 1 exchanges.
    """
    finished: dict[CombatLoss, Fraction] = defaultdict(Fraction)
    frontier: dict[tuple[int, int], Fraction] = {(attacker_dice, defender_dice): Fraction(1)}
    rounds = 0

    while frontier:
        if rules.max_rounds is not None and rounds >= rules.max_rounds:
            for (a, d), p in frontier.items():
                finished[CombatLoss(attacker_dice - a, defender_dice - d)] += p
            break

        next_frontier: dict[tuple[int, int], Fraction] = defaultdict(Fraction)
        for (a, d), p in frontier.items():
            for loss, q in _exchange(a, d, rules):
                left_a = a - loss.attacker_lost
                left_d = d - loss.defender_lost
                if left_a == 0 or left_d == 0:
                    finished[CombatLoss(attacker_dice - left_a, defender_dice - left_d)] += p * q
                else:
                    next_frontier[(left_a, left_d)] += p * q
        frontier = next_frontier
        rounds += 1

    return tuple(sorted(finished.items()))


def roll_distribution(
    attacker_dice: int,
    defender_dice: int,
    rules: Ruleset = CLASSIC,
    exact: bool = False,
) -> dict[CombatLoss, float | Fraction]:
    """
    Distribution of a single exchange.

    3 vs 2 under classic rules: attacker wins both 2890/7776 (about 37.2%),
    splits 2611/7776, loses both 2275/7776.
    """
    _check_forces(attacker_dice, defender_dice)
    table = _exchange(attacker_dice, defender_dice, rules)
    return {loss: (p if exact else float(p)) for loss, p in table}


def resolve_combat(
    attacker_dice: int,
    defender_dice: int,
    rules: Ruleset = CLASSIC,
    exact: bool = False,
) -> dict[CombatLoss, float | Fraction]:
    """
    Distribution of a whole battle between committed attackers and a garrison.

    Args:
        attacker_dice: Dice committed by the attacker (>= 1)
        defender_dice: Dice on the defending cell (>= 1)
        rules: Ruleset supplying dice caps, tie rule and round limit
        exact: Return Fractions instead of floats

    Returns:
        {CombatLoss: probability}; a key with defender_lost == defender_dice
        is a capture.
    """
    _check_forces(attacker_dice, defender_dice)
    table = _battle_table(attacker_dice, defender_dice, rules)
    return {loss: (p if exact else float(p)) for loss, p in table}


def attacker_win_probability(
    attacker_dice: int,
    defender_dice: int,
    rules: Ruleset = CLASSIC,
) -> float:
    """Probability that the battle ends with the defending cell captured."""
    distribution = resolve_combat(attacker_dice, defender_dice, rules, exact=True)
    return float(sum(
        p for loss, p in distribution.items()
        if loss.defender_lost == defender_dice
    ))


def is_capture(loss: CombatLoss, defender_dice: int | None) -> bool:
    """Whether an outcome transfers the target cell to the attacker."""
    if defender_dice is None:
        return True
    return loss.defender_lost >= defender_dice
