"""
Tests for the combat model.

Tests:
- Single exchange tables against known values
- Whole battles: normalisation and terminal outcomes
- Rule variants
- Input validation
"""

from fractions import Fraction

import pytest

from ..engine_core.combat import (
    CombatLoss,
    attacker_win_probability,
    is_capture,
    resolve_combat,
    roll_distribution,
)
from ..engine_core.rules import CLASSIC, RULESETS, Ruleset, get_ruleset
from ..errors import InvalidOption, InvalidState


class TestSingleExchange:
    """Tests for roll_distribution."""

    def test_three_vs_two_classic(self):
        """3 vs 2 matches the well-known table."""
        table = roll_distribution(3, 2, exact=True)

        assert table == {
            CombatLoss(0, 2): Fraction(2890, 7776),
            CombatLoss(1, 1): Fraction(2611, 7776),
            CombatLoss(2, 0): Fraction(2275, 7776),
        }

    def test_one_vs_one(self):
        """Ties go to the defender: attacker wins 15 of 36."""
        table = roll_distribution(1, 1, exact=True)

        assert table[CombatLoss(0, 1)] == Fraction(15, 36)
        assert table[CombatLoss(1, 0)] == Fraction(21, 36)

    def test_dice_are_capped(self):
        """Rolling more dice than the cap changes nothing."""
        assert roll_distribution(6, 5) == roll_distribution(3, 2)

    def test_attacker_ties(self):
        """With ties favoring the attacker, 1 vs 1 flips."""
        rules = get_ruleset("attacker_ties")
        table = roll_distribution(1, 1, rules, exact=True)

        assert table[CombatLoss(0, 1)] == Fraction(21, 36)

    @pytest.mark.parametrize("rules", [CLASSIC, get_ruleset("even_odds")], ids=lambda r: r.name)
    def test_sums_to_one(self, rules):
        for a in range(1, 4):
            for d in range(1, 4):
                assert sum(roll_distribution(a, d, rules, exact=True).values()) == 1


class TestBattle:
    """Tests for resolve_combat."""

    def test_normalised(self):
        for a in range(1, 6):
            for d in range(1, 7):
                assert sum(resolve_combat(a, d, exact=True).values()) == 1

    def test_every_outcome_ends_the_battle(self):
        """Each outcome wipes out one side."""
        for loss in resolve_combat(5, 4):
            assert loss.attacker_lost == 5 or loss.defender_lost == 4

    def test_one_vs_one_is_one_exchange(self):
        assert resolve_combat(1, 1) == roll_distribution(1, 1)

    def test_three_vs_one_capture_probability(self):
        """Three committed dice take a single defender about 91.6% of the time."""
        assert attacker_win_probability(3, 1) == pytest.approx(0.9164, abs=1e-4)

    def test_more_attackers_win_more(self):
        odds = [attacker_win_probability(a, 3) for a in range(1, 6)]
        assert odds == sorted(odds)

    def test_round_limit(self):
        """A one-round skirmish is a single exchange."""
        skirmish = get_ruleset("skirmish")
        assert resolve_combat(3, 2, skirmish) == roll_distribution(3, 2, skirmish)

    def test_floats_match_fractions(self):
        exact = resolve_combat(4, 3, exact=True)
        approx = resolve_combat(4, 3)

        assert list(exact) == list(approx)
        for loss, p in exact.items():
            assert approx[loss] == pytest.approx(float(p))

    def test_outcomes_ordered_by_key(self):
        keys = list(resolve_combat(4, 3))
        assert keys == sorted(keys)


class TestCapture:
    def test_unowned_target_is_always_captured(self):
        assert is_capture(CombatLoss(0, 0), None)

    def test_capture_needs_every_defender(self):
        assert is_capture(CombatLoss(1, 2), 2)
        assert not is_capture(CombatLoss(3, 1), 2)


class TestValidation:
    def test_no_attackers(self):
        with pytest.raises(InvalidState):
            resolve_combat(0, 2)

    def test_both_sides_reported(self):
        with pytest.raises(InvalidState) as exc_info:
            roll_distribution(0, 0)
        assert len(exc_info.value.errors) == 2

    def test_bad_ruleset(self):
        with pytest.raises(InvalidState) as exc_info:
            Ruleset(name="broken", die_faces=1, leave_behind=0)
        assert len(exc_info.value.errors) >= 2

    def test_variant_is_validated(self):
        with pytest.raises(InvalidState):
            CLASSIC.variant(max_stack=9)

    def test_unknown_ruleset(self):
        with pytest.raises(InvalidOption):
            get_ruleset("nope")

    def test_presets_are_valid(self):
        for name, rules in RULESETS.items():
            assert rules.name == name
            assert rules.problems() == []
