from fractions import Fraction

import pytest

from ktprob.killteam.abilities import RerollStrategy
from ktprob.killteam.die import Outcome, base_die, classify_face, die_distribution, outcome_probabilities
from ktprob.killteam.profile import AttackProfile

F, N, C = Outcome.FAIL, Outcome.NORMAL, Outcome.CRITICAL


@pytest.mark.parametrize("success, lethal, expected", [
    (3, 6, [F, F, N, N, N, C]),
    (3, 5, [F, F, N, N, C, C]),
    (6, 6, [F, F, F, F, F, C]),
    (2, 6, [F, N, N, N, N, C]),
    # lethal below the success threshold still makes the face critical
    (4, 3, [F, F, C, C, C, C]),
    (2, 2, [F, C, C, C, C, C]),
])
def test_classify_face(success, lethal, expected):
    attack = AttackProfile(success_threshold=success, lethal_threshold=lethal)
    assert [classify_face(face, attack) for face in range(1, 7)] == expected


def test_base_probabilities():
    assert outcome_probabilities(AttackProfile(success_threshold=3)) == {
        F: Fraction(1, 3),
        N: Fraction(1, 2),
        C: Fraction(1, 6),
    }


def test_ceaseless_rerolls_every_fail_once():
    attack = AttackProfile(success_threshold=3, reroll=RerollStrategy.CEASELESS)
    assert outcome_probabilities(attack) == {
        F: Fraction(1, 9),
        N: Fraction(2, 3),
        C: Fraction(2, 9),
    }
    # whatever fails after the reroll is final
    assert not any(r.fresh_fail for r in die_distribution(attack).probabilities)


def test_balanced_is_not_a_per_die_reroll():
    attack = AttackProfile(success_threshold=4, reroll=RerollStrategy.BALANCED)
    assert die_distribution(attack) == base_die(attack)


def test_rerolled_fail_can_become_critical():
    attack = AttackProfile(success_threshold=2, lethal_threshold=2, reroll=RerollStrategy.CEASELESS)
    assert outcome_probabilities(attack)[C] == 1 - Fraction(1, 36)
