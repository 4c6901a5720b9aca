"""Outcome of a single attack die.

A d6 face is classified as a fail, a normal success or a critical success,
then failed dice may be rerolled. Everything that works on counts across the
whole pool (auto successes, conversions, Balanced) happens in ``attack``.
"""
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Dict

from ..distribution import Distribution, d6
from .profile import AttackProfile, DIE_SIDES


class Outcome(Enum):
    FAIL = 0
    NORMAL = 1
    CRITICAL = 2

    def __lt__(self, other: 'Outcome') -> bool:
        if not isinstance(other, Outcome):
            return NotImplemented
        return self.value < other.value


@dataclass(frozen=True)
class DieResult:
    outcome: Outcome
    # only tracked on fails: a rerolled fail can never be rerolled again
    rerolled: bool = False

    def __str__(self) -> str:
        if self.rerolled:
            return f"{self.outcome.name}*"
        return self.outcome.name

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, DieResult):
            return NotImplemented
        return (self.outcome, self.rerolled) < (other.outcome, other.rerolled)

    @property
    def fresh_fail(self) -> bool:
        return self.outcome is Outcome.FAIL and not self.rerolled


def classify_face(face: int, attack: AttackProfile) -> Outcome:
    """Critical beats normal when both ranges cover the face."""
    if face >= attack.lethal_threshold or face == DIE_SIDES:
        return Outcome.CRITICAL
    if face >= attack.success_threshold:
        return Outcome.NORMAL
    return Outcome.FAIL


def base_die(attack: AttackProfile) -> Distribution[DieResult]:
    return d6.map(lambda face: DieResult(classify_face(face, attack)))


def reroll_fresh_fails(die: Distribution[DieResult], fresh_roll: Distribution[DieResult]) -> Distribution[DieResult]:
    """Replace the mass of every not-yet-rerolled fail with a new roll, which is final."""
    def reroll(_: DieResult) -> Distribution[DieResult]:
        return fresh_roll.map(lambda r: DieResult(r.outcome, rerolled=r.outcome is Outcome.FAIL))

    return die.bind_on_match(lambda r: r.fresh_fail, reroll)


def die_distribution(attack: AttackProfile) -> Distribution[DieResult]:
    """Per-die result after the per-die part of the reroll strategy.

    Ceaseless rerolls every fail once. Balanced works on a single die of the
    pool and is applied by the pool roll instead.
    """
    die = base_die(attack)
    if attack.reroll.ceaseless:
        die = reroll_fresh_fails(die, base_die(attack))
    return die


def outcome_probabilities(attack: AttackProfile) -> Dict[Outcome, Fraction]:
    """Probability of a fail, normal and critical success for one die.

    Only Ceaseless shows up here. Balanced rerolls one fail of the whole pool,
    so a ``BALANCED`` profile reports the same vector as no reroll; see
    ``attack.roll_pool`` for its effect.
    """
    collapsed = die_distribution(attack).map(lambda r: r.outcome)
    return {outcome: collapsed.get(outcome) for outcome in Outcome}
