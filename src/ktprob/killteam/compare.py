"""Side-by-side comparison of two shooting situations.

Both situations are resolved against every save threshold. For each save we
report average damage, the chance to deal at least W damage for W in
``WOUND_RANGE``, and the same statistics for both shots landing on one
target (the sum of the two independent damage distributions).
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List

from ..distribution import Distribution, combine, expected_value, kill_probability
from .attack import SAVE_RANGE, resolve_across_saves
from .profile import AttackProfile, DefenseProfile, DEFAULT_ATTACKER, DEFAULT_DEFENDER

WOUND_RANGE = range(1, 26)
EQUAL_TOLERANCE = 0.001


class Verdict(Enum):
    BETTER = "better"
    WORSE = "worse"
    EQUAL = "equal"

    @classmethod
    def of(cls, diff: float) -> 'Verdict':
        """Verdict for the first situation given ``first - second``."""
        if abs(diff) < EQUAL_TOLERANCE:
            return cls.EQUAL
        return cls.BETTER if diff > 0 else cls.WORSE


@dataclass(frozen=True)
class Situation:
    attack: AttackProfile = DEFAULT_ATTACKER
    defense: DefenseProfile = DEFAULT_DEFENDER


@dataclass(frozen=True)
class AverageRow:
    save: int
    avg1: float
    avg2: float

    @property
    def diff(self) -> float:
        return self.avg1 - self.avg2

    @property
    def verdict(self) -> Verdict:
        return Verdict.of(self.diff)


@dataclass(frozen=True)
class KillRow:
    wounds: int
    kill1: float
    kill2: float

    @property
    def diff(self) -> float:
        return self.kill1 - self.kill2

    @property
    def verdict(self) -> Verdict:
        return Verdict.of(self.diff)


@dataclass(frozen=True)
class KillTable:
    save: int
    rows: List[KillRow]
    # first wound value from which both situations have no kill chance, if inside the range
    zero_from: int | None


@dataclass(frozen=True)
class ComboRow:
    save: int
    average: float
    kill: float


@dataclass(frozen=True)
class Comparison:
    combo_wounds: int
    averages: List[AverageRow]
    kill_tables: List[KillTable]
    combos: List[ComboRow]


def last_nonzero_wound(dist1: Distribution[int], dist2: Distribution[int]) -> int:
    """Highest wound value either situation can still reach, 0 if neither deals damage."""
    last = 0
    for wounds in WOUND_RANGE:
        if kill_probability(dist1, wounds) > 0 or kill_probability(dist2, wounds) > 0:
            last = wounds
    return last


def kill_table(save: int, dist1: Distribution[int], dist2: Distribution[int]) -> KillTable:
    last = last_nonzero_wound(dist1, dist2)
    rows = [
        KillRow(wounds, kill_probability(dist1, wounds), kill_probability(dist2, wounds))
        for wounds in WOUND_RANGE
        if wounds <= last
    ]
    zero_from = last + 1 if last < WOUND_RANGE[-1] else None
    return KillTable(save=save, rows=rows, zero_from=zero_from)


def compare_distributions(by_save1: Dict[int, Distribution[int]],
                          by_save2: Dict[int, Distribution[int]],
                          combo_wounds: int) -> Comparison:
    saves = sorted(by_save1)
    averages = [AverageRow(save, expected_value(by_save1[save]), expected_value(by_save2[save])) for save in saves]
    kill_tables = [kill_table(save, by_save1[save], by_save2[save]) for save in saves]

    combos = []
    for save in saves:
        combined = combine(by_save1[save], by_save2[save])
        combos.append(ComboRow(save, expected_value(combined), kill_probability(combined, combo_wounds)))

    return Comparison(combo_wounds=combo_wounds, averages=averages, kill_tables=kill_tables, combos=combos)


def compare_situations(s1: Situation, s2: Situation) -> Comparison:
    """Compare two situations across every save threshold.

    The combined columns are read against situation 1's defender wounds.
    """
    by_save1 = resolve_across_saves(s1.attack, s1.defense, SAVE_RANGE)
    by_save2 = resolve_across_saves(s2.attack, s2.defense, SAVE_RANGE)
    return compare_distributions(by_save1, by_save2, s1.defense.wounds)
