"""Tests for the two-situation comparison."""

from dataclasses import replace

import pytest

from ktprob.distribution import combine, kill_probability
from ktprob.killteam.attack import resolve_attack
from ktprob.killteam.compare import (
    Situation,
    Verdict,
    WOUND_RANGE,
    compare_situations,
    kill_table,
    last_nonzero_wound,
)
from ktprob.killteam.profile import DEFAULT_ATTACKER, DEFAULT_DEFENDER

NO_DICE = Situation(attack=replace(DEFAULT_ATTACKER, num_dice=0))


class TestVerdict:

    def test_within_tolerance_is_equal(self) -> None:
        assert Verdict.of(0.0005) is Verdict.EQUAL
        assert Verdict.of(-0.0009) is Verdict.EQUAL

    def test_sign_decides(self) -> None:
        assert Verdict.of(0.01) is Verdict.BETTER
        assert Verdict.of(-0.01) is Verdict.WORSE


def test_identical_situations_are_equal_everywhere() -> None:
    comparison = compare_situations(Situation(), Situation())
    assert [row.save for row in comparison.averages] == [2, 3, 4, 5, 6]
    assert all(row.verdict is Verdict.EQUAL for row in comparison.averages)
    for table in comparison.kill_tables:
        assert all(row.verdict is Verdict.EQUAL for row in table.rows)
    assert comparison.combo_wounds == DEFAULT_DEFENDER.wounds


def test_kill_table_stops_after_last_reachable_wound() -> None:
    comparison = compare_situations(Situation(), NO_DICE)
    table = comparison.kill_tables[1]
    assert table.save == 3
    # four unsaved crits at 4 damage each is the most the default attacker can do
    assert [row.wounds for row in table.rows] == list(range(1, 17))
    assert table.zero_from == 17
    assert all(row.kill1 > 0 and row.kill2 == 0 for row in table.rows)
    assert table.rows[0].verdict is Verdict.BETTER
    # four unsaved crits is too rare to register as a difference
    assert table.rows[-1].verdict is Verdict.EQUAL


def test_no_damage_on_either_side() -> None:
    dist = resolve_attack(NO_DICE.attack, NO_DICE.defense)
    assert last_nonzero_wound(dist, dist) == 0
    table = kill_table(3, dist, dist)
    assert table.rows == []
    assert table.zero_from == 1


def test_table_covering_the_whole_range_has_no_zero_row() -> None:
    big = Situation(attack=replace(DEFAULT_ATTACKER, num_dice=9, critical_damage=10))
    comparison = compare_situations(big, Situation())
    table = comparison.kill_tables[0]
    assert len(table.rows) == len(WOUND_RANGE)
    assert table.zero_from is None


def test_combo_uses_first_defender_wounds() -> None:
    s1 = Situation(defense=replace(DEFAULT_DEFENDER, wounds=8))
    comparison = compare_situations(s1, Situation())
    assert comparison.combo_wounds == 8

    dist = resolve_attack(DEFAULT_ATTACKER, DEFAULT_DEFENDER.with_save(4))
    combo = comparison.combos[2]
    assert combo.save == 4
    assert combo.kill == pytest.approx(kill_probability(combine(dist, dist), 8))
    assert combo.average == pytest.approx(2 * comparison.averages[2].avg1)
