from fractions import Fraction

import pytest

from ktprob.distribution import (
    Distribution,
    combine,
    d6,
    expected_value,
    kill_probability,
    memoize,
)
from ktprob.errors import InvalidConfigurationError, ProbabilityDriftError


def test_binomial():
    dist = Distribution.binomial(3, Fraction(1, 2))
    assert dist.probabilities == {
        0: Fraction(1, 8),
        1: Fraction(3, 8),
        2: Fraction(3, 8),
        3: Fraction(1, 8),
    }


def test_binomial_degenerate():
    assert Distribution.binomial(4, Fraction(0)) == Distribution.singleton(0)
    assert Distribution.binomial(4, Fraction(1)) == Distribution.singleton(4)
    assert Distribution.binomial(0, Fraction(1, 3)) == Distribution.singleton(0)


def test_multinomial_matches_binomial():
    sixes = d6.multinomial(3, lambda counts: counts.get(6, 0))
    assert sixes == Distribution.binomial(3, Fraction(1, 6))


def test_multinomial_zero_draws():
    assert d6.multinomial(0, lambda counts: sum(counts.values())) == Distribution.singleton(0)


def test_check_total_raises_on_drift():
    with pytest.raises(ProbabilityDriftError):
        Distribution({0: Fraction(1, 2), 1: Fraction(1, 4)}).check_total()


def test_from_mapping_rejects_bad_input():
    with pytest.raises(InvalidConfigurationError):
        Distribution.from_mapping({"3": 1.0})
    with pytest.raises(InvalidConfigurationError):
        Distribution.from_mapping({0: 1.5, 1: -0.5})
    with pytest.raises(InvalidConfigurationError):
        Distribution.from_mapping({0: "all of it"})


def test_expected_value():
    assert expected_value({}) == 0
    assert expected_value({0: 0.5, 4: 0.5}) == pytest.approx(2.0)
    assert expected_value(d6) == pytest.approx(3.5)


class TestKillProbability:

    def test_upper_tail(self):
        dist = {0: 0.25, 3: 0.25, 6: 0.5}
        assert kill_probability(dist, 1) == pytest.approx(0.75)
        assert kill_probability(dist, 3) == pytest.approx(0.75)
        assert kill_probability(dist, 4) == pytest.approx(0.5)
        assert kill_probability(dist, 7) == 0

    @pytest.mark.parametrize("wounds", [0, -1, 2.5, True])
    def test_rejects_invalid_wounds(self, wounds):
        with pytest.raises(InvalidConfigurationError):
            kill_probability({0: 1.0}, wounds)

    def test_non_increasing(self):
        dist = d6.combine(d6, lambda x, y: x + y)
        kills = [kill_probability(dist, w) for w in range(1, 15)]
        assert all(a >= b for a, b in zip(kills, kills[1:]))
        assert kills[0] == 1


class TestCombine:

    def test_sum_of_two_dice(self):
        two_d6 = combine(d6, d6)
        assert two_d6.get(7) == Fraction(1, 6)
        assert two_d6.get(2) == Fraction(1, 36)
        assert two_d6.total() == 1

    def test_commutative(self):
        a = Distribution({0: Fraction(1, 3), 2: Fraction(2, 3)})
        b = Distribution({1: Fraction(1, 4), 5: Fraction(3, 4)})
        assert combine(a, b) == combine(b, a)

    def test_zero_damage_is_identity(self):
        a = Distribution({0: Fraction(1, 3), 2: Fraction(1, 6), 7: Fraction(1, 2)})
        assert combine(a, {0: 1.0}) == a
        assert combine({0: 1.0}, a) == a

    def test_float_mappings(self):
        result = combine({0: 0.1, 1: 0.9}, {0: 0.5, 2: 0.5})
        assert result.to_floats() == pytest.approx({0: 0.05, 1: 0.45, 2: 0.05, 3: 0.45})

    def test_rejects_inputs_not_summing_to_one(self):
        with pytest.raises(InvalidConfigurationError):
            combine({0: 0.5}, {0: 1.0})
        with pytest.raises(InvalidConfigurationError):
            combine({}, {0: 1.0})


def test_memoize():
    calls = []

    @memoize
    def square(x):
        calls.append(x)
        return x * x

    assert square(3) == 9
    assert square(3) == 9
    assert calls == [3]
    square.cache_clear()
    assert square(3) == 9
    assert calls == [3, 3]


def test_memoize_with_maxsize_drops_least_recently_used():
    calls = []

    @memoize(maxsize=2)
    def double(x):
        calls.append(x)
        return 2 * x

    double(1)
    double(2)
    double(1)
    double(3)
    assert double.cache_len() == 2
    double(1)
    assert calls == [1, 2, 3]
    double(2)
    assert calls == [1, 2, 3, 2]


def test_probabilities_cannot_be_changed():
    dist = Distribution.binomial(2, Fraction(1, 2))
    with pytest.raises(TypeError):
        dist.probabilities[5] = Fraction(1)
    assert dist.probabilities == {0: Fraction(1, 4), 1: Fraction(1, 2), 2: Fraction(1, 4)}
