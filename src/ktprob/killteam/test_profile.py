import pytest

from ktprob.errors import InvalidConfigurationError
from ktprob.killteam.abilities import Ability
from ktprob.killteam.profile import (
    DEFAULT_ATTACKER,
    EXAMPLE_ATTACKERS,
    EXAMPLE_DEFENDERS,
    SNIPER_RIFLE,
    example_attacker,
    example_defender,
)


def test_example_profiles_are_valid():
    for attack in EXAMPLE_ATTACKERS.values():
        attack.validate()
    for defense in EXAMPLE_DEFENDERS.values():
        defense.validate()


def test_lookup_by_name():
    assert example_attacker("Sniper Rifle") is SNIPER_RIFLE
    assert example_defender("Guardsman").wounds == 7
    with pytest.raises(InvalidConfigurationError):
        example_attacker("Lascannon")
    with pytest.raises(InvalidConfigurationError):
        example_defender("Ork Boy")


def test_abilities_are_frozen():
    attack = DEFAULT_ATTACKER.with_abilities(Ability.RENDING)
    assert attack.has(Ability.RENDING)
    assert not DEFAULT_ATTACKER.has(Ability.RENDING)
    assert isinstance(attack.abilities, frozenset)
