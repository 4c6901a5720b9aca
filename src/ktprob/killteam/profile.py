from dataclasses import dataclass, field, replace
from typing import FrozenSet, Optional

from ..errors import InvalidConfigurationError
from .abilities import Ability, RerollStrategy, Side, abilities_for

DIE_SIDES = 6
MIN_THRESHOLD = 2
MAX_THRESHOLD = 6


def _check_int(owner: str, name: str, value: object, minimum: int = 0, maximum: Optional[int] = None) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfigurationError(f"{owner}.{name} must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidConfigurationError(f"{owner}.{name} must be at least {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise InvalidConfigurationError(f"{owner}.{name} must be at most {maximum}, got {value}")


def _check_abilities(owner: str, abilities: FrozenSet[Ability], side: Side) -> None:
    allowed = abilities_for(side)
    for ability in abilities:
        if not isinstance(ability, Ability):
            raise InvalidConfigurationError(f"{owner} has an unknown ability {ability!r}")
        if ability not in allowed:
            raise InvalidConfigurationError(f"{owner} cannot use {ability.name}, it is not a {side.name.lower()} ability")


@dataclass(frozen=True)
class AttackProfile:
    """Attacker dice pool, weapon characteristics and weapon rules.

    Thresholds are die faces: a roll at or above ``success_threshold`` is a
    normal success, and a roll at or above ``lethal_threshold`` (or a natural
    6) is a critical one.
    """
    name: str = "Attacker"
    num_dice: int = 4
    success_threshold: int = 3
    normal_damage: int = 3
    critical_damage: int = 4
    devastating: int = 0
    piercing: int = 0
    piercing_crits: int = 0
    lethal_threshold: int = 6
    auto_normals: int = 0
    auto_crits: int = 0
    fails_to_normals: int = 0
    normals_to_crits: int = 0
    reroll: RerollStrategy = RerollStrategy.NONE
    abilities: FrozenSet[Ability] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, 'abilities', frozenset(self.abilities))

    def has(self, ability: Ability) -> bool:
        return ability in self.abilities

    def with_abilities(self, *abilities: Ability) -> 'AttackProfile':
        return replace(self, abilities=self.abilities | frozenset(abilities))

    def validate(self) -> 'AttackProfile':
        owner = "AttackProfile"
        _check_int(owner, "num_dice", self.num_dice)
        _check_int(owner, "success_threshold", self.success_threshold, MIN_THRESHOLD, MAX_THRESHOLD)
        _check_int(owner, "lethal_threshold", self.lethal_threshold, MIN_THRESHOLD, MAX_THRESHOLD)
        for name in ("normal_damage", "critical_damage", "devastating", "piercing", "piercing_crits",
                     "auto_normals", "auto_crits", "fails_to_normals", "normals_to_crits"):
            _check_int(owner, name, getattr(self, name))
        if not isinstance(self.reroll, RerollStrategy):
            raise InvalidConfigurationError(f"{owner}.reroll must be a RerollStrategy, got {self.reroll!r}")
        _check_abilities(owner, self.abilities, Side.ATTACKER)
        return self


@dataclass(frozen=True)
class DefenseProfile:
    """Defender save, wounds and defensive rules.

    ``cover_saves`` cancel normal successes before anything is rolled.
    ``cover_crit_saves`` cancel critical successes first and spill over onto
    normals.
    """
    name: str = "Defender"
    save_threshold: int = 3
    wounds: int = 12
    cover_saves: int = 0
    cover_crit_saves: int = 0
    feel_no_pain: Optional[int] = None
    abilities: FrozenSet[Ability] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, 'abilities', frozenset(self.abilities))

    def has(self, ability: Ability) -> bool:
        return ability in self.abilities

    def with_save(self, save_threshold: int) -> 'DefenseProfile':
        return replace(self, save_threshold=save_threshold)

    def with_abilities(self, *abilities: Ability) -> 'DefenseProfile':
        return replace(self, abilities=self.abilities | frozenset(abilities))

    def validate(self) -> 'DefenseProfile':
        owner = "DefenseProfile"
        _check_int(owner, "save_threshold", self.save_threshold, MIN_THRESHOLD, MAX_THRESHOLD)
        _check_int(owner, "wounds", self.wounds, 1)
        _check_int(owner, "cover_saves", self.cover_saves)
        _check_int(owner, "cover_crit_saves", self.cover_crit_saves)
        if self.feel_no_pain is not None:
            _check_int(owner, "feel_no_pain", self.feel_no_pain, MIN_THRESHOLD, MAX_THRESHOLD)
        _check_abilities(owner, self.abilities, Side.DEFENDER)
        return self


DEFAULT_ATTACKER = AttackProfile()
DEFAULT_DEFENDER = DefenseProfile()

# Example profiles
BOLT_RIFLE = AttackProfile(
    name="Bolt Rifle",
    num_dice=4,
    success_threshold=3,
    normal_damage=3,
    critical_damage=4,
    piercing_crits=1,
)

PLASMA_GUN = AttackProfile(
    name="Plasma Gun",
    num_dice=4,
    success_threshold=3,
    normal_damage=4,
    critical_damage=6,
    piercing=1,
)

SNIPER_RIFLE = AttackProfile(
    name="Sniper Rifle",
    num_dice=4,
    success_threshold=2,
    normal_damage=3,
    critical_damage=3,
    devastating=3,
    lethal_threshold=5,
    abilities=frozenset({Ability.SEVERE}),
)

LASGUN = AttackProfile(
    name="Lasgun",
    num_dice=4,
    success_threshold=4,
    normal_damage=2,
    critical_damage=3,
)

SPACE_MARINE = DefenseProfile(
    name="Space Marine",
    save_threshold=3,
    wounds=13,
)

GUARDSMAN = DefenseProfile(
    name="Guardsman",
    save_threshold=5,
    wounds=7,
)

EXAMPLE_ATTACKERS = {p.name: p for p in (DEFAULT_ATTACKER, BOLT_RIFLE, PLASMA_GUN, SNIPER_RIFLE, LASGUN)}
EXAMPLE_DEFENDERS = {p.name: p for p in (DEFAULT_DEFENDER, SPACE_MARINE, GUARDSMAN)}


def example_attacker(name: str) -> AttackProfile:
    try:
        return EXAMPLE_ATTACKERS[name]
    except KeyError:
        raise InvalidConfigurationError(f"No example attacker named {name!r}") from None


def example_defender(name: str) -> DefenseProfile:
    try:
        return EXAMPLE_DEFENDERS[name]
    except KeyError:
        raise InvalidConfigurationError(f"No example defender named {name!r}") from None
