from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, FrozenSet, Iterable


class Side(Enum):
    ATTACKER = auto()
    DEFENDER = auto()


class Effect(Enum):
    """What part of the resolution an ability touches."""
    POOL_CONVERSION = auto()   # shifts retained dice between fail/normal/critical
    DAMAGE_BONUS = auto()      # adds damage per unsaved success
    SAVE_MODIFIER = auto()     # changes what the defender's saves can stop
    SUPPRESSION = auto()       # switches other abilities off
    DAMAGE_REDUCTION = auto()  # lowers damage taken from unsaved successes


class Ability(Enum):
    RENDING = auto()
    SEVERE = auto()
    PUNISHING = auto()
    PURITY_SEAL = auto()
    CLOSE_ASSAULT = auto()
    SHOCK = auto()
    OBSCURED_TARGET = auto()
    DURABLE = auto()
    JUST_A_SCRATCH = auto()

    @classmethod
    def parse(cls, name: str) -> 'Ability':
        """Look an ability up by name, ignoring case, spaces and dashes."""
        key = name.strip().upper().replace("-", "_").replace(" ", "_")
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown ability {name!r}") from None


class RerollStrategy(Enum):
    """Which failed attack dice may be rerolled.

    Ceaseless rerolls every fail once; Balanced rerolls a single fail of the
    pool. A die is never rerolled twice, so once Ceaseless has gone through
    the pool no fail is left for Balanced to pick: ``CEASELESS_BALANCED``
    always resolves exactly like ``CEASELESS``.
    """
    NONE = auto()
    CEASELESS = auto()
    BALANCED = auto()
    CEASELESS_BALANCED = auto()

    @property
    def ceaseless(self) -> bool:
        return self in (RerollStrategy.CEASELESS, RerollStrategy.CEASELESS_BALANCED)

    @property
    def balanced(self) -> bool:
        return self in (RerollStrategy.BALANCED, RerollStrategy.CEASELESS_BALANCED)

    @classmethod
    def parse(cls, name: str) -> 'RerollStrategy':
        key = name.strip().upper().replace("-", "_").replace(" ", "_")
        if key in ("", "NO_REROLL"):
            return cls.NONE
        if key in ("CEASELESS_PLUS_BALANCED", "CEASELESSPLUSBALANCED"):
            return cls.CEASELESS_BALANCED
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown reroll strategy {name!r}") from None


# Fixed bonus damage per unsaved success of the matching kind
RENDING_BONUS = 1
PUNISHING_BONUS = 1
# Save threshold improvement granted by Obscured Target
OBSCURED_SAVE_BONUS = 1
# Damage taken from the first unsaved critical success removed by Durable
DURABLE_REDUCTION = 1


@dataclass(frozen=True)
class AbilityInfo:
    side: Side
    effect: Effect
    description: str


REGISTRY: Dict[Ability, AbilityInfo] = {
    Ability.RENDING: AbilityInfo(
        Side.ATTACKER, Effect.DAMAGE_BONUS,
        f"+{RENDING_BONUS} damage for each critical success the defender fails to save"),
    Ability.PUNISHING: AbilityInfo(
        Side.ATTACKER, Effect.DAMAGE_BONUS,
        f"+{PUNISHING_BONUS} damage for each normal success the defender fails to save"),
    Ability.SEVERE: AbilityInfo(
        Side.ATTACKER, Effect.SUPPRESSION,
        "If no critical success is retained, one normal success becomes critical. "
        "Rending and Punishing cannot be used"),
    Ability.PURITY_SEAL: AbilityInfo(
        Side.ATTACKER, Effect.POOL_CONVERSION,
        "With two or more fails, discard one and retain another as a normal success"),
    Ability.CLOSE_ASSAULT: AbilityInfo(
        Side.ATTACKER, Effect.POOL_CONVERSION,
        "With two or more successes, retain one fail as a normal success"),
    Ability.SHOCK: AbilityInfo(
        Side.ATTACKER, Effect.SAVE_MODIFIER,
        "If a critical success is retained, discard one of the defender's cover saves "
        "(a normal one if there is one)"),
    Ability.OBSCURED_TARGET: AbilityInfo(
        Side.DEFENDER, Effect.SAVE_MODIFIER,
        f"Save threshold improved by {OBSCURED_SAVE_BONUS} (never better than 2+)"),
    Ability.DURABLE: AbilityInfo(
        Side.DEFENDER, Effect.DAMAGE_REDUCTION,
        f"The first unsaved critical success deals {DURABLE_REDUCTION} less damage"),
    Ability.JUST_A_SCRATCH: AbilityInfo(
        Side.DEFENDER, Effect.DAMAGE_REDUCTION,
        "The most damaging unsaved success is ignored"),
}

# ability -> abilities whose effect it cancels
SUPPRESSES: Dict[Ability, FrozenSet[Ability]] = {
    Ability.SEVERE: frozenset({Ability.RENDING, Ability.PUNISHING}),
}


def abilities_for(side: Side) -> FrozenSet[Ability]:
    return frozenset(a for a, info in REGISTRY.items() if info.side == side)


def effective_abilities(abilities: Iterable[Ability]) -> FrozenSet[Ability]:
    """The abilities that still take effect once suppressions are applied."""
    present = frozenset(abilities)
    suppressed = frozenset(
        victim
        for ability in present
        for victim in SUPPRESSES.get(ability, frozenset())
    )
    return present - suppressed
