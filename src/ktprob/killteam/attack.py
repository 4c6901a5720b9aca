from dataclasses import dataclass, replace
from fractions import Fraction
from functools import partial
from time import perf_counter
from typing import Dict, FrozenSet, Iterable, Tuple
import logging

from ..distribution import Distribution, lift, liftM, memoize
from .abilities import (
    Ability,
    DURABLE_REDUCTION,
    OBSCURED_SAVE_BONUS,
    PUNISHING_BONUS,
    RENDING_BONUS,
    effective_abilities,
)
from .die import DieResult, Outcome, base_die, die_distribution
from .profile import AttackProfile, DefenseProfile, DIE_SIDES, MAX_THRESHOLD, MIN_THRESHOLD

logger = logging.getLogger(__name__)

SAVE_RANGE = range(MIN_THRESHOLD, MAX_THRESHOLD + 1)


class AttackConfig:
    memoize = True
    # resolved (attack, defense) pairs kept by the resolve cache
    cache_size = 256


@dataclass(frozen=True, order=True)
class Pool:
    """Retained attack dice, counted by kind."""
    normals: int = 0
    crits: int = 0
    fails: int = 0
    # fails that have not been rerolled yet
    fresh_fails: int = 0

    @staticmethod
    def of(result: DieResult) -> 'Pool':
        if result.outcome is Outcome.CRITICAL:
            return Pool(crits=1)
        if result.outcome is Outcome.NORMAL:
            return Pool(normals=1)
        return Pool(fails=1, fresh_fails=0 if result.rerolled else 1)

    @property
    def successes(self) -> int:
        return self.normals + self.crits

    def __add__(self, other: 'Pool') -> 'Pool':
        return Pool(
            normals=self.normals + other.normals,
            crits=self.crits + other.crits,
            fails=self.fails + other.fails,
            fresh_fails=self.fresh_fails + other.fresh_fails,
        )

    def __str__(self) -> str:
        return f"[N:{self.normals}, C:{self.crits}, F:{self.fails}]"

    def drop_fails(self, n: int) -> 'Pool':
        n = min(n, self.fails)
        return replace(self, fails=self.fails - n, fresh_fails=min(self.fresh_fails, self.fails - n))

    def fails_to_normals(self, n: int) -> 'Pool':
        n = min(n, self.fails)
        return replace(self.drop_fails(n), normals=self.normals + n)

    def normals_to_crits(self, n: int) -> 'Pool':
        n = min(n, self.normals)
        return replace(self, normals=self.normals - n, crits=self.crits + n)


@dataclass(frozen=True, order=True)
class Hits:
    """Successes left after the save step."""
    normals: int = 0
    crits: int = 0
    # every critical retained by the attacker, saved or not
    retained_crits: int = 0

    def __str__(self) -> str:
        return f"[N:{self.normals}, C:{self.crits}, DevC:{self.retained_crits}]"


def save_probability(threshold: int) -> Fraction:
    """Chance a d6 meets ``threshold``; past the last face nothing is saved."""
    if threshold > DIE_SIDES:
        return Fraction(0)
    return Fraction(DIE_SIDES + 1 - max(threshold, MIN_THRESHOLD), DIE_SIDES)


def save_thresholds(attack: AttackProfile, defense: DefenseProfile) -> Tuple[int, int]:
    """Thresholds the defender needs against (normal, critical) successes."""
    base = defense.save_threshold
    if defense.has(Ability.OBSCURED_TARGET):
        base = max(MIN_THRESHOLD, base - OBSCURED_SAVE_BONUS)
    return base + attack.piercing, base + attack.piercing_crits


def balanced_reroll(fresh_roll: Distribution[DieResult], pool: Pool) -> Distribution[Pool]:
    """Reroll a single fail that has not been rerolled before."""
    rest = replace(pool, fails=pool.fails - 1, fresh_fails=pool.fresh_fails - 1)
    return fresh_roll.map(lambda r: rest + Pool.of(DieResult(r.outcome, rerolled=True)))


def roll_pool(attack: AttackProfile) -> Distribution[Pool]:
    """Joint distribution of fails, normals and crits over the rolled dice."""
    def to_pool(counts: Dict[DieResult, int]) -> Pool:
        pool = Pool()
        for result, k in counts.items():
            single = Pool.of(result)
            for _ in range(k):
                pool = pool + single
        return pool

    pool_dist = die_distribution(attack).multinomial(attack.num_dice, to_pool)
    if attack.reroll.balanced:
        pool_dist = pool_dist.bind_on_match(
            lambda p: p.fresh_fails > 0,
            partial(balanced_reroll, base_die(attack)),
        )
    return pool_dist


def adjust_pool(attack: AttackProfile, abilities: FrozenSet[Ability], pool: Pool) -> Pool:
    """Apply the guaranteed, count-based changes to a rolled pool."""
    pool = replace(pool, normals=pool.normals + attack.auto_normals, crits=pool.crits + attack.auto_crits)
    pool = pool.fails_to_normals(attack.fails_to_normals)
    if Ability.CLOSE_ASSAULT in abilities and pool.successes >= 2:
        pool = pool.fails_to_normals(1)
    if Ability.PURITY_SEAL in abilities and pool.fails >= 2:
        pool = pool.drop_fails(1).fails_to_normals(1)
    pool = pool.normals_to_crits(attack.normals_to_crits)
    if Ability.SEVERE in abilities and pool.crits == 0:
        pool = pool.normals_to_crits(1)
    return pool


def cover(defense: DefenseProfile, abilities: FrozenSet[Ability], pool: Pool) -> Tuple[int, int]:
    """Cover saves left as (normal, critical) once Shock has discarded one."""
    normal_cover, crit_cover = defense.cover_saves, defense.cover_crit_saves
    if Ability.SHOCK in abilities and pool.crits > 0:
        if normal_cover > 0:
            normal_cover -= 1
        elif crit_cover > 0:
            crit_cover -= 1
    return normal_cover, crit_cover


def save_roll(attack: AttackProfile, defense: DefenseProfile, abilities: FrozenSet[Ability],
              pool: Pool) -> Distribution[Hits]:
    """Each success is saved on its own die once cover saves have cancelled what they can.

    Critical cover saves go to critical successes first and spill over onto
    normals; normal cover saves can only cancel normals.
    """
    normal_threshold, crit_threshold = save_thresholds(attack, defense)
    normal_cover, crit_cover = cover(defense, abilities, pool)
    covered_crits = min(pool.crits, crit_cover)
    exposed_crits = pool.crits - covered_crits
    exposed_normals = max(0, pool.normals - normal_cover - (crit_cover - covered_crits))

    unsaved_normals = Distribution.binomial(exposed_normals, 1 - save_probability(normal_threshold))
    unsaved_crits = Distribution.binomial(exposed_crits, 1 - save_probability(crit_threshold))
    return unsaved_normals.combine(unsaved_crits, lambda n, c: Hits(n, c, pool.crits))


def success_damage(attack: AttackProfile, abilities: FrozenSet[Ability]) -> Tuple[int, int]:
    """Damage of one unsaved (normal, critical) success, bonuses included."""
    normal, crit = attack.normal_damage, attack.critical_damage
    if Ability.PUNISHING in abilities:
        normal += PUNISHING_BONUS
    if Ability.RENDING in abilities:
        crit += RENDING_BONUS
    return normal, crit


def just_a_scratch(attack: AttackProfile, abilities: FrozenSet[Ability], hits: Hits) -> Hits:
    """Ignore the unsaved success that would deal the most damage."""
    if Ability.JUST_A_SCRATCH not in abilities or hits.normals + hits.crits == 0:
        return hits
    normal, crit = success_damage(attack, abilities)
    if hits.crits > 0 and (hits.normals == 0 or crit >= normal):
        return replace(hits, crits=hits.crits - 1)
    return replace(hits, normals=hits.normals - 1)


def tally_damage(attack: AttackProfile, abilities: FrozenSet[Ability], hits: Hits) -> int:
    normal, crit = success_damage(attack, abilities)
    damage = hits.normals * normal + hits.crits * crit
    if Ability.DURABLE in abilities and hits.crits > 0:
        damage -= min(DURABLE_REDUCTION, crit)
    damage += hits.retained_crits * attack.devastating
    return damage


def fnp_roll(defense: DefenseProfile, damage: int) -> Distribution[int]:
    if defense.feel_no_pain is None or damage == 0:
        return Distribution.singleton(damage)
    return Distribution.binomial(damage, 1 - save_probability(defense.feel_no_pain))


@dataclass(frozen=True)
class ShotResults:
    pools: Distribution[Pool]
    hits: Distribution[Hits]
    damage: Distribution[int]
    elapsed: float

    def __str__(self) -> str:
        sections = [
            ("Successes", self.successes),
            ("Unsaved", self.hits.map(lambda h: h.normals + h.crits)),
            ("Damage", self.damage),
        ]
        result = []
        for name, dist in sections:
            result.append(f"\n{name}:")
            result.append(str(dist))
        result.append(f"\nResolved in {self.elapsed:.3f}s")
        return "\n".join(result)

    @property
    def successes(self) -> Distribution[int]:
        return self.pools.map(lambda p: p.successes)


def resolve_stages(attack: AttackProfile, defense: DefenseProfile) -> ShotResults:
    """Resolve one shooting exchange, keeping the intermediate distributions."""
    attack.validate()
    defense.validate()
    start = perf_counter()

    abilities = effective_abilities(attack.abilities | defense.abilities)
    adjust_fn = lift(partial(adjust_pool, attack, abilities))
    save_roll_fn = liftM(partial(save_roll, attack, defense, abilities))
    scratch_fn = lift(partial(just_a_scratch, attack, abilities))
    damage_fn = lift(partial(tally_damage, attack, abilities))
    fnp_roll_fn = liftM(partial(fnp_roll, defense))

    pools = adjust_fn(roll_pool(attack))
    hits = scratch_fn(save_roll_fn(pools))
    damage = fnp_roll_fn(damage_fn(hits)).check_total(f"damage of {attack.name} vs {defense.name}")

    elapsed = perf_counter() - start
    logger.debug("Resolved %s vs %s (save %d+): %d damage outcomes in %.4fs",
                 attack.name, defense.name, defense.save_threshold, len(damage.probabilities), elapsed)
    return ShotResults(pools=pools, hits=hits, damage=damage, elapsed=elapsed)


@memoize(maxsize=AttackConfig.cache_size)
def _resolve_memoized(attack: AttackProfile, defense: DefenseProfile) -> Distribution[int]:
    return resolve_stages(attack, defense).damage


def resolve_attack(attack: AttackProfile, defense: DefenseProfile) -> Distribution[int]:
    """Exact distribution of the damage ``attack`` deals to ``defense``."""
    if AttackConfig.memoize:
        attack.validate()
        defense.validate()
        return _resolve_memoized(attack, defense)
    return resolve_stages(attack, defense).damage


def resolve_across_saves(attack: AttackProfile, defense: DefenseProfile,
                         saves: Iterable[int] = SAVE_RANGE) -> Dict[int, Distribution[int]]:
    """One damage distribution per defender save threshold."""
    return {save: resolve_attack(attack, defense.with_save(save)) for save in saves}
