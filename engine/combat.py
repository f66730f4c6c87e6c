"""Combat resolution: damage, defense auras, death and targeting.

Every function here is pure with respect to the battle state except
``apply_damage`` and ``resolve_attack``, which mutate only the units they hit.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from .geometry import distance_2d, round_half_up
from .model import Unit


class DamageOutcome(Enum):
    ALREADY_DEAD = "already_dead"
    HIT = "hit"
    KILLED = "killed"


@dataclass
class HitRecord:
    target: Unit
    damage: int
    outcome: DamageOutcome


def unit_distance(a: Unit, b: Unit) -> float:
    return distance_2d(a.pos, b.pos)


def aura_sources(target: Unit, all_units: Iterable[Unit]) -> List[Unit]:
    """Living allies of `target` (never the target itself) whose aura covers it."""
    sources = []
    for u in all_units:
        if u is target or not u.alive or u.side != target.side:
            continue
        aura = u.get_type().aura
        if aura is not None and unit_distance(u, target) <= aura.range:
            sources.append(u)
    return sources


def defense_multiplier(target: Unit, all_units: Iterable[Unit]) -> float:
    """Fraction of incoming damage `target` retains; auras stack multiplicatively."""
    mult = 1.0
    for src in aura_sources(target, all_units):
        mult *= src.get_type().aura.factor
    return mult


def effective_damage(attacker: Unit, target: Unit, all_units: Iterable[Unit],
                     is_charging: bool = False) -> int:
    """Damage `attacker` would deal to `target` given the current population."""
    a_type = attacker.get_type()
    dmg = float(a_type.damage)

    if a_type.charge is not None and is_charging:
        dmg *= a_type.charge.multiplier

    penalty = a_type.melee_penalty
    if penalty is not None and unit_distance(attacker, target) <= penalty.range:
        dmg *= penalty.factor

    dmg *= defense_multiplier(target, all_units)
    # A successful attack always lands at least one point
    return max(1, round_half_up(dmg))


def apply_damage(unit: Unit, amount: int) -> DamageOutcome:
    """Apply damage; KILLED only on the call that takes health to zero."""
    if not unit.alive:
        return DamageOutcome.ALREADY_DEAD
    unit.hp = max(0, unit.hp - amount)
    unit.just_hit = True
    if unit.hp == 0:
        unit.alive = False
        return DamageOutcome.KILLED
    return DamageOutcome.HIT


def can_attack(attacker: Unit, target: Unit) -> bool:
    a_type = attacker.get_type()
    if not a_type.can_attack:
        return False
    return unit_distance(attacker, target) <= a_type.attack_range


def enemies_in_range(attacker: Unit, all_units: Iterable[Unit]) -> List[Unit]:
    """Living enemies `attacker` can strike from where it stands, in roster order."""
    return [u for u in all_units
            if u.alive and u.side != attacker.side and can_attack(attacker, u)]


def nearest(unit: Unit, candidates: Sequence[Unit]) -> Optional[Unit]:
    """Closest candidate; ties go to the earliest in the sequence."""
    best = None
    best_dist = float("inf")
    for c in candidates:
        d = unit_distance(unit, c)
        if d < best_dist:
            best, best_dist = c, d
    return best


def resolve_attack(attacker: Unit, all_units: Sequence[Unit],
                   explicit_target: Optional[Unit] = None,
                   is_charging: bool = False) -> List[HitRecord]:
    """Resolve one attack action and return what it hit.

    Area attackers strike every living enemy in range. All damage is computed
    against the population as it stood before the strike, then applied, so
    the targets of one area attack are hit simultaneously. Single-target
    attackers strike `explicit_target` if it is a valid target, otherwise the
    nearest living enemy in range.
    """
    if not attacker.alive or not attacker.get_type().can_attack:
        return []

    in_range = enemies_in_range(attacker, all_units)
    if attacker.get_type().area_attack:
        targets = in_range
    elif explicit_target is not None:
        valid = any(u is explicit_target for u in in_range)
        targets = [explicit_target] if valid else []
    else:
        closest = nearest(attacker, in_range)
        targets = [closest] if closest is not None else []

    planned = [(t, effective_damage(attacker, t, all_units, is_charging)) for t in targets]
    return [HitRecord(t, dmg, apply_damage(t, dmg)) for t, dmg in planned]
