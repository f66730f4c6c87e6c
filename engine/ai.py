"""Per-archetype battle AI.

Each decider looks only at the current state (no search, no lookahead) and
returns a ``Decision``; the engine is responsible for carrying it out. The
only source of variation is the seeded RNG used to pick among equally valid
targets.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from .combat import enemies_in_range, nearest, unit_distance
from .geometry import distance_2d, move_away, move_toward
from .model import State, Tile, Unit, UnitClass
from .rng import DRNG

logger = logging.getLogger(__name__)

# Rally targets closer than this count as reached
RALLY_ARRIVAL = 0.5

# Allies a Foot unit keeps in formation with while following a rally
PROTECTED_CLASSES = (UnitClass.ARCHER, UnitClass.CAVALRY)

# Archetypes whose deciders steer by a rally target; the rest drop it after acting
RALLY_FOLLOWERS = (UnitClass.FOOT, UnitClass.ARCHER)


class DecisionKind(Enum):
    HOLD = "hold"
    MOVE = "move"
    ATTACK = "attack"
    CHARGE = "charge"  # move to `destination`, then area attack from there


@dataclass
class Decision:
    kind: DecisionKind
    destination: Optional[Tile] = None
    target: Optional[Unit] = None
    reason: str = ""


def hold(reason: str) -> Decision:
    return Decision(DecisionKind.HOLD, reason=reason)


def active_rally(unit: Unit) -> Optional[Tile]:
    """The unit's rally target, unless it is already standing on it."""
    if unit.rally is None:
        return None
    if distance_2d(unit.pos, unit.rally) <= RALLY_ARRIVAL:
        return None
    return unit.rally


def _step_toward(unit: Unit, state: State, target: Tile, reason: str) -> Decision:
    dest = move_toward(unit.pos, target, unit.get_type().move_speed, state.rules)
    if dest == unit.pos:
        return hold(reason + " (already there)")
    return Decision(DecisionKind.MOVE, destination=dest, reason=reason)


def _advance(unit: Unit, state: State, enemies: List[Unit]) -> Decision:
    target = nearest(unit, enemies)
    if target is None:
        return hold("no enemies left")
    return _step_toward(unit, state, target.pos, "advance")


def decide_planner(unit: Unit, state: State, rng: DRNG) -> Decision:
    """Planners never fight; they only fall back from enemies that get close."""
    threats = [e for e in state.enemies_of(unit)
               if unit_distance(unit, e) <= state.rules.retreat_radius]
    threat = nearest(unit, threats)
    if threat is None:
        return hold("no threat")
    dest = move_away(unit.pos, threat.pos, unit.get_type().move_speed, state.rules)
    if dest == unit.pos:
        return hold("cornered")
    return Decision(DecisionKind.MOVE, destination=dest, reason="retreat")


def decide_foot(unit: Unit, state: State, rng: DRNG) -> Decision:
    rally = active_rally(unit)
    aura = unit.get_type().aura
    if rally is not None and aura is not None:
        protectors = [a for a in state.allies_of(unit) if a.unit_class in PROTECTED_CLASSES]
        in_formation = any(unit_distance(unit, p) <= aura.range for p in protectors)
        if protectors and not in_formation:
            escort = nearest(unit, protectors)
            return _step_toward(unit, state, escort.pos, "regroup")

    targets = enemies_in_range(unit, state.all_units())
    if targets:
        return Decision(DecisionKind.ATTACK, target=rng.choice(targets), reason="engage")
    if rally is not None:
        return _step_toward(unit, state, rally, "rally")
    return _advance(unit, state, state.enemies_of(unit))


def decide_archer(unit: Unit, state: State, rng: DRNG) -> Decision:
    penalty = unit.get_type().melee_penalty
    penalty_range = penalty.range if penalty is not None else 0.0

    targets = enemies_in_range(unit, state.all_units())
    clean = [t for t in targets if unit_distance(unit, t) > penalty_range]
    if clean:
        return Decision(DecisionKind.ATTACK, target=rng.choice(clean), reason="volley")
    if targets:
        return Decision(DecisionKind.ATTACK, target=rng.choice(targets), reason="close volley")

    enemies = state.enemies_of(unit)
    close = [e for e in enemies if unit_distance(unit, e) <= penalty_range]
    if close:
        threat = nearest(unit, close)
        dest = move_away(unit.pos, threat.pos, unit.get_type().move_speed, state.rules)
        if dest == unit.pos:
            return hold("cornered")
        return Decision(DecisionKind.MOVE, destination=dest, reason="fall back")
    rally = active_rally(unit)
    if rally is not None:
        return _step_toward(unit, state, rally, "rally")
    return _advance(unit, state, enemies)


def decide_cavalry(unit: Unit, state: State, rng: DRNG) -> Decision:
    target = nearest(unit, state.enemies_of(unit))
    if target is None:
        return hold("no enemies left")
    dest = move_toward(unit.pos, target.pos, unit.get_type().move_speed, state.rules)
    return Decision(DecisionKind.CHARGE, destination=dest, target=target, reason="charge")


Decider = Callable[[Unit, State, DRNG], Decision]

DECIDERS: Dict[UnitClass, Decider] = {
    UnitClass.PLANNER: decide_planner,
    UnitClass.FOOT: decide_foot,
    UnitClass.ARCHER: decide_archer,
    UnitClass.CAVALRY: decide_cavalry,
}


def decide(unit: Unit, state: State, rng: DRNG) -> Decision:
    """Pick this round's action for `unit`."""
    if not unit.alive:
        return hold("dead")
    decision = DECIDERS[unit.unit_class](unit, state, rng)
    logger.debug("unit %s (%s) -> %s %s", unit.id, unit.unit_type_id,
                 decision.kind.value, decision.reason)
    return decision
