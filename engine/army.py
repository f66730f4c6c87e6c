"""Army composition under a budget, and deployment placement rules.

These functions validate and apply one command against a ``State``; phase
gating and notifications belong to the engine that calls them.
"""
from typing import List, Optional, Tuple

from .model import (
    DEPLOY_ORDER, SIDES, UNIT_TYPES, CommandResult, Composition, RejectReason,
    State, Tile, Unit,
)

Rejected = CommandResult.rejected


def _check_side(side: int) -> Optional[CommandResult]:
    if side not in SIDES:
        return Rejected(RejectReason.UNKNOWN_SIDE, f"No such player: {side}")
    return None


def add_unit(state: State, side: int, type_id: str) -> CommandResult:
    bad = _check_side(side)
    if bad:
        return bad
    if type_id not in UNIT_TYPES:
        return Rejected(RejectReason.UNKNOWN_ARCHETYPE, f"Unknown unit type {type_id!r}")
    comp = state.compositions[side]
    if comp.locked:
        return Rejected(RejectReason.ALREADY_LOCKED, f"Player {side} is locked in")
    cost = UNIT_TYPES[type_id].cost
    if comp.budget_left < cost:
        return Rejected(RejectReason.BUDGET,
                        f"Player {side} cannot afford {UNIT_TYPES[type_id].name} "
                        f"({cost} > {comp.budget_left})")
    comp.counts[type_id] += 1
    comp.budget_left -= cost
    return CommandResult.accepted(f"Player {side} recruited {UNIT_TYPES[type_id].name}")


def remove_unit(state: State, side: int, type_id: str) -> CommandResult:
    bad = _check_side(side)
    if bad:
        return bad
    if type_id not in UNIT_TYPES:
        return Rejected(RejectReason.UNKNOWN_ARCHETYPE, f"Unknown unit type {type_id!r}")
    comp = state.compositions[side]
    if comp.locked:
        return Rejected(RejectReason.ALREADY_LOCKED, f"Player {side} is locked in")
    if comp.counts[type_id] == 0:
        return Rejected(RejectReason.NOTHING_TO_REMOVE,
                        f"Player {side} has no {UNIT_TYPES[type_id].name} to dismiss")
    comp.counts[type_id] -= 1
    comp.budget_left += UNIT_TYPES[type_id].cost
    return CommandResult.accepted(f"Player {side} dismissed {UNIT_TYPES[type_id].name}")


def set_budget(state: State, amount: int) -> CommandResult:
    """Change the shared budget; only while both armies are still empty."""
    if amount not in state.rules.budget_presets:
        return Rejected(RejectReason.INVALID_BUDGET,
                        f"Budget must be one of {list(state.rules.budget_presets)}")
    for side in SIDES:
        comp = state.compositions[side]
        if comp.locked:
            return Rejected(RejectReason.ALREADY_LOCKED, f"Player {side} is locked in")
        if comp.total() > 0:
            return Rejected(RejectReason.INVALID_BUDGET,
                            f"Player {side} has already recruited units")
    state.total_budget = amount
    state.compositions = {s: Composition(budget_left=amount) for s in SIDES}
    return CommandResult.accepted(f"Budget set to {amount}")


def lock_in(state: State, side: int) -> CommandResult:
    bad = _check_side(side)
    if bad:
        return bad
    comp = state.compositions[side]
    if comp.locked:
        return Rejected(RejectReason.ALREADY_LOCKED, f"Player {side} is already locked in")
    if comp.total() == 0:
        return Rejected(RejectReason.EMPTY_ARMY, f"Player {side} has no units")
    comp.locked = True
    return CommandResult.accepted(f"Player {side} locked in {comp.total()} units")


def both_locked(state: State) -> bool:
    return all(state.compositions[s].locked for s in SIDES)


def build_deploy_queue(comp: Composition) -> List[str]:
    queue: List[str] = []
    for type_id in DEPLOY_ORDER:
        queue.extend([type_id] * comp.counts[type_id])
    return queue


def validate_placement(state: State, col: int, row: int) -> CommandResult:
    if not state.deploy_queue:
        return Rejected(RejectReason.QUEUE_EMPTY, "No units left to place")
    if not state.rules.in_bounds(col, row):
        return Rejected(RejectReason.OUT_OF_RANGE, f"({col},{row}) is off the battlefield")
    if not state.rules.in_deploy_zone(state.deploy_side, col):
        return Rejected(RejectReason.OUT_OF_ZONE, "Place units inside your deployment zone!")
    if state.unit_at(col, row) is not None:
        return Rejected(RejectReason.OCCUPIED_TILE, "Tile already occupied!")
    return CommandResult.accepted()


def place_unit(state: State, col: int, row: int) -> Tuple[CommandResult, Optional[Unit]]:
    """Pop the next queued archetype and put it on (col, row)."""
    check = validate_placement(state, col, row)
    if not check:
        return check, None
    type_id = state.deploy_queue.pop(0)
    unit = Unit(id=state.next_unit_id, side=state.deploy_side, unit_type_id=type_id,
                gx=col, gy=row, hp=UNIT_TYPES[type_id].max_hp)
    state.next_unit_id += 1
    state.armies[state.deploy_side].append(unit)
    return CommandResult.accepted(
        f"Player {unit.side} placed {UNIT_TYPES[type_id].name} at ({col},{row})"), unit


def free_zone_tiles(state: State, side: int) -> List[Tile]:
    """Unoccupied tiles of `side`'s deployment zone, column-major."""
    rules = state.rules
    return [(c, r)
            for c in range(rules.grid_cols) if rules.in_deploy_zone(side, c)
            for r in range(rules.grid_rows) if state.unit_at(c, r) is None]
