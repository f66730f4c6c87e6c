import logging
from typing import Any, Callable, Dict, List, Optional

from . import ai, army
from .combat import HitRecord, DamageOutcome, resolve_attack
from .eventlog import EventLog
from .geometry import distance_2d
from .model import (
    AI_ORDER, SIDES, UNIT_TYPES, CommandResult, Event, Phase, RejectReason,
    Rules, State, Unit, other_side,
)
from .rng import DRNG

logger = logging.getLogger(__name__)

Listener = Callable[["Engine"], None]


class Engine:
    """Turn-based battle engine.

    Owns the battle state exclusively. Every public command either applies
    fully, notifies subscribers and returns a truthy ``CommandResult``, or is
    rejected with a reason and leaves the game state untouched.
    """

    def __init__(self, seed: int = 0, rules: Optional[Rules] = None):
        self.rules = rules or Rules()
        self.seed = seed
        self._listeners: List[Listener] = []
        self._init_state()

    def _init_state(self) -> None:
        self.state = State(rules=self.rules)
        self.events = EventLog(self.rules.log_limit)
        self._rng = DRNG(self.seed)

    # ------------------------------------------------------------------
    # notification channel

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        for fn in list(self._listeners):
            fn(self)

    def _log(self, kind: str, message: str, **data: Any) -> None:
        self.events.append(Event(kind, self.state.round, message, data))

    def _reject(self, result: CommandResult) -> CommandResult:
        logger.info("rejected (%s): %s", result.reason.value, result.message)
        self._log("Rejected", f"! {result.message}", reason=result.reason.value)
        return result

    def _commit(self, result: CommandResult, kind: str, **data: Any) -> CommandResult:
        if result.message:
            self._log(kind, result.message, **data)
        self._notify()
        return result

    def _wrong_phase(self, command: str, *allowed: Phase) -> Optional[CommandResult]:
        if self.state.phase in allowed:
            return None
        return self._reject(CommandResult.rejected(
            RejectReason.INVALID_PHASE,
            f"{command} is not allowed during {self.state.phase.value}"))

    # ------------------------------------------------------------------
    # queries

    @property
    def phase(self) -> Phase:
        return self.state.phase

    def alive_units(self, side: int) -> List[Unit]:
        return self.state.alive_units(side)

    def all_alive(self) -> List[Unit]:
        return self.state.all_alive()

    def unit_at(self, col: int, row: int) -> Optional[Unit]:
        return self.state.unit_at(col, row)

    def has_planners(self, side: int) -> bool:
        return any(u.get_type().command is not None for u in self.alive_units(side))

    def roster_counts(self) -> Dict[int, Dict[str, int]]:
        return {s: {"alive": len(self.alive_units(s)), "total": len(self.state.armies[s])}
                for s in SIDES}

    # ------------------------------------------------------------------
    # setup

    def add_unit(self, side: int, type_id: str) -> CommandResult:
        bad = self._wrong_phase("Recruiting", Phase.SETUP)
        if bad:
            return bad
        result = army.add_unit(self.state, side, type_id)
        if not result:
            return self._reject(result)
        return self._commit(result, "UnitAdded", side=side, unit_type=type_id)

    def remove_unit(self, side: int, type_id: str) -> CommandResult:
        bad = self._wrong_phase("Dismissing", Phase.SETUP)
        if bad:
            return bad
        result = army.remove_unit(self.state, side, type_id)
        if not result:
            return self._reject(result)
        return self._commit(result, "UnitRemoved", side=side, unit_type=type_id)

    def set_budget(self, amount: int) -> CommandResult:
        bad = self._wrong_phase("Changing the budget", Phase.SETUP)
        if bad:
            return bad
        result = army.set_budget(self.state, amount)
        if not result:
            return self._reject(result)
        return self._commit(result, "BudgetSet", amount=amount)

    def lock_in(self, side: int) -> CommandResult:
        bad = self._wrong_phase("Locking in", Phase.SETUP)
        if bad:
            return bad
        result = army.lock_in(self.state, side)
        if not result:
            return self._reject(result)
        self._log("LockedIn", result.message, side=side)
        if army.both_locked(self.state):
            self._start_deploy()
        self._notify()
        return result

    # ------------------------------------------------------------------
    # deployment

    def _start_deploy(self) -> None:
        self.state.phase = Phase.DEPLOY
        self.state.deploy_side = 1
        self.state.deploy_queue = army.build_deploy_queue(self.state.compositions[1])
        logger.info("deployment started: %d units for player 1", len(self.state.deploy_queue))
        self._log("PhaseChanged", "Player 1: place your units in the left zone",
                  phase=Phase.DEPLOY.value)

    def place_unit(self, col: int, row: int) -> CommandResult:
        bad = self._wrong_phase("Placing units", Phase.DEPLOY)
        if bad:
            return bad
        result, unit = army.place_unit(self.state, col, row)
        if not result:
            return self._reject(result)
        self._log("UnitPlaced", result.message, unit_id=unit.id, side=unit.side,
                  unit_type=unit.unit_type_id, pos=[col, row])

        if not self.state.deploy_queue:
            if self.state.deploy_side == 1:
                self.state.deploy_side = 2
                self.state.deploy_queue = army.build_deploy_queue(self.state.compositions[2])
                self._log("DeployHandoff", "Player 2: place your units in the right zone")
            else:
                self._start_battle()
        self._notify()
        return result

    def deploy_remaining_randomly(self) -> CommandResult:
        """Place every queued unit of both sides on random free tiles of their zones."""
        bad = self._wrong_phase("Auto-deploying", Phase.DEPLOY)
        if bad:
            return bad
        placed = 0
        while self.state.phase == Phase.DEPLOY:
            tiles = army.free_zone_tiles(self.state, self.state.deploy_side)
            if not tiles:
                break
            col, row = self._rng.choice(tiles)
            if not self.place_unit(col, row):
                break
            placed += 1
        if self.state.phase == Phase.DEPLOY and placed == 0:
            return self._reject(CommandResult.rejected(
                RejectReason.OCCUPIED_TILE, "No free tiles left in the deployment zone"))
        return CommandResult.accepted(f"Auto-deployed {placed} units")

    # ------------------------------------------------------------------
    # battle

    def _start_battle(self) -> None:
        self.state.phase = Phase.BATTLE
        self.state.active_side = 1
        self.state.round = 1
        logger.info("battle started")
        self._begin_round()

    def _begin_round(self) -> None:
        for u in self.state.all_units():
            u.just_hit = False
        for u in self.alive_units(self.state.active_side):
            u.has_acted = False
            u.has_moved = False
        self.state.selected_unit_id = None
        self._log("RoundStarted",
                  f"--- Round {self.state.round}: Player {self.state.active_side}'s turn ---",
                  side=self.state.active_side)

    def select_command_unit(self, unit_id: int) -> CommandResult:
        bad = self._wrong_phase("Selecting a unit", Phase.BATTLE)
        if bad:
            return bad
        unit = self.state.get_unit(unit_id)
        if unit is None or not unit.alive:
            reason = "That unit is not on the field"
        elif unit.side != self.state.active_side:
            reason = "That unit belongs to the other player"
        elif unit.has_acted:
            reason = "That unit has already acted this round"
        elif unit.get_type().command is None:
            reason = "Only command units take orders"
        else:
            self.state.selected_unit_id = unit.id
            self._notify()
            return CommandResult.accepted(f"Selected {unit.get_type().name} #{unit.id}")
        return self._reject(CommandResult.rejected(RejectReason.INVALID_SELECTION, reason))

    def cancel_selection(self) -> CommandResult:
        bad = self._wrong_phase("Cancelling a selection", Phase.BATTLE)
        if bad:
            return bad
        if self.state.selected_unit_id is None:
            return self._reject(CommandResult.rejected(
                RejectReason.INVALID_SELECTION, "No unit selected"))
        self.state.selected_unit_id = None
        self._notify()
        return CommandResult.accepted()

    def issue_rally_order(self, col: int, row: int) -> CommandResult:
        bad = self._wrong_phase("Rallying", Phase.BATTLE)
        if bad:
            return bad
        planner = None
        if self.state.selected_unit_id is not None:
            planner = self.state.get_unit(self.state.selected_unit_id)
        if planner is None or not planner.alive or planner.has_acted:
            return self._reject(CommandResult.rejected(
                RejectReason.INVALID_SELECTION, "Select a command unit first"))
        if not self.rules.in_bounds(col, row):
            return self._reject(CommandResult.rejected(
                RejectReason.OUT_OF_RANGE, f"({col},{row}) is off the battlefield"))

        command_range = planner.get_type().command.range
        rallied = [u for u in self.state.allies_of(planner)
                   if distance_2d(planner.pos, u.pos) <= command_range]
        for u in rallied:
            u.set_rally((col, row))
        planner.has_acted = True
        self.state.selected_unit_id = None
        result = CommandResult.accepted(f"Planner rallied {len(rallied)} allies to ({col},{row})")
        return self._commit(result, "Rally", unit_id=planner.id, to=[col, row],
                            rallied=[u.id for u in rallied])

    def _resolution_order(self, side: int) -> List[Unit]:
        roster = self.state.armies[side]
        return [u for cls in AI_ORDER for u in roster if u.unit_class == cls]

    def end_round(self) -> CommandResult:
        bad = self._wrong_phase("Ending the round", Phase.BATTLE)
        if bad:
            return bad
        side = self.state.active_side
        self.state.phase = Phase.RESOLVING_ROUND
        self.state.selected_unit_id = None

        for unit in self._resolution_order(side):
            if self.state.phase == Phase.GAME_OVER:
                break
            if not unit.alive or unit.has_acted:
                continue
            self._execute(unit, ai.decide(unit, self.state, self._rng))
            unit.has_acted = True

        if self.state.phase != Phase.GAME_OVER:
            self.check_win()
        if self.state.phase != Phase.GAME_OVER:
            self.state.phase = Phase.BATTLE
            self.state.active_side = other_side(side)
            if self.state.active_side == 1:
                self.state.round += 1
            self._begin_round()
        self._notify()
        return CommandResult.accepted(f"Player {side} ended round")

    def _execute(self, unit: Unit, decision: ai.Decision) -> None:
        kind = decision.kind
        if kind in (ai.DecisionKind.MOVE, ai.DecisionKind.CHARGE):
            self._move(unit, decision)
        if kind == ai.DecisionKind.ATTACK:
            self._attack(unit, decision.target, is_charging=False)
        elif kind == ai.DecisionKind.CHARGE:
            self._attack(unit, None, is_charging=True)
        if unit.rally is None:
            return
        if (unit.unit_class not in ai.RALLY_FOLLOWERS
                or distance_2d(unit.pos, unit.rally) <= ai.RALLY_ARRIVAL):
            unit.clear_rally()

    def _move(self, unit: Unit, decision: ai.Decision) -> None:
        dest = decision.destination
        if dest is None or dest == unit.pos:
            return
        frm = unit.pos
        unit.gx, unit.gy = dest
        unit.has_moved = True
        self._log("UnitMoved", f"{unit.get_type().abbr}#{unit.id} moves to {dest} ({decision.reason})",
                  unit_id=unit.id, frm=list(frm), to=list(dest))

    def _attack(self, attacker: Unit, target: Optional[Unit], is_charging: bool) -> None:
        hits = resolve_attack(attacker, self.state.all_units(), target, is_charging)
        for hit in hits:
            self._log_hit(attacker, hit, is_charging)
        if hits:
            self.check_win()

    def _log_hit(self, attacker: Unit, hit: HitRecord, is_charging: bool) -> None:
        killed = hit.outcome == DamageOutcome.KILLED
        msg = (f"{attacker.get_type().abbr}->{hit.target.get_type().abbr}: "
               f"{hit.damage} dmg{' (charge)' if is_charging else ''}{' KILLED' if killed else ''}")
        self._log("Damage", msg, shooter=attacker.id, target=hit.target.id,
                  dmg=hit.damage, hp=hit.target.hp)
        if killed:
            self._log("Destroyed", f"{hit.target.get_type().name} #{hit.target.id} destroyed",
                      unit_id=hit.target.id, killer=attacker.id)

    # ------------------------------------------------------------------
    # resolution

    def check_win(self) -> Optional[int]:
        """Finish the battle if a side has been wiped out; returns the winner."""
        if self.state.phase not in (Phase.BATTLE, Phase.RESOLVING_ROUND):
            return self.state.winner
        a1 = len(self.alive_units(1))
        a2 = len(self.alive_units(2))
        if a1 == 0 and a2 == 0:
            self._end(0)
        elif a2 == 0:
            self._end(1)
        elif a1 == 0:
            self._end(2)
        return self.state.winner

    def _end(self, winner: int) -> None:
        self.state.winner = winner
        self.state.phase = Phase.GAME_OVER
        outcome = "Draw" if winner == 0 else f"Player {winner} wins"
        logger.info("battle over after round %d: %s", self.state.round, outcome)
        self._log("GameOver", f"{outcome}!", winner=winner)

    def reset(self) -> CommandResult:
        """Return to an empty SETUP state from any phase."""
        self._init_state()
        self._notify()
        return CommandResult.accepted()

    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Read-only view of the state for presentation layers."""
        s = self.state
        counts = self.roster_counts()
        return {
            "phase": s.phase.value,
            "round": s.round,
            "active_side": s.active_side,
            "deploy_side": s.deploy_side,
            "deploy_queue": list(s.deploy_queue),
            "winner": s.winner,
            "selected_unit_id": s.selected_unit_id,
            "budget": s.total_budget,
            "sides": {
                side: {
                    "budget_left": s.compositions[side].budget_left,
                    "composition": dict(s.compositions[side].counts),
                    "locked": s.compositions[side].locked,
                    **counts[side],
                } for side in SIDES
            },
            "units": [
                {
                    "id": u.id,
                    "unit_type_id": u.unit_type_id,
                    "side": u.side,
                    "pos": [u.gx, u.gy],
                    "hp": u.hp,
                    "max_hp": UNIT_TYPES[u.unit_type_id].max_hp,
                    "alive": u.alive,
                    "has_acted": u.has_acted,
                    "has_moved": u.has_moved,
                    "just_hit": u.just_hit,
                    "rally": list(u.rally) if u.rally else None,
                } for u in s.all_units()
            ],
            "log": self.events.messages(),
        }
