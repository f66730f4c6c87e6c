from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple

Side = Literal[1, 2]
Tile = Tuple[int, int]  # (gx, gy) grid coordinates

SIDES: Tuple[Side, Side] = (1, 2)


def other_side(side: int) -> Side:
    return 2 if side == 1 else 1


class UnitClass(Enum):
    """Archetype family; every combat and AI rule dispatches on this."""
    FOOT = "FOOT"
    ARCHER = "ARCHER"
    CAVALRY = "CAVALRY"
    PLANNER = "PLANNER"


class Phase(Enum):
    SETUP = "SETUP"
    DEPLOY = "DEPLOY"
    BATTLE = "BATTLE"
    RESOLVING_ROUND = "RESOLVING_ROUND"
    GAME_OVER = "GAME_OVER"


@dataclass(frozen=True)
class DefenseAura:
    """Passive aura: each living source near a target multiplies incoming damage by `factor`."""
    factor: float
    range: float


@dataclass(frozen=True)
class MeleePenalty:
    """Damage multiplier applied when the target stands within `range`."""
    range: float
    factor: float


@dataclass(frozen=True)
class Charge:
    multiplier: float


@dataclass(frozen=True)
class Command:
    range: float


@dataclass(frozen=True)
class UnitType:
    """Template defining characteristics of a unit archetype"""
    id: str
    name: str
    abbr: str
    unit_class: UnitClass
    cost: int
    max_hp: int
    move_speed: float   # max Euclidean travel per round, in tiles
    damage: float
    attack_range: float
    base_defense: int   # carried as data only; the aura model does not subtract it
    description: str = ""
    area_attack: bool = False  # hits ALL enemies in range each attack
    can_attack: bool = True
    aura: Optional[DefenseAura] = None
    melee_penalty: Optional[MeleePenalty] = None
    charge: Optional[Charge] = None
    command: Optional[Command] = None


# Predefined archetypes
UNIT_TYPES: Dict[str, UnitType] = {
    "FOOT": UnitType(
        id="FOOT",
        name="Foot Soldier",
        abbr="F",
        unit_class=UnitClass.FOOT,
        cost=50,
        max_hp=100,
        move_speed=5,
        damage=10,
        attack_range=2,
        base_defense=5,
        description="Cheap frontline fighter. Allies within 2 tiles take 10% less damage per nearby Foot.",
        area_attack=True,
        aura=DefenseAura(factor=0.9, range=2),
    ),
    "ARCHER": UnitType(
        id="ARCHER",
        name="Archer",
        abbr="A",
        unit_class=UnitClass.ARCHER,
        cost=75,
        max_hp=100,
        move_speed=4,
        damage=5,
        attack_range=20,
        base_defense=0,
        description="Long-range attacker (range 20). Half damage vs close targets (<= 3 tiles).",
        melee_penalty=MeleePenalty(range=3, factor=0.5),
    ),
    "CAVALRY": UnitType(
        id="CAVALRY",
        name="Cavalry",
        abbr="C",
        unit_class=UnitClass.CAVALRY,
        cost=100,
        max_hp=100,
        move_speed=20,
        damage=10,
        attack_range=4,
        base_defense=0,
        description="Fastest unit (speed 20). CHARGE: move + attack at 1.5x damage.",
        area_attack=True,
        charge=Charge(multiplier=1.5),
    ),
    "PLANNER": UnitType(
        id="PLANNER",
        name="Planner",
        abbr="P",
        unit_class=UnitClass.PLANNER,
        cost=125,
        max_hp=100,
        move_speed=1,
        damage=1,
        attack_range=2,
        base_defense=0,
        description="Command unit. RALLY: send allies within 10 tiles to any point.",
        can_attack=False,
        command=Command(range=10),
    ),
}

# Deployment queues are filled melee-first
DEPLOY_ORDER: Tuple[str, ...] = ("FOOT", "ARCHER", "CAVALRY", "PLANNER")
# Automatic resolution order within a round
AI_ORDER: Tuple[UnitClass, ...] = (
    UnitClass.PLANNER, UnitClass.FOOT, UnitClass.ARCHER, UnitClass.CAVALRY,
)


class UnknownArchetypeError(KeyError):
    """Raised when an archetype id is not in the catalog."""


def get_unit_type(type_id: str) -> UnitType:
    try:
        return UNIT_TYPES[type_id]
    except KeyError:
        raise UnknownArchetypeError(type_id) from None


@dataclass(frozen=True)
class Rules:
    """Battlefield and economy constants shared by every component."""
    grid_cols: int = 40
    grid_rows: int = 28
    budget: int = 500
    deploy_cols: int = 8
    log_limit: int = 40
    retreat_radius: float = 4.0  # Planner falls back when an enemy is this close
    budget_presets: Tuple[int, ...] = (300, 500, 800, 1000)

    def in_bounds(self, col: int, row: int) -> bool:
        return 0 <= col < self.grid_cols and 0 <= row < self.grid_rows

    def in_deploy_zone(self, side: int, col: int) -> bool:
        if side == 1:
            return col < self.deploy_cols
        return col >= self.grid_cols - self.deploy_cols


class RejectReason(Enum):
    BUDGET = "budget"
    INVALID_PHASE = "invalid_phase"
    OCCUPIED_TILE = "occupied_tile"
    OUT_OF_ZONE = "out_of_zone"
    OUT_OF_RANGE = "out_of_range"
    INVALID_SELECTION = "invalid_selection"
    EMPTY_ARMY = "empty_army"
    ALREADY_LOCKED = "already_locked"
    UNKNOWN_ARCHETYPE = "unknown_archetype"
    UNKNOWN_SIDE = "unknown_side"
    NOTHING_TO_REMOVE = "nothing_to_remove"
    INVALID_BUDGET = "invalid_budget"
    QUEUE_EMPTY = "queue_empty"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of an engine command. Truthy when the command was applied."""
    ok: bool
    reason: Optional[RejectReason] = None
    message: str = ""

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def accepted(cls, message: str = "") -> "CommandResult":
        return cls(True, None, message)

    @classmethod
    def rejected(cls, reason: RejectReason, message: str) -> "CommandResult":
        return cls(False, reason, message)


@dataclass
class Unit:
    id: int
    side: Side
    unit_type_id: str  # Key into UNIT_TYPES
    gx: int
    gy: int
    hp: int
    alive: bool = True
    has_acted: bool = False
    has_moved: bool = False
    just_hit: bool = False  # set by the last damage application, cleared each round
    rally: Optional[Tile] = None

    def get_type(self) -> UnitType:
        """Get the UnitType definition for this unit"""
        return get_unit_type(self.unit_type_id)

    @property
    def unit_class(self) -> UnitClass:
        return self.get_type().unit_class

    @property
    def pos(self) -> Tile:
        return (self.gx, self.gy)

    def set_rally(self, tile: Tile) -> None:
        self.rally = tile

    def clear_rally(self) -> None:
        self.rally = None


@dataclass
class Composition:
    """One side's army under construction."""
    budget_left: int
    counts: Dict[str, int] = field(default_factory=lambda: {t: 0 for t in DEPLOY_ORDER})
    locked: bool = False

    def total(self) -> int:
        return sum(self.counts.values())

    def spent(self) -> int:
        return sum(n * UNIT_TYPES[t].cost for t, n in self.counts.items())


@dataclass
class Event:
    kind: str
    round: int
    message: str
    data: Dict = field(default_factory=dict)


@dataclass
class State:
    rules: Rules = field(default_factory=Rules)
    phase: Phase = Phase.SETUP
    total_budget: int = 0
    compositions: Dict[int, Composition] = field(default_factory=dict)
    armies: Dict[int, List[Unit]] = field(default_factory=lambda: {1: [], 2: []})
    deploy_side: Side = 1
    deploy_queue: List[str] = field(default_factory=list)
    active_side: Side = 1
    round: int = 1
    winner: Optional[int] = None  # 0 = draw
    selected_unit_id: Optional[int] = None
    next_unit_id: int = 0

    def __post_init__(self):
        if not self.total_budget:
            self.total_budget = self.rules.budget
        if not self.compositions:
            self.compositions = {s: Composition(budget_left=self.total_budget) for s in SIDES}

    def alive_units(self, side: int) -> List[Unit]:
        return [u for u in self.armies[side] if u.alive]

    def all_alive(self) -> List[Unit]:
        return self.alive_units(1) + self.alive_units(2)

    def all_units(self) -> List[Unit]:
        return self.armies[1] + self.armies[2]

    def unit_at(self, col: int, row: int) -> Optional[Unit]:
        for u in self.all_alive():
            if u.gx == col and u.gy == row:
                return u
        return None

    def get_unit(self, unit_id: int) -> Optional[Unit]:
        for u in self.all_units():
            if u.id == unit_id:
                return u
        return None

    def enemies_of(self, unit: Unit) -> List[Unit]:
        return self.alive_units(other_side(unit.side))

    def allies_of(self, unit: Unit) -> List[Unit]:
        """Living units on the same side, excluding `unit` itself."""
        return [u for u in self.alive_units(unit.side) if u is not unit]
