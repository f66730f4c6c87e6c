import math
from typing import Tuple
from .model import Rules, Tile

Point = Tuple[float, float]


def distance_2d(pos1: Point, pos2: Point) -> float:
    """Calculate Euclidean distance between two 2D positions."""
    dx = pos2[0] - pos1[0]
    dy = pos2[1] - pos1[1]
    return math.sqrt(dx * dx + dy * dy)


def round_half_up(value: float) -> int:
    """Round .5 away from the floor, so 2.5 -> 3 and -2.5 -> -2."""
    return int(math.floor(value + 0.5))


def clamp_tile(x: float, y: float, rules: Rules) -> Tile:
    gx = max(0, min(rules.grid_cols - 1, round_half_up(x)))
    gy = max(0, min(rules.grid_rows - 1, round_half_up(y)))
    return (gx, gy)


def move_toward(pos: Tile, target: Point, speed: float, rules: Rules) -> Tile:
    """Tile reached after one round of travel from `pos` toward `target`.

    Arrives exactly when the target is within `speed`; otherwise steps the
    `speed / d` fraction of the way, rounded to the grid and clamped to it.
    """
    dist = distance_2d(pos, target)
    if dist <= speed:
        return clamp_tile(target[0], target[1], rules)
    ratio = speed / dist
    return clamp_tile(pos[0] + (target[0] - pos[0]) * ratio,
                      pos[1] + (target[1] - pos[1]) * ratio, rules)


def move_away(pos: Tile, threat: Point, speed: float, rules: Rules) -> Tile:
    """Mirror of move_toward: step along the ray from `threat` through `pos`."""
    dx = pos[0] - threat[0]
    dy = pos[1] - threat[1]
    dist = math.sqrt(dx * dx + dy * dy)
    if dist == 0:
        # No direction away from a coincident threat
        return pos
    ratio = speed / dist
    return clamp_tile(pos[0] + dx * ratio, pos[1] + dy * ratio, rules)
