"""Tests for distance and movement steps."""
from engine.geometry import clamp_tile, distance_2d, move_away, move_toward, round_half_up
from engine.model import Rules

RULES = Rules()


def test_distance_and_rounding():
    assert distance_2d((0, 0), (3, 4)) == 5.0
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2
    assert round_half_up(-0.5) == 0


def test_clamp_tile_keeps_inside_grid():
    assert clamp_tile(-3, 50, RULES) == (0, 27)
    assert clamp_tile(39.6, 0.4, RULES) == (39, 0)


def test_move_toward_arrives_when_in_reach():
    assert move_toward((0, 0), (3, 4), 5, RULES) == (3, 4)


def test_move_toward_steps_fraction_of_the_way():
    # 5 of 10 tiles along (0,0)->(6,8)
    assert move_toward((0, 0), (6, 8), 5, RULES) == (3, 4)
    assert move_toward((0, 0), (6, 0), 5, RULES) == (5, 0)


def test_move_away_mirrors_toward():
    assert move_away((10, 10), (12, 10), 1, RULES) == (9, 10)
    assert move_away((10, 10), (7, 6), 5, RULES) == (13, 14)


def test_move_away_is_clamped():
    assert move_away((0, 5), (2, 5), 4, RULES) == (0, 5)


def test_move_away_from_coincident_threat_stays_put():
    assert move_away((4, 4), (4, 4), 5, RULES) == (4, 4)
