"""Tests for the command-line entrypoint."""
import argparse

import pytest

from engine.engine import Engine
from engine.model import Phase
from runtime.cli import main, parse_army, simulate


def test_parse_army():
    assert parse_army("foot=3, ARCHER=2,planner") == {"FOOT": 3, "ARCHER": 2, "PLANNER": 1}
    assert parse_army("") == {}


def test_parse_army_rejects_bad_input():
    with pytest.raises(argparse.ArgumentTypeError):
        parse_army("DRAGON=1")
    with pytest.raises(argparse.ArgumentTypeError):
        parse_army("FOOT=many")


def test_simulate_reaches_a_result():
    eng = Engine(seed=3)
    winner = simulate(eng, {1: {"CAVALRY": 2}, 2: {"FOOT": 2}})
    assert eng.phase == Phase.GAME_OVER
    assert winner in (0, 1, 2)


def test_simulate_needs_two_armies():
    eng = Engine()
    assert simulate(eng, {1: {"FOOT": 1}, 2: {}}) is None
    assert eng.phase == Phase.SETUP


def test_main_simulate_prints_battle(capsys):
    main(["simulate", "--p1", "CAVALRY=1", "--p2", "ARCHER=1", "--seed", "2"])
    out = capsys.readouterr().out
    assert "placed Cavalry" in out
    assert "wins" in out or "Draw" in out
