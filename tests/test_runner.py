"""Tests for the async battle runner."""
import asyncio

import pytest

from engine.engine import Engine
from engine.model import UNIT_TYPES, Phase, Unit
from runtime.runner import BattleRunner


def quick_battle() -> Engine:
    """Cavalry one charge away from a badly wounded Archer."""
    eng = Engine(seed=1)
    eng.state.armies[1].append(Unit(id=0, side=1, unit_type_id="CAVALRY", gx=0, gy=0,
                                    hp=UNIT_TYPES["CAVALRY"].max_hp))
    eng.state.armies[2].append(Unit(id=1, side=2, unit_type_id="ARCHER", gx=3, gy=0, hp=10))
    eng.state.phase = Phase.BATTLE
    return eng


@pytest.mark.asyncio
async def test_run_counts_revisions_only_for_accepted_commands():
    runner = BattleRunner(Engine())
    assert await runner.run(lambda e: e.add_unit(1, "FOOT"))
    assert runner.revision == 1
    assert not await runner.run(lambda e: e.lock_in(2))
    assert runner.revision == 1
    snap = await runner.snapshot()
    assert snap["revision"] == 1
    assert snap["autoplay"] is False
    await runner.close()


@pytest.mark.asyncio
async def test_autoplay_refuses_outside_battle():
    runner = BattleRunner(Engine())
    assert await runner.start() is False
    assert not runner.autoplaying


@pytest.mark.asyncio
async def test_autoplay_plays_to_the_end():
    runner = BattleRunner(quick_battle(), tick_ms=1, time_compression=10.0)
    assert await runner.start()
    await asyncio.wait_for(runner._task, timeout=5)
    assert runner.engine.phase == Phase.GAME_OVER
    assert runner.engine.state.winner == 1
    assert not runner.autoplaying
    await runner.close()


@pytest.mark.asyncio
async def test_stop_cancels_autoplay():
    eng = Engine(seed=1)
    eng.state.armies[1].append(Unit(id=0, side=1, unit_type_id="FOOT", gx=0, gy=0, hp=100))
    eng.state.armies[2].append(Unit(id=1, side=2, unit_type_id="PLANNER", gx=39, gy=27, hp=100))
    eng.state.phase = Phase.BATTLE
    runner = BattleRunner(eng, tick_ms=10_000)
    assert await runner.start()
    await asyncio.sleep(0)
    await runner.stop()
    assert not runner.autoplaying


def test_time_compression_is_clamped():
    runner = BattleRunner(Engine(), tick_ms=500)
    runner.set_time_compression(0.0)
    assert runner.time_compression == 0.1
    assert runner.sleep_s == 0.5
    runner.set_time_compression(5.0)
    assert runner.sleep_s == pytest.approx(0.1)
