import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from engine.engine import Engine
from engine.model import CommandResult
from runtime.config import get_settings
from runtime.runner import BattleRunner
from .schemas import BudgetIn, EventsResponse, RecruitIn, SelectIn, SideIn, StartRequest, TileIn

logger = logging.getLogger(__name__)

runner: BattleRunner | None = None


def _make_runner(seed: int | None = None) -> BattleRunner:
    settings = get_settings()
    eng = Engine(seed=settings.seed if seed is None else seed, rules=settings.rules())
    return BattleRunner(eng, tick_ms=settings.tick_ms, time_compression=settings.time_compression)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the default battle on startup and stop autoplay on shutdown."""
    global runner
    runner = _make_runner()
    try:
        yield
    finally:
        if runner:
            await runner.close()


app = FastAPI(title="Tactical Battle Engine API", lifespan=lifespan)

# Enable CORS for development (front-end runs on a different port)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _runner() -> BattleRunner:
    if not runner:
        raise HTTPException(400, "Battle not started")
    return runner


async def _command(fn: Callable[[Engine], CommandResult]):
    """Run an engine command; rejections become HTTP 409."""
    r = _runner()
    result = await r.run(fn)
    if not result:
        raise HTTPException(409, result.message)
    return await r.snapshot()


@app.get("/")
async def root():
    """API root endpoint."""
    return {
        "message": "Tactical Battle Engine API",
        "docs": "/docs",
        "version": "1.0"
    }


@app.post("/battle/start")
async def start_battle(req: StartRequest):
    """Start a new battle with specified seed."""
    global runner
    if runner:
        await runner.close()
    runner = _make_runner(req.seed)
    logger.info("new battle (seed %s)", runner.engine.seed)
    return {"battle_id": "local", "seed": runner.engine.seed}


@app.get("/battle/local/state")
async def get_state():
    """Get current battle state snapshot."""
    return await _runner().snapshot()


@app.get("/battle/local/events")
async def get_events(since: int = 0, limit: int = 500):
    """Get events since offset."""
    evts, next_offset = _runner().engine.events.since(since, limit)
    return EventsResponse(
        next_offset=next_offset,
        events=[{"kind": e.kind, "round": e.round, "message": e.message, "data": e.data}
                for e in evts]
    )


@app.post("/battle/local/setup/budget")
async def set_budget(req: BudgetIn):
    return await _command(lambda e: e.set_budget(req.amount))


@app.post("/battle/local/setup/add")
async def add_unit(req: RecruitIn):
    return await _command(lambda e: e.add_unit(req.side, req.unit_type_id))


@app.post("/battle/local/setup/remove")
async def remove_unit(req: RecruitIn):
    return await _command(lambda e: e.remove_unit(req.side, req.unit_type_id))


@app.post("/battle/local/setup/lock")
async def lock_in(req: SideIn):
    return await _command(lambda e: e.lock_in(req.side))


@app.post("/battle/local/deploy/place")
async def place_unit(req: TileIn):
    return await _command(lambda e: e.place_unit(req.col, req.row))


@app.post("/battle/local/deploy/auto")
async def auto_deploy():
    """Place all remaining queued units on random free tiles."""
    return await _command(lambda e: e.deploy_remaining_randomly())


@app.post("/battle/local/command/select")
async def select_command_unit(req: SelectIn):
    return await _command(lambda e: e.select_command_unit(req.unit_id))


@app.post("/battle/local/command/cancel")
async def cancel_selection():
    return await _command(lambda e: e.cancel_selection())


@app.post("/battle/local/command/rally")
async def issue_rally_order(req: TileIn):
    return await _command(lambda e: e.issue_rally_order(req.col, req.row))


@app.post("/battle/local/round/end")
async def end_round():
    """Resolve the active side's round and hand over to the other side."""
    return await _command(lambda e: e.end_round())


@app.post("/battle/local/reset")
async def reset():
    r = _runner()
    await r.stop()
    return await _command(lambda e: e.reset())


@app.post("/battle/local/autoplay/start")
async def start_autoplay():
    """Keep ending rounds on the tick cadence until the battle is over."""
    if not await _runner().start():
        raise HTTPException(409, "Autoplay needs a battle in progress")
    return {"autoplay": True}


@app.post("/battle/local/autoplay/stop")
async def stop_autoplay():
    await _runner().stop()
    return {"autoplay": False}


@app.post("/battle/local/time-control")
async def set_time_control(time_compression: float):
    """Set autoplay time compression (1.0 = real-time, higher = faster)."""
    r = _runner()
    r.set_time_compression(time_compression)
    return {"time_compression": r.time_compression}


@app.get("/battle/local/time-control")
async def get_time_control():
    """Get current time compression setting."""
    return {"time_compression": _runner().time_compression}
