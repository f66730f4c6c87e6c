"""Command-line entrypoint: serve the API or play out a headless battle."""

import argparse
import logging
from typing import Dict, List, Optional

import uvicorn

from engine.engine import Engine
from engine.model import UNIT_TYPES, Phase
from .config import get_settings

logger = logging.getLogger(__name__)


def parse_army(spec: str) -> Dict[str, int]:
    """Parse 'FOOT=3,ARCHER=2' into a composition mapping."""
    counts: Dict[str, int] = {}
    for part in filter(None, (p.strip() for p in spec.split(","))):
        name, _, num = part.partition("=")
        type_id = name.strip().upper()
        if type_id not in UNIT_TYPES:
            raise argparse.ArgumentTypeError(f"unknown unit type {name!r}")
        try:
            counts[type_id] = counts.get(type_id, 0) + int(num or 1)
        except ValueError:
            raise argparse.ArgumentTypeError(f"bad count in {part!r}") from None
    return counts


def simulate(engine: Engine, armies: Dict[int, Dict[str, int]], max_rounds: int = 200) -> Optional[int]:
    """Recruit, deploy randomly and let the AI fight until someone wins.

    Returns the winner (0 for a draw) or None if `max_rounds` ran out first.
    """
    for side, counts in armies.items():
        for type_id, n in counts.items():
            for _ in range(n):
                if not engine.add_unit(side, type_id):
                    logger.warning("player %s could not afford another %s", side, type_id)
                    break
        engine.lock_in(side)
    if engine.phase != Phase.DEPLOY:
        return None
    engine.deploy_remaining_randomly()
    while engine.phase == Phase.BATTLE and engine.state.round <= max_rounds:
        engine.end_round()
    return engine.state.winner


def _cmd_serve(args: argparse.Namespace) -> None:
    uvicorn.run("api.app:app", host=args.host, port=args.port, reload=args.reload)


def _cmd_simulate(args: argparse.Namespace) -> None:
    settings = get_settings()
    engine = Engine(seed=args.seed if args.seed is not None else settings.seed,
                    rules=settings.rules())
    offset = 0

    def print_new_events(eng: Engine) -> None:
        nonlocal offset
        evts, offset = eng.events.since(offset)
        for e in evts:
            print(e.message)

    engine.subscribe(print_new_events)
    winner = simulate(engine, {1: args.p1, 2: args.p2}, max_rounds=args.max_rounds)
    counts = engine.roster_counts()
    if winner is None:
        print(f"No result after {args.max_rounds} rounds")
    elif winner == 0:
        print(f"Draw on round {engine.state.round}")
    else:
        print(f"Player {winner} wins on round {engine.state.round} "
              f"({counts[winner]['alive']}/{counts[winner]['total']} survivors)")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Tactical battle engine")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1", help="Host interface to bind")
    serve.add_argument("--port", type=int, default=8000, help="TCP port to listen on")
    serve.add_argument("--reload", action="store_true", help="Enable autoreload (dev mode)")
    serve.set_defaults(func=_cmd_serve)

    sim = sub.add_parser("simulate", help="Play an AI-vs-AI battle and print the log")
    sim.add_argument("--p1", type=parse_army, default=parse_army("FOOT=4,ARCHER=2,CAVALRY=1"))
    sim.add_argument("--p2", type=parse_army, default=parse_army("FOOT=2,ARCHER=2,PLANNER=1,CAVALRY=1"))
    sim.add_argument("--seed", type=int, default=None)
    sim.add_argument("--max-rounds", type=int, default=200)
    sim.set_defaults(func=_cmd_simulate)

    args = parser.parse_args(argv)
    logging.basicConfig(level=get_settings().log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args.func(args)


if __name__ == "__main__":
    main()
