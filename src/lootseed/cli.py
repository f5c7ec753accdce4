from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .catalog.loader import load_catalogs
from .config import EngineConfig
from .events import EVENT_STARTED, Event
from .exceptions import LootseedError
from .logging_config import configure_logging
from .rng import generate_random_seed
from .run import Run

logger = logging.getLogger(__name__)


def simulate(
    run: Run,
    rounds: int,
    ticks_per_round: int,
    items_per_round: int,
) -> Dict[str, Any]:
    """Play ``rounds`` rounds and return a JSON-friendly summary."""
    started: List[str] = []

    def on_started(event: Event) -> None:
        started.append(event.payload["def_id"])

    run.bus.subscribe(EVENT_STARTED, on_started)
    summary: List[Dict[str, Any]] = []
    try:
        for index in range(rounds):
            if index > 0:
                run.advance_round()
            started.clear()
            for _ in range(ticks_per_round):
                run.tick()
            items = [run.roll_item().to_dict() for _ in range(items_per_round)]
            summary.append({
                "round": run.round,
                "biome": run.biome.id,
                "events_started": list(started),
                "active_events": [e.id for e in run.get_active_events()],
                "items": items,
            })
    finally:
        run.bus.unsubscribe(EVENT_STARTED, on_started)
    return {"seed": run.seed, "seed_value": run.prng.get_seed(), "rounds": summary}


def cmd_simulate(args: argparse.Namespace) -> int:
    config = EngineConfig.from_yaml(args.config) if args.config else EngineConfig()
    catalogs = load_catalogs(args.catalog_dir) if args.catalog_dir else None
    run = Run(seed=args.seed, catalogs=catalogs, config=config)
    run.luck = args.luck
    data = simulate(run, args.rounds, args.ticks_per_round, args.items)
    # Print JSON summary so it can be diffed across runs
    print(json.dumps(data, indent=2, sort_keys=True))
    return 0


def cmd_seed(args: argparse.Namespace) -> int:
    print(generate_random_seed())
    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--debug", action="store_true", help="Enable debug logging")

    p = argparse.ArgumentParser(prog="lootseed", description="Seed-reproducible loot and world simulation")
    sub = p.add_subparsers(dest="cmd")

    sim = sub.add_parser("simulate", parents=[common], help="Simulate a run and print a JSON summary")
    sim.add_argument("--seed", default=None, help="Root seed (random when omitted)")
    sim.add_argument("--rounds", type=int, default=5, help="Number of rounds to play")
    sim.add_argument("--ticks-per-round", type=int, default=60, help="World ticks simulated per round")
    sim.add_argument("--items", type=int, default=3, help="Items rolled per round")
    sim.add_argument("--luck", type=float, default=0.0, help="Player luck stat")
    sim.add_argument("--config", default=None, help="Path to an engine tuning YAML file")
    sim.add_argument("--catalog-dir", default=None, help="Directory with catalog YAML files")
    sim.set_defaults(func=cmd_simulate)

    seed = sub.add_parser("seed", parents=[common], help="Print a freshly generated random seed")
    seed.set_defaults(func=cmd_seed)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if getattr(args, "debug", False) else logging.WARNING)
    if not hasattr(args, "func"):
        parser.print_help()
        return 2
    try:
        return args.func(args)
    except LootseedError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
