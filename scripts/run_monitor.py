#!/usr/bin/env python3
"""Run the speed monitor headlessly and print the dashboard once per tick.

Usage
-----
Optionally point it at a Realtime Database and run::

    export SPEEDLIMITER_DATABASE_URL="https://<project>-default-rtdb.firebaseio.com"
    python scripts/run_monitor.py --duration 60

Options::

    --duration SECONDS   Stop after this many seconds (default: run until Ctrl+C)
    --no-alerts          Start with audio alerts disabled
    --seed N             Seed the simulation for a reproducible run
    --latest             Print the latest stored sample before exiting
    --json               Print snapshots as JSON instead of one-line summaries
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import random
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyspeedlimiter import SpeedLimiterConfig, SpeedMonitor, format_snapshot  # noqa: E402
from pyspeedlimiter.models import SystemState  # noqa: E402


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Simulate the speed monitoring system and print its dashboard.",
    )
    parser.add_argument("--duration", type=float, help="Stop after this many seconds")
    parser.add_argument("--no-alerts", action="store_true", help="Start with audio alerts disabled")
    parser.add_argument("--seed", type=int, help="Seed the simulation random source")
    parser.add_argument("--latest", action="store_true", help="Print the latest stored sample on exit")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output snapshots as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides = {"alerts_enabled": False} if args.no_alerts else {}
    config = SpeedLimiterConfig.from_env(**overrides)
    rng = random.Random(args.seed) if args.seed is not None else None

    monitor: SpeedMonitor

    def _render(_state: SystemState) -> None:
        snapshot = monitor.snapshot()
        if args.json_mode:
            print(snapshot.model_dump_json())
        else:
            print(format_snapshot(snapshot), flush=True)

    monitor = SpeedMonitor(config, rng=rng, on_tick=_render)
    async with monitor:
        monitor.start_system()
        try:
            if args.duration is not None:
                await asyncio.sleep(args.duration)
            else:
                await asyncio.Event().wait()
        finally:
            monitor.stop_system()
            if args.latest:
                await monitor.wait_for_writes()
                latest = await monitor.store.read_latest()
                if latest is None:
                    print("No stored samples", file=sys.stderr)
                else:
                    print(json.dumps(latest.to_wire(), indent=2))


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
