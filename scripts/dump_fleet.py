#!/usr/bin/env python3
"""Dump the reconciled fleet view and dashboard statistics.

Connects to the realtime database, waits for the first vehicle and trip
snapshots, and prints the reconciled collections, reconciliation
diagnostics and the dashboard statistics.

Usage
-----
Set environment variables and run::

    export FLEET_DATABASE_URL="https://my-fleet-default-rtdb.firebaseio.com"
    export FLEET_AUTH_TOKEN="..."          # optional
    python scripts/dump_fleet.py

Options::

    --json               Output as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
    --watch              Keep running and print stats on every change
    --timeout SECONDS    How long to wait for the first snapshots (default 15)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from fleetsync import DashboardStats, FleetClient, FleetConfig  # noqa: E402
from fleetsync.sync import CollectionSync  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    return f"\n{'═' * 60}\n  {title}\n{'═' * 60}"


def _diagnostics(sync: CollectionSync[Any]) -> dict[str, Any]:
    result = sync.last_result
    return {
        "state": sync.state.value,
        "records": len(sync.current),
        "superseded": result.superseded,
        "malformed": [str(exc) for exc in result.malformed],
        "last_error": sync.last_error,
    }


def _print_stats(stats: DashboardStats) -> None:
    fleet, trips = stats.fleet, stats.trips
    print(
        f"vehicles={fleet.total} available={fleet.available} active={fleet.active} "
        f"maintenance={fleet.maintenance} | trips={trips.total} active={trips.active} "
        f"completed={trips.completed} revenue={trips.total_revenue}"
    )


async def _wait_for_snapshots(client: FleetClient, timeout: float) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if client.vehicles_sync.last_result.records or client.trips_sync.last_result.records:
            # Give the second collection a moment to catch up.
            await asyncio.sleep(1.0)
            return
        await asyncio.sleep(0.2)
    print(f"No snapshot received within {timeout:.0f}s", file=sys.stderr)


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Dump the reconciled fleet view for debugging / development.",
    )
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--watch", action="store_true", help="Print stats on every change until interrupted")
    parser.add_argument("--timeout", type=float, default=15.0, help="Seconds to wait for the first snapshots")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = FleetConfig.from_env()
    on_stats = _print_stats if args.watch else None

    async with FleetClient(config, on_stats=on_stats) as client:
        await client.start()
        if args.watch:
            await asyncio.Event().wait()
        await _wait_for_snapshots(client, args.timeout)

        result: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "vehicles": [v.model_dump(mode="json") for v in client.vehicles],
            "trips": [
                {**t.model_dump(mode="json"), "costBreakdown": t.compute_cost(tax_rate=config.tax_rate).to_wire()}
                for t in client.trips
            ],
            "diagnostics": {
                "vehicles": _diagnostics(client.vehicles_sync),
                "trips": _diagnostics(client.trips_sync),
            },
            "stats": client.get_stats().model_dump(mode="json"),
        }

    payload = json.dumps(result, indent=2, default=str, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"JSON written to {args.output}", file=sys.stderr)
    elif args.json_mode:
        print(payload)
    else:
        print(_section("fleetsync dump_fleet"))
        print(f"  time      : {result['timestamp']}")
        for name in ("vehicles", "trips"):
            print(_section(name.upper()))
            for item in result[name]:
                print(f"  {json.dumps(item, default=str, ensure_ascii=False)}")
        print(_section("DIAGNOSTICS"))
        print(json.dumps(result["diagnostics"], indent=2))
        print(_section("STATS"))
        print(json.dumps(result["stats"], indent=2))


if __name__ == "__main__":
    asyncio.run(main())
