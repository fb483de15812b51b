#!/usr/bin/env python3
"""Live fleet monitor for a running elevator controller.

Connects with settings from ``LIFT_*`` environment variables, prints every
side-effect event and a compact fleet table on each snapshot change.

Optionally places one hall call after connecting, so the full
call -> pending -> arrival cycle can be watched end to end.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from liftsync import (  # noqa: E402
    ConnectionState,
    FleetEvent,
    FleetEventType,
    LiftClient,
    LiftConfig,
    LiftError,
    Unit,
    wait_for_state,
)

_LOG = logging.getLogger("fleet_monitor")


@dataclass
class MonitorStats:
    started_at: float
    snapshots: int = 0
    events: int = 0


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Watch elevator fleet snapshots and events.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--call",
        metavar="FLOOR:DIRECTION",
        help="Place one hall call after connecting, e.g. 3:UP.",
    )
    parser.add_argument(
        "--connect-timeout",
        type=float,
        default=15.0,
        help="Seconds to wait for the first connection.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_fleet(units: tuple[Unit, ...], pending: frozenset[int]) -> None:
    print("[fleet] " + ("-" * 48))
    for unit in units:
        print(
            f"[fleet]   #{unit.elevator_id:<3} floor={unit.current_floor:<3} "
            f"{unit.movement_state:<12} door={unit.door_state:<7} {unit.mode}"
        )
    if pending:
        print(f"[fleet]   pending calls: {sorted(pending)}")


def _print_event(event: FleetEvent) -> None:
    unit = f" #{event.unit_id}" if event.unit_id is not None else ""
    print(f"[event] {event.observed_at:%H:%M:%S} {event.type}{unit} {event.data}")


def _print_summary(stats: MonitorStats) -> None:
    runtime = time.time() - stats.started_at
    print("[monitor] Summary")
    print(f"[monitor]   runtime_s : {runtime:.1f}")
    print(f"[monitor]   snapshots : {stats.snapshots}")
    print(f"[monitor]   events    : {stats.events}")


async def _run(args: argparse.Namespace, stats: MonitorStats) -> int:
    config = LiftConfig.from_env()
    print(f"[monitor] controller: {config.base_url}")
    address = config.broker_address()
    print(f"[monitor] broker    : {address.host}:{address.port} ({address.transport})")

    async with LiftClient(config) as client:

        def _on_event(event: FleetEvent) -> None:
            stats.events += 1
            _print_event(event)

        def _on_snapshot(units: tuple[Unit, ...]) -> None:
            stats.snapshots += 1
            _print_fleet(units, client.pending_requests.floors)

        client.on_event(_on_event)
        client.store.subscribe(_on_snapshot)

        await client.connect()
        if not await wait_for_state(client, ConnectionState.CONNECTED, args.connect_timeout):
            print("[monitor] Controller not reachable yet; still retrying in the background")

        if args.call:
            floor, _, direction = args.call.partition(":")
            try:
                await client.call_elevator(int(floor), direction.upper() or "UP")
            except (LiftError, ValueError) as exc:
                print(f"[monitor] Call rejected: {exc}", file=sys.stderr)

        if args.duration > 0:
            await asyncio.sleep(args.duration)
        else:
            await asyncio.Event().wait()
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    stats = MonitorStats(started_at=time.time())
    try:
        return asyncio.run(_run(args, stats))
    except KeyboardInterrupt:
        _LOG.info("Interrupted")
        return 0
    except LiftError as exc:  # pragma: no cover - network/system interaction
        print(f"[monitor] Failed: {exc}", file=sys.stderr)
        return 2
    finally:
        _print_summary(stats)


if __name__ == "__main__":
    raise SystemExit(_main())
