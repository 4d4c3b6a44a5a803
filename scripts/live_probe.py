#!/usr/bin/env python3
"""Live probe for the ride monitor.

Runs a :class:`pyzmon.ZwiftMonitor` either against the configured MQTT
packet feed (``ZMON_MQTT_*`` variables) or against a recorded capture in
JSON-lines format (one ``{"kind": ..., "packet": {...}}`` object per
line), and prints a short summary of every watching/nearby/groups/chat
event.

Use this to eyeball the grouping and nearby output against a real ride.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyzmon import (  # noqa: E402
    AthleteGroup,
    ChatEvent,
    MemoryStorage,
    MonitorConfig,
    NearbyAthlete,
    PacketEvent,
    StorageError,
    Topic,
    WatchingEvent,
    ZwiftMonitor,
)

_LOG = logging.getLogger("live_probe")


@dataclass
class ProbeStats:
    started_at: float
    packets: int = 0
    watching: int = 0
    nearby: int = 0
    groups: int = 0
    chat: int = 0


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print live nearby/group/chat output of the ride monitor.",
    )
    parser.add_argument(
        "--replay",
        type=Path,
        default=None,
        help="Replay a JSON-lines packet capture instead of connecting to MQTT.",
    )
    parser.add_argument(
        "--rate",
        type=float,
        default=0.0,
        help="Replay pause between packets in seconds (0 = as fast as possible).",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C or end of replay).",
    )
    parser.add_argument(
        "--no-persist",
        action="store_true",
        help="Keep the athlete cache in memory only.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_watching(event: WatchingEvent) -> None:
    state, stats = event.state, event.stats
    avg = stats.power_avg
    print(
        f"[probe] watching id={state.id} road={state.road_id}{'R' if state.reverse else ''} "
        f"speed={state.speed:.1f}km/h power={state.power} avg={'-' if avg is None else f'{avg:.0f}'}W "
        f"max={stats.power_max}W",
    )


def _print_nearby(nearby: list[NearbyAthlete]) -> None:
    print(f"[probe] nearby ({len(nearby)})")
    for entry in nearby:
        name = entry.athlete.display_name if entry.athlete else ""
        print(
            f"[probe]   {entry.position:+3d} id={entry.athlete_id:<8} {name:<20} "
            f"{entry.rel_distance:7.1f}m {entry.time_gap:6.1f}s",
        )


def _print_groups(groups: list[AthleteGroup]) -> None:
    print(f"[probe] groups ({len(groups)})")
    for group in groups:
        marker = "*" if group.watching else " "
        power = "-" if group.power is None else f"{group.power:.0f}W"
        print(
            f"[probe]  {marker} size={group.size:<3} power={power:<6} "
            f"gap={group.dist_gap:6.1f}m/{group.time_gap:5.1f}s total={group.tot_dist_gap:7.1f}m",
        )


def _print_chat(chat: ChatEvent) -> None:
    name = " ".join(x for x in (chat.first_name, chat.last_name) if x) or str(chat.from_athlete_id)
    gap = "" if chat.dist_gap is None else f" ({chat.dist_gap:.0f}m)"
    print(f"[probe] chat {name}{gap}: {chat.message}")


async def _replay(monitor: ZwiftMonitor, path: Path, rate: float, stats: ProbeStats) -> None:
    with path.open(encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, 1):
            line = line.strip()
            if not line:
                continue
            try:
                record: Any = json.loads(line)
                event = PacketEvent(kind=record["kind"], packet=record["packet"])
            except (ValueError, KeyError, TypeError) as exc:
                _LOG.warning("Skipping line %d: %s", lineno, exc)
                continue
            monitor.handle_packet(event)
            stats.packets += 1
            await asyncio.sleep(rate)


async def _run(args: argparse.Namespace, stats: ProbeStats) -> None:
    overrides: dict[str, Any] = {}
    if args.replay is not None:
        overrides["mqtt_enabled"] = False
    config = MonitorConfig.from_env(**overrides)
    storage = MemoryStorage() if args.no_persist else None

    def _count(name: str) -> None:
        setattr(stats, name, getattr(stats, name) + 1)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    async with ZwiftMonitor(config, storage=storage) as monitor:
        monitor.subscribe(Topic.WATCHING, lambda e: (_count("watching"), _print_watching(e)))
        monitor.subscribe(Topic.NEARBY, lambda e: (_count("nearby"), _print_nearby(e)))
        monitor.subscribe(Topic.GROUPS, lambda e: (_count("groups"), _print_groups(e)))
        monitor.subscribe(Topic.CHAT, lambda e: (_count("chat"), _print_chat(e)))

        waiters = [asyncio.ensure_future(stop.wait())]
        if args.replay is not None:
            waiters.append(asyncio.ensure_future(_replay(monitor, args.replay, args.rate, stats)))
        timeout = args.duration if args.duration > 0 else None
        _done, pending = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        if args.replay is not None and not stop.is_set():
            # Let the scheduler publish one last picture of the replayed state.
            monitor.refresh_nearby()


def _print_summary(stats: ProbeStats) -> None:
    runtime = time.time() - stats.started_at
    print("[probe] Summary")
    print(f"[probe]   runtime_s : {runtime:.1f}")
    print(f"[probe]   packets   : {stats.packets}")
    print(f"[probe]   watching  : {stats.watching}")
    print(f"[probe]   nearby    : {stats.nearby}")
    print(f"[probe]   groups    : {stats.groups}")
    print(f"[probe]   chat      : {stats.chat}")


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    stats = ProbeStats(started_at=time.time())
    try:
        asyncio.run(_run(args, stats))
    except StorageError as exc:
        print(f"[probe] Athlete cache unreadable: {exc}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        pass

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
