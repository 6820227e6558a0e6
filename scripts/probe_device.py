#!/usr/bin/env python3
"""Live DeepRacer probe.

Logs in to a car on the local network, reports the battery level and,
optionally, nudges the car forward and saves a few camera frames.

Credential sourcing:
- DEEPRACER_HOST
- DEEPRACER_PASSWORD

Keep the car on a stand (wheels off the ground) when using ``--drive``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pydeepracer import DeepRacerClient, DeepRacerConfig, DeepRacerError  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Probe a DeepRacer car's web console")
    parser.add_argument("--host", default=None, help="Device address. Defaults to DEEPRACER_HOST.")
    parser.add_argument(
        "--drive",
        type=float,
        default=0.0,
        metavar="SECONDS",
        help="Drive forward at low throttle for this many seconds, then stop.",
    )
    parser.add_argument("--throttle", type=float, default=0.2, help="Throttle used with --drive.")
    parser.add_argument(
        "--frames",
        type=int,
        default=0,
        help="Number of camera frames to save as JPEG files.",
    )
    parser.add_argument("--out", type=Path, default=Path("frames"), help="Output directory for --frames.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


async def _save_frames(client: DeepRacerClient, count: int, out_dir: Path) -> int:
    out_dir.mkdir(parents=True, exist_ok=True)
    saved = 0
    async for frame in client.stream_frames():
        path = out_dir / f"frame_{frame.sequence:04d}.jpg"
        path.write_bytes(frame.jpeg)
        print(f"  saved {path} ({frame.width}x{frame.height}, {len(frame.jpeg)} bytes)")
        saved += 1
        if saved >= count:
            break
    return saved


async def _run(args: argparse.Namespace) -> int:
    overrides = {"host": args.host} if args.host else {}
    config = DeepRacerConfig.from_env(**overrides)

    async with DeepRacerClient(config) as client:
        try:
            await client.connect()
        except DeepRacerError as exc:
            print(f"Login failed: {exc}")
            return 2
        print(f"Logged in to {config.host}")

        battery = await client.fetch_battery()
        print(f"Battery: {battery.level if battery.known else 'unknown'}")

        if args.drive > 0:
            print(f"Driving at throttle {args.throttle} for {args.drive:.1f}s")
            client.update_throttle(args.throttle)
            await asyncio.sleep(args.drive)
            client.update_throttle(0.0)
            await client.controller.wait_until_settled()
            print(f"Drive state: {client.drive_state}")

        if args.frames > 0:
            saved = await _save_frames(client, args.frames, args.out)
            print(f"Saved {saved} frame(s) to {args.out}")

        if client.last_error:
            print(f"Last error: {client.last_error}")
            return 1
    return 0


def main() -> int:
    args = _parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
