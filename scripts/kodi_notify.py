#!/usr/bin/env python3
"""
Kodi Notify — push one-off notifications to Kodi from the command line.

Queues the requested calls, runs a single flush cycle and prints the result.

Usage:
    python scripts/kodi_notify.py --ping                      # Is Kodi reachable?
    python scripts/kodi_notify.py --scan                      # Full library scan
    python scripts/kodi_notify.py --scan /media/movies/       # Scan one directory
    python scripts/kodi_notify.py --clean --notify "Library" "Cleaned"
"""
import argparse
import asyncio
import json
import os
import sys

# Ensure app root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

from config.settings import load_settings
from kodi import methods
from kodi.notifier import KodiNotifier
from utils.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Send notifications to Kodi")
    parser.add_argument("--config", help="Path to settings.yaml")
    parser.add_argument("--ping", action="store_true", help="Only check that Kodi answers")
    parser.add_argument("--scan", nargs="?", const="", metavar="DIR",
                        help="Scan the video library (optionally one directory)")
    parser.add_argument("--clean", action="store_true", help="Clean the video library")
    parser.add_argument("--notify", nargs=2, metavar=("TITLE", "MESSAGE"),
                        help="Show a notification on the Kodi GUI")
    return parser


async def run(args: argparse.Namespace) -> dict:
    settings = load_settings(args.config)
    configure_logging(settings.log.level, settings.log.format)
    notifier = KodiNotifier(settings.kodi)

    try:
        if args.ping:
            return {"status": "ok" if await notifier.client.ping() else "unreachable"}

        requests = []
        if args.scan is not None:
            requests.append(("library-scan", methods.scan_video_library(args.scan)))
        if args.clean:
            requests.append(("library-clean", methods.clean_video_library()))
        if args.notify:
            requests.append(("gui-notification", methods.show_notification(*args.notify)))

        for name, request in requests:
            if not await notifier.enqueue(name, request):
                return {"status": "disabled"}

        return await notifier.run_cycle()
    finally:
        await notifier.client.close()


def exit_code(result: dict) -> int:
    """0 only when Kodi answered and every queued call went through."""
    if result.get("status") not in ("ok", "flushed", "empty"):
        return 1
    return 1 if result.get("failed") else 0


def main():
    load_dotenv()
    args = build_parser().parse_args()
    result = asyncio.run(run(args))
    print(json.dumps(result, indent=2))
    return exit_code(result)


if __name__ == "__main__":
    sys.exit(main())
