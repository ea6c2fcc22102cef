"""
Command line entry point (``notch-nowplaying``).

    notch-nowplaying watch          # stream state changes as JSON lines
    notch-nowplaying toggle         # one-shot playback control
    notch-nowplaying seek 42.5
"""

import argparse
import json
import logging
import sys
import threading
from typing import List, Optional

from .adapter.commands import CommandDispatcher
from .adapter.locator import AdapterPaths
from .adapter.protocol import Command
from .client import ClientStatus, NowPlayingClient
from .config import load_config
from .dispatch import ThreadDispatcher
from .exceptions import AdapterLaunchError, AdapterNotFoundError
from .state import NowPlayingState, NowPlayingUpdate, format_time

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_UNAVAILABLE = 2

COMMANDS = {
    "play": Command.PLAY,
    "pause": Command.PAUSE,
    "toggle": Command.TOGGLE_PLAY_PAUSE,
    "next": Command.NEXT_TRACK,
    "previous": Command.PREVIOUS_TRACK,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notch-nowplaying",
        description="Follow and control the system now-playing item",
    )
    parser.add_argument("--config", default=None, help="Path to config JSON file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="action", required=True)
    sub.add_parser("watch", help="Print state changes as JSON lines")
    sub.add_parser("get", help="Print the current item once")
    for name in COMMANDS:
        sub.add_parser(name, help=f"Send '{name}' to the current player")
    seek = sub.add_parser("seek", help="Seek to a position in seconds")
    seek.add_argument("seconds", type=float)
    return parser


def _print_state(state: NowPlayingState, changed=None) -> None:
    data = state.to_dict()
    data["position"] = f"{format_time(state.elapsed_time)}/{format_time(state.duration)}"
    if changed is not None:
        data["changed"] = sorted(changed)
    print(json.dumps(data), flush=True)


def _watch(config) -> int:
    dispatcher = ThreadDispatcher()
    dispatcher.start()
    try:
        client = NowPlayingClient(config=config, dispatcher=dispatcher)
    except AdapterLaunchError as exc:
        logger.error("%s", exc)
        dispatcher.stop()
        return EXIT_UNAVAILABLE

    done = threading.Event()

    def on_change(state, changed):
        _print_state(state, changed)
        if not client.available:
            done.set()

    client.subscribe(on_change)
    try:
        while not done.wait(0.5):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        status = client.status
        client.close()
        dispatcher.stop()
    return EXIT_UNAVAILABLE if status is ClientStatus.UNAVAILABLE else EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    config = load_config(args.config)

    if args.action == "watch":
        return _watch(config)

    try:
        paths = AdapterPaths.from_config(config)
    except AdapterNotFoundError as exc:
        logger.error("%s", exc)
        return EXIT_UNAVAILABLE
    commands = CommandDispatcher(paths, timeout=config.command_timeout)

    if args.action == "get":
        record = commands.get()
        if record is None:
            return EXIT_FAILED
        state = NowPlayingState.from_update(NowPlayingUpdate.from_payload(record.payload))
        _print_state(state)
        return EXIT_OK

    if args.action == "seek":
        ok = commands.seek(args.seconds)
    else:
        ok = commands.dispatch(COMMANDS[args.action])
    return EXIT_OK if ok else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
