from __future__ import annotations

# Single entrypoint.
#
#   python -m service_queue.app run --arrival-rate LAMBDA [--panel]
#
# starts the whole system. The other subcommands start one component each and
# forward their remaining arguments to that component's own CLI, e.g.
#
#   python -m service_queue.app kiosk --category 1 --priority elderly
#   python -m service_queue.app attendant call-next --counter-id m1

import argparse
import sys
from typing import Callable

COMMANDS: dict[str, tuple[str, str]] = {
    "run": ("run_all", "Start engine + auto attendants + kiosk generator (optional panel)"),
    "serve": ("service", "Start the queue engine service"),
    "kiosk": ("kiosk", "Draw one ticket"),
    "attendant": ("attendant", "Attendant console (call-next, recall, start, finish, cancel, queue, auto)"),
    "panel": ("panel", "Public call panel (console)"),
    "admin": ("admin", "Admin console (stats, tickets, counters, label, reset)"),
    "generate": ("generator", "Kiosk traffic generator"),
}


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Service Queue (MQTT) - main entrypoint")
    sub = parser.add_subparsers(dest="cmd", required=True)
    for name, (_module, help_text) in COMMANDS.items():
        # Component CLIs own their options (and -h).
        sub.add_parser(name, help=help_text, add_help=False)

    args, rest = parser.parse_known_args(argv)

    module_name, _ = COMMANDS[args.cmd]
    _dispatch_to_module_main(_load_main(module_name), rest)


def _load_main(module_name: str) -> Callable[[], None]:
    import importlib

    module = importlib.import_module(f"{__package__ or 'service_queue'}.{module_name}")
    return module.main


def _dispatch_to_module_main(module_main: Callable[[], None], argv: list[str]) -> None:
    old_argv = sys.argv[:]
    try:
        sys.argv = [old_argv[0], *argv]
        module_main()
    finally:
        sys.argv = old_argv


if __name__ == "__main__":
    main()
