"""
knows - list, inspect, and kill local processes by port number.

Usage:
    knows list [--port PORT | --port-range START-END] [--format FMT] [--output FILE]
    knows inspect PORT [--format FMT] [--output FILE]
    knows kill PORT [--force]
    knows watch [--port PORT | --port-range START-END] [--interval MS]
    knows interactive
"""

import argparse
import logging
import sys
from datetime import datetime
from typing import Callable, Optional

from .config import APP_NAME, APP_VERSION, Settings, load_settings
from .core.keys import TerminalKeySource
from .core.models import WatchEntry, format_listener
from .core.monitor import ListenerMonitor
from .core.process_manager import ProcessManager
from .core.repository import ListenerRepository
from .core.identity import IdentityEnricher
from .core.sources import select_source
from .core.tool_runner import ToolRunner
from .errors import KnowsError, ValidationError
from .utils.logging_config import get_logger, setup_logging
from .utils.output import render_listeners, write_output
from .utils.validation import (
    parse_format, parse_interval, parse_port, parse_port_range,
)

logger = get_logger('cli')

CLEAR_SCREEN = "\x1bc"


def _arg(parser_func: Callable):
    """Adapt a validation function for argparse's type= hook."""
    def convert(value):
        try:
            return parser_func(value)
        except ValidationError as e:
            raise argparse.ArgumentTypeError(str(e))
    convert.__name__ = parser_func.__name__
    return convert


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="List, inspect, and kill local processes by port number.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging on stderr")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    p_list = sub.add_parser("list", help="List listening processes, optionally filtered by port.")
    _add_filter_args(p_list)
    _add_output_args(p_list)
    p_list.set_defaults(handler=cmd_list)

    p_inspect = sub.add_parser("inspect", help="Inspect all listening processes on a specific port.")
    p_inspect.add_argument("port", type=_arg(parse_port))
    _add_output_args(p_inspect)
    p_inspect.set_defaults(handler=cmd_inspect)

    p_kill = sub.add_parser("kill", help="Kill every process listening on the specified port (with confirmation).")
    p_kill.add_argument("port", type=_arg(parse_port))
    p_kill.add_argument("-f", "--force", action="store_true",
                        help="Skip confirmation and terminate matching processes immediately")
    p_kill.set_defaults(handler=cmd_kill)

    p_watch = sub.add_parser("watch", help="Continuously monitor listening processes until Ctrl+C or Ctrl+Q is pressed.")
    _add_filter_args(p_watch)
    p_watch.add_argument("-i", "--interval", type=_arg(parse_interval), metavar="MS",
                         help="Refresh interval in milliseconds (default: 2000)")
    p_watch.set_defaults(handler=cmd_watch)

    p_interactive = sub.add_parser("interactive", help="Pick a process in a window to inspect or kill it.")
    p_interactive.set_defaults(handler=cmd_interactive)

    return parser


def _add_filter_args(parser: argparse.ArgumentParser):
    group = parser.add_mutually_exclusive_group()
    group.add_argument("-p", "--port", type=_arg(parse_port), help="Filter by port number")
    group.add_argument("--port-range", type=_arg(parse_port_range), metavar="START-END",
                       help="Filter by an inclusive port range (example: 3000-3999)")


def _add_output_args(parser: argparse.ArgumentParser):
    parser.add_argument("-f", "--format", type=_arg(parse_format),
                        help="Output format (text, json, csv)")
    parser.add_argument("-o", "--output", metavar="FILE", help="Write output to the specified file")


class App:
    """Wires settings, repository and process manager for one invocation."""

    def __init__(self, settings: Settings):
        self.settings = settings
        runner = ToolRunner(max_output=settings.max_output_bytes, timeout=settings.tool_timeout)
        self.repository = ListenerRepository(
            source=select_source(runner=runner),
            enricher=IdentityEnricher(max_workers=settings.max_workers),
        )
        self.process_manager = ProcessManager(
            repository=self.repository,
            runner=runner,
            max_workers=settings.max_workers,
        )


def cmd_list(app: App, args) -> int:
    if args.port is not None:
        records = app.repository.filter_by_port(args.port)
    elif args.port_range is not None:
        records = app.repository.filter_by_range(args.port_range.min, args.port_range.max)
    else:
        records = app.repository.list_all()
    return _emit(app, records, args)


def cmd_inspect(app: App, args) -> int:
    return _emit(app, app.repository.filter_by_port(args.port), args)


def _emit(app: App, records, args) -> int:
    fmt = args.format or parse_format(app.settings.default_format)
    write_output(render_listeners(records, fmt), args.output)
    return 0


def confirm(prompt: str) -> bool:
    """Ask a yes/no question on the terminal. Anything but y/yes is a no."""
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def cmd_kill(app: App, args, ask: Callable[[str], bool] = confirm) -> int:
    port = args.port
    matches = app.repository.filter_by_port(port)
    if not matches:
        print(f"No listening processes found on port {port}.")
        return 0

    if not args.force:
        print("The following processes will be terminated:")
        for record in matches:
            print(f" - {format_listener(record)}")
        if not ask(f"Proceed with terminating {len(matches)} process(es) on port {port}?"):
            print("Termination aborted.")
            return 0

    outcome = app.process_manager.terminate_by_port(port)
    for record in outcome.terminated:
        print(f"Terminated {format_listener(record)}")
    for failure in outcome.failed:
        print(f"Failed to terminate {format_listener(failure.record)} -> {failure.reason}",
              file=sys.stderr)
    return 0 if outcome.ok else 1


class WatchScreen:
    """Redraws the terminal for each monitor render."""

    def __init__(self, interval_ms: int, stream=None):
        self.interval_ms = interval_ms
        self.stream = stream or sys.stdout

    def render(self, entries: list[WatchEntry]) -> None:
        lines = [
            f"Watching listening processes @ {datetime.now().strftime('%H:%M:%S')} "
            f"(refresh {self.interval_ms} ms)",
            "Press Ctrl+C or Ctrl+Q to exit.",
            "",
        ]
        if not entries:
            lines.append("No matching listening processes found.")
        for entry in entries:
            prefix = "+" if entry.is_new else " "
            lines.append(f"{prefix} {format_listener(entry.record)}")
        self.stream.write(CLEAR_SCREEN + "\n".join(lines) + "\n")
        self.stream.flush()

    def error(self, exc: Exception) -> None:
        print(f"Watch render failed: {exc}", file=sys.stderr)


def cmd_watch(app: App, args) -> int:
    if not sys.stdin.isatty() or not sys.stdout.isatty():
        print("Watch mode requires an interactive TTY.", file=sys.stderr)
        return 1

    interval = args.interval or app.settings.interval_ms
    screen = WatchScreen(interval)
    with TerminalKeySource() as keys:
        monitor = ListenerMonitor(
            repository=app.repository,
            keys=keys,
            on_render=screen.render,
            on_error=screen.error,
            interval_ms=interval,
            port=args.port,
            port_range=args.port_range,
        )
        monitor.run()
    print("\nWatch stopped.")
    return 0


def cmd_interactive(app: App, args) -> int:
    # PyQt6 is only needed here; keep the other commands fast to start
    from .ui.picker_window import run_picker
    return run_picker(app.repository, app.process_manager, app.settings.interval_ms)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for knows."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(console_level=logging.DEBUG if args.verbose else logging.WARNING)
    logger.debug(f"knows {APP_VERSION} invoked: {args.command}")

    try:
        app = App(load_settings())
        return args.handler(app, args)
    except KnowsError as e:
        logger.debug(f"{args.command} failed: {e}")
        print(str(e), file=sys.stderr)
        return 1
    except OSError as e:
        logger.error(f"{args.command} failed: {e}")
        print(str(e), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
