"""Command line access to an IHC controller."""
from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from collections.abc import Sequence

import voluptuous as vol

from .auth import AuthenticationService
from .const import DEFAULT_POLL_TIMEOUT, MAX_POLL_TIMEOUT
from .exceptions import IhcError
from .models import ResourceValue
from .resource_interaction import ResourceInteractionService
from .settings import IhcSettings

_LOGGER = logging.getLogger(__name__)


def _parse_bool_arg(value: str) -> bool:
    lowered = value.lower()
    if lowered in ("true", "on", "1"):
        return True
    if lowered in ("false", "off", "0"):
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got {value!r}")


def _parse_poll_timeout(value: str) -> int:
    try:
        timeout = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected whole seconds, got {value!r}") from None
    if not 1 <= timeout < MAX_POLL_TIMEOUT:
        raise argparse.ArgumentTypeError(
            f"must be between 1 and {MAX_POLL_TIMEOUT - 1} seconds, got {timeout}"
        )
    return timeout


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ihcclient",
        description="IHC controller client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ping                      Check the controller is up
  %(prog)s get 16451 16452           Show current values
  %(prog)s set-bool 16451 true       Switch an output on
  %(prog)s listen 16451 16452        Print changes until Ctrl-C
        """,
    )
    parser.add_argument(
        "--settings", default="ihcsettings.json", help="Path to the JSON settings file"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug output")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("ping", help="Check if the controller serves API calls")

    get = commands.add_parser("get", help="Print runtime values")
    get.add_argument("resource_ids", nargs="+", type=int)

    set_bool = commands.add_parser("set-bool", help="Set a boolean runtime value")
    set_bool.add_argument("resource_id", type=int)
    set_bool.add_argument("value", type=_parse_bool_arg)

    listen = commands.add_parser("listen", help="Print value changes until interrupted")
    listen.add_argument("resource_ids", nargs="+", type=int)
    listen.add_argument(
        "--poll-timeout",
        type=_parse_poll_timeout,
        default=DEFAULT_POLL_TIMEOUT,
        help=f"Long-poll timeout in seconds (1-{MAX_POLL_TIMEOUT - 1})",
    )
    return parser


def format_value(value: ResourceValue) -> str:
    return f"{value.resource_id}: {value.kind.name} {value.value}"


async def _listen(resources: ResourceInteractionService, args: argparse.Namespace) -> None:
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    handles_signal = False
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
        handles_signal = True
    except NotImplementedError:
        # No loop signal handlers on Windows, Ctrl-C cancels the task instead
        _LOGGER.debug("Signal handlers not supported, relying on KeyboardInterrupt")

    try:
        stream = resources.get_resource_value_changes(
            args.resource_ids, cancel, args.poll_timeout
        )
        async with contextlib.aclosing(stream.stream()) as changes:
            async for change in changes:
                print(format_value(change), flush=True)
    finally:
        if handles_signal:
            loop.remove_signal_handler(signal.SIGINT)


async def run(args: argparse.Namespace, settings: IhcSettings) -> int:
    async with AuthenticationService.create(settings) as auth:
        if args.command == "ping":
            up = await auth.ping()
            print("up" if up else "down")
            return 0 if up else 1

        await auth.authenticate()
        resources = ResourceInteractionService(auth)

        if args.command == "get":
            for value in await resources.get_runtime_values(args.resource_ids):
                print(format_value(value))
        elif args.command == "set-bool":
            ok = await resources.set_resource_value(
                ResourceValue.create_bool_runtime_output(args.resource_id, args.value)
            )
            if not ok:
                print(f"Controller rejected value for {args.resource_id}")
                return 1
        elif args.command == "listen":
            await _listen(resources, args)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        settings = IhcSettings.from_file(args.settings)
    except (OSError, ValueError, vol.Invalid) as ex:
        print(f"Invalid settings file {args.settings}: {ex}")
        return 2

    try:
        return asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 0
    except IhcError as ex:
        print(f"Error: {ex}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
