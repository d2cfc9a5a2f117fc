#!/usr/bin/env python3
"""
CiK Command Line Client

Usage:
    cik get <key> [--ignore-expiry]
    cik set <key> <value> [--tag TAG ...] [--ttl SECONDS]
    cik delete <key>
    cik clear [all|old|matchingTag|notMatchingTag|matchingAnyTag] [--tag TAG ...]
    cik list [keys|tags|matchingTag|notMatchingTag|matchingAnyTag] [--tag TAG ...]
    cik info <key>

Common options:
    --host 127.0.0.1 --port 5555 --timeout 2.5 --debug

Exit status: 0 on success, 1 on a miss or a declined write, 2 on error.

Environment Variables:
    CIK_HOST, CIK_PORT, CIK_CONNECT_TIMEOUT, CIK_IO_TIMEOUT, CIK_DEBUG
"""

import argparse
import logging
import sys
from typing import List, Optional

from .client import CiKClient
from .config.settings import settings
from .errors import CiKError
from .protocol.encoder import resolve_cleaning_mode, resolve_list_mode

EXIT_OK = 0
EXIT_MISS = 1
EXIT_ERROR = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="cik",
        description="Command line client for a CiK cache server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", type=str, default=settings.HOST, help="Server host")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Server port")
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.CONNECT_TIMEOUT,
        help="Connect timeout in seconds",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.DEBUG,
        help="Enable debug logging",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    get = commands.add_parser("get", help="Print the value stored under a key")
    get.add_argument("key")
    get.add_argument("--ignore-expiry", action="store_true", help="Return expired values too")

    set_ = commands.add_parser("set", help="Store a value")
    set_.add_argument("key")
    set_.add_argument("value")
    set_.add_argument("--tag", action="append", default=[], help="Tag (repeatable)")
    set_.add_argument("--ttl", type=int, default=None, help="Lifetime in seconds")

    delete = commands.add_parser("delete", help="Remove a key")
    delete.add_argument("key")

    clear = commands.add_parser("clear", help="Remove entries by cleaning mode")
    clear.add_argument("mode", nargs="?", default="all")
    clear.add_argument("--tag", action="append", default=[], help="Tag (repeatable)")

    list_ = commands.add_parser("list", help="List keys or tags")
    list_.add_argument("mode", nargs="?", default="keys")
    list_.add_argument("--tag", action="append", default=[], help="Tag (repeatable)")

    info = commands.add_parser("info", help="Show expiry, mtime and tags of a key")
    info.add_argument("key")

    return parser.parse_args(argv)


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr),
        ]
    )


def _print_bytes(data: bytes) -> None:
    sys.stdout.write(data.decode("utf-8", errors="backslashreplace") + "\n")


def run(args: argparse.Namespace, client: CiKClient) -> int:
    """Execute one parsed command against a connected client."""
    if args.command == "get":
        value = client.get(args.key, ignore_expiry=args.ignore_expiry)
        if value is None:
            print("(miss)", file=sys.stderr)
            return EXIT_MISS
        _print_bytes(value)
        return EXIT_OK

    if args.command == "set":
        return EXIT_OK if client.set(args.key, args.value, args.tag, args.ttl) else EXIT_MISS

    if args.command == "delete":
        return EXIT_OK if client.delete(args.key) else EXIT_MISS

    if args.command == "clear":
        return EXIT_OK if client.clear(args.mode, args.tag) else EXIT_MISS

    if args.command == "list":
        for item in client.list(args.mode, args.tag):
            _print_bytes(item)
        return EXIT_OK

    if args.command == "info":
        info = client.info(args.key)
        if info is None:
            print("(miss)", file=sys.stderr)
            return EXIT_MISS
        print(f"expires: {info.expires if info.expires is not None else 'never'}")
        print(f"mtime:   {info.mtime}")
        for tag in info.tags:
            sys.stdout.write("tag:     ")
            _print_bytes(tag)
        return EXIT_OK

    raise ValueError(f"unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command line client."""
    args = parse_args(argv)
    setup_logging(debug=args.debug)
    logger = logging.getLogger(__name__)

    client = CiKClient(host=args.host, port=args.port, connect_timeout=args.timeout)
    try:
        # Reject a bad mode before opening a connection
        if args.command == "clear":
            resolve_cleaning_mode(args.mode)
        elif args.command == "list":
            resolve_list_mode(args.mode)

        with client:
            return run(args, client)
    except ValueError as exc:
        # InvalidCleaningMode / InvalidListMode are ValueErrors too
        logger.error(f"{exc}")
        return EXIT_ERROR
    except CiKError as exc:
        logger.error(f"{args.command} failed: {exc}")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
