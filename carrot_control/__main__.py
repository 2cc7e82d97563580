"""
Main entry point when running the carrot_control module with python -m.
"""

import argparse
import asyncio
import logging
import sys

from .client import main, setup_logging
from .config import WS_URI
from .model import Limits


def parse_param(text: str) -> tuple:
    """Split a NAME=VALUE override into (name, float value)."""
    name, sep, value = text.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got '{text}'")
    try:
        return name.strip(), float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"value of '{name}' is not a number: '{value}'")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="WebSocket bridge for the carrot local-motion controller"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps"
    )
    parser.add_argument("--uri", default=WS_URI, help=f"WebSocket server URI (default: {WS_URI})")
    parser.add_argument(
        "--output-dir", default=".", help="Base directory for CSV output (default: .)"
    )
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        type=parse_param,
        metavar="NAME=VALUE",
        help="Override a controller limit, e.g. --param max_vel_translation=0.3 "
        f"(names: {', '.join(Limits.PARAM_NAMES)})",
    )
    return parser


if __name__ == "__main__":
    parser = build_parser()
    args = parser.parse_args()

    try:
        limits = Limits.from_params(dict(args.param))
    except ValueError as e:
        parser.error(str(e))

    setup_logging(args.verbose)

    try:
        asyncio.run(main(uri=args.uri, output_dir=args.output_dir, limits=limits))
    except KeyboardInterrupt:
        logging.info("\nExiting...")
        sys.exit(0)
