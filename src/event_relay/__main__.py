"""
Command Line Entry Point
========================

Run the relay:

    python -m event_relay
    python -m event_relay --url ws://localhost:21213 --port 3000
    event-relay --config ./config.yaml --log-level DEBUG

Flags override config.yaml and environment variables.
"""

import argparse
import logging
import sys
from typing import List, Optional

from event_relay.config import Settings, load_config, setup_logging
from event_relay.errors import StartupError


logger = logging.getLogger("event_relay")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="event-relay",
        description="Relay a WebSocket event stream to an HTTP polling endpoint",
    )
    parser.add_argument(
        "--url",
        help="Upstream WebSocket URL (default from config)",
    )
    parser.add_argument(
        "--host",
        help="HTTP listen host (default from config)",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="HTTP listen port (default from config)",
    )
    parser.add_argument(
        "--config",
        help="Path to config.yaml",
    )
    parser.add_argument(
        "--log-level",
        help="Log level (DEBUG, INFO, WARNING, ...)",
    )
    return parser


def resolve_settings(args: argparse.Namespace) -> Settings:
    """Load settings and apply command line overrides."""
    relay_settings = load_config(args.config)

    overrides: dict = {}
    if args.url:
        overrides.setdefault("stream", {})["url"] = args.url
    if args.host:
        overrides.setdefault("server", {})["host"] = args.host
    if args.port is not None:
        overrides.setdefault("server", {})["port"] = args.port
    if args.log_level:
        overrides.setdefault("logging", {})["level"] = args.log_level

    if not overrides:
        return relay_settings

    data = relay_settings.model_dump()
    for section, values in overrides.items():
        data[section].update(values)
    return Settings.model_validate(data)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    relay_settings = resolve_settings(args)
    setup_logging(relay_settings)

    from event_relay.main import run

    try:
        run(relay_settings)
    except StartupError as e:
        logger.critical(f"Startup aborted: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
