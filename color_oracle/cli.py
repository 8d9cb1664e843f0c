"""
Command-line interface for the oracle service.

Subcommands:
    serve       Run the HTTP server with the poll scheduler
    tick        Run engine ticks against the live feed and print the status
    check-keys  Show which predictor slots have API keys
"""

import argparse
import json
import sys
from typing import Optional

from .config import secrets
from .config.settings import OracleSettings, load_settings
from .forecasting.status import build_status
from .logging_config import configure_from_settings
from .service import build_service


def cmd_serve(args: argparse.Namespace, settings: OracleSettings) -> int:
    """Run the API server."""
    import uvicorn

    from .api.server import create_app

    if args.port:
        settings.port = args.port
    app = create_app(build_service(settings))
    uvicorn.run(app, host=settings.host, port=settings.port)
    return 0


def cmd_tick(args: argparse.Namespace, settings: OracleSettings) -> int:
    """Run one or more ticks in the foreground."""
    service = build_service(settings)

    for _ in range(args.count):
        result = service.engine.tick()
        print(f"tick: {result.action.value} (marker={result.period_marker}, judged={result.judged})")

    status = build_status(service.engine.state, service.feed_health())
    print(json.dumps(status, indent=2))
    return 0


def cmd_check_keys(args: argparse.Namespace, settings: OracleSettings) -> int:
    """Print predictor key status."""
    return secrets.print_key_status(settings.slot_count, settings.share_default_key)


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="color-oracle",
        description="Multi-predictor color/size forecasting service",
    )
    parser.add_argument("--config", default=None, help="Path to oracle.yaml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--port", type=int, default=None, help="Override listen port")

    tick_parser = subparsers.add_parser("tick", help="Run engine ticks in the foreground")
    tick_parser.add_argument("--count", type=int, default=1, help="Number of ticks")

    subparsers.add_parser("check-keys", help="Show predictor key status")

    args = parser.parse_args(argv)
    settings = load_settings(args.config)
    configure_from_settings(settings, verbose=args.verbose)

    if args.command == "serve":
        return cmd_serve(args, settings)
    elif args.command == "tick":
        return cmd_tick(args, settings)
    elif args.command == "check-keys":
        return cmd_check_keys(args, settings)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
