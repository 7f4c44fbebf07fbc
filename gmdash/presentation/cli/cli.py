"""
CLI Module

Architectural Intent:
- Command-line interface for gmdash
- Entry point for all user interactions
- Delegates to the edge server and fetch use case via the composition root
- Supports --verbose/--debug flags for log level control
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
import traceback

from gmdash.infrastructure.config import ConfigurationError, load_config
from gmdash.infrastructure.logging import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="gmdash: Resort General Manager KPI dashboard"
    )
    parser.add_argument(
        "--config", "-c", default=None, help="Path to JSON config (default: gmdash.json)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output with tracebacks"
    )
    parser.add_argument(
        "--json-logs", action="store_true", help="Emit structured JSON log lines"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser(
        "serve", help="Serve the built dashboard with health check and API proxy"
    )
    serve_parser.add_argument("--host", default=None, help="Listen address")
    serve_parser.add_argument("--port", "-p", type=int, default=None, help="Listen port")
    serve_parser.add_argument(
        "--asset-root", default=None, help="Directory holding the built bundle"
    )

    dash_parser = subparsers.add_parser("dash", help="Launch the terminal dashboard")
    dash_parser.add_argument(
        "--interval", "-i", type=float, default=None, help="Refresh interval in seconds"
    )
    dash_parser.add_argument(
        "--local", action="store_true", help="Use packaged sample data"
    )

    snapshot_parser = subparsers.add_parser(
        "snapshot", help="Fetch all sources once and print the snapshot as JSON"
    )
    snapshot_parser.add_argument(
        "--local", action="store_true", help="Use packaged sample data"
    )

    return parser


async def async_main():
    parser = _build_parser()
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"[-] Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    # Configure logging based on flags, then config
    if args.debug:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    else:
        level = config.log_level
    configure_logging(level=level, json_format=args.json_logs or config.log_json)

    verbose = args.verbose or args.debug

    if getattr(args, "local", False):
        config = dataclasses.replace(
            config, client=dataclasses.replace(config.client, use_local_data=True)
        )

    if args.command == "serve":
        from gmdash.presentation.web.app import serve

        server_config = dataclasses.replace(
            config.server,
            **{
                k: v
                for k, v in (
                    ("host", args.host),
                    ("port", args.port),
                    ("asset_root", args.asset_root),
                )
                if v is not None
            },
        )
        # Signal handlers can only be installed from the main thread.
        try:
            exit_code = serve(server_config, config.proxy)
        except ConfigurationError as e:
            print(f"[-] {e}", file=sys.stderr)
            sys.exit(1)
        sys.exit(exit_code)

    if args.command in ("dash", "snapshot"):
        from gmdash.composition_root import create_container

        try:
            container = create_container(config)
        except ConfigurationError as e:
            print(f"[-] {e}", file=sys.stderr)
            sys.exit(1)

        if args.command == "snapshot":
            try:
                snapshot = await container.fetch_dashboard.fetch_all_data()
            except Exception as e:
                print(f"[-] Failed to load dashboard data: {e}", file=sys.stderr)
                if verbose:
                    traceback.print_exc()
                sys.exit(1)
            print(json.dumps(snapshot.to_dict(), indent=2))
            return

        from gmdash.presentation.tui.dashboard import Dashboard

        interval = args.interval or config.client.refresh_interval_seconds
        app = Dashboard(container.fetch_dashboard, refresh_interval=interval)
        await app.run_async()
        return

    parser.print_help()


def main():
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
