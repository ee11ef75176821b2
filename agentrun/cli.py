"""
Command-line interface for agentrun.
"""

import argparse
import sys

from agentrun.config import settings
from agentrun.utils.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="agentrun", description="agentrun - agent execution runner")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API server")
    serve.add_argument(
        "--host",
        default=settings.api_host,
        help=f"Host to bind to (default: {settings.api_host})",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=settings.api_port,
        help=f"Port to bind to (default: {settings.api_port})",
    )
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    serve.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes (default: 1)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(level=settings.log_level, json_output=settings.log_json)

    if args.command == "serve":
        from agentrun.api import start_server

        kwargs = {}
        if args.workers > 1:
            kwargs["workers"] = args.workers

        try:
            start_server(
                host=args.host,
                port=args.port,
                reload=args.reload,
                **kwargs,
            )
        except KeyboardInterrupt:
            print("\nShutting down agentrun server...")
            sys.exit(0)


if __name__ == "__main__":
    main()
