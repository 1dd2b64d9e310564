"""Command line interface for Skyscore."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from .config import AppConfig
from .pipeline import AggregationPipeline
from .services.http import configure_http, get_http_session
from .services.logging import configure_console_logging


def _print(data: Any, pretty: bool = False) -> None:
    print(json.dumps(data, indent=2 if pretty else None, ensure_ascii=False))


def _load_config(args) -> AppConfig:
    return AppConfig.load(Path(args.base_dir) if args.base_dir else None)


def cmd_resolve(args) -> int:
    config = _load_config(args)
    configure_console_logging(args.log_level or config.log_level, json_output=config.log_json)
    configure_http(config.http_settings())
    pipeline = AggregationPipeline(config, session=get_http_session())
    result = pipeline.run(args.handle, windows=args.window or None)
    _print(result.payload if result.ok else {"error": result.error}, pretty=args.pretty)
    return 0 if result.ok else 1


def cmd_runserver(args) -> int:
    from .app_factory import create_app

    app = create_app(_load_config(args))
    app.run(host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="skyscore", description="Bluesky / AT Protocol account scoring")
    sub = parser.add_subparsers(dest="command", required=True)

    resolve = sub.add_parser("resolve", help="Resolve a handle and print window documents")
    resolve.add_argument("handle")
    resolve.add_argument("--window", type=int, action="append", help="Window in days (repeatable)")
    resolve.add_argument("--pretty", action="store_true")
    resolve.add_argument("--log-level")
    resolve.add_argument("--base-dir")
    resolve.set_defaults(func=cmd_resolve)

    runserver = sub.add_parser("runserver", help="Start HTTP server")
    runserver.add_argument("--host", default="127.0.0.1")
    runserver.add_argument("--port", type=int, default=8051)
    runserver.add_argument("--base-dir")
    runserver.set_defaults(func=cmd_runserver)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
