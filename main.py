#!/usr/bin/env python3
"""
MyFlix -- account, favorites and token service for the MyFlix movie catalog.

Usage:
  python main.py gen-secret
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py serve --reload

Environment variables:
  SECRET_KEY       Token signing secret (>= 32 chars). Required unless DEBUG=true.
  DEBUG            "true" auto-generates a throwaway SECRET_KEY for local work.
  DATABASE_URL     SQLAlchemy URL for the account store. Default: SQLite file in auth/.
  ACCESS_LOG_PATH  Optional file that request lines are appended to.
  PORT             Default port for `serve` (8080).
"""

import argparse
import secrets
import sys

from core.config import get_settings


def generate_secret() -> str:
    """Return 32 random bytes as 64 hex characters -- a valid SECRET_KEY."""
    return secrets.token_hex(32)


def _cmd_gen_secret(args: argparse.Namespace) -> int:
    print(generate_secret())
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    port = args.port if args.port is not None else get_settings().port
    uvicorn.run("asgi:app", host=args.host, port=port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="myflix",
        description="MyFlix account and token service.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("gen-secret", help="Print a fresh SECRET_KEY value.")
    gen.set_defaults(func=_cmd_gen_secret)

    serve = sub.add_parser("serve", help="Run the API under uvicorn.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=None, help="Default: PORT from the environment, else 8080.")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only).")
    serve.set_defaults(func=_cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
