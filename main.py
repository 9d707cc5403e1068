#!/usr/bin/env python3
"""
CredVault -- salted-hash credential store.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py signup a@example.com
  python main.py login a@example.com
  python main.py passwd a@example.com
  python main.py delete a@example.com
  python main.py exists a@example.com
  python main.py login a@example.com --json

Passwords are always read with a hidden prompt, never from argv.

Environment variables:
  STORE_URL     Where records live. "memory://" or a SQLAlchemy URL.
                Default: sqlite file kv/credvault.db next to this script.
  SALT_LENGTH   Salt length in hex characters (default 16).
"""

import argparse
import getpass
import json
import logging
import sys

import uvicorn

from auth.credentials import CredentialStore
from auth.models import Result
from core.config import get_settings
from kv.store import StoreError, open_store

logger = logging.getLogger("credvault.cli")


def _prompt(label: str) -> str:
    return getpass.getpass(f"{label}: ")


def _report(result: Result, as_json: bool) -> int:
    """Print a Result and return the process exit status."""
    if as_json:
        print(json.dumps(result.to_dict()))
    elif result.success:
        print(f"  [+] ok{f'  hash={result.hash}' if result.hash else ''}")
    else:
        print(f"  [!] {result.message}")
    return 0 if result.success else 1


def _serve(args: argparse.Namespace) -> int:
    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _run_credential_command(args: argparse.Namespace) -> int:
    settings = get_settings()
    try:
        store = open_store(settings.store_url)
    except StoreError as e:
        print(f"  [!] Could not open store: {e}")
        return 2
    logger.info("Using %s", type(store).__name__)
    creds = CredentialStore(store, salt_length=settings.salt_length)
    try:
        if args.command == "exists":
            try:
                found = creds.exists(args.email)
            except StoreError as e:
                print(f"  [!] Store read failed: {e}")
                return 2
            if args.json:
                print(json.dumps({"exists": found}))
            else:
                print("yes" if found else "no")
            return 0 if found else 1

        if args.command == "signup":
            password = _prompt("Password")
            if password != _prompt("Repeat password"):
                print("  [!] Passwords do not match.")
                return 1
            result = creds.signup(args.email, password)
        elif args.command == "login":
            result = creds.verify(args.email, _prompt("Password"))
        elif args.command == "passwd":
            old = _prompt("Current password")
            new = _prompt("New password")
            result = creds.change_password(args.email, old, new)
        else:
            result = creds.delete_account(args.email, _prompt("Password"))
        return _report(result, args.json)
    finally:
        store.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="CredVault -- salted-hash credential store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log store and credential events to stderr.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API under uvicorn.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development).")

    for name, help_text in (
        ("signup", "Register a new email."),
        ("login", "Check a password."),
        ("passwd", "Change a password."),
        ("delete", "Delete an account."),
        ("exists", "Report whether an email is registered."),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("email")
        cmd.add_argument("--json", action="store_true", help="Print the result as JSON.")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)-5s %(name)s %(message)s",
    )
    if args.command == "serve":
        return _serve(args)
    return _run_credential_command(args)


if __name__ == "__main__":
    sys.exit(main())
