#!/usr/bin/env python3
"""
AuthGate -- operator CLI.

Usage:
  python main.py create-identity user@example.com --name "Jane Doe"
  python main.py create-identity user@example.com --password-stdin < secret.txt
  python main.py check /dashboard/invoices
  python main.py check /login --signed-in

Environment variables:
  DATABASE_URL   Identity store URL (default: sqlite:///authgate.db)
  LOGIN_PATH, PROTECTED_PREFIX, EXCLUDED_PATTERNS   Gate configuration
"""

import argparse
import getpass
import sys

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from auth.models import CredentialSubmission, IdentityRecord
from auth.passwords import hash_password
from auth.store import IdentityStore
from auth.verifier import field_errors_from
from core.config import GateConfig, get_settings
from core.gate import RedirectTo, authorize, classify, is_excluded


def _read_password(from_stdin: bool) -> str:
    if from_stdin:
        return sys.stdin.readline().rstrip("\n")
    first = getpass.getpass("Password: ")
    second = getpass.getpass("Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        sys.exit(1)
    return first


def create_identity(email: str, name: str, password_stdin: bool) -> int:
    """Provision one identity record. Returns the process exit code."""
    password = _read_password(password_stdin)
    try:
        CredentialSubmission(identifier=email, secret=password)
    except ValidationError as exc:
        for field, messages in field_errors_from(exc).items():
            for message in messages:
                print(f"  [!] {field}: {message}")
        return 1

    settings = get_settings()
    store = IdentityStore(settings.database_url, timeout=settings.store_timeout_seconds)
    try:
        identity_id = store.create_identity(
            IdentityRecord(email=email, name=name, password_hash=hash_password(password))
        )
    except IntegrityError:
        print(f"  [!] An identity for '{email}' already exists.")
        return 1
    finally:
        store.close()
    print(f"  Created identity {identity_id} for {email}.")
    return 0


def check_path(path: str, signed_in: bool) -> int:
    """Print how the gate would treat a request for path."""
    config = GateConfig.from_settings(get_settings())
    if is_excluded(path, config):
        print(f"  {path}: excluded (gate not evaluated)")
        return 0
    decision = authorize(path, signed_in, config)
    route_class = classify(path, config).value
    if isinstance(decision, RedirectTo):
        print(f"  {path}: {route_class} -> redirect to {decision.path}")
    else:
        print(f"  {path}: {route_class} -> continue")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="authgate",
        description="Identity provisioning and route-gate inspection for AuthGate.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create-identity user@example.com --name "Jane Doe"
  python main.py check /dashboard/invoices
  python main.py check /login --signed-in
        """,
    )
    subparsers = parser.add_subparsers(dest="command")

    create = subparsers.add_parser("create-identity", help="Add a sign-in identity to the store")
    create.add_argument("email", help="Identifier (email address, case-sensitive)")
    create.add_argument("--name", default="", help="Display name")
    create.add_argument(
        "--password-stdin",
        action="store_true",
        help="Read the password from the first line of stdin instead of prompting",
    )

    check = subparsers.add_parser("check", help="Show the gate decision for a request path")
    check.add_argument("path", help="Request path, e.g. /dashboard/invoices")
    check.add_argument("--signed-in", action="store_true", help="Evaluate as a caller with a session")

    args = parser.parse_args()

    if args.command == "create-identity":
        sys.exit(create_identity(args.email, args.name, args.password_stdin))
    elif args.command == "check":
        sys.exit(check_path(args.path, args.signed_in))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
