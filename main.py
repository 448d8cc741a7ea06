#!/usr/bin/env python3
"""
ZapMenu auth admin tool -- out-of-band provisioning and maintenance.

Admins are never created over HTTP. Operators use this tool to seed hotels
and admins, and to purge stale passcode records.

Usage:
  python main.py init-db
  python main.py create-hotel "Seaside Inn"
  python main.py create-admin --hotel-id 1 --name "Ana" --email ana@seaside.example --phone +15550100
  python main.py request-code ana@seaside.example
  python main.py purge-codes

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the auth database (default: sqlite file beside the project).
  DEBUG         Set to true to allow running without JWT_SECRET.
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.delivery import build_passcode_sender
from auth.mfa import MFAEngine
from auth.models import Admin, Hotel
from auth.schema import create_db_engine
from auth.store import IdentityStore, PasscodeStore
from core.config import get_settings


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="ZapMenu auth -- provision hotels and admins, manage MFA passcodes.",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        metavar="URL",
        help="Override DATABASE_URL for this invocation",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    sub.add_parser("init-db", help="Create all tables")

    hotel = sub.add_parser("create-hotel", help="Create a hotel and print its id")
    hotel.add_argument("name")

    admin = sub.add_parser("create-admin", help="Create an admin for an existing hotel")
    admin.add_argument("--hotel-id", type=int, required=True)
    admin.add_argument("--name", required=True)
    admin.add_argument("--email", required=True)
    admin.add_argument("--phone", required=True)

    code = sub.add_parser("request-code", help="Issue a passcode for an admin email and print it")
    code.add_argument("email")

    sub.add_parser("purge-codes", help="Delete used passcodes that expired over 24 hours ago")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    settings = get_settings()
    engine = create_db_engine(args.database_url or settings.database_url)
    identity = IdentityStore(engine)
    passcodes = PasscodeStore(engine)
    try:
        if args.command == "init-db":
            print("Database ready.")

        elif args.command == "create-hotel":
            hotel_id = identity.create_hotel(Hotel(name=args.name))
            print(f"Hotel {hotel_id} created.")

        elif args.command == "create-admin":
            if identity.get_hotel(args.hotel_id) is None:
                print(f"  [!] Hotel {args.hotel_id} does not exist.", file=sys.stderr)
                return 1
            try:
                admin_id = identity.create_admin(
                    Admin(name=args.name, email=args.email, phone=args.phone, hotel_id=args.hotel_id)
                )
            except IntegrityError:
                print(f"  [!] An admin with email {args.email} already exists.", file=sys.stderr)
                return 1
            print(f"Admin {admin_id} created for hotel {args.hotel_id}.")

        elif args.command == "request-code":
            mfa = MFAEngine(
                identity,
                passcodes,
                sender=build_passcode_sender(settings),
                expiration_minutes=settings.passcode_expire_minutes,
            )
            result = mfa.request_verification(args.email)
            if not result.success:
                print(f"  [!] {result.message}", file=sys.stderr)
                return 1
            print(f"Passcode {result.passcode} (expires {result.expires_at.isoformat()})")

        elif args.command == "purge-codes":
            mfa = MFAEngine(identity, passcodes)
            removed = sum(mfa.cleanup_stale(admin_id) for admin_id in identity.list_admin_ids())
            print(f"Removed {removed} stale passcode record(s).")
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
