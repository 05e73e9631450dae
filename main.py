#!/usr/bin/env python3
"""
Accounts -- operator commands for the accounts database.

Roles can only change through an admin-gated API call, so the first admin
has to be created here.

Usage:
  python main.py create-admin ACCOUNT PASSWORD
  python main.py set-role ACCOUNT admin
  python main.py purge-sessions

Environment variables:
  DATABASE_URL   SQLAlchemy URL of the accounts database (default: ./accounts.db)
  SECRET_KEY     Required unless DEBUG=true (see core/config.py)
"""

import argparse
import sys

from auth.models import Role
from auth.registration import RegistrationCoordinator
from auth.session_store import SessionStore
from auth.store import UserStore
from core.config import get_settings
from core.errors import AccountError


def _create_admin(store: UserStore, args: argparse.Namespace) -> int:
    user_id = RegistrationCoordinator(store).create_account(args.account, password=args.password, role=Role.admin.value)
    print(f"Created admin '{args.account}' (id {user_id}).")
    return 0


def _set_role(store: UserStore, args: argparse.Namespace) -> int:
    user = store.find_by_account(args.account)
    if user is None:
        print(f"  [!] No account named '{args.account}'.", file=sys.stderr)
        return 1
    user.role = args.role
    store.update(user)
    print(f"Account '{args.account}' now has role '{args.role}'.")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Accounts service operator commands.",
        epilog=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_admin = sub.add_parser("create-admin", help="Create an account with role admin.")
    p_admin.add_argument("account", help="Account name (at least 4 characters)")
    p_admin.add_argument("password", help="Password (at least 8 characters)")

    p_role = sub.add_parser("set-role", help="Change the role of an existing account.")
    p_role.add_argument("account")
    p_role.add_argument("role", choices=[r.value for r in Role])

    sub.add_parser("purge-sessions", help="Delete expired sessions.")

    args = parser.parse_args(argv)
    db_url = get_settings().database_url

    if args.command == "purge-sessions":
        sessions = SessionStore(db_url)
        try:
            print(f"Removed {sessions.purge_expired()} expired session(s).")
        finally:
            sessions.close()
        return 0

    store = UserStore(db_url)
    try:
        if args.command == "create-admin":
            return _create_admin(store, args)
        return _set_role(store, args)
    except AccountError as exc:
        print(f"  [!] {exc.message}", file=sys.stderr)
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
