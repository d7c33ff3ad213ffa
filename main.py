#!/usr/bin/env python3
"""
Incident Admin -- operator command line.

Usage:
  python main.py create-admin alice
  python main.py list-admins
  python main.py serve --host 127.0.0.1 --port 8000

create-admin prompts for the password twice (it is never accepted on the
command line, so it stays out of shell history). It fails if the username
is already taken.

Environment variables (see core/config.py):
  SECRET_KEY    Required unless DEBUG=true.
  DATABASE_URL  SQLAlchemy URL shared by all stores. Defaults to ./incidentadmin.db.
"""

import argparse
import getpass
import sys

from sqlalchemy.exc import IntegrityError

from auth.models import Admin
from auth.passwords import hash_password
from auth.store import AdminStore


def _create_admin(store: AdminStore, username: str) -> int:
    username = username.strip()
    if not username:
        print("  [!] Username must not be empty.")
        return 1
    if store.get_by_username(username) is not None:
        print(f"  [!] Admin '{username}' already exists.")
        return 1
    password = getpass.getpass("Password: ")
    if not password:
        print("  [!] Password must not be empty.")
        return 1
    if getpass.getpass("Repeat password: ") != password:
        print("  [!] Passwords do not match.")
        return 1
    try:
        admin_id = store.create_admin(Admin(username=username, hashed_password=hash_password(password)))
    except IntegrityError:
        print(f"  [!] Admin '{username}' already exists.")
        return 1
    print(f"  Created admin '{username}' (id={admin_id}).")
    return 0


def _list_admins(store: AdminStore) -> int:
    admins = store.list_admins()
    if not admins:
        print("  No admins yet. Run: python main.py create-admin USERNAME")
        return 0
    for admin in admins:
        print(f"  {admin.id:>5}  {admin.username:<30} created {admin.created_at}")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="incident-admin",
        description="Operator tasks for the Incident Admin backend.",
    )
    sub = parser.add_subparsers(dest="command")

    create = sub.add_parser("create-admin", help="Create an admin account (password is prompted)")
    create.add_argument("username", help="Login name for the new admin")

    sub.add_parser("list-admins", help="List admin accounts")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "serve":
        import uvicorn

        uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
        return 0

    store = AdminStore()
    try:
        if args.command == "create-admin":
            return _create_admin(store, args.username)
        return _list_admins(store)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
