#!/usr/bin/env python3
"""
ShopGate -- registration, login and a session-gated shopping page.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py serve --reload
  python main.py init-db
  python main.py create-user a@x.com
  python main.py purge-sessions

Environment variables (or .env):
  DATABASE_URL      SQLAlchemy URL. Defaults to a local SQLite file.
  DB_HOST, DB_PORT, DB_USER, DB_PASS, DB_NAME
                    Compose a MySQL URL when DATABASE_URL is not set.
  DB_SSL_CA         CA bundle path; enables TLS to the database.
  SESSION_BACKEND   "memory" (default) or "database".
"""

import argparse
import getpass
import sys

from core.config import get_settings


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )
    return 0


def _cmd_init_db(args: argparse.Namespace) -> int:
    from auth.store import UserStore
    from sessions.store import SqlSessionStore

    settings = get_settings()
    url = settings.resolved_database_url
    UserStore(url, ssl_ca=settings.db_ssl_ca).close()
    if settings.session_backend == "database":
        SqlSessionStore(url, ssl_ca=settings.db_ssl_ca).close()
    print("  Tables ready.")
    return 0


def _cmd_create_user(args: argparse.Namespace) -> int:
    from auth.flow import AuthFlow, Outcome
    from auth.store import UserStore
    from sessions.store import InMemorySessionStore

    settings = get_settings()
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat password: "):
        print("  [!] Passwords do not match.")
        return 1

    users = UserStore(settings.resolved_database_url, ssl_ca=settings.db_ssl_ca)
    try:
        # Registration never touches sessions; an in-memory store satisfies the flow.
        result = AuthFlow(users, InMemorySessionStore()).register(args.email, password)
    finally:
        users.close()

    if result.outcome is Outcome.CREATED:
        print(f"  Created {args.email}")
        return 0
    messages = {
        Outcome.INVALID_INPUT: "Email and password required.",
        Outcome.CONFLICT: f"'{args.email}' is already registered.",
    }
    print(f"  [!] {messages.get(result.outcome, 'Could not create user; see log for details.')}")
    return 1


def _cmd_purge_sessions(args: argparse.Namespace) -> int:
    from sessions.store import SqlSessionStore

    settings = get_settings()
    if settings.session_backend != "database":
        print("  [!] SESSION_BACKEND is 'memory'; sessions live in the server process.")
        return 1
    store = SqlSessionStore(settings.resolved_database_url, ssl_ca=settings.db_ssl_ca)
    try:
        removed = store.purge_expired()
    finally:
        store.close()
    print(f"  Removed {removed} expired session(s).")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shopgate",
        description="ShopGate web app and maintenance commands.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the web app under uvicorn")
    serve.add_argument("--host", default="", help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, default=0, help="Port (default: PORT setting)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve.set_defaults(func=_cmd_serve)

    init_db = sub.add_parser("init-db", help="Create database tables")
    init_db.set_defaults(func=_cmd_init_db)

    create_user = sub.add_parser("create-user", help="Register an account from the command line")
    create_user.add_argument("email")
    create_user.set_defaults(func=_cmd_create_user)

    purge = sub.add_parser("purge-sessions", help="Delete expired sessions (database backend)")
    purge.set_defaults(func=_cmd_purge_sessions)

    return parser


def main(argv=None) -> int:
    args = _build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
