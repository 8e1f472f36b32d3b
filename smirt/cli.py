from __future__ import annotations

"""
Command-line front end over the auth query surface.

Each invocation builds the context once, loads the registry, runs one command
and exits 0 on success or 1 on a failed result.
"""

import argparse
import getpass
import sys
import time
from typing import Callable, List, Optional

from smirt.core.config.manager import ConfigManager, default_paths, resolve_path
from smirt.core.config.paths import ConfigFsPaths
from smirt.core.context import AppContext, build_context
from smirt.core.errors import ConfigError
from smirt.core.logger import setup_logging
from smirt.core.results import Result


def _fmt_ts(ts: float) -> str:
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(ts))


def _fail(res: Result) -> int:
    print(f"Error: {res.message} [{res.code}]")
    return 1


def _warn(res: Result) -> None:
    for w in res.warnings:
        print(f"Warning: {w.user_message}")


def _secret(value: Optional[str], prompt: str, read: Callable[[str], str]) -> str:
    if value is not None:
        return value
    try:
        return read(prompt)
    except (EOFError, KeyboardInterrupt):
        return ""


def cmd_login(ctx: AppContext, args: argparse.Namespace, read: Callable[[str], str]) -> int:
    password = _secret(args.password, "Password: ", read)
    res = ctx.auth.authenticate(args.username, password)
    if not res.ok:
        return _fail(res)
    _warn(res)
    s = res.value
    print(f"Logged in as {s.display_name or s.username} ({s.role}); session expires {_fmt_ts(s.expires_at)}.")
    return 0


def cmd_logout(ctx: AppContext, args: argparse.Namespace, read: Callable[[str], str]) -> int:
    res = ctx.auth.logout()
    _warn(res)
    print("Logged out.")
    return 0


def cmd_whoami(ctx: AppContext, args: argparse.Namespace, read: Callable[[str], str]) -> int:
    s = ctx.auth.get_current_user()
    if s is None:
        print("Not logged in.")
        return 1
    print(f"{s.username} | {s.display_name} | {s.role} | expires {_fmt_ts(s.expires_at)}")
    return 0


def cmd_users_list(ctx: AppContext, args: argparse.Namespace, read: Callable[[str], str]) -> int:
    res = ctx.auth.list_users_for_admin()
    if not res.ok:
        return _fail(res)
    print("username | display_name | role | active | created_at")
    for u in res.value or []:
        print(f"{u.username} | {u.display_name} | {u.role} | {str(u.active).lower()} | {u.created_at}")
    return 0


def cmd_users_add(ctx: AppContext, args: argparse.Namespace, read: Callable[[str], str]) -> int:
    password = _secret(args.password, "New user's password: ", read)
    data = {"username": args.username, "password": password, "role": args.role, "permissions": list(args.permission or [])}
    if args.display_name:
        data["display_name"] = args.display_name
    res = ctx.auth.add_user(data)
    if not res.ok:
        return _fail(res)
    _warn(res)
    print(f"User {res.value.username} added.")
    return 0


def cmd_users_activate(ctx: AppContext, args: argparse.Namespace, read: Callable[[str], str]) -> int:
    res = ctx.auth.activate_user(args.username)
    if not res.ok:
        return _fail(res)
    _warn(res)
    print(f"User {args.username} activated.")
    return 0


def cmd_users_deactivate(ctx: AppContext, args: argparse.Namespace, read: Callable[[str], str]) -> int:
    res = ctx.auth.deactivate_user(args.username)
    if not res.ok:
        return _fail(res)
    _warn(res)
    print(f"User {args.username} deactivated.")
    return 0


def cmd_passwd(ctx: AppContext, args: argparse.Namespace, read: Callable[[str], str]) -> int:
    old = _secret(args.old_password, "Current password: ", read)
    new = _secret(args.new_password, "New password: ", read)
    res = ctx.auth.change_password(args.username, old, new)
    if not res.ok:
        return _fail(res)
    _warn(res)
    print("Password changed.")
    return 0


def cmd_cleanup(ctx: AppContext, args: argparse.Namespace, read: Callable[[str], str]) -> int:
    ctx.sessions.cleanup()
    print(f"Session state: {ctx.sessions.state.value}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="smirt", description="SMIRT local users and sessions")
    ap.add_argument("--root", default=None, help="App root holding config/, data/ and logs/ (default: $SMIRT_ROOT or .).")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="Authenticate and start a session.")
    p.add_argument("username")
    p.add_argument("--password", default=None, help="Password (prompted when omitted).")
    p.set_defaults(func=cmd_login)

    sub.add_parser("logout", help="End the current session.").set_defaults(func=cmd_logout)
    sub.add_parser("whoami", help="Show the current session (extends it).").set_defaults(func=cmd_whoami)
    sub.add_parser("cleanup", help="Drop the session if it has expired.").set_defaults(func=cmd_cleanup)

    p = sub.add_parser("passwd", help="Change a user's password.")
    p.add_argument("username")
    p.add_argument("--old-password", default=None)
    p.add_argument("--new-password", default=None)
    p.set_defaults(func=cmd_passwd)

    users = sub.add_parser("users", help="User management (admin only).")
    usub = users.add_subparsers(dest="users_command", required=True)
    usub.add_parser("list", help="List users without passwords.").set_defaults(func=cmd_users_list)

    p = usub.add_parser("add", help="Add a user.")
    p.add_argument("username")
    p.add_argument("--password", default=None)
    p.add_argument("--display-name", default=None)
    p.add_argument("--role", default="user")
    p.add_argument("--permission", action="append", help="Repeatable.")
    p.set_defaults(func=cmd_users_add)

    p = usub.add_parser("activate", help="Re-activate a user.")
    p.add_argument("username")
    p.set_defaults(func=cmd_users_activate)

    p = usub.add_parser("deactivate", help="Deactivate a user.")
    p.add_argument("username")
    p.set_defaults(func=cmd_users_deactivate)
    return ap


def main(argv: Optional[List[str]] = None, *, read_secret: Callable[[str], str] = getpass.getpass) -> int:
    args = build_parser().parse_args(argv)
    fs = ConfigFsPaths(root=args.root) if args.root else default_paths()

    try:
        cfg = ConfigManager(fs=fs).load()
    except ConfigError as e:
        print(f"Error: {e.user_message} [{e.code}]")
        return 2

    logger = setup_logging(resolve_path(fs, cfg.logging.dir), level=cfg.logging.level, console=cfg.logging.console)
    ctx = build_context(cfg, fs=fs, logger=logger)
    ctx.registry.load()
    return int(args.func(ctx, args, read_secret))


if __name__ == "__main__":
    sys.exit(main())
