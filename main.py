#!/usr/bin/env python3
"""
authgate -- operator tooling for the Basic Auth gate.

Usage:
  python main.py hash                      (prompts for the password)
  python main.py hash --scheme ssha AlicesPassword
  python main.py verify '{MD5}6E5X8ar/9MdlK07WyHTisg==' BensPassword
  python main.py check /secret/file.txt
  python main.py check /secret/file.txt --user charlie --password CharliesPassword

Environment variables (see core/config.py):
  AUTH_BASIC_PATHS           JSON object: path prefix -> {realm, user, password, users}
  AUTH_BASIC_USERS           JSON object: username -> credential spec
  AUTH_BASIC_LONGEST_PREFIX  true to let the longest matching prefix win
"""

import argparse
import base64
import getpass
import sys
from typing import Optional

from auth.gate import AuthGate
from auth.models import DEFAULT_REALM, Reject
from auth.passwords import HASH_SCHEMES, check_password, hash_password
from core.config import get_settings


def _read_password(given: Optional[str], prompt: str = "Password: ") -> str:
    """Return the password from argv, or prompt for it without echo."""
    if given is not None:
        return given
    return getpass.getpass(prompt)


def _cmd_hash(args: argparse.Namespace) -> int:
    plain = _read_password(args.password)
    if args.password is None and plain != getpass.getpass("Repeat password: "):
        print("  [!] Passwords do not match.", file=sys.stderr)
        return 1
    try:
        print(hash_password(plain, args.scheme))
    except ValueError as e:
        print(f"  [!] {e}", file=sys.stderr)
        return 1
    return 0


def _cmd_verify(args: argparse.Namespace) -> int:
    plain = _read_password(args.password)
    if check_password(args.spec, plain):
        print("match")
        return 0
    print("no match")
    return 1


def _cmd_check(args: argparse.Namespace) -> int:
    gate = AuthGate.from_settings(get_settings())

    matched = gate.match(args.path)
    if matched is None:
        print(f"{args.path}: not protected")
        return 0
    prefix, options = matched
    print(f"{args.path}: protected by {prefix!r} (realm {options.realm or DEFAULT_REALM!r})")

    authorization = None
    if args.user is not None:
        password = _read_password(args.password)
        token = base64.b64encode(f"{args.user}:{password}".encode("utf-8")).decode("ascii")
        authorization = f"Basic {token}"

    result = gate.authenticate(args.path, authorization, options)
    if isinstance(result, Reject):
        print(f"  {result.status} {result.body} -- WWW-Authenticate: {result.headers['WWW-Authenticate']}")
        return 1
    print(f"  allowed as {result.identity!r}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="authgate",
        description="Hash, verify and test HTTP Basic Auth credentials.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py hash --scheme sha512-crypt
  python main.py verify '$2b$12$...' RyansPassword
  AUTH_BASIC_PATHS='{"/secret": {"user": "alice", "password": "AlicesPassword"}}' \\
      python main.py check /secret/x --user alice --password AlicesPassword
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p_hash = sub.add_parser("hash", help="Print a credential spec for a password")
    p_hash.add_argument("password", nargs="?", help="Password to hash (prompted when omitted)")
    p_hash.add_argument(
        "--scheme",
        choices=sorted(HASH_SCHEMES),
        default="bcrypt",
        metavar="SCHEME",
        help=f"Hash scheme: {', '.join(sorted(HASH_SCHEMES))} (default: bcrypt)",
    )
    p_hash.set_defaults(func=_cmd_hash)

    p_verify = sub.add_parser("verify", help="Check a password against a credential spec")
    p_verify.add_argument("spec", help="Stored credential spec (cleartext, $crypt$ or {RFC2307})")
    p_verify.add_argument("password", nargs="?", help="Password to check (prompted when omitted)")
    p_verify.set_defaults(func=_cmd_verify)

    p_check = sub.add_parser("check", help="Show how the configured gate treats a request path")
    p_check.add_argument("path", help="Request path, e.g. /secret/file.txt")
    p_check.add_argument("--user", help="Username to present")
    p_check.add_argument("--password", help="Password to present (prompted when --user is given without it)")
    p_check.set_defaults(func=_cmd_check)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 2
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
