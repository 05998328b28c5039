"""
auth/paths.py -- Protected-path prefix matching.

Prefixes are literal strings: "/secret.v1" only matches paths that start with
exactly those characters, never "/secretXv1".

Two orderings are supported:

  legacy (default): prefixes tried in descending lexicographic order, first
      match wins. For prefixes that share a root this behaves like longest
      match ("/secret/data" sorts after "/secret"), but it is not guaranteed
      to: "/b" is tried before "/aa".

  longest:  prefixes tried longest first (ties broken lexicographically,
      descending), so the most specific configured prefix always wins.

normalize_path() gives the form a file server resolves ("//" collapsed,
"." and ".." applied). The gate matches both forms, so "/static//private/x"
and "/static/x/../private/x" hit the "/static/private" entry.
"""

from __future__ import annotations

import posixpath
import re
from collections.abc import Iterable, Mapping
from typing import TypeVar

T = TypeVar("T")

_SLASHES_RE = re.compile(r"/{2,}")


def ordered_prefixes(prefixes: Iterable[str], longest: bool = False) -> list[str]:
    """Return prefixes in the order they are tried against a request path."""
    if longest:
        return sorted(prefixes, key=lambda p: (len(p), p), reverse=True)
    return sorted(prefixes, reverse=True)


def match_path(paths: Mapping[str, T], request_path: str, longest: bool = False) -> tuple[str, T] | None:
    """Return (prefix, entry) for the first configured prefix request_path starts with.

    Returns None when no prefix matches, i.e. the path is not protected.
    """
    for prefix in ordered_prefixes(paths, longest):
        if request_path.startswith(prefix):
            return prefix, paths[prefix]
    return None


def normalize_path(request_path: str) -> str:
    """Collapse repeated slashes and resolve "." / ".." segments.

    A trailing slash is kept. This is the path a file server ends up opening,
    so it is matched as well as the raw one.
    """
    if not request_path:
        return "/"
    collapsed = _SLASHES_RE.sub("/", request_path)
    normalized = posixpath.normpath(collapsed)
    if not normalized.startswith("/"):
        normalized = "/" + normalized
    if collapsed.endswith("/") and normalized != "/":
        normalized += "/"
    return normalized
