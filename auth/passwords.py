"""
auth/passwords.py -- Credential spec parsing, password verification and hashing.

A credential spec is the password string an operator writes into the config.
It comes in three shapes, told apart by prefix alone:

  Cleartext:  "AlicesPassword"                    exact, case-sensitive match
  Crypt:      "$<tag>$..."                        e.g. $1$, $5$, $6$, $apr1$, $2b$
  RFC 2307:   "{<TAG>}..."                        e.g. {MD5}, {SSHA}, {CRYPT}

parse_credential() turns the string into a tagged variant once, at config
load, so a malformed hash is reported at startup rather than on every request.
check_password() never raises: an unknown scheme, a malformed digest or a
missing hashing backend all log an error and return False (fail closed).

Hashing libraries:
  bcrypt ($2a$/$2b$/$2y$): the bcrypt package, used directly. passlib's bcrypt
       wrapper runs a wrap-bug self test with a secret longer than 72 bytes,
       which bcrypt 4.x+ rejects, so it is bypassed for this one scheme.
  everything else: passlib handlers (md5_crypt, sha512_crypt, ldap_salted_sha1,
       des_crypt, ...). passlib ships pure-Python backends for all of them.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import hmac
import logging
import re
from dataclasses import dataclass, field

import bcrypt
from passlib import exc as passlib_exc
from passlib.registry import get_crypt_handler

logger = logging.getLogger("authgate.auth")

# ---------------------------------------------------------------------------
# Format recognition
# ---------------------------------------------------------------------------

_CRYPT_RE = re.compile(r"^\$(\w+)\$")
_RFC2307_RE = re.compile(r"^\{(\w+)\}")
_BCRYPT_RE = re.compile(r"^\$2[aby]\$\d{2}\$[./A-Za-z0-9]{53}$")

# bcrypt only looks at the first 72 bytes of a secret. bcrypt 5 raises instead
# of truncating, so presented passwords are cut here to keep the old behaviour.
_BCRYPT_MAX_BYTES = 72

_BCRYPT_TAGS = frozenset({"2a", "2b", "2y"})

# crypt tag -> passlib handler name
_CRYPT_HANDLERS = {
    "1": "md5_crypt",
    "apr1": "apr_md5_crypt",
    "5": "sha256_crypt",
    "6": "sha512_crypt",
}

# RFC 2307 scheme (upper-cased) -> passlib handler name
_RFC2307_HANDLERS = {
    "MD5": "ldap_md5",
    "SMD5": "ldap_salted_md5",
    "SHA": "ldap_sha1",
    "SSHA": "ldap_salted_sha1",
    "SSHA256": "ldap_salted_sha256",
    "SSHA512": "ldap_salted_sha512",
}

# CLI scheme name -> handler name, for hash_password()
HASH_SCHEMES = {
    "bcrypt": "bcrypt",
    "sha512-crypt": "sha512_crypt",
    "sha256-crypt": "sha256_crypt",
    "md5-crypt": "md5_crypt",
    "apr1": "apr_md5_crypt",
    "ssha": "ldap_salted_sha1",
    "ssha256": "ldap_salted_sha256",
    "ssha512": "ldap_salted_sha512",
    "smd5": "ldap_salted_md5",
    "sha": "ldap_sha1",
    "md5": "ldap_md5",
}

# ---------------------------------------------------------------------------
# Credential spec variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Cleartext:
    password: str = field(repr=False)


@dataclass(frozen=True)
class CryptHash:
    """A "$tag$..." hash. handler is "bcrypt" or a passlib handler name."""

    scheme: str
    handler: str
    encoded: str = field(repr=False)


@dataclass(frozen=True)
class Rfc2307Hash:
    """A "{SCHEME}..." hash.

    For {CRYPT} and {CLEARTEXT} the prefix is stripped from encoded and the
    remainder is handed to the crypt handler (or compared as-is).
    """

    scheme: str
    handler: str
    encoded: str = field(repr=False)


@dataclass(frozen=True)
class Unrecognized:
    """A hashed-looking spec that no recognizer can be built for."""

    scheme: str
    reason: str


CredentialSpec = Cleartext | CryptHash | Rfc2307Hash | Unrecognized


@dataclass(frozen=True)
class VerifyResult:
    matched: bool
    error: str | None = None


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_credential(raw: str) -> CredentialSpec:
    """Classify a stored credential string. Pure function of its prefix."""
    match = _CRYPT_RE.match(raw)
    if match:
        tag = match.group(1)
        return _recognize(CryptHash, tag, _crypt_handler_name(raw), raw)

    match = _RFC2307_RE.match(raw)
    if match:
        scheme = match.group(1).upper()
        body = raw[match.end() :]
        if scheme == "CLEARTEXT":
            return Rfc2307Hash(scheme, "cleartext", body)
        if scheme == "CRYPT":
            return _recognize(Rfc2307Hash, scheme, _crypt_handler_name(body), body)
        # passlib's ldap handlers expect the canonical upper-case prefix
        return _recognize(Rfc2307Hash, scheme, _RFC2307_HANDLERS.get(scheme), f"{{{scheme}}}{body}")

    return Cleartext(raw)


def _crypt_handler_name(encoded: str) -> str | None:
    match = _CRYPT_RE.match(encoded)
    if match:
        tag = match.group(1)
        if tag in _BCRYPT_TAGS:
            return "bcrypt"
        return _CRYPT_HANDLERS.get(tag)
    # Only reachable through {CRYPT}: traditional 13-char DES or BSDi "_..."
    if encoded.startswith("_"):
        return "bsdi_crypt"
    return "des_crypt"


def _recognize(kind, scheme: str, handler: str | None, encoded: str) -> CredentialSpec:
    if handler is None:
        return Unrecognized(scheme, f"unsupported password scheme {scheme!r}")
    if handler == "bcrypt":
        if not _BCRYPT_RE.match(encoded):
            return Unrecognized(scheme, "malformed bcrypt hash")
        return kind(scheme, handler, encoded)
    try:
        get_crypt_handler(handler).from_string(encoded)
    except (ValueError, TypeError) as e:
        return Unrecognized(scheme, f"malformed {handler} hash ({e})")
    return kind(scheme, handler, encoded)


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


def _constant_time_equals(expected: str, presented: str) -> bool:
    return hmac.compare_digest(expected.encode("utf-8"), presented.encode("utf-8"))


def _verify_hash(credential: CryptHash | Rfc2307Hash, presented: str) -> VerifyResult:
    if credential.handler == "cleartext":
        return VerifyResult(_constant_time_equals(credential.encoded, presented))

    if credential.handler == "bcrypt":
        secret = presented.encode("utf-8")[:_BCRYPT_MAX_BYTES]
        try:
            return VerifyResult(bcrypt.checkpw(secret, credential.encoded.encode("utf-8")))
        except ValueError as e:
            return VerifyResult(False, f"bcrypt rejected the stored {credential.scheme} hash: {e}")

    try:
        handler = get_crypt_handler(credential.handler)
        return VerifyResult(bool(handler.verify(presented, credential.encoded)))
    except passlib_exc.MissingBackendError as e:
        return VerifyResult(False, f"No backend available for {credential.handler}: {e}")
    except (ValueError, TypeError) as e:
        return VerifyResult(False, f"Can't verify {credential.handler} hash: {e}")


def check_password(stored: str | CredentialSpec | None, presented: str) -> bool:
    """Return True if presented matches the stored credential spec.

    Accepts either the raw config string or an already-parsed variant. Never
    raises; every failure is logged and reported as a mismatch.
    """
    if stored is None:
        return False
    credential = parse_credential(stored) if isinstance(stored, str) else stored

    if isinstance(credential, Cleartext):
        return _constant_time_equals(credential.password, presented)

    if isinstance(credential, Unrecognized):
        logger.error(
            "Can't construct a password recognizer for scheme %r: %s",
            credential.scheme,
            credential.reason,
        )
        return False

    result = _verify_hash(credential, presented)
    if result.error:
        logger.error(result.error)
        return False
    return result.matched


# ---------------------------------------------------------------------------
# Hashing (operator tooling)
# ---------------------------------------------------------------------------


def hash_password(plain: str, scheme: str = "bcrypt") -> str:
    """Return a new credential spec for plain, encoded with the named scheme.

    scheme is one of the HASH_SCHEMES keys. bcrypt refuses secrets over 72
    bytes rather than silently truncating them.
    """
    handler = HASH_SCHEMES.get(scheme)
    if handler is None:
        raise ValueError(f"Unknown hash scheme {scheme!r}. Choose one of: {', '.join(sorted(HASH_SCHEMES))}")
    if handler == "bcrypt":
        secret = plain.encode("utf-8")
        if len(secret) > _BCRYPT_MAX_BYTES:
            raise ValueError("bcrypt passwords are limited to 72 bytes")
        return bcrypt.hashpw(secret, bcrypt.gensalt()).decode("utf-8")
    return get_crypt_handler(handler).hash(plain)
