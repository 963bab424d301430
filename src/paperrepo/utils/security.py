"""Credential helpers: bcrypt password hashes and one-time code digests.

Passwords are hashed with ``bcrypt``; the work factor comes from
``PAPERREPO_BCRYPT_ROUNDS`` (default 12).  Verification codes are short
lived, so only a SHA-256 digest is stored and compared in constant time.
"""

from __future__ import annotations

import hashlib
import hmac
import os
import secrets
from typing import Optional

import bcrypt
from loguru import logger

_ENV_ROUNDS = "PAPERREPO_BCRYPT_ROUNDS"
_DEFAULT_ROUNDS = 12
# bcrypt ignores everything after 72 bytes and newer releases refuse longer input.
_BCRYPT_MAX_BYTES = 72


def _rounds() -> int:
    raw = os.getenv(_ENV_ROUNDS, "").strip()
    if not raw:
        return _DEFAULT_ROUNDS
    try:
        rounds = int(raw)
    except ValueError:
        logger.warning(f"{_ENV_ROUNDS}={raw!r} is not an integer; using {_DEFAULT_ROUNDS}")
        return _DEFAULT_ROUNDS
    # bcrypt accepts 4..31
    return max(4, min(rounds, 31))


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, *, rounds: Optional[int] = None) -> str:
    """Return a bcrypt hash string for *password*."""
    salt = bcrypt.gensalt(rounds=rounds or _rounds())
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check *password* against a stored bcrypt hash.

    Malformed hashes count as a mismatch.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def generate_code(digits: int = 6) -> str:
    """Random numeric code, zero padded, e.g. ``"042917"``."""
    return f"{secrets.randbelow(10 ** digits):0{digits}d}"


def hash_code(code: str) -> str:
    return hashlib.sha256(code.strip().encode("utf-8")).hexdigest()


def codes_match(code: str, code_hash: str) -> bool:
    if not code or not code_hash:
        return False
    return hmac.compare_digest(hash_code(code), code_hash)
