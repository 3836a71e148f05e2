"""Password hashing for the user credential store.

Uses the scrypt key-derivation function from the `cryptography` package.
Hashes are stored as self-describing strings:

    scrypt$<n>$<r>$<p>$<salt b64>$<key b64>

so cost parameters can be raised later without invalidating old hashes.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

logger = logging.getLogger(__name__)

SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1
KEY_LENGTH = 32
SALT_LENGTH = 16


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def _b64decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def hash_password(password: str) -> str:
    """Hash a plain text password with a fresh random salt."""
    if not password:
        raise ValueError("Password must not be empty")

    salt = os.urandom(SALT_LENGTH)
    kdf = Scrypt(salt=salt, length=KEY_LENGTH, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    key = kdf.derive(password.encode("utf-8"))
    return f"scrypt${SCRYPT_N}${SCRYPT_R}${SCRYPT_P}${_b64encode(salt)}${_b64encode(key)}"


def verify_password(password: str, stored_hash: str) -> bool:
    """Check a plain text password against a stored hash.

    Returns False for malformed hashes instead of raising.
    """
    try:
        scheme, n, r, p, salt_b64, key_b64 = stored_hash.split("$")
    except (AttributeError, ValueError):
        logger.warning("Malformed password hash encountered")
        return False
    if scheme != "scrypt":
        logger.warning(f"Unsupported password hash scheme: {scheme}")
        return False

    try:
        expected = _b64decode(key_b64)
        kdf = Scrypt(
            salt=_b64decode(salt_b64),
            length=len(expected),
            n=int(n),
            r=int(r),
            p=int(p),
        )
    except (binascii.Error, ValueError):
        # Non-integer cost parameters, bad base64 or parameters scrypt rejects
        logger.warning("Malformed password hash encountered")
        return False

    try:
        kdf.verify(password.encode("utf-8"), expected)
    except InvalidKey:
        return False
    return True
