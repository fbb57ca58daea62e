"""
bcrypt hashing for member and staff logins.

The work factor is read from ``BCRYPT_ROUNDS``. A stored hash made at a
different cost still verifies, and ``needs_rehash`` tells the login route to
store a fresh one.
"""
import bcrypt
from flask import current_app

DEFAULT_ROUNDS = 12
# bcrypt only ever looks at this many bytes of the secret
BCRYPT_MAX_BYTES = 72


def configured_rounds() -> int:
    try:
        return int(current_app.config.get("BCRYPT_ROUNDS", DEFAULT_ROUNDS))
    except RuntimeError:
        return DEFAULT_ROUNDS


def hash_password(plain_password: str, rounds: int = None) -> str:
    if not isinstance(plain_password, str) or not plain_password:
        raise ValueError("Password must be a non-empty string")
    secret = plain_password.encode("utf-8")
    if len(secret) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")

    salt = bcrypt.gensalt(rounds=rounds or configured_rounds())
    return bcrypt.hashpw(secret, salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash, or a secret bcrypt refuses
        return False


def hash_rounds(password_hash: str):
    """Cost factor of a ``$2b$NN$...`` hash, or None if it isn't one."""
    parts = (password_hash or "").split("$")
    if len(parts) < 4 or not parts[2].isdigit():
        return None
    return int(parts[2])


def needs_rehash(password_hash: str) -> bool:
    return hash_rounds(password_hash) != configured_rounds()
