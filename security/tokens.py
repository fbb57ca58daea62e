import hashlib
import secrets
from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.auth_token import AuthToken

def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def issue_token(user_id: int) -> str:
    """
    Creates a server-side token row and returns the RAW bearer token.
    Only the hash is stored in DB.
    """
    raw_token = secrets.token_urlsafe(32)
    lifetime = current_app.config.get("TOKEN_LIFETIME_SECONDS", 28800)

    row = AuthToken(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        expires_at=datetime.utcnow() + timedelta(seconds=lifetime),
    )
    db.session.add(row)
    db.session.commit()
    return raw_token

def bearer_from_request():
    header = request.headers.get("Authorization") or ""
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()

def resolve_token(raw_token: str):
    if not raw_token:
        return None

    now = datetime.utcnow()
    row = AuthToken.query.filter_by(token_hash=_hash_token(raw_token), revoked_at=None).first()
    if not row or row.expires_at <= now:
        return None

    idle_seconds = current_app.config.get("TOKEN_IDLE_TIMEOUT_SECONDS", 7200)
    last_used = row.last_used_at or row.issued_at
    if (last_used + timedelta(seconds=idle_seconds)) <= now:
        return None

    row.last_used_at = now
    db.session.commit()
    return row

def revoke_token(raw_token: str) -> bool:
    if not raw_token:
        return False
    row = AuthToken.query.filter_by(token_hash=_hash_token(raw_token)).first()
    if not row or row.revoked_at:
        return False
    row.revoked_at = datetime.utcnow()
    db.session.commit()
    return True
