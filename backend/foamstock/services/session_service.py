# Overview: Service-layer operations for login sessions; token issue, validation and revocation.

"""
Session tokens.

The client holds a random 64-hex-char token; only its SHA-256 digest is
stored. A session dies at whichever comes first:
- SESSION_ABSOLUTE_TIMEOUT after login (24h)
- SESSION_IDLE_TIMEOUT without a request (2h)
- logout, password change or account deactivation (revoked)
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..errors import NotFound
from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)

TOKEN_BYTES = 32


@dataclass
class SessionContext:
    """Authenticated identity returned by validate_session."""
    user: User
    session: SessionToken


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Tokens are high-entropy already, so an unsalted fast digest is sufficient."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _find_live(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter(SessionToken.token_hash == hash_token(token), SessionToken.is_revoked.is_(False))
        .first()
    )


def _mark_revoked(session: SessionToken, reason: str, now) -> None:
    session.is_revoked = True
    session.revoked_at = now
    session.revoked_reason = reason


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """Returns (session_record, plaintext_token); the plaintext is never stored."""
    if db.session.get(User, user_id) is None:
        raise NotFound("User not found")

    token = generate_token()
    now = utcnow()
    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def validate_session(token: str | None) -> SessionContext | None:
    """
    Resolve a plaintext token to its user, or None.

    Idle and deactivated-user sessions are revoked on the spot; a valid
    session has its last_used_at bumped.
    """
    if not token:
        return None
    session = _find_live(token)
    if session is None:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None

    reason = None
    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        reason = "Idle timeout"
    elif session.user is None or not session.user.is_active:
        reason = "User account deactivated"
    if reason:
        _mark_revoked(session, reason, now)
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(user=session.user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """True if a live session was revoked."""
    session = _find_live(token)
    if session is None:
        return False
    _mark_revoked(session, reason, utcnow())
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions", *, commit: bool = True) -> int:
    now = utcnow()
    sessions = (
        db.session.query(SessionToken)
        .filter(SessionToken.user_id == user_id, SessionToken.is_revoked.is_(False))
        .all()
    )
    for session in sessions:
        _mark_revoked(session, reason, now)
    if commit:
        db.session.commit()
    if sessions:
        current_app.logger.info("Revoked %d session(s) for user %s: %s", len(sessions), user_id, reason)
    return len(sessions)


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """Delete sessions older than the retention window that are expired or revoked."""
    now = utcnow()
    deleted = (
        db.session.query(SessionToken)
        .filter(
            db.or_(SessionToken.expires_at < now, SessionToken.is_revoked.is_(True)),
            SessionToken.created_at < now - timedelta(days=retention_days),
        )
        .delete(synchronize_session=False)
    )
    db.session.commit()
    current_app.logger.info("Session cleanup removed %d row(s)", deleted)
    return deleted
