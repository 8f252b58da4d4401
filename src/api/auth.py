"""
Signed-in sessions for the API: JWT tokens, the per-token session record
(actor plus the access policy computed at sign-in) and the guard decorator.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import wraps
from typing import Dict, Any, Optional

import jwt
from flask import request, jsonify

from src.access import AccessPolicy
from src.config import SECRET_KEY, TOKEN_EXPIRY_HOURS
from src.models import Actor

SESSION_IDLE_LIMIT = timedelta(hours=TOKEN_EXPIRY_HOURS)


@dataclass
class PortalSession:
    """One signed-in actor. The policy is fixed for the lifetime of the session."""
    actor: Actor
    policy: AccessPolicy
    created_at: datetime
    last_activity: datetime

    def touch(self, now: Optional[datetime] = None):
        self.last_activity = now or datetime.utcnow()

    def idle_expired(self, now: datetime) -> bool:
        return now - self.last_activity > SESSION_IDLE_LIMIT

    def describe(self) -> Dict[str, Any]:
        return {
            "user_id": self.actor.user_id,
            "display_name": self.actor.display_name,
            "role": self.actor.role,
            "created_at": self.created_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
        }


# token -> PortalSession, process-local
sessions: Dict[str, PortalSession] = {}


def generate_token(actor: Actor) -> str:
    now = datetime.utcnow()
    claims = {
        "sub": str(actor.user_id),
        "role": actor.role,
        "iat": now,
        "exp": now + SESSION_IDLE_LIMIT,
    }
    return jwt.encode(claims, SECRET_KEY, algorithm="HS256")


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Decoded claims, or None for an expired or tampered token."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=["HS256"])
    except jwt.InvalidTokenError:
        return None


def open_session(token: str, actor: Actor, policy: AccessPolicy) -> PortalSession:
    now = datetime.utcnow()
    session = PortalSession(actor=actor, policy=policy, created_at=now, last_activity=now)
    sessions[token] = session
    return session


def close_session(token: str) -> bool:
    return sessions.pop(token, None) is not None


def _bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.args.get("token") or None


def token_required(f):
    """Reject the request unless it carries a valid token with a live session.

    The session is exposed as ``request.portal_session`` and the raw token as
    ``request.token``.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication token is missing"}), 401
        if verify_token(token) is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        session = sessions.get(token)
        if session is None:
            return jsonify({"error": "Session not found. Please login again."}), 401

        session.touch()
        request.portal_session = session
        request.token = token
        return f(*args, **kwargs)

    return decorated


def cleanup_expired_sessions(now: Optional[datetime] = None) -> int:
    """Drop sessions idle for longer than the token lifetime; returns how many."""
    now = now or datetime.utcnow()
    expired = [tok for tok, session in sessions.items() if session.idle_expired(now)]
    for tok in expired:
        del sessions[tok]
    if expired:
        print(f"[cleanup] Removed {len(expired)} expired sessions")
    return len(expired)
