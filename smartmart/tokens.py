"""
Token issuing and verification.

Access and refresh tokens come from flask-jwt-extended and carry its
``type`` claim, which keeps one from being used as the other. Refresh
tokens are persisted so logout can revoke them. Email verification tokens
are signed with their own secret; the pending registration they point to
sits in a one-time TTL store, so a link works exactly once.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from uuid import uuid4

import jwt
from flask_jwt_extended import create_access_token, create_refresh_token, decode_token

from .errors import BadRequest

log = logging.getLogger(__name__)

ALGORITHM = "HS256"
EMAIL_TOKEN_PURPOSE = "email_verification"


def _from_timestamp(value) -> datetime:
    return datetime.fromtimestamp(value, timezone.utc).replace(tzinfo=None)


class TokenService:
    """Needs an application context for the session-token methods."""

    def __init__(self, accounts, pending_registrations, email_secret: str, email_ttl_minutes: int = 5):
        self.accounts = accounts
        self.pending_registrations = pending_registrations
        self.email_secret = email_secret
        self.email_ttl_minutes = email_ttl_minutes

    # --- session tokens ---

    def issue_access_token(self, user_document, email: str, expires_delta: Optional[timedelta] = None) -> str:
        return create_access_token(
            identity=str(user_document["_id"]),
            additional_claims={"email": email, "role": user_document.get("role_id")},
            expires_delta=expires_delta,
        )

    def issue_session_tokens(self, user_document, email: str) -> Dict[str, str]:
        access_token = self.issue_access_token(user_document, email)
        refresh_token = create_refresh_token(identity=str(user_document["_id"]))
        claims = decode_token(refresh_token)
        self.accounts.store_refresh_token(
            user_document["_id"],
            refresh_token,
            claims["jti"],
            _from_timestamp(claims["iat"]),
            _from_timestamp(claims["exp"]),
        )
        return {"access_token": access_token, "refresh_token": refresh_token}

    def refresh_token_revoked(self, jti: str) -> bool:
        stored = self.accounts.find_refresh_token(jti)
        return not stored or bool(stored.get("revoked"))

    def revoke_refresh_token(self, token: str) -> bool:
        return self.accounts.revoke_refresh_token(token)

    # --- email verification tokens ---

    def issue_email_token(self, email: str, registration: Dict) -> str:
        jti = str(uuid4())
        ttl_seconds = self.email_ttl_minutes * 60
        self.pending_registrations.set(jti, registration, ttl_seconds)

        now = datetime.now(timezone.utc)
        return jwt.encode(
            {
                "email": email,
                "jti": jti,
                "purpose": EMAIL_TOKEN_PURPOSE,
                "iat": now,
                "exp": now + timedelta(seconds=ttl_seconds),
            },
            self.email_secret,
            algorithm=ALGORITHM,
        )

    def discard_email_token(self, token: str):
        try:
            claims = jwt.decode(token, self.email_secret, algorithms=[ALGORITHM])
        except jwt.InvalidTokenError:
            return
        self.pending_registrations.take(claims.get("jti", ""))

    def consume_email_token(self, token: str) -> Dict:
        """Verify the token and return its pending registration, once."""
        if not token:
            raise BadRequest("Invalid or expired token.")
        try:
            claims = jwt.decode(token, self.email_secret, algorithms=[ALGORITHM])
        except jwt.InvalidTokenError as exc:
            log.info("Rejected email token: %s", exc)
            raise BadRequest("Invalid or expired token.")

        if claims.get("purpose") != EMAIL_TOKEN_PURPOSE:
            raise BadRequest("Invalid or expired token.")

        registration = self.pending_registrations.take(claims.get("jti", ""))
        if registration is None:
            raise BadRequest("Token already used or expired.")
        return registration
