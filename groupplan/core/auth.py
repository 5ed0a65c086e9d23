"""
Session tokens for groupplan.

Issues HS256 JWTs carrying the user's email, display name and avatar after
an OAuth login, and validates them on every authenticated request. The token
is read from an Authorization: Bearer header, or else from the session cookie.
Validation always re-resolves the user row by email rather than trusting the
token's contents.
"""
import logging
import time
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from groupplan.core.database import get_db
from groupplan.core.errors import UnauthorizedError
from groupplan.features.users.repository import UserRepository
from groupplan.features.users.service import UserManager
from groupplan.models.user import User

logger = logging.getLogger("groupplan.auth")

SESSION_COOKIE = "groupplan_jwt"
ALGORITHM = "HS256"


class SessionIssuer:
    """Signs and verifies session tokens with one process-wide secret."""

    def __init__(self, secret: str, ttl_seconds: int = 3600 * 24):
        if not secret:
            raise ValueError("session secret must not be empty")
        self._secret = secret
        self.ttl_seconds = ttl_seconds

    def issue(self, user: User, now: Optional[int] = None) -> str:
        issued_at = int(now if now is not None else time.time())
        claims = {
            "email": user.email,
            "name": user.display_name,
            "pfp": user.avatar_url,
            "iat": issued_at,
            "exp": issued_at + self.ttl_seconds,
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> Dict[str, Any]:
        """Return the token's claims.

        Raises:
            UnauthorizedError: Invalid signature, expired or malformed token
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "email"]},
            )
        except jwt.ExpiredSignatureError:
            raise UnauthorizedError("Session expired, please log in again")
        except jwt.InvalidTokenError as e:
            logger.debug(f"Invalid session token: {e}")
            raise UnauthorizedError("Please log in")
        if not claims.get("email"):
            raise UnauthorizedError("Please log in")
        return claims


def get_session_issuer(request: Request) -> SessionIssuer:
    return request.app.state.session_issuer


def get_user_manager(db: Session = Depends(get_db)) -> UserManager:
    return UserManager(UserRepository(db))


def extract_token(request: Request) -> Optional[str]:
    """An explicit Authorization: Bearer header wins over the session cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(SESSION_COOKIE) or None


def get_current_user(
    request: Request,
    issuer: SessionIssuer = Depends(get_session_issuer),
    users: UserManager = Depends(get_user_manager),
) -> User:
    """
    Resolve the authenticated user for this request.

    Raises:
        UnauthorizedError: Missing or invalid session, or the user no longer exists
    """
    token = extract_token(request)
    if not token:
        raise UnauthorizedError("Please log in")
    claims = issuer.verify(token)
    return users.get_authenticated_user(claims["email"])
