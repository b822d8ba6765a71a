"""
Session handling.

Sign-in happens at an external identity provider; the frontend forwards the
resulting session to this API as an HS256 JWT in the Authorization header.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Header, Request
from pydantic import BaseModel, ConfigDict, Field

from notesaid.errors import Forbidden, Unauthorized

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
SESSION_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days


class SessionUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    name: Optional[str] = None
    github_username: Optional[str] = Field(None, alias="githubUsername")

    @property
    def username(self) -> str:
        if self.github_username:
            return self.github_username
        if self.email:
            return self.email.split("@")[0]
        return self.name or ""


def create_session_token(claims: Dict[str, Any], secret: str, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = dict(claims)
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=SESSION_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret, algorithm=ALGORITHM)


def decode_session_token(token: str, secret: str) -> SessionUser:
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.PyJWTError as e:
        logger.info("Rejected session token: %s", e)
        raise Unauthorized("Invalid or expired session") from e
    return SessionUser(**payload)


async def get_current_user(request: Request, authorization: Optional[str] = Header(None)) -> Optional[SessionUser]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization.split(" ", 1)[1]
    return decode_session_token(token, request.app.state.settings.auth_secret)


async def require_user(user: Optional[SessionUser] = Depends(get_current_user)) -> SessionUser:
    if user is None or not user.username:
        raise Unauthorized("Unauthorized")
    return user


async def require_email_user(user: SessionUser = Depends(require_user)) -> SessionUser:
    if not user.email:
        raise Unauthorized("Unauthorized")
    return user


async def require_github_user(user: SessionUser = Depends(require_user)) -> SessionUser:
    # admin identities are GitHub logins only, never an email local part
    if not user.github_username:
        raise Forbidden("GitHub sign-in required")
    return user
