"""
Security utilities for authentication and authorization

Tokens are issued elsewhere; this service only verifies them. A token
names the user (sub), the organization the user acts in (org_id) and an
optional role. The organization is trusted only from here.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from app.core.config import settings

ADMIN_ROLE = "admin"


class TokenClaims(BaseModel):
    sub: str
    org_id: Optional[str] = None
    role: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def create_access_token(
    user_id: str,
    org_id: Optional[str] = None,
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create JWT access token (used by tests and local tooling)

    Args:
        user_id: Value of the sub claim
        org_id: Organization the token acts in
        role: Optional role, e.g. "admin"
        expires_delta: Optional custom expiration time
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))

    to_encode = {"sub": user_id, "exp": expire, "iat": now}
    if org_id:
        to_encode["org_id"] = org_id
    if role:
        to_encode["role"] = role

    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[TokenClaims]:
    """
    Decode and validate JWT token

    Returns:
        Claims if the signature, expiry and subject are valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        return None

    if not payload.get("sub"):
        return None

    return TokenClaims(
        sub=str(payload["sub"]),
        org_id=str(payload["org_id"]) if payload.get("org_id") else None,
        role=payload.get("role"),
    )
