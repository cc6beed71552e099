"""Security utilities for authentication."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import jwt
from pydantic import BaseModel

from ..config import settings


JWT_ALGORITHM = "HS256"


class TokenPayload(BaseModel):
    """JWT token payload."""
    sub: str  # User ID
    name: str
    type: str  # "access"
    exp: int  # Expiration timestamp
    iat: int  # Issued at timestamp


def create_jwt_token(
    user_id: UUID,
    name: str,
    token_type: str = "access",
    expires_days: Optional[int] = None,
) -> str:
    """
    Create JWT token.

    Args:
        user_id: User UUID
        name: Display name the user authenticated with
        token_type: Token type claim
        expires_days: Token expiry in days (defaults to JWT_EXPIRES_DAYS)

    Returns:
        Encoded JWT token
    """
    now = datetime.now(timezone.utc)
    exp = now + timedelta(days=expires_days or settings.JWT_EXPIRES_DAYS)

    payload = {
        "sub": str(user_id),
        "name": name,
        "type": token_type,
        "exp": int(exp.timestamp()),
        "iat": int(now.timestamp()),
    }

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_jwt_token(token: str) -> TokenPayload:
    """
    Decode and verify JWT token.

    Raises:
        jwt.ExpiredSignatureError: Token expired
        jwt.InvalidTokenError: Token invalid
    """
    payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
    return TokenPayload(**payload)


def verify_jwt_token(token: str, expected_type: str = "access") -> Optional[TokenPayload]:
    """
    Verify JWT token and return payload if valid.

    Returns:
        TokenPayload if valid, None if invalid
    """
    try:
        payload = decode_jwt_token(token)
        if payload.type != expected_type:
            return None
        return payload
    except (jwt.ExpiredSignatureError, jwt.InvalidTokenError):
        return None
