"""JWT helpers for identifying sellers and admins on delivery routes."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt
from pydantic import BaseModel

from auction_platform.core.config import settings

ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24  # 24 hours


class TokenData(BaseModel):
    """JWT Token payload data."""

    user_id: UUID
    email: str
    role: str = "USER"
    exp: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"


def create_access_token(user_id: UUID, email: str, role: str = "USER") -> str:
    """Create a JWT access token signed with the shared secret"""
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "user_id": str(user_id),
        "email": email,
        "role": role,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenData]:
    """
    Decode and validate a JWT token.

    Returns:
        TokenData if valid, None if invalid or expired
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    user_id_str = payload.get("user_id")
    email = payload.get("email")
    exp = payload.get("exp")

    if user_id_str is None or email is None or exp is None:
        return None

    try:
        user_id = UUID(user_id_str)
    except ValueError:
        return None

    return TokenData(
        user_id=user_id,
        email=email,
        role=payload.get("role", "USER"),
        exp=datetime.fromtimestamp(exp, tz=timezone.utc),
    )
