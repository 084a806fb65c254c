"""
Teacher bearer tokens.

Students are never issued tokens; they are identified at join time by
their school identifier and afterwards by their attempt id.
"""

from datetime import datetime, timezone, timedelta
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt

from quizroom.core.config import settings

TOKEN_TYPE_ACCESS = "access"


def create_access_token(teacher_id: UUID, expires_delta: Optional[timedelta] = None) -> str:
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {
        "sub": str(teacher_id),
        "type": TOKEN_TYPE_ACCESS,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[str]:
    """
    Return the token subject, or None if the token is expired, malformed
    or not an access token.
    """
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    if claims.get("type") != TOKEN_TYPE_ACCESS:
        return None
    return claims.get("sub")
