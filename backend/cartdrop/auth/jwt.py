"""JWT access tokens.

Token claims:
  - sub:    user ID
  - email:  user email (lets downstream code build notifications without a DB hit)
  - type:   "access"
  - exp:    expiry timestamp
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from cartdrop.config import settings

ALGORITHM = settings.jwt_algorithm


def create_access_token(
    user_id: str,
    email: str,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": user_id,
        "email": email,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}
