"""Bearer-token authentication for protected routes.

get_current_user() accepts a token only if it decodes as an access
token, is not on the revocation list, and names an active user. The
decoded claims ride along on the user as `_token_payload`; sign-out
reads the expiry from there.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from cartdrop.auth.jwt import decode_token
from cartdrop.auth.revocation import TokenRevocation, get_token_revocation
from cartdrop.database import get_db
from cartdrop.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
    revocation: TokenRevocation = Depends(get_token_revocation),
) -> User:
    payload = decode_token(token)
    if payload.get("type") != "access" or not payload.get("sub"):
        raise _unauthorized("Invalid or expired token")
    if await revocation.is_revoked(token):
        raise _unauthorized("Token has been revoked")

    user = await db.get(User, payload["sub"])
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")

    user._token_payload = payload  # type: ignore[attr-defined]
    return user
