"""Auth routes: signup, login, logout, me.

Route overview:
  POST /signup  create an account and seed its profile (name + phone)
  POST /login   email + password login
  POST /logout  revoke the current bearer token
  GET  /me      return the current user
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cartdrop.auth.deps import get_current_user, oauth2_scheme
from cartdrop.auth.jwt import create_access_token
from cartdrop.auth.password import hash_password, verify_password
from cartdrop.auth.revocation import TokenRevocation, get_token_revocation
from cartdrop.database import get_db
from cartdrop.models.user import User
from cartdrop.schemas.auth import LoginRequest, SignupRequest, TokenResponse, UserOut
from cartdrop.services.profiles import save_profile

logger = logging.getLogger(__name__)

router = APIRouter()


def _build_token_response(user: User, profile_created: bool = True) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user_id=user.id, email=user.email),
        user=UserOut.model_validate(user),
        profile_created=profile_created,
    )


# ── POST /signup ─────────────────────────────────────────────

@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(body: SignupRequest, db: AsyncSession = Depends(get_db)):
    """Register a new user.

    The profile is created alongside the account. If that write fails the
    account still stands; the profile is created with the first order.
    """
    existing = await db.execute(select(User).where(User.email == body.email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(email=body.email, hashed_password=hash_password(body.password))
    db.add(user)
    await db.flush()

    profile_created = True
    try:
        async with db.begin_nested():
            await save_profile(
                db, user.id,
                {"full_name": body.full_name.strip(), "phone_number": body.phone_number.strip()},
            )
    except SQLAlchemyError:
        logger.exception("Profile creation failed for new user %s", user.id)
        profile_created = False

    return _build_token_response(user, profile_created)


# ── POST /login ──────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account deactivated")

    return _build_token_response(user)


# ── POST /logout ─────────────────────────────────────────────

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    token: str = Depends(oauth2_scheme),
    user: User = Depends(get_current_user),
    revocation: TokenRevocation = Depends(get_token_revocation),
):
    payload: dict = getattr(user, "_token_payload", {})
    if not await revocation.revoke_token(token, float(payload.get("exp", 0))):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not sign out. Please try again.",
        )


# ── GET /me ──────────────────────────────────────────────────

@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
    return UserOut.model_validate(user)
