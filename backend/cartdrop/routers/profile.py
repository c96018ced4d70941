"""Profile routes.

  GET /api/profile   → {found, profile}; found=false is not an error
  PUT /api/profile   → upsert the supplied (non-empty) fields
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from cartdrop.auth.deps import get_current_user
from cartdrop.database import get_db
from cartdrop.models.user import User
from cartdrop.schemas.profile import ProfileLookup, ProfileOut, ProfileUpdate
from cartdrop.services.profiles import load_profile, save_profile

router = APIRouter()


@router.get("/", response_model=ProfileLookup)
async def get_profile(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    profile = await load_profile(db, user.id)
    if profile is None:
        return ProfileLookup(found=False)
    return ProfileLookup(found=True, profile=ProfileOut.model_validate(profile))


@router.put("/", response_model=ProfileOut)
async def update_profile(
    body: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        profile = await save_profile(db, user.id, body.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    return ProfileOut.model_validate(profile)
