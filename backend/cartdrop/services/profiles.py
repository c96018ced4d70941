"""Profile store: load and upsert a user's contact details.

save_profile only writes fields that carry a non-empty value. On an
existing row the omitted fields keep their previous values; on a new
row they stay null. Saving the same input twice leaves one row with
the same observable fields.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cartdrop.models.user_profile import UserProfile

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "phone_number", "address", "delivery_instructions")


async def load_profile(db: AsyncSession, user_id: str) -> UserProfile | None:
    """Return the user's profile, or None if they don't have one yet."""
    result = await db.execute(select(UserProfile).where(UserProfile.id == user_id))
    return result.scalar_one_or_none()


async def save_profile(db: AsyncSession, user_id: str, fields: dict) -> UserProfile:
    if not user_id:
        raise ValueError("User ID is required")

    updates = {
        k: v for k, v in fields.items()
        if k in PROFILE_FIELDS and v is not None and str(v).strip()
    }
    now = datetime.utcnow()

    profile = await load_profile(db, user_id)
    if profile:
        for k, v in updates.items():
            setattr(profile, k, v)
        profile.updated_at = now
    else:
        profile = UserProfile(id=user_id, created_at=now, updated_at=now, **updates)
        db.add(profile)

    await db.flush()
    logger.info("Saved profile for %s (fields: %s)", user_id, ", ".join(sorted(updates)) or "none")
    return profile


async def save_profile_detached(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: str,
    fields: dict,
) -> None:
    """Save a profile in its own session; used after the request session is gone."""
    async with session_factory() as db:
        try:
            await save_profile(db, user_id, fields)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
