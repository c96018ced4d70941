"""Submission recorder: the commit point of an order.

An order only exists once create_submission() returns: it flushes,
commits and refreshes the row before handing it back, so id and
created_at are populated and the record is durable. Anything done
before this call (uploaded photos, typed fields) is provisional.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cartdrop.config import settings
from cartdrop.middleware.exceptions import SubmissionError
from cartdrop.models.order_submission import OrderSubmission

logger = logging.getLogger(__name__)

# Largest value a Numeric(10, 2) money column holds
MAX_AMOUNT = Decimal("99999999.99")


@dataclass
class OrderDraft:
    name: str
    phone: str
    address: str
    delivery_instructions: str
    total_cost: Decimal
    tip: Decimal | None = None
    image_urls: list[str] = field(default_factory=list)


async def create_submission(
    db: AsyncSession,
    user_id: str | None,
    draft: OrderDraft,
) -> OrderSubmission:
    if not user_id:
        raise SubmissionError("User ID is required")
    if len(draft.image_urls) < settings.min_images:
        raise SubmissionError(f"At least {settings.min_images} images are required")
    if draft.total_cost < 0 or (draft.tip is not None and draft.tip < 0):
        raise SubmissionError("Amounts cannot be negative")
    if draft.total_cost > MAX_AMOUNT or (draft.tip is not None and draft.tip > MAX_AMOUNT):
        raise SubmissionError(f"Amounts cannot exceed {MAX_AMOUNT}")

    order = OrderSubmission(
        user_id=user_id,
        name=draft.name,
        phone=draft.phone,
        address=draft.address,
        delivery_instructions=draft.delivery_instructions,
        total_cost=draft.total_cost,
        tip=draft.tip,
        image_urls=list(draft.image_urls),
    )
    try:
        db.add(order)
        await db.flush()
        await db.commit()
        await db.refresh(order)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Failed to record order for %s: %s", user_id, exc)
        raise SubmissionError(f"Database error: {exc}") from exc

    logger.info(
        "Recorded order %s for %s (%d photos)",
        order.id, user_id, len(order.image_urls),
    )
    return order


async def list_submissions(
    db: AsyncSession,
    user_id: str,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[OrderSubmission], int]:
    """The user's own orders, newest first, plus the total count."""
    total = (
        await db.execute(
            select(func.count(OrderSubmission.id)).where(OrderSubmission.user_id == user_id)
        )
    ).scalar() or 0

    result = await db.execute(
        select(OrderSubmission)
        .where(OrderSubmission.user_id == user_id)
        .order_by(OrderSubmission.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total


async def get_submission(
    db: AsyncSession,
    user_id: str,
    submission_id: str,
) -> OrderSubmission | None:
    result = await db.execute(
        select(OrderSubmission).where(
            OrderSubmission.id == submission_id,
            OrderSubmission.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()
