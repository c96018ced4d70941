"""A completed order wizard run.

Rows are write-once: the submission pipeline inserts them after every
photo has been uploaded, and nothing updates or deletes them afterwards.
image_urls keeps the order in which the photos were selected.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cartdrop.database import Base


class OrderSubmission(Base):
    __tablename__ = "form_submissions"
    __table_args__ = (
        CheckConstraint("total_cost >= 0", name="ck_form_submissions_total_cost"),
        CheckConstraint("tip IS NULL OR tip >= 0", name="ck_form_submissions_tip"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )

    # Contact / delivery
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    delivery_instructions: Mapped[str] = mapped_column(Text, nullable=False)

    # Money
    total_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    tip: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))

    image_urls: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, index=True
    )
