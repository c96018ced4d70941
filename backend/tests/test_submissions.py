"""Tests for the submission recorder and order history queries."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from cartdrop.middleware.exceptions import SubmissionError
from cartdrop.models.order_submission import OrderSubmission
from cartdrop.services.submissions import (
    OrderDraft,
    create_submission,
    get_submission,
    list_submissions,
)


def _draft(**overrides) -> OrderDraft:
    values = dict(
        name="Ada",
        phone="555-0100",
        address="1 Loop Rd",
        delivery_instructions="Leave at door",
        total_cost=Decimal("42.50"),
        tip=Decimal("6.38"),
        image_urls=["http://cdn.test/a.png", "http://cdn.test/b.png"],
    )
    values.update(overrides)
    return OrderDraft(**values)


async def _count(session) -> int:
    return (await session.execute(select(func.count()).select_from(OrderSubmission))).scalar()


@pytest.mark.asyncio
class TestCreateSubmission:
    async def test_records_and_returns_row(self, db_session, test_user):
        order = await create_submission(db_session, test_user.id, _draft())

        assert order.id
        assert order.created_at is not None
        assert order.user_id == test_user.id
        assert order.total_cost == Decimal("42.50")
        assert order.tip == Decimal("6.38")
        assert order.image_urls == ["http://cdn.test/a.png", "http://cdn.test/b.png"]

    async def test_committed_before_return(self, db_session, session_factory, test_user):
        order = await create_submission(db_session, test_user.id, _draft())

        async with session_factory() as other:
            stored = await other.get(OrderSubmission, order.id)
        assert stored is not None
        assert stored.name == "Ada"

    async def test_tip_may_be_null(self, db_session, test_user):
        order = await create_submission(db_session, test_user.id, _draft(tip=None))
        assert order.tip is None

    async def test_requires_user(self, db_session):
        with pytest.raises(SubmissionError, match="User ID is required"):
            await create_submission(db_session, None, _draft())
        assert await _count(db_session) == 0

    async def test_requires_two_images(self, db_session, test_user):
        with pytest.raises(SubmissionError):
            await create_submission(db_session, test_user.id, _draft(image_urls=["http://cdn.test/a.png"]))
        assert await _count(db_session) == 0

    async def test_rejects_negative_amounts(self, db_session, test_user):
        with pytest.raises(SubmissionError, match="negative"):
            await create_submission(db_session, test_user.id, _draft(tip=Decimal("-1")))
        assert await _count(db_session) == 0


    async def test_rejects_amounts_beyond_column_range(self, db_session, test_user):
        with pytest.raises(SubmissionError, match="cannot exceed"):
            await create_submission(db_session, test_user.id, _draft(total_cost=Decimal("123456789012")))
        with pytest.raises(SubmissionError, match="cannot exceed"):
            await create_submission(db_session, test_user.id, _draft(tip=Decimal("100000000")))
        assert await _count(db_session) == 0

    async def test_accepts_largest_storable_amount(self, db_session, test_user):
        order = await create_submission(db_session, test_user.id, _draft(total_cost=Decimal("99999999.99")))
        assert order.total_cost == Decimal("99999999.99")

@pytest.mark.asyncio
class TestOrderHistory:
    async def _seed(self, db_session, user_id: str, names: list[str]) -> list[OrderSubmission]:
        base = datetime(2026, 1, 1, 12, 0, 0)
        rows = []
        for i, name in enumerate(names):
            row = OrderSubmission(
                user_id=user_id,
                name=name,
                phone="1",
                address="a",
                delivery_instructions="d",
                total_cost=Decimal("10"),
                image_urls=["x", "y"],
                created_at=base + timedelta(minutes=i),
            )
            db_session.add(row)
            rows.append(row)
        await db_session.commit()
        return rows

    async def test_newest_first_and_scoped_to_owner(self, db_session, test_user, other_user):
        await self._seed(db_session, test_user.id, ["first", "second", "third"])
        await self._seed(db_session, other_user.id, ["foreign"])

        orders, total = await list_submissions(db_session, test_user.id)
        assert total == 3
        assert [o.name for o in orders] == ["third", "second", "first"]

    async def test_pagination(self, db_session, test_user):
        await self._seed(db_session, test_user.id, ["a", "b", "c", "d"])

        orders, total = await list_submissions(db_session, test_user.id, limit=2, offset=1)
        assert total == 4
        assert [o.name for o in orders] == ["c", "b"]

    async def test_get_only_own_order(self, db_session, test_user, other_user):
        (mine,) = await self._seed(db_session, test_user.id, ["mine"])
        (theirs,) = await self._seed(db_session, other_user.id, ["theirs"])

        assert (await get_submission(db_session, test_user.id, mine.id)).name == "mine"
        assert await get_submission(db_session, test_user.id, theirs.id) is None
