"""Aggregate model imports for Alembic auto-detection."""

from cartdrop.models.user import User  # noqa: F401
from cartdrop.models.user_profile import UserProfile  # noqa: F401
from cartdrop.models.order_submission import OrderSubmission  # noqa: F401
