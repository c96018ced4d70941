from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class OrderOut(BaseModel):
    id: str
    user_id: str
    name: str
    phone: str
    address: str
    delivery_instructions: str
    total_cost: Decimal
    tip: Decimal | None
    image_urls: list[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class OrderConfirmation(BaseModel):
    """Returned by a successful submit; the client navigates to redirect_url."""
    order: OrderOut
    redirect_url: str
