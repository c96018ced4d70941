from datetime import datetime

from pydantic import BaseModel


class ProfileUpdate(BaseModel):
    """Partial profile write. Omitted or empty fields keep their stored value."""
    full_name: str | None = None
    phone_number: str | None = None
    address: str | None = None
    delivery_instructions: str | None = None


class ProfileOut(BaseModel):
    id: str
    full_name: str | None
    phone_number: str | None
    address: str | None
    delivery_instructions: str | None
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProfileLookup(BaseModel):
    found: bool
    profile: ProfileOut | None = None
