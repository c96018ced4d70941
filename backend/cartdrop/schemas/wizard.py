"""Pydantic schemas for the 7-step order wizard.

The wizard's state lives with the client between calls: every request
carries a WizardSnapshot and every response returns the updated one.
Photos are represented by their file names only; the bytes are sent
once, with the final multipart submit.
"""

from typing import Literal

from pydantic import BaseModel, Field


class WizardSnapshot(BaseModel):
    step: int = Field(0, ge=0, le=6)
    name: str = ""
    phone: str = ""
    address: str = ""
    delivery_instructions: str = ""
    total_cost: str = ""
    tip: str = ""
    tip_edited: bool = False
    image_names: list[str] = []


class WizardView(WizardSnapshot):
    step_name: str
    title: str
    total_steps: int = 7
    is_last_step: bool
    can_proceed: bool
    message: str | None = None


class NavigateRequest(BaseModel):
    snapshot: WizardSnapshot
    action: Literal["next", "back", "set_total_cost", "set_tip", "remove_image"]
    value: str | None = None
    # set_total_cost / set_tip: the typed amount; remove_image: the photo's position
