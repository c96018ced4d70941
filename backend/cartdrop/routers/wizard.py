"""Order wizard: step-by-step navigation without persistence.

Endpoints:
  GET  /api/wizard/           → a fresh wizard at step 0, pre-filled from the profile
  POST /api/wizard/navigate   → apply one action to a client-held snapshot
                                (next, back, set_total_cost, set_tip, remove_image)

The server never stores wizard state; the client sends its snapshot back
with every call. The final submit goes to POST /api/orders/.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cartdrop.auth.deps import get_current_user
from cartdrop.database import get_db
from cartdrop.middleware.exceptions import WizardValidationError
from cartdrop.models.user import User
from cartdrop.schemas.wizard import NavigateRequest, WizardSnapshot, WizardView
from cartdrop.services.profiles import load_profile
from cartdrop.services.wizard import (
    LAST_STEP,
    STEP_TITLES,
    OrderWizard,
    SelectedImage,
    WizardState,
    WizardStep,
)

router = APIRouter()


# ── Helpers ──────────────────────────────────────────────────

def _wizard_from_snapshot(user: User, snap: WizardSnapshot) -> OrderWizard:
    state = WizardState(
        step=WizardStep(snap.step),
        name=snap.name,
        phone=snap.phone,
        address=snap.address,
        delivery_instructions=snap.delivery_instructions,
        total_cost=snap.total_cost,
        tip=snap.tip,
        tip_edited=snap.tip_edited,
        # Only the count matters for navigation
        images=[SelectedImage(filename=n, data=b"") for n in snap.image_names],
    )
    return OrderWizard(user.id, user.email, state=state)


def _make_view(wizard: OrderWizard) -> WizardView:
    s = wizard.state
    return WizardView(
        step=int(s.step),
        name=s.name,
        phone=s.phone,
        address=s.address,
        delivery_instructions=s.delivery_instructions,
        total_cost=s.total_cost,
        tip=s.tip,
        tip_edited=s.tip_edited,
        image_names=[img.filename for img in s.images],
        step_name=s.step.name.lower(),
        title=STEP_TITLES[s.step],
        is_last_step=s.step is LAST_STEP,
        can_proceed=wizard.can_proceed(),
        message=wizard.validation_message(),
    )


# ── GET /api/wizard/ ─────────────────────────────────────────

@router.get("/", response_model=WizardView)
async def start_wizard(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    wizard = OrderWizard(user.id, user.email)
    wizard.prefill(await load_profile(db, user.id))
    return _make_view(wizard)


# ── POST /api/wizard/navigate ────────────────────────────────

@router.post("/navigate", response_model=WizardView)
async def navigate(
    body: NavigateRequest,
    user: User = Depends(get_current_user),
):
    """Apply next / back / set_total_cost / set_tip / remove_image to the snapshot.

    A blocked "next" is not an error: the snapshot comes back unchanged
    with can_proceed=false and the reason in `message`.
    """
    wizard = _wizard_from_snapshot(user, body.snapshot)

    if body.action == "next":
        if wizard.can_proceed():
            wizard.next()
    elif body.action == "back":
        wizard.back()
    elif body.action == "set_total_cost":
        wizard.set_total_cost(body.value or "")
    elif body.action == "set_tip":
        wizard.set_tip(body.value or "")
    elif body.action == "remove_image":
        try:
            wizard.remove_image(int(body.value or ""))
        except (ValueError, IndexError):
            raise WizardValidationError(
                f"No selected image at position {body.value}", step="images"
            )

    return _make_view(wizard)
