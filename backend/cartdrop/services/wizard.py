"""Order wizard: 7-step input collection and the submit pipeline.

Steps (in order):
  0 name  1 phone  2 address  3 delivery_instructions
  4 total_cost  5 tip  6 images

Navigation is a pure function of (step, action, can_proceed):
  - NEXT advances one step, only if the current step's gate passes,
    and never past the last step.
  - BACK goes back one step, never before the first.

Submit is only reachable from the images step and runs:
  validate all fields → greyscale every photo → upload in selection
  order → record the order (commit point) → queue profile save and
  notification as post-commit jobs.

Any failure before the order is recorded leaves no row behind (uploaded
photos may be orphaned). Failures after it are logged by the post-commit
runner and never change the outcome.

Tip policy: the tip is re-derived as tip_rate × total_cost whenever the
cost changes. ALWAYS_RECOMPUTE overwrites a hand-edited tip on every
cost change; PRESERVE_MANUAL keeps it once the user has typed one.
"""

import asyncio
import enum
import logging
import uuid
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cartdrop.config import settings
from cartdrop.middleware.exceptions import WizardValidationError
from cartdrop.models.order_submission import OrderSubmission
from cartdrop.models.user_profile import UserProfile
from cartdrop.services.imaging import NormalizedImage, desaturate
from cartdrop.services.notifier import SubmissionSummary, WebhookNotifier
from cartdrop.services.profiles import save_profile_detached
from cartdrop.services.storage import AssetStorage, build_object_key, file_extension, upload_image
from cartdrop.services.submissions import MAX_AMOUNT, OrderDraft, create_submission
from cartdrop.services.tasks import Scheduler, run_best_effort

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class WizardStep(enum.IntEnum):
    NAME = 0
    PHONE = 1
    ADDRESS = 2
    DELIVERY_INSTRUCTIONS = 3
    TOTAL_COST = 4
    TIP = 5
    IMAGES = 6


FIRST_STEP = WizardStep.NAME
LAST_STEP = WizardStep.IMAGES

STEP_TITLES = {
    WizardStep.NAME: "Your Name",
    WizardStep.PHONE: "Phone Number",
    WizardStep.ADDRESS: "Delivery Address",
    WizardStep.DELIVERY_INSTRUCTIONS: "Delivery Instructions",
    WizardStep.TOTAL_COST: "Total Cost",
    WizardStep.TIP: "Tip Amount",
    WizardStep.IMAGES: "Cart Photos",
}

# Text steps and the WizardState attribute each one fills
TEXT_FIELDS = {
    WizardStep.NAME: "name",
    WizardStep.PHONE: "phone",
    WizardStep.ADDRESS: "address",
    WizardStep.DELIVERY_INSTRUCTIONS: "delivery_instructions",
}


class WizardAction(str, enum.Enum):
    NEXT = "next"
    BACK = "back"


class TipPolicy(str, enum.Enum):
    ALWAYS_RECOMPUTE = "always_recompute"
    PRESERVE_MANUAL = "preserve_manual"


@dataclass
class SelectedImage:
    filename: str
    data: bytes
    content_type: str | None = None


@dataclass
class WizardState:
    step: WizardStep = FIRST_STEP
    name: str = ""
    phone: str = ""
    address: str = ""
    delivery_instructions: str = ""
    total_cost: str = ""
    tip: str = ""
    tip_edited: bool = False
    images: list[SelectedImage] = field(default_factory=list)


# ── Pure helpers ─────────────────────────────────────────────

def parse_amount(value: str | None) -> Decimal | None:
    """Parse a typed money amount; None if blank or not a finite number."""
    if value is None or not str(value).strip():
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


def suggest_tip(total_cost: str, rate: Decimal) -> str:
    """Tip for a typed total, as a 2-decimal string ("" if no valid total)."""
    cost = parse_amount(total_cost)
    if cost is None or abs(cost) > MAX_AMOUNT:
        return ""
    try:
        return str((cost * rate).quantize(CENTS, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return ""


def step_error(step: WizardStep, state: WizardState, min_images: int) -> str | None:
    """Why `step` can't be left yet, or None if it can."""
    if step in TEXT_FIELDS:
        if not getattr(state, TEXT_FIELDS[step]).strip():
            return f"{STEP_TITLES[step]} is required"
        return None
    if step is WizardStep.TOTAL_COST:
        cost = parse_amount(state.total_cost)
        if cost is None:
            return "Total cost must be a valid number"
        if cost < 0:
            return "Total cost cannot be negative"
        if cost > MAX_AMOUNT:
            return f"Total cost cannot exceed {MAX_AMOUNT}"
        return None
    if step is WizardStep.TIP:
        return None  # tip is optional
    if step is WizardStep.IMAGES:
        if len(state.images) < min_images:
            return f"Please upload at least {min_images} pictures"
        return None
    return "Unknown step"


def can_proceed(step: WizardStep, state: WizardState, min_images: int) -> bool:
    return step_error(step, state, min_images) is None


def transition(step: WizardStep, action: WizardAction, proceed: bool) -> WizardStep:
    if action is WizardAction.NEXT:
        if not proceed:
            return step
        return WizardStep(min(step + 1, LAST_STEP))
    if action is WizardAction.BACK:
        return WizardStep(max(step - 1, FIRST_STEP))
    raise ValueError(f"Unknown wizard action: {action}")


# ── Submit plumbing ──────────────────────────────────────────

@dataclass
class SubmissionContext:
    """Collaborators a submit needs, built per request by the router."""
    db: AsyncSession
    storage: AssetStorage
    session_factory: async_sessionmaker[AsyncSession]
    schedule: Scheduler
    notifier: WebhookNotifier | None = None


@dataclass
class SubmissionResult:
    order: OrderSubmission
    redirect_url: str


class OrderWizard:
    def __init__(
        self,
        user_id: str,
        user_email: str | None = None,
        *,
        state: WizardState | None = None,
        tip_policy: TipPolicy | None = None,
        tip_rate: Decimal | None = None,
        min_images: int | None = None,
    ):
        self.user_id = user_id
        self.user_email = user_email
        self.state = state or WizardState()
        if tip_policy is None:
            tip_policy = (
                TipPolicy.PRESERVE_MANUAL if settings.preserve_manual_tip
                else TipPolicy.ALWAYS_RECOMPUTE
            )
        self.tip_policy = tip_policy
        self.tip_rate = settings.tip_rate if tip_rate is None else tip_rate
        self.min_images = settings.min_images if min_images is None else min_images

    # ── Field input ─────────────────────────────────────────

    def prefill(self, profile: UserProfile | None) -> None:
        """Copy the non-empty saved contact details into the wizard."""
        if profile is None:
            return
        if profile.full_name:
            self.state.name = profile.full_name
        if profile.phone_number:
            self.state.phone = profile.phone_number
        if profile.address:
            self.state.address = profile.address
        if profile.delivery_instructions:
            self.state.delivery_instructions = profile.delivery_instructions

    def set_field(self, step: WizardStep, value: str) -> None:
        if step not in TEXT_FIELDS:
            raise ValueError(f"{step.name} is not a text step")
        setattr(self.state, TEXT_FIELDS[step], value or "")

    def set_total_cost(self, value: str) -> None:
        self.state.total_cost = value or ""
        if self.tip_policy is TipPolicy.PRESERVE_MANUAL and self.state.tip_edited:
            return
        self.state.tip = suggest_tip(self.state.total_cost, self.tip_rate)
        self.state.tip_edited = False

    def set_tip(self, value: str) -> None:
        self.state.tip = value or ""
        self.state.tip_edited = True

    def add_image(self, image: SelectedImage) -> None:
        self.state.images.append(image)

    def remove_image(self, index: int) -> None:
        if not 0 <= index < len(self.state.images):
            raise IndexError(f"No selected image at position {index}")
        del self.state.images[index]

    # ── Navigation ──────────────────────────────────────────

    def validation_message(self, step: WizardStep | None = None) -> str | None:
        return step_error(self.state.step if step is None else step, self.state, self.min_images)

    def can_proceed(self, step: WizardStep | None = None) -> bool:
        return self.validation_message(step) is None

    def next(self) -> WizardStep:
        message = self.validation_message()
        if message:
            raise WizardValidationError(message, step=self.state.step.name.lower())
        self.state.step = transition(self.state.step, WizardAction.NEXT, True)
        return self.state.step

    def back(self) -> WizardStep:
        self.state.step = transition(self.state.step, WizardAction.BACK, self.can_proceed())
        return self.state.step

    def complete_steps(self, values: dict[str, Any]) -> None:
        """Walk every step before the images step with submitted form values.

        `values` holds name, phone, address, delivery_instructions and
        total_cost; a "tip" key overrides the suggested tip (an empty
        string clears it). Stops with WizardValidationError at the first
        step whose gate fails, carrying that step's own message ("Your Name
        is required"). The combined "All fields except tip are required"
        only comes from submit(), for a wizard whose fields were set
        without passing through the gates.
        """
        self.state.step = FIRST_STEP
        for step, attr in TEXT_FIELDS.items():
            self.set_field(step, values.get(attr, ""))
            self.next()
        self.set_total_cost(values.get("total_cost", ""))
        self.next()
        if values.get("tip") is not None:
            self.set_tip(values["tip"])
        self.next()

    # ── Submit ──────────────────────────────────────────────

    def _validate_all(self) -> tuple[Decimal, Decimal | None]:
        s = self.state
        if not all(v.strip() for v in (s.name, s.phone, s.address, s.delivery_instructions, s.total_cost)):
            raise WizardValidationError("All fields except tip are required")
        if len(s.images) < self.min_images:
            raise WizardValidationError(
                f"Please upload at least {self.min_images} pictures", step="images"
            )
        total = parse_amount(s.total_cost)
        if total is None:
            raise WizardValidationError("Total cost must be a valid number", step="total_cost")
        tip = None
        if s.tip.strip():
            tip = parse_amount(s.tip)
            if tip is None:
                raise WizardValidationError("Tip must be a valid number", step="tip")
        if total < 0 or (tip is not None and tip < 0):
            raise WizardValidationError("Amounts cannot be negative")
        if total > MAX_AMOUNT or (tip is not None and tip > MAX_AMOUNT):
            raise WizardValidationError(f"Amounts cannot exceed {MAX_AMOUNT}")
        return total, tip

    async def _normalize_all(self) -> list[NormalizedImage]:
        # Every photo is processed before the first upload so a bad file
        # aborts the submit without touching storage.
        return [
            await asyncio.to_thread(desaturate, img.data, img.filename, img.content_type)
            for img in self.state.images
        ]

    async def submit(self, ctx: SubmissionContext) -> SubmissionResult:
        if self.state.step is not LAST_STEP:
            raise WizardValidationError(
                "Orders can only be submitted from the last step",
                step=self.state.step.name.lower(),
            )
        total, tip = self._validate_all()
        s = self.state

        processed = await self._normalize_all()

        token = uuid.uuid4().hex
        image_urls: list[str] = []
        for seq, (source, image) in enumerate(zip(s.images, processed)):
            key = build_object_key(
                file_extension(source.filename), owner_id=self.user_id, token=token, sequence=seq
            )
            image_urls.append(await upload_image(ctx.storage, image, key, source.filename))

        draft = OrderDraft(
            name=s.name.strip(),
            phone=s.phone.strip(),
            address=s.address.strip(),
            delivery_instructions=s.delivery_instructions.strip(),
            total_cost=total,
            tip=tip,
            image_urls=image_urls,
        )
        order = await create_submission(ctx.db, self.user_id, draft)

        # Past this point the order exists; everything else is best-effort.
        ctx.schedule(
            run_best_effort, "profile save",
            save_profile_detached, ctx.session_factory, self.user_id,
            {
                "full_name": draft.name,
                "phone_number": draft.phone,
                "address": draft.address,
                "delivery_instructions": draft.delivery_instructions,
            },
        )
        if ctx.notifier is not None:
            summary = SubmissionSummary(
                submission_id=order.id,
                name=draft.name,
                phone=draft.phone,
                address=draft.address,
                delivery_instructions=draft.delivery_instructions,
                total_cost=total,
                tip=tip,
                image_urls=list(image_urls),
                user_id=self.user_id,
                user_email=self.user_email,
            )
            ctx.schedule(run_best_effort, "notify", ctx.notifier.notify, summary)

        self.state = WizardState()
        return SubmissionResult(order=order, redirect_url=f"/thank-you?userId={self.user_id}")
