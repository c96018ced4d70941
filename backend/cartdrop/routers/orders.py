"""Order router: submit and history.

Endpoints:
    POST /api/orders/             Submit a completed wizard (multipart)
    GET  /api/orders/             The caller's orders, newest first
    GET  /api/orders/{order_id}   One of the caller's orders

The submit endpoint walks the submitted fields through the wizard's
step gates in order, then runs the wizard's submit pipeline. Profile
save and notification run as background tasks after the response.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cartdrop.auth.deps import get_current_user
from cartdrop.database import get_db, get_session_factory
from cartdrop.middleware.exceptions import ResourceNotFoundError
from cartdrop.models.user import User
from cartdrop.schemas.common import PaginatedResponse
from cartdrop.schemas.order import OrderConfirmation, OrderOut
from cartdrop.services.lifespan import get_notifier, get_storage
from cartdrop.services.notifier import WebhookNotifier
from cartdrop.services.storage import AssetStorage
from cartdrop.services.submissions import get_submission, list_submissions
from cartdrop.services.wizard import OrderWizard, SelectedImage, SubmissionContext

router = APIRouter()


# ── Submit ───────────────────────────────────────────────────

@router.post("/", response_model=OrderConfirmation, status_code=status.HTTP_201_CREATED)
async def submit_order(
    background_tasks: BackgroundTasks,
    name: str = Form(""),
    phone: str = Form(""),
    address: str = Form(""),
    delivery_instructions: str = Form(""),
    total_cost: str = Form(""),
    tip: str | None = Form(None),
    no_tip: bool = Form(False),
    images: list[UploadFile] | None = File(None),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    storage: AssetStorage = Depends(get_storage),
    notifier: WebhookNotifier = Depends(get_notifier),
    user: User = Depends(get_current_user),
):
    """Submit an order.

    Leave `tip` out to accept the suggested 15 %; set `no_tip` to order
    without one. Empty form fields arrive as missing, so an empty `tip`
    counts as left out.
    Photos are converted to greyscale and uploaded in the order given.
    A missing field is reported with its own step's message, e.g.
    "Phone Number is required", and `details.step` names the step.
    """
    wizard = OrderWizard(user.id, user.email)
    wizard.complete_steps({
        "name": name,
        "phone": phone,
        "address": address,
        "delivery_instructions": delivery_instructions,
        "total_cost": total_cost,
        "tip": "" if no_tip else tip,
    })
    for upload in images or []:
        wizard.add_image(SelectedImage(
            filename=upload.filename or "image",
            data=await upload.read(),
            content_type=upload.content_type,
        ))

    result = await wizard.submit(SubmissionContext(
        db=db,
        storage=storage,
        session_factory=session_factory,
        schedule=background_tasks.add_task,
        notifier=notifier,
    ))
    return OrderConfirmation(
        order=OrderOut.model_validate(result.order),
        redirect_url=result.redirect_url,
    )


# ── History ──────────────────────────────────────────────────

@router.get("/", response_model=PaginatedResponse[OrderOut])
async def list_orders(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    orders, total = await list_submissions(db, user.id, limit=limit, offset=offset)
    return PaginatedResponse[OrderOut](
        items=[OrderOut.model_validate(o) for o in orders],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    order = await get_submission(db, user.id, order_id)
    if order is None:
        raise ResourceNotFoundError("Order", order_id)
    return OrderOut.model_validate(order)
