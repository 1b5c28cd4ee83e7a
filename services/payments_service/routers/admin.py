"""Admin review of manual bank transfers."""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.notifications import Notifier, get_notifier
from libs.db.session import get_async_db
from services.payments_service.gateways import GatewayRegistry, get_gateway_registry
from services.payments_service.pending_orders import (
    PendingOrderCache,
    get_pending_order_cache,
)
from services.payments_service.schemas import ManualReviewRequest, VerificationResponse
from services.payments_service.services.verification import verify_payment
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments/admin", tags=["admin-payments"])


@router.post(
    "/transactions/{transaction_id}/review", response_model=VerificationResponse
)
async def review_transaction(
    transaction_id: int,
    review: ManualReviewRequest,
    current_user: AuthUser = Depends(require_admin),
    registry: GatewayRegistry = Depends(get_gateway_registry),
    cache: PendingOrderCache = Depends(get_pending_order_cache),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_async_db),
):
    """Approve or reject a manual transfer.

    Approval creates the order; rejection cancels the invoice.
    """
    callback_data = {
        "approved": review.approved,
        "reason": review.reason,
        "reviewed_by": current_user.user_id,
        "reviewed_at": utc_now().isoformat(),
    }
    result = await verify_payment(
        db,
        transaction_id,
        callback_data,
        registry=registry,
        cache=cache,
        notifier=notifier,
    )
    return VerificationResponse(**vars(result))
