"""Payment gateway listing."""

from fastapi import APIRouter, Depends
from libs.db.session import get_async_db
from services.payments_service.schemas import PaymentGatewayResponse
from services.payments_service.services import payment_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/gateways", response_model=list[PaymentGatewayResponse])
async def list_gateways(db: AsyncSession = Depends(get_async_db)):
    """List active payment gateways in display order."""
    gateways = await payment_ops.list_active_gateways(db)
    return [PaymentGatewayResponse.model_validate(gateway) for gateway in gateways]
