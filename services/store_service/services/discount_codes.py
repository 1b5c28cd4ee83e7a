"""Discount code validation and redemption."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import as_utc, utc_now
from libs.common.logging import get_logger
from services.store_service.exceptions import InvalidDiscountCodeError
from services.store_service.models import (
    DiscountCode,
    DiscountCodeUsage,
    DiscountType,
    Order,
)
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass
class DiscountValidation:
    valid: bool
    discount_code: DiscountCode


def normalize_code(code: str) -> str:
    return code.upper().strip()


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def find_discount_code(
    db: AsyncSession, code: str, lock: bool = False
) -> Optional[DiscountCode]:
    query = select(DiscountCode).where(DiscountCode.code == normalize_code(code))
    if lock:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def usage_count(db: AsyncSession, discount_code_id: int) -> int:
    result = await db.execute(
        select(func.count(DiscountCodeUsage.id)).where(
            DiscountCodeUsage.discount_code_id == discount_code_id
        )
    )
    return result.scalar_one()


async def has_user_used(db: AsyncSession, discount_code_id: int, user_id: str) -> bool:
    result = await db.execute(
        select(DiscountCodeUsage.id)
        .where(
            DiscountCodeUsage.discount_code_id == discount_code_id,
            DiscountCodeUsage.user_id == user_id,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


async def validate_discount_code(
    db: AsyncSession,
    code: str,
    user_id: Optional[str],
    order_amount: int,
    now: Optional[datetime] = None,
    lock: bool = False,
) -> DiscountValidation:
    """Check a code against every redemption rule.

    Rules are checked in a fixed order and the first failure wins:
    not found, inactive, not yet started, expired, usage limit reached,
    below minimum order amount, already used by this user. A zero or empty
    usage limit / minimum amount means "no limit".

    With ``lock`` the code row stays locked until the caller commits, so
    redemptions of one code are counted one at a time.

    Raises:
        InvalidDiscountCodeError: with a kind naming the failed rule.
    """
    now = now or utc_now()

    discount_code = await find_discount_code(db, code, lock=lock)
    if discount_code is None:
        raise InvalidDiscountCodeError.not_found()

    if not discount_code.is_active:
        raise InvalidDiscountCodeError.inactive()

    if discount_code.starts_at and as_utc(discount_code.starts_at) > now:
        raise InvalidDiscountCodeError.not_started()

    if discount_code.expires_at and as_utc(discount_code.expires_at) < now:
        raise InvalidDiscountCodeError.expired()

    if discount_code.usage_limit:
        if await usage_count(db, discount_code.id) >= discount_code.usage_limit:
            raise InvalidDiscountCodeError.usage_limit_exceeded()

    if discount_code.min_order_amount and order_amount < discount_code.min_order_amount:
        raise InvalidDiscountCodeError.minimum_amount_not_met(
            discount_code.min_order_amount
        )

    if user_id and await has_user_used(db, discount_code.id, user_id):
        raise InvalidDiscountCodeError.already_used()

    return DiscountValidation(valid=True, discount_code=discount_code)


def calculate_discount_amount(discount_code: DiscountCode, order_amount: int) -> int:
    if order_amount <= 0:
        return 0
    if discount_code.discount_type == DiscountType.PERCENTAGE:
        return min(order_amount * discount_code.value // 100, order_amount)
    return min(discount_code.value, order_amount)


# ---------------------------------------------------------------------------
# Redemption
# ---------------------------------------------------------------------------


async def record_discount_usage(
    db: AsyncSession,
    order: Order,
    discount_code: DiscountCode,
    discount_amount: int,
) -> DiscountCodeUsage:
    """Persist a redemption. Runs inside the order transaction; never commits."""
    usage = DiscountCodeUsage(
        discount_code_id=discount_code.id,
        user_id=order.user_id,
        order_id=order.id,
        discount_amount=discount_amount,
        order_amount=order.total_amount + order.delivery_fee,
    )
    db.add(usage)
    try:
        await db.flush()
    except IntegrityError:
        # One usage row per (code, user)
        raise InvalidDiscountCodeError.already_used()
    logger.info(
        "Recorded discount code %s usage on order %s (amount=%d)",
        discount_code.code,
        order.id,
        discount_amount,
    )
    return usage
