"""ARQ worker for payments reconciliation."""

from arq import cron
from libs.common.arq_config import get_redis_settings
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.common.redis import close_redis
from services.payments_service.pending_orders import RedisPendingOrderCache

logger = get_logger(__name__)


async def task_expire_stale_invoices(ctx: dict):
    from services.payments_service.tasks import expire_stale_invoices

    logger.info("Running: expire_stale_invoices")
    cache = None
    if get_settings().PENDING_ORDER_CACHE_BACKEND == "redis":
        cache = RedisPendingOrderCache()
    await expire_stale_invoices(cache=cache)


async def task_purge_expired_pending_orders(ctx: dict):
    from services.payments_service.tasks import purge_expired_pending_orders

    logger.info("Running: purge_expired_pending_orders")
    await purge_expired_pending_orders()


async def shutdown(ctx: dict):
    await close_redis()


class WorkerSettings:
    redis_settings = get_redis_settings()

    on_shutdown = shutdown

    functions = [
        task_expire_stale_invoices,
        task_purge_expired_pending_orders,
    ]

    cron_jobs = [
        cron(
            task_expire_stale_invoices,
            minute={0, 15, 30, 45},
            run_at_startup=True,
        ),
        cron(
            task_purge_expired_pending_orders,
            minute={5, 35},
            run_at_startup=True,
        ),
    ]
