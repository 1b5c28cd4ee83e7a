"""Outbound notification effects.

Core operations never publish events themselves. They return a list of
``Effect`` values and the caller dispatches them once the database
transaction has committed:

    creation = await create_order(db, checkout)
    await db.commit()
    await dispatch_effects(notifier, creation.effects)

Sink failures are logged and swallowed; a notification can never fail the
operation that produced it.
"""

import enum
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from libs.common.logging import get_logger

logger = get_logger(__name__)


class EffectKind(str, enum.Enum):
    ORDER_CREATED = "order_created"
    ORDER_CANCELLED = "order_cancelled"
    PAYMENT_VERIFIED = "payment_verified"
    PAYMENT_FAILED = "payment_failed"


@dataclass(frozen=True)
class Effect:
    kind: EffectKind
    payload: dict = field(default_factory=dict)


class Notifier(Protocol):
    async def notify(self, effect: Effect) -> None: ...


class LoggingNotifier:
    """Writes every effect to the application log."""

    async def notify(self, effect: Effect) -> None:
        if effect.kind == EffectKind.PAYMENT_FAILED:
            logger.warning(
                "[%s] %s", effect.kind.value, effect.payload.get("reason"),
                extra={"extra_fields": effect.payload},
            )
        else:
            logger.info("[%s]", effect.kind.value, extra={"extra_fields": effect.payload})


class EmailNotifier(LoggingNotifier):
    """Logs every effect and e-mails the customer when an order is created."""

    async def notify(self, effect: Effect) -> None:
        await super().notify(effect)
        if effect.kind != EffectKind.ORDER_CREATED:
            return
        to_email = effect.payload.get("customer_email")
        if not to_email:
            return

        from libs.common.emails.store import send_store_order_confirmation_email

        await send_store_order_confirmation_email(
            to_email=to_email,
            customer_name=effect.payload.get("customer_name") or "Customer",
            order_id=effect.payload["order_id"],
            items=effect.payload.get("items", []),
            total_amount=effect.payload.get("total_amount", 0),
            discount_amount=effect.payload.get("discount_amount", 0),
            delivery_fee=effect.payload.get("delivery_fee", 0),
            final_amount=effect.payload.get("final_amount", 0),
        )


class RecordingNotifier:
    """Keeps effects in memory. Used by tests and dry runs."""

    def __init__(self):
        self.effects: list[Effect] = []

    async def notify(self, effect: Effect) -> None:
        self.effects.append(effect)

    def kinds(self) -> list[EffectKind]:
        return [effect.kind for effect in self.effects]


async def dispatch_effects(notifier: Notifier, effects: Iterable[Effect]) -> None:
    """Deliver effects best-effort, one at a time."""
    for effect in effects:
        try:
            await notifier.notify(effect)
        except Exception as e:
            logger.error(
                "Notification %s failed: %s",
                effect.kind.value,
                e,
                extra={"extra_fields": effect.payload},
            )


def get_notifier() -> Notifier:
    """FastAPI dependency returning the default notification sink."""
    return EmailNotifier()
