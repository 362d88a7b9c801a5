import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paylink.models import PaymentIntent, utcnow
from paylink.statuses import IntentStatus

logger = structlog.get_logger(__name__)


class IntentStore:
    """
    Durable PaymentIntent records.

    Each write commits on its own. Storage errors are not caught here: they
    propagate to the caller (and, for webhooks, to the gateway as a failed
    delivery).
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, intent: PaymentIntent) -> PaymentIntent:
        self.session.add(intent)
        await self.session.commit()
        logger.info(
            "payment_intent_saved",
            id=intent.id,
            gateway_intent_id=intent.gateway_intent_id,
            product_id=intent.product_id,
        )
        return intent

    async def get_by_client_secret(self, client_secret: str):
        # client_secret is not unique in storage; the earliest record wins
        result = await self.session.execute(
            select(PaymentIntent)
            .where(PaymentIntent.client_secret == client_secret)
            .order_by(PaymentIntent.created_at, PaymentIntent.id)
            .limit(1)
        )
        return result.scalars().first()

    async def get_by_gateway_id(self, gateway_intent_id: str):
        result = await self.session.execute(
            select(PaymentIntent).where(PaymentIntent.gateway_intent_id == gateway_intent_id)
        )
        return result.scalars().first()

    async def update_status(self, intent: PaymentIntent, status: IntentStatus) -> PaymentIntent:
        intent.status = status
        intent.updated_at = utcnow()
        await self.session.commit()
        logger.info("payment_intent_status_updated", id=intent.id, status=status.value)
        return intent

    async def apply_event(self, intent: PaymentIntent, status: IntentStatus = None,
                          payment_method_types=None, customer_name=None, customer_email=None) -> PaymentIntent:
        """Write everything a webhook event carries in one update; empty values are left alone."""
        if status is not None:
            intent.status = status
        if payment_method_types:
            intent.payment_method_types = list(payment_method_types)
        if customer_name:
            intent.customer_name = customer_name
        if customer_email:
            intent.customer_email = customer_email
        intent.updated_at = utcnow()
        await self.session.commit()

        logger.info(
            "payment_intent_updated_from_event",
            id=intent.id,
            status=intent.status.value,
            payment_method_types=intent.payment_method_types,
            has_customer_name=bool(intent.customer_name),
            has_customer_email=bool(intent.customer_email),
        )
        return intent
