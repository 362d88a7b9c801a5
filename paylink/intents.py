import re
from dataclasses import dataclass

import structlog

from paylink.currencies import to_minor_units, validate_amount
from paylink.errors import PaymentLinkError
from paylink.links import build_payment_link, resolve_payment_link
from paylink.models import PaymentIntent
from paylink.statuses import IntentStatus, map_gateway_status
from paylink.stripe_service import STATEMENT_DESCRIPTOR_MAX, field, intent_id_from_client_secret, secret_prefix

logger = structlog.get_logger(__name__)


@dataclass
class IntentView:
    gateway_intent_id: str
    client_secret: str
    product_id: str
    amount: int
    currency: str
    status: IntentStatus
    payment_link: str
    is_existing: bool


def statement_descriptor(product_name: str) -> str:
    clean = re.sub(r"[^a-zA-Z0-9\s]", "", product_name or "")
    clean = re.sub(r"\s+", " ", clean).strip().upper()
    return clean[:STATEMENT_DESCRIPTOR_MAX].rstrip()


class IntentService:
    """Opens a payment intent for a payment link, or resumes one from its client secret."""

    def __init__(self, store, gateway, catalog, base_url: str, currency: str = "usd"):
        self.store = store
        self.gateway = gateway
        self.catalog = catalog
        self.base_url = base_url
        self.currency = currency

    async def create_or_retrieve(self, payment_link: str, client_secret: str = None) -> IntentView:
        if client_secret:
            existing = await self._retrieve(payment_link, client_secret)
            if existing is not None:
                return existing
            logger.info("client_secret_not_resumable", client_secret_prefix=secret_prefix(client_secret))

        return await self._create(payment_link)

    async def _retrieve(self, payment_link: str, client_secret: str):
        # Stale secrets are expected (page refresh, old tab); never fail here
        try:
            gateway_intent_id = intent_id_from_client_secret(client_secret)
            live = await self.gateway.retrieve_intent(gateway_intent_id)
            resolved = await resolve_payment_link(self.catalog, payment_link)
        except PaymentLinkError as e:
            logger.warning("payment_intent_retrieval_skipped", reason=e.message)
            return None

        metadata_product_id = field(field(live, "metadata"), "product_id")
        if metadata_product_id != resolved.product.id:
            logger.warning(
                "payment_intent_product_mismatch",
                gateway_intent_id=gateway_intent_id,
                expected_product_id=resolved.product.id,
                actual_product_id=metadata_product_id,
            )
            return None

        status = map_gateway_status(field(live, "status"))
        logger.info(
            "payment_intent_retrieved",
            gateway_intent_id=gateway_intent_id,
            product_id=resolved.product.id,
            status=status.value,
        )
        return IntentView(
            gateway_intent_id=gateway_intent_id,
            client_secret=client_secret,
            product_id=resolved.product.id,
            amount=field(live, "amount"),
            currency=field(live, "currency"),
            status=status,
            payment_link=build_payment_link(self.base_url, resolved.seller_unique_name, resolved.slug),
            is_existing=True,
        )

    async def _create(self, payment_link: str) -> IntentView:
        resolved = await resolve_payment_link(self.catalog, payment_link)
        product = resolved.product

        # Charge strictly what the product costs now
        amount = to_minor_units(product.amount, self.currency)
        validate_amount(amount, self.currency)

        live = await self.gateway.create_intent(
            amount=amount,
            currency=self.currency,
            description=product.name,
            statement_descriptor_suffix=statement_descriptor(product.name),
            metadata={"seller_id": resolved.seller_id, "product_id": product.id},
        )

        intent = PaymentIntent(
            user_id=resolved.seller_id,
            product_id=product.id,
            slug=resolved.slug,
            user_unique_name=resolved.seller_unique_name,
            gateway_intent_id=field(live, "id"),
            client_secret=field(live, "client_secret"),
            amount=field(live, "amount", amount),
            currency=field(live, "currency", self.currency),
            payment_method_types=list(field(live, "payment_method_types") or []),
            status=IntentStatus.INITIATED,
        )
        await self.store.add(intent)

        logger.info(
            "payment_intent_created",
            gateway_intent_id=intent.gateway_intent_id,
            product_id=product.id,
            amount=intent.amount,
        )
        return IntentView(
            gateway_intent_id=intent.gateway_intent_id,
            client_secret=intent.client_secret,
            product_id=product.id,
            amount=intent.amount,
            currency=intent.currency,
            status=IntentStatus.INITIATED,
            payment_link=build_payment_link(self.base_url, resolved.seller_unique_name, resolved.slug),
            is_existing=False,
        )
