from collections.abc import Mapping

import stripe
import structlog

from paylink.errors import BadRequest, UpstreamFailure

logger = structlog.get_logger(__name__)

SECRET_DELIMITER = "_secret_"
STATEMENT_DESCRIPTOR_MAX = 22


def field(obj, name, default=None):
    """Read ``name`` from a gateway object, a plain dict, or ``None``."""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def intent_id_from_client_secret(client_secret: str) -> str:
    # Format: pi_{id}_secret_{opaque}
    if not isinstance(client_secret, str) or SECRET_DELIMITER not in client_secret:
        raise BadRequest("Invalid client secret format")
    intent_id = client_secret.split(SECRET_DELIMITER)[0]
    if not intent_id or not intent_id.startswith("pi_"):
        raise BadRequest("Invalid client secret format")
    return intent_id


def secret_prefix(client_secret) -> str:
    return (client_secret or "")[:20]


class StripeGateway:

    def __init__(self, api_key: str, api_version: str = None):
        if not api_key:
            raise RuntimeError("STRIPE_SECRET_KEY is not set. Check your .env file.")
        self.api_key = api_key
        self.api_version = api_version

    def _options(self):
        options = {"api_key": self.api_key}
        if self.api_version:
            options["stripe_version"] = self.api_version
        return options

    async def create_intent(self, amount: int, currency: str, description: str,
                            statement_descriptor_suffix: str, metadata: dict):
        params = dict(
            amount=amount,
            currency=currency,
            description=description,
            automatic_payment_methods={"enabled": True, "allow_redirects": "always"},
            metadata=metadata,
        )
        # The gateway rejects an empty suffix
        if statement_descriptor_suffix:
            params["statement_descriptor_suffix"] = statement_descriptor_suffix[:STATEMENT_DESCRIPTOR_MAX]

        try:
            intent = await stripe.PaymentIntent.create_async(**params, **self._options())
        except stripe.StripeError as e:
            logger.error("gateway_create_failed", amount=amount, currency=currency, error=str(e))
            raise UpstreamFailure(f"Payment intent creation failed: {e}", e)

        logger.info(
            "gateway_intent_created",
            gateway_intent_id=field(intent, "id"),
            amount=field(intent, "amount"),
            currency=field(intent, "currency"),
            status=field(intent, "status"),
        )
        return intent

    async def retrieve_intent(self, gateway_intent_id: str, expand: list = None):
        params = {"expand": expand} if expand else {}
        try:
            return await stripe.PaymentIntent.retrieve_async(gateway_intent_id, **params, **self._options())
        except stripe.StripeError as e:
            logger.error("gateway_retrieve_failed", gateway_intent_id=gateway_intent_id, error=str(e))
            raise UpstreamFailure(f"Failed to retrieve payment intent: {e}", e)

    async def cancel_intent(self, gateway_intent_id: str, reason: str = None):
        params = {"cancellation_reason": reason} if reason else {}
        try:
            intent = await stripe.PaymentIntent.cancel_async(gateway_intent_id, **params, **self._options())
        except stripe.StripeError as e:
            logger.error("gateway_cancel_failed", gateway_intent_id=gateway_intent_id, error=str(e))
            raise UpstreamFailure(f"Payment intent cancellation failed: {e}", e)

        logger.info(
            "gateway_intent_canceled",
            gateway_intent_id=gateway_intent_id,
            canceled_at=field(intent, "canceled_at"),
            cancellation_reason=field(intent, "cancellation_reason"),
        )
        return intent

    async def verify_microdeposits(self, gateway_intent_id: str, amounts: list):
        try:
            intent = await stripe.PaymentIntent.verify_microdeposits_async(
                gateway_intent_id, amounts=list(amounts), **self._options()
            )
        except stripe.StripeError as e:
            logger.error("gateway_verify_microdeposits_failed", gateway_intent_id=gateway_intent_id, error=str(e))
            raise UpstreamFailure(f"Microdeposits verification failed: {e}", e)

        logger.info("gateway_microdeposits_verified", gateway_intent_id=gateway_intent_id, status=field(intent, "status"))
        return intent

    async def retrieve_payment_method(self, payment_method_id: str):
        try:
            return await stripe.PaymentMethod.retrieve_async(payment_method_id, **self._options())
        except stripe.StripeError as e:
            raise UpstreamFailure(f"Failed to retrieve payment method: {e}", e)
