from dataclasses import dataclass

import structlog

from paylink.errors import BadRequest, NotFound
from paylink.statuses import IntentStatus
from paylink.stripe_service import field, intent_id_from_client_secret

logger = structlog.get_logger(__name__)

CANCELLATION_REASONS = ("duplicate", "fraudulent", "requested_by_customer", "abandoned")
MICRODEPOSIT_MAX = 99


@dataclass
class ActionResult:
    intent: object
    status: IntentStatus
    message: str


def validate_microdeposit_amounts(amounts) -> list:
    if not isinstance(amounts, (list, tuple)) or len(amounts) != 2:
        raise BadRequest("Amounts must be an array of exactly 2 numbers")
    for amount in amounts:
        if isinstance(amount, bool) or not isinstance(amount, int) or not 0 <= amount <= MICRODEPOSIT_MAX:
            raise BadRequest(f"Each amount must be an integer between 0 and {MICRODEPOSIT_MAX}")
    return list(amounts)


class IntentActions:
    """Explicit buyer-side transitions: cancellation and microdeposit verification."""

    def __init__(self, store, gateway):
        self.store = store
        self.gateway = gateway

    async def _load(self, client_secret: str):
        record = await self.store.get_by_client_secret(client_secret)
        if record is None:
            raise NotFound("Payment intent not found")
        return record

    async def cancel(self, client_secret: str, reason: str = None) -> ActionResult:
        gateway_intent_id = intent_id_from_client_secret(client_secret)
        if reason is not None and reason not in CANCELLATION_REASONS:
            raise BadRequest(f"Cancellation reason must be one of: {', '.join(CANCELLATION_REASONS)}")

        record = await self._load(client_secret)
        if record.status == IntentStatus.CANCELLED:
            logger.info("payment_intent_already_canceled", gateway_intent_id=gateway_intent_id)
            return ActionResult(record, IntentStatus.CANCELLED, "Payment intent is already canceled")

        previous = record.status
        await self.gateway.cancel_intent(gateway_intent_id, reason)
        # A failed write here leaves the gateway ahead of us until the next sync
        await self.store.update_status(record, IntentStatus.CANCELLED)

        logger.info(
            "payment_intent_canceled",
            gateway_intent_id=gateway_intent_id,
            previous_status=previous.value,
            cancellation_reason=reason or "none",
        )
        return ActionResult(record, IntentStatus.CANCELLED, "Payment intent canceled successfully")

    async def verify_microdeposits(self, client_secret: str, amounts) -> ActionResult:
        gateway_intent_id = intent_id_from_client_secret(client_secret)
        amounts = validate_microdeposit_amounts(amounts)

        record = await self._load(client_secret)
        previous = record.status
        live = await self.gateway.verify_microdeposits(gateway_intent_id, amounts)

        # Whatever the gateway reports now, the next webhook or sync refines it
        if previous != IntentStatus.MICRODEPOSITS_VERIFIED:
            await self.store.update_status(record, IntentStatus.MICRODEPOSITS_VERIFIED)

        logger.info(
            "payment_intent_microdeposits_verified",
            gateway_intent_id=gateway_intent_id,
            previous_status=previous.value,
            gateway_status=field(live, "status"),
        )
        return ActionResult(record, IntentStatus.MICRODEPOSITS_VERIFIED, "Microdeposits verified successfully")
