"""Webhook event handling. Events that would move an intent backwards keep the stored status."""
import structlog

from paylink.statuses import IntentStatus, is_regression, map_gateway_status
from paylink.stripe_service import field

logger = structlog.get_logger(__name__)


class WebhookProcessor:

    def __init__(self, store, extractor):
        self.store = store
        self.extractor = extractor
        self.handlers = {
            "payment_intent.created": self.handle_created,
            "payment_intent.processing": self.handle_processing,
            "payment_intent.requires_action": self.handle_requires_action,
            "payment_intent.succeeded": self.handle_succeeded,
            "payment_intent.payment_failed": self.handle_failed,
            "payment_intent.canceled": self.handle_canceled,
        }

    async def process(self, event) -> bool:
        """Apply one event. Returns False when the event was ignored."""
        event_type = field(event, "type")
        handler = self.handlers.get(event_type)
        if handler is None:
            logger.info("webhook_event_ignored", event_id=field(event, "id"), event_type=event_type)
            return False
        return await handler(event)

    async def handle_created(self, event) -> bool:
        intent = field(field(event, "data"), "object")
        return await self._apply(event, map_gateway_status(field(intent, "status")))

    async def handle_processing(self, event) -> bool:
        return await self._apply(event, map_gateway_status("processing"))

    async def handle_requires_action(self, event) -> bool:
        return await self._apply(event, map_gateway_status("requires_action"))

    async def handle_succeeded(self, event) -> bool:
        return await self._apply(event, map_gateway_status("succeeded"))

    async def handle_failed(self, event) -> bool:
        intent = field(field(event, "data"), "object")
        logger.info(
            "payment_intent_payment_failed",
            gateway_intent_id=field(intent, "id"),
            reason=field(field(intent, "last_payment_error"), "message"),
        )
        return await self._apply(event, IntentStatus.FAILED)

    async def handle_canceled(self, event) -> bool:
        return await self._apply(event, map_gateway_status("canceled"))

    async def _apply(self, event, status: IntentStatus) -> bool:
        event_id = field(event, "id")
        intent = field(field(event, "data"), "object")
        gateway_intent_id = field(intent, "id")

        record = await self.store.get_by_gateway_id(gateway_intent_id)
        if record is None:
            logger.warning(
                "webhook_intent_not_found",
                event_id=event_id,
                event_type=field(event, "type"),
                gateway_intent_id=gateway_intent_id,
            )
            return False

        billing = await self.extractor.extract(event)

        new_status = status
        if is_regression(record.status, status):
            logger.warning(
                "webhook_status_regression_skipped",
                event_id=event_id,
                gateway_intent_id=gateway_intent_id,
                current_status=record.status.value,
                event_status=status.value,
            )
            new_status = None

        previous = record.status
        await self.store.apply_event(
            record,
            status=new_status,
            payment_method_types=field(intent, "payment_method_types"),
            customer_name=billing.name,
            customer_email=billing.email,
        )
        logger.info(
            "webhook_event_applied",
            event_id=event_id,
            event_type=field(event, "type"),
            gateway_intent_id=gateway_intent_id,
            previous_status=previous.value,
            status=record.status.value,
        )
        return True
