"""Best-effort payer name/email lookup for payment intent events. Never raises."""
from dataclasses import dataclass
from typing import Optional

import structlog

from paylink.stripe_service import field

logger = structlog.get_logger(__name__)

SUCCEEDED_EVENT = "payment_intent.succeeded"


@dataclass
class BillingInfo:
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def complete(self) -> bool:
        return bool(self.name and self.email)

    def fill_from(self, billing_details) -> None:
        if billing_details is None:
            return
        if not self.name:
            self.name = field(billing_details, "name") or None
        if not self.email:
            self.email = field(billing_details, "email") or None


class BillingInfoExtractor:

    def __init__(self, gateway):
        self.gateway = gateway

    async def extract(self, event) -> BillingInfo:
        info = BillingInfo()
        intent = field(field(event, "data"), "object")
        if intent is None:
            logger.warning("billing_extract_invalid_event", event_id=field(event, "id"))
            return info

        try:
            await self._run_strategies(event, intent, info)
        except Exception as e:
            logger.error(
                "billing_extract_failed",
                event_id=field(event, "id"),
                event_type=field(event, "type"),
                error=str(e),
            )

        logger.info(
            "billing_extract_completed",
            event_id=field(event, "id"),
            has_name=bool(info.name),
            has_email=bool(info.email),
        )
        return info

    async def _run_strategies(self, event, intent, info: BillingInfo) -> None:
        # 1. Inline charges
        charges = field(field(intent, "charges"), "data") or []
        if charges:
            info.fill_from(field(charges[0], "billing_details"))
            if info.complete:
                logger.debug("billing_info_found", source="charges_data")
                return

        # 2. Live payment method
        payment_method = field(intent, "payment_method")
        if payment_method:
            if isinstance(payment_method, str):
                try:
                    payment_method = await self.gateway.retrieve_payment_method(payment_method)
                except Exception as e:
                    logger.warning("billing_payment_method_fetch_failed", payment_method_id=payment_method, error=str(e))
                    payment_method = None
            info.fill_from(field(payment_method, "billing_details"))
            if info.complete:
                logger.debug("billing_info_found", source="payment_method")
                return

        # 3. Payment method on the last error
        error_method = field(field(intent, "last_payment_error"), "payment_method")
        if error_method is not None and not isinstance(error_method, str):
            info.fill_from(field(error_method, "billing_details"))
            if info.complete:
                logger.debug("billing_info_found", source="last_payment_error")
                return

        # 4. Expanded re-fetch, successful payments only
        if field(event, "type") != SUCCEEDED_EVENT:
            return
        try:
            full = await self.gateway.retrieve_intent(field(intent, "id"), expand=["payment_method", "latest_charge"])
        except Exception as e:
            logger.warning("billing_expanded_intent_fetch_failed", gateway_intent_id=field(intent, "id"), error=str(e))
            return

        for source in ("payment_method", "latest_charge"):
            expanded = field(full, source)
            if expanded is not None and not isinstance(expanded, str):
                info.fill_from(field(expanded, "billing_details"))
        if info.complete:
            logger.debug("billing_info_found", source="expanded_payment_intent")
