from dataclasses import dataclass

import structlog

from paylink.errors import NotFound
from paylink.statuses import IntentStatus, map_gateway_status
from paylink.stripe_service import field, intent_id_from_client_secret

logger = structlog.get_logger(__name__)


@dataclass
class SyncResult:
    synced: bool
    previous_status: IntentStatus
    current_status: IntentStatus
    gateway_status: str
    intent: object

    @property
    def message(self) -> str:
        if self.synced:
            return "Payment intent status synced successfully"
        return "Payment intent already in sync"


class SyncService:

    def __init__(self, store, gateway):
        self.store = store
        self.gateway = gateway

    async def retrieve_and_sync(self, client_secret: str) -> SyncResult:
        gateway_intent_id = intent_id_from_client_secret(client_secret)

        record = await self.store.get_by_client_secret(client_secret)
        if record is None:
            raise NotFound("Payment intent not found")

        live = await self.gateway.retrieve_intent(gateway_intent_id)
        gateway_status = field(live, "status")
        current = map_gateway_status(gateway_status)
        previous = record.status

        # The gateway is authoritative here, so no regression guard
        if current == previous:
            logger.info("payment_intent_in_sync", gateway_intent_id=gateway_intent_id, status=previous.value)
            return SyncResult(False, previous, previous, gateway_status, record)

        await self.store.update_status(record, current)
        logger.info(
            "payment_intent_synced",
            gateway_intent_id=gateway_intent_id,
            previous_status=previous.value,
            current_status=current.value,
            gateway_status=gateway_status,
        )
        return SyncResult(True, previous, current, gateway_status, record)
