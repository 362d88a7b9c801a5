from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


class IntentStatus(str, Enum):
    INITIATED = "INITIATED"
    PROCESSING = "PROCESSING"
    PENDING = "PENDING"
    REQUIRES_ACTION = "REQUIRES_ACTION"
    MICRODEPOSITS_VERIFIED = "MICRODEPOSITS_VERIFIED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


GATEWAY_STATUS_MAP = {
    "requires_payment_method": IntentStatus.INITIATED,
    "requires_confirmation": IntentStatus.INITIATED,
    "requires_action": IntentStatus.REQUIRES_ACTION,
    "processing": IntentStatus.PROCESSING,
    "requires_capture": IntentStatus.PENDING,
    "succeeded": IntentStatus.SUCCEEDED,
    "canceled": IntentStatus.CANCELLED,
}

TERMINAL_STATUSES = frozenset(
    {IntentStatus.SUCCEEDED, IntentStatus.FAILED, IntentStatus.CANCELLED}
)

# Progression among non-terminal statuses
_PROGRESSION = {
    IntentStatus.INITIATED: 0,
    IntentStatus.REQUIRES_ACTION: 1,
    IntentStatus.MICRODEPOSITS_VERIFIED: 2,
    IntentStatus.PROCESSING: 3,
    IntentStatus.PENDING: 4,
}

# A failed attempt can still be retried to success or be cancelled at the gateway
_FAILED_EXITS = frozenset({IntentStatus.SUCCEEDED, IntentStatus.CANCELLED})


def map_gateway_status(gateway_status) -> IntentStatus:
    status = GATEWAY_STATUS_MAP.get(gateway_status)
    if status is None:
        logger.warning("unknown_gateway_status", gateway_status=gateway_status, fallback=IntentStatus.PENDING.value)
        return IntentStatus.PENDING
    return status


def is_regression(current: IntentStatus, new: IntentStatus) -> bool:
    """
    Whether moving from ``current`` to ``new`` goes backwards.

    Re-applying the same status is never a regression. Terminal statuses
    are final, except that FAILED may still become SUCCEEDED or CANCELLED.
    Any terminal status is ahead of every non-terminal one.
    """
    if current == new:
        return False
    if current in TERMINAL_STATUSES:
        return not (current == IntentStatus.FAILED and new in _FAILED_EXITS)
    if new in TERMINAL_STATUSES:
        return False
    return _PROGRESSION[new] < _PROGRESSION[current]
