"""
Order lifecycle state machine.

placed -> preparing -> ready_for_pickup -> out_for_delivery -> delivered,
with cancelled reachable from every non-terminal status.
"""
from typing import Dict, List

PLACED = "placed"
PREPARING = "preparing"
READY_FOR_PICKUP = "ready_for_pickup"
OUT_FOR_DELIVERY = "out_for_delivery"
DELIVERED = "delivered"
CANCELLED = "cancelled"

ORDER_STATUSES = [PLACED, PREPARING, READY_FOR_PICKUP, OUT_FOR_DELIVERY, DELIVERED, CANCELLED]

# Current status -> allowed next statuses
VALID_TRANSITIONS: Dict[str, List[str]] = {
    PLACED: [PREPARING, CANCELLED],
    PREPARING: [READY_FOR_PICKUP, CANCELLED],
    READY_FOR_PICKUP: [OUT_FOR_DELIVERY, CANCELLED],
    OUT_FOR_DELIVERY: [DELIVERED, CANCELLED],
    DELIVERED: [],  # terminal
    CANCELLED: [],  # terminal
}


def is_terminal(status: str) -> bool:
    return not VALID_TRANSITIONS.get(status)


def is_valid_transition(current_status: str, requested_status: str) -> bool:
    """True if requested_status is allowed after current_status."""
    return requested_status in VALID_TRANSITIONS.get(current_status, [])
