# backend/modules/reservations/services/dining_status.py

"""
Dining-status lifecycle of a booking.

A booking moves one step at a time along the forward chain while the guest
is in the restaurant. Cancellations can end any visit that has not finished
yet; a no-show can only be recorded before the guest has arrived.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Tuple
import logging

from core.exceptions import InvalidStatusTransitionError
from ..models.reservation_models import DiningStatus
from ..schemas.reservation_schemas import BookingRead, StatusHistoryRecord

logger = logging.getLogger(__name__)


FORWARD_CHAIN: Tuple[DiningStatus, ...] = (
    DiningStatus.PENDING,
    DiningStatus.CONFIRMED,
    DiningStatus.ARRIVED,
    DiningStatus.SEATED,
    DiningStatus.ORDERED,
    DiningStatus.APPETIZERS,
    DiningStatus.MAIN_COURSE,
    DiningStatus.DESSERT,
    DiningStatus.PAYMENT,
    DiningStatus.COMPLETED,
)

TERMINAL_STATUSES: FrozenSet[DiningStatus] = frozenset({
    DiningStatus.COMPLETED,
    DiningStatus.NO_SHOW,
    DiningStatus.CANCELLED_BY_USER,
    DiningStatus.CANCELLED_BY_RESTAURANT,
})

# Guest is at the table whatever the booked window says
PHYSICALLY_PRESENT_STATUSES: FrozenSet[DiningStatus] = frozenset({
    DiningStatus.ARRIVED,
    DiningStatus.SEATED,
    DiningStatus.ORDERED,
    DiningStatus.APPETIZERS,
    DiningStatus.MAIN_COURSE,
    DiningStatus.DESSERT,
    DiningStatus.PAYMENT,
})

CANCELLATION_STATUSES: FrozenSet[DiningStatus] = frozenset({
    DiningStatus.CANCELLED_BY_USER,
    DiningStatus.CANCELLED_BY_RESTAURANT,
})

NO_SHOW_SOURCES: FrozenSet[DiningStatus] = frozenset({
    DiningStatus.PENDING,
    DiningStatus.CONFIRMED,
})

DINING_PROGRESS: Dict[DiningStatus, int] = {
    DiningStatus.PENDING: 0,
    DiningStatus.CONFIRMED: 5,
    DiningStatus.ARRIVED: 10,
    DiningStatus.SEATED: 20,
    DiningStatus.ORDERED: 30,
    DiningStatus.APPETIZERS: 50,
    DiningStatus.MAIN_COURSE: 70,
    DiningStatus.DESSERT: 85,
    DiningStatus.PAYMENT: 95,
    DiningStatus.COMPLETED: 100,
    DiningStatus.NO_SHOW: 100,
    DiningStatus.CANCELLED_BY_USER: 100,
    DiningStatus.CANCELLED_BY_RESTAURANT: 100,
}


@dataclass
class TransitionResult:
    """Outcome of an accepted status change"""
    booking: BookingRead
    history: StatusHistoryRecord


def is_terminal(status: DiningStatus) -> bool:
    return status in TERMINAL_STATUSES


def is_physically_present(status: DiningStatus) -> bool:
    return status in PHYSICALLY_PRESENT_STATUSES


def forward_successor(status: DiningStatus) -> Optional[DiningStatus]:
    """Next status on the forward chain, if any"""
    if status not in FORWARD_CHAIN:
        return None
    index = FORWARD_CHAIN.index(status)
    if index + 1 < len(FORWARD_CHAIN):
        return FORWARD_CHAIN[index + 1]
    return None


def next_statuses(status: DiningStatus) -> List[DiningStatus]:
    """All statuses a booking may move to from ``status``"""
    if is_terminal(status):
        return []

    allowed = []
    successor = forward_successor(status)
    if successor is not None:
        allowed.append(successor)
    if status in NO_SHOW_SOURCES:
        allowed.append(DiningStatus.NO_SHOW)
    allowed.extend(
        s for s in (DiningStatus.CANCELLED_BY_USER, DiningStatus.CANCELLED_BY_RESTAURANT)
    )
    return allowed


def can_transition(current: DiningStatus, new_status: DiningStatus) -> Tuple[bool, Optional[str]]:
    """Check a status change without raising"""
    if is_terminal(current):
        return False, f"Booking is already {current.value}; no further changes allowed"
    if new_status not in next_statuses(current):
        return False, f"Invalid status transition from {current.value} to {new_status.value}"
    return True, None


def validate_transition(current: DiningStatus, new_status: DiningStatus):
    """Raise InvalidStatusTransitionError unless the change is allowed"""
    allowed, reason = can_transition(current, new_status)
    if not allowed:
        raise InvalidStatusTransitionError(reason)


def transition(
    booking: BookingRead,
    new_status: DiningStatus,
    actor_id: Optional[str],
    now: datetime,
    reason: Optional[str] = None,
) -> TransitionResult:
    """
    Move a booking to ``new_status``.

    Returns a copy of the booking with the new status and the history record
    to append. The input booking is left untouched, so a rejected change has
    no effect at all.
    """
    validate_transition(booking.status, new_status)

    updates = {"status": new_status}
    if new_status == DiningStatus.ARRIVED:
        updates["checked_in_at"] = now

    history = StatusHistoryRecord(
        booking_id=booking.id,
        old_status=booking.status,
        new_status=new_status,
        changed_at=now,
        changed_by=actor_id,
        reason=reason,
    )

    logger.debug(
        f"Booking {booking.id}: {booking.status.value} -> {new_status.value} by {actor_id}"
    )
    return TransitionResult(booking=booking.model_copy(update=updates), history=history)


def dining_progress(status: DiningStatus) -> int:
    """How far through the meal a booking is, 0-100"""
    return DINING_PROGRESS[status]


def estimate_remaining_minutes(status: DiningStatus, turn_time_minutes: int) -> int:
    """Expected minutes left at the table, from the meal stage alone"""
    elapsed = dining_progress(status) / 100 * turn_time_minutes
    return max(0, round(turn_time_minutes - elapsed))
