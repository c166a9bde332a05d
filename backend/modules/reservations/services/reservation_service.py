# backend/modules/reservations/services/reservation_service.py

"""
Booking actions from the host stand: status changes, check-in and table
switches.
"""

from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence
import logging

from core.clock import restaurant_now
from core.config import settings
from core.exceptions import ConflictError, InvalidStatusTransitionError, ValidationError
from modules.tables.services.floor_plan_service import FloorPlanService
from ..models.reservation_models import DiningStatus
from ..schemas.reservation_schemas import BookingRead, TransitionOptionsResponse
from .dining_status import dining_progress, is_terminal, next_statuses, transition
from .reservation_store import ReservationStore

logger = logging.getLogger(__name__)


class ReservationService:
    """Service for changing bookings on the live floor"""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or restaurant_now
        self.store = ReservationStore(db)
        self.floor_plan = FloorPlanService(db, self.clock)

    def get_booking(self, booking_id: str) -> BookingRead:
        return self.store.get_booking(booking_id)

    def get_transition_options(self, booking_id: str) -> TransitionOptionsResponse:
        booking = self.store.get_booking(booking_id)
        return TransitionOptionsResponse(
            booking_id=booking.id,
            current_status=booking.status,
            allowed=next_statuses(booking.status),
            progress=dining_progress(booking.status),
        )

    def change_status(
        self,
        booking_id: str,
        new_status: DiningStatus,
        actor_id: str,
        reason: Optional[str] = None,
    ) -> BookingRead:
        """Apply one lifecycle step; nothing is written when it is not allowed"""
        booking = self.store.get_booking(booking_id)
        now = self.clock()

        try:
            result = transition(booking, new_status, actor_id, now, reason=reason)
        except InvalidStatusTransitionError as e:
            logger.warning(f"Rejected status change for booking {booking_id}: {e.detail}")
            raise

        return self.store.update_booking_status(
            booking_id,
            result.history.new_status,
            actor_id,
            result.history.changed_at,
            reason=reason,
        )

    def _check_tables_free(
        self, booking: BookingRead, table_ids: Sequence[str], now: datetime
    ) -> List[str]:
        """Active tables of the booking's restaurant not held by another party"""
        wanted = list(dict.fromkeys(table_ids))
        if not wanted:
            raise ValidationError("Select at least one table")

        tables, _, snapshot = self.floor_plan.load_snapshot(booking.restaurant_id, now)
        known = {t.id for t in tables}
        missing = [tid for tid in wanted if tid not in known]
        if missing:
            raise ValidationError(f"Tables not available for seating: {missing}")

        for table_id in wanted:
            occupancy = snapshot.get(table_id)
            if occupancy.current is not None and occupancy.current.id != booking.id:
                raise ConflictError(
                    f"Table {occupancy.table.table_number} is occupied",
                    error_code="TABLE_OCCUPIED",
                )
        return wanted

    def check_in(
        self,
        booking_id: str,
        table_ids: Sequence[str],
        actor_id: str,
        actual_party_size: Optional[int] = None,
    ) -> BookingRead:
        """
        Mark the party arrived and put them on the chosen tables.

        Guests may check in at most ``check_in_lead_minutes`` before their
        booking time. The party size can be corrected at the door.
        """
        booking = self.store.get_booking(booking_id)
        now = self.clock()

        try:
            transition(booking, DiningStatus.ARRIVED, actor_id, now)
            earliest = booking.booking_time - timedelta(minutes=settings.check_in_lead_minutes)
            if now < earliest:
                raise ValidationError(
                    f"Check-in opens {settings.check_in_lead_minutes} minutes before "
                    f"the booking ({earliest:%H:%M})",
                    error_code="CHECK_IN_TOO_EARLY",
                )
            if actual_party_size is not None and actual_party_size < 1:
                raise ValidationError("Party size must be at least 1")
            wanted = self._check_tables_free(booking, table_ids, now)
        except (ValidationError, ConflictError) as e:
            logger.warning(f"Rejected check-in for booking {booking_id}: {e.detail}")
            raise

        return self.store.check_in_booking(
            booking_id, wanted, actor_id, now, party_size=actual_party_size
        )

    def switch_tables(
        self,
        booking_id: str,
        table_ids: Sequence[str],
        actor_id: str,
        reason: Optional[str] = None,
    ) -> BookingRead:
        """Move a party that is still expected or seated to other tables"""
        booking = self.store.get_booking(booking_id)
        now = self.clock()

        if is_terminal(booking.status):
            raise ValidationError(
                f"Booking is {booking.status.value}; tables can no longer change"
            )
        try:
            wanted = self._check_tables_free(booking, table_ids, now)
        except (ValidationError, ConflictError) as e:
            logger.warning(f"Rejected table switch for booking {booking_id}: {e.detail}")
            raise

        updated = self.store.assign_tables(booking_id, wanted)
        logger.info(
            f"Booking {booking_id} switched from {booking.table_ids} to {wanted} "
            f"by {actor_id}" + (f": {reason}" if reason else "")
        )
        return updated
