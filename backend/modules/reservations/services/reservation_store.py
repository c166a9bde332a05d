# backend/modules/reservations/services/reservation_store.py

"""
Booking and waitlist reads and writes.

Every write is one transaction; there are no version checks, so concurrent
editors overwrite each other (last write wins).
"""

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional
import random
import re
import string
import logging

from core.exceptions import NotFoundError, StorageError
from ..models.reservation_models import (
    Booking,
    BookingStatusHistory,
    BookingTable,
    DiningStatus,
    WaitlistEntry,
    WaitlistStatus,
)
from ..schemas.reservation_schemas import BookingCreate, BookingRead, WaitlistEntryRead

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


def confirmation_prefix(restaurant_id: str) -> str:
    """First four alphanumerics of the restaurant id, upper-cased"""
    cleaned = re.sub(r"[^A-Za-z0-9]", "", restaurant_id or "").upper()
    return cleaned[:4].ljust(4, "X")


class ReservationStore:
    """Storage access for bookings, their tables and history, and the waitlist"""

    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, error: SQLAlchemyError):
        self.db.rollback()
        logger.error(f"Failed to {action}: {error}")
        raise StorageError(f"Failed to {action}") from error

    # Bookings
    def list_bookings(
        self, restaurant_id: str, start: datetime, end: datetime
    ) -> List[BookingRead]:
        """Bookings with ``start <= booking_time < end``, table ids included"""
        try:
            bookings = self.db.query(Booking).filter(
                Booking.restaurant_id == restaurant_id,
                Booking.booking_time >= start,
                Booking.booking_time < end,
            ).order_by(Booking.booking_time).all()
        except SQLAlchemyError as e:
            self._fail(f"load bookings for restaurant {restaurant_id}", e)
        return [BookingRead.model_validate(b) for b in bookings]

    def _get_booking_row(self, booking_id: str) -> Booking:
        try:
            booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        except SQLAlchemyError as e:
            self._fail(f"load booking {booking_id}", e)
        if not booking:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    def get_booking(self, booking_id: str) -> BookingRead:
        return BookingRead.model_validate(self._get_booking_row(booking_id))

    def get_status_history(self, booking_id: str) -> List[BookingStatusHistory]:
        try:
            return self.db.query(BookingStatusHistory).filter(
                BookingStatusHistory.booking_id == booking_id
            ).order_by(BookingStatusHistory.changed_at).all()
        except SQLAlchemyError as e:
            self._fail(f"load status history of booking {booking_id}", e)

    def generate_confirmation_code(self, restaurant_id: str) -> str:
        """Generate a unique confirmation code"""
        prefix = confirmation_prefix(restaurant_id)
        while True:
            code = f"{prefix}{''.join(random.choices(CODE_ALPHABET, k=6))}"
            if not self.db.query(Booking).filter_by(confirmation_code=code).first():
                return code

    def update_booking_status(
        self,
        booking_id: str,
        new_status: DiningStatus,
        actor_id: Optional[str],
        changed_at: datetime,
        reason: Optional[str] = None,
    ) -> BookingRead:
        """Write the new status and its history row together"""
        booking = self._get_booking_row(booking_id)
        old_status = self._apply_status(booking, new_status, actor_id, changed_at, reason)
        self._commit(booking, f"update status of booking {booking_id}")

        logger.info(
            f"Booking {booking_id} moved from {old_status.value} to {new_status.value} by {actor_id}"
        )
        return BookingRead.model_validate(booking)

    def assign_tables(self, booking_id: str, table_ids: Iterable[str]) -> BookingRead:
        """Replace the booking's table assignment"""
        booking = self._get_booking_row(booking_id)
        wanted = self._apply_tables(booking, table_ids)
        self._commit(booking, f"assign tables to booking {booking_id}")

        logger.info(f"Booking {booking_id} assigned to tables {wanted}")
        return BookingRead.model_validate(booking)

    def check_in_booking(
        self,
        booking_id: str,
        table_ids: Iterable[str],
        actor_id: Optional[str],
        checked_in_at: datetime,
        party_size: Optional[int] = None,
    ) -> BookingRead:
        """Seat the party: tables, arrived status and history in one transaction"""
        booking = self._get_booking_row(booking_id)
        wanted = self._apply_tables(booking, table_ids)
        if party_size is not None:
            booking.party_size = party_size
        old_status = self._apply_status(
            booking, DiningStatus.ARRIVED, actor_id, checked_in_at, "Checked in"
        )
        self._commit(booking, f"check in booking {booking_id}")

        logger.info(
            f"Booking {booking_id} checked in from {old_status.value} on tables {wanted} "
            f"(party of {booking.party_size}) by {actor_id}"
        )
        return BookingRead.model_validate(booking)

    def _apply_status(self, booking, new_status, actor_id, changed_at, reason):
        old_status = booking.status
        booking.status = new_status
        if new_status == DiningStatus.ARRIVED and booking.checked_in_at is None:
            booking.checked_in_at = changed_at

        self.db.add(BookingStatusHistory(
            booking_id=booking.id,
            old_status=old_status,
            new_status=new_status,
            changed_at=changed_at,
            changed_by=actor_id,
            reason=reason,
        ))
        return old_status

    def _apply_tables(self, booking, table_ids) -> List[str]:
        # Rows for tables that stay are kept so the unique pair is never re-inserted
        wanted = list(dict.fromkeys(table_ids))
        kept = {a.table_id: a for a in booking.table_assignments if a.table_id in wanted}
        booking.table_assignments = [
            kept.get(table_id) or BookingTable(table_id=table_id) for table_id in wanted
        ]
        return wanted

    def _commit(self, row, action: str):
        try:
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self._fail(action, e)

    def insert_booking(
        self, payload: BookingCreate, actor_id: Optional[str], created_at: datetime
    ) -> BookingRead:
        """
        Create a booking with its tables and initial history row.

        When the booking comes from the waitlist, the entry is marked booked
        in the same transaction.
        """
        booking = Booking(
            restaurant_id=payload.restaurant_id,
            user_id=payload.user_id,
            guest_name=payload.guest_name,
            guest_phone=payload.guest_phone,
            guest_email=payload.guest_email,
            booking_time=payload.booking_time,
            turn_time_minutes=payload.turn_time_minutes,
            party_size=payload.party_size,
            status=payload.status,
            confirmation_code=self.generate_confirmation_code(payload.restaurant_id),
            source=payload.source,
            special_requests=payload.special_requests,
            waitlist_entry_id=payload.waitlist_entry_id,
        )
        booking.table_assignments = [
            BookingTable(table_id=table_id)
            for table_id in dict.fromkeys(payload.table_ids)
        ]

        try:
            self.db.add(booking)
            self.db.flush()
            self.db.add(BookingStatusHistory(
                booking_id=booking.id,
                old_status=None,
                new_status=payload.status,
                changed_at=created_at,
                changed_by=actor_id,
                reason=f"Created from {payload.source}",
            ))
            if payload.waitlist_entry_id:
                entry = self._get_waitlist_row(payload.waitlist_entry_id)
                entry.status = WaitlistStatus.BOOKED
                entry.notified_at = None
                entry.notification_expires_at = None
            self.db.commit()
            self.db.refresh(booking)
        except SQLAlchemyError as e:
            self._fail(f"create booking for restaurant {payload.restaurant_id}", e)

        logger.info(
            f"Created booking {booking.id} ({booking.confirmation_code}) for party of "
            f"{booking.party_size} at {booking.booking_time}"
        )
        return BookingRead.model_validate(booking)

    # Waitlist
    def list_waitlist(
        self, restaurant_id: str, start_date: date, end_date: date
    ) -> List[WaitlistEntryRead]:
        """Entries desired between the two dates, both inclusive"""
        try:
            entries = self.db.query(WaitlistEntry).filter(
                WaitlistEntry.restaurant_id == restaurant_id,
                WaitlistEntry.desired_date >= start_date,
                WaitlistEntry.desired_date <= end_date,
            ).order_by(WaitlistEntry.desired_date, WaitlistEntry.created_at).all()
        except SQLAlchemyError as e:
            self._fail(f"load waitlist for restaurant {restaurant_id}", e)
        return [WaitlistEntryRead.model_validate(e) for e in entries]

    def list_notified_waitlist(self, restaurant_id: str) -> List[WaitlistEntryRead]:
        """Entries with a response window running, whatever their date"""
        try:
            entries = self.db.query(WaitlistEntry).filter(
                WaitlistEntry.restaurant_id == restaurant_id,
                WaitlistEntry.status == WaitlistStatus.NOTIFIED,
            ).all()
        except SQLAlchemyError as e:
            self._fail(f"load notified waitlist for restaurant {restaurant_id}", e)
        return [WaitlistEntryRead.model_validate(e) for e in entries]

    def _get_waitlist_row(self, entry_id: str) -> WaitlistEntry:
        try:
            entry = self.db.query(WaitlistEntry).filter(WaitlistEntry.id == entry_id).first()
        except SQLAlchemyError as e:
            self._fail(f"load waitlist entry {entry_id}", e)
        if not entry:
            raise NotFoundError(f"Waitlist entry {entry_id} not found")
        return entry

    def get_waitlist_entry(self, entry_id: str) -> WaitlistEntryRead:
        return WaitlistEntryRead.model_validate(self._get_waitlist_row(entry_id))

    def update_waitlist_entry(self, entry_id: str, patch: Dict[str, Any]) -> WaitlistEntryRead:
        entry = self._get_waitlist_row(entry_id)
        for field, value in patch.items():
            setattr(entry, field, value)
        try:
            self.db.commit()
            self.db.refresh(entry)
        except SQLAlchemyError as e:
            self._fail(f"update waitlist entry {entry_id}", e)

        logger.info(f"Waitlist entry {entry_id} updated: {sorted(patch)}")
        return WaitlistEntryRead.model_validate(entry)

    def expire_waitlist_entries(self, entry_ids: Iterable[str]) -> int:
        """Mark entries expired; entries no longer notified are left alone"""
        ids = list(entry_ids)
        if not ids:
            return 0
        try:
            count = self.db.query(WaitlistEntry).filter(
                WaitlistEntry.id.in_(ids),
                WaitlistEntry.status == WaitlistStatus.NOTIFIED,
            ).update({WaitlistEntry.status: WaitlistStatus.EXPIRED}, synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail("expire waitlist entries", e)

        if count:
            logger.info(f"Expired {count} waitlist notifications")
        return count
