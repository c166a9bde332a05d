# backend/modules/reservations/services/waitlist_service.py

"""
Waitlist matching, urgency and conversion.

The module-level functions are pure and work on already-loaded entries,
tables and an occupancy snapshot. ``WaitlistService`` wires them to the
store and the restaurant clock.
"""

from sqlalchemy.orm import Session
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence
import logging

from core.clock import restaurant_now
from core.config import settings
from core.exceptions import (
    ConflictError,
    InvalidWaitlistTransitionError,
    NoAvailabilityError,
    ValidationError,
)
from modules.tables.schemas.table_schemas import TableCombinationRead, TableRead
from modules.tables.services.availability_service import (
    best_fit_table,
    find_schedule_conflicts,
)
from modules.tables.services.combination_service import find_declared_combination
from modules.tables.services.floor_plan_service import FloorPlanService
from modules.tables.services.occupancy_service import OccupancySnapshot
from modules.tables.services.table_store import TableStore
from ..models.reservation_models import DiningStatus, WaitlistStatus
from ..schemas.reservation_schemas import (
    ANY_TABLE_TYPE,
    BookingCreate,
    BookingRead,
    ConversionResponse,
    WaitlistBoardResponse,
    WaitlistConversionRequest,
    WaitlistEntryRead,
    WaitlistEntryView,
    WaitlistUrgency,
)
from .reservation_store import ReservationStore

logger = logging.getLogger(__name__)


NOTIFICATION_WINDOW = timedelta(minutes=15)
SLOT_INCREMENT = timedelta(minutes=30)

URGENT_WITHIN_MINUTES = 15
SOON_WITHIN_MINUTES = 30

WAITLIST_TRANSITIONS: Dict[WaitlistStatus, FrozenSet[WaitlistStatus]] = {
    WaitlistStatus.ACTIVE: frozenset({
        WaitlistStatus.NOTIFIED,
        WaitlistStatus.BOOKED,
        WaitlistStatus.CANCELLED,
    }),
    WaitlistStatus.NOTIFIED: frozenset({
        WaitlistStatus.BOOKED,
        WaitlistStatus.EXPIRED,
        WaitlistStatus.CANCELLED,
        WaitlistStatus.ACTIVE,
    }),
    WaitlistStatus.BOOKED: frozenset(),
    WaitlistStatus.EXPIRED: frozenset(),
    WaitlistStatus.CANCELLED: frozenset(),
}

OPEN_STATUSES = frozenset({WaitlistStatus.ACTIVE, WaitlistStatus.NOTIFIED})


@dataclass
class SweepResult:
    entries: List[WaitlistEntryRead]
    expired_ids: List[str] = field(default_factory=list)


def validate_waitlist_transition(current: WaitlistStatus, new_status: WaitlistStatus):
    if new_status not in WAITLIST_TRANSITIONS[current]:
        raise InvalidWaitlistTransitionError(
            f"Waitlist entry cannot move from {current.value} to {new_status.value}"
        )


def desired_start(entry: WaitlistEntryRead) -> datetime:
    start, _ = entry.time_window
    return datetime.combine(entry.desired_date, start)


def minutes_until(entry: WaitlistEntryRead, now: datetime) -> int:
    """Whole minutes to the start of the desired range, truncated toward zero"""
    seconds = int((desired_start(entry) - now).total_seconds())
    minutes = abs(seconds) // 60
    return minutes if seconds >= 0 else -minutes


def classify_minutes(minutes: int) -> WaitlistUrgency:
    if minutes < 0:
        return WaitlistUrgency.OVERDUE
    if minutes <= URGENT_WITHIN_MINUTES:
        return WaitlistUrgency.URGENT
    if minutes <= SOON_WITHIN_MINUTES:
        return WaitlistUrgency.SOON
    return WaitlistUrgency.NORMAL


def classify_urgency(entry: WaitlistEntryRead, now: datetime) -> WaitlistUrgency:
    return classify_minutes(minutes_until(entry, now))


def has_availability(
    entry: WaitlistEntryRead, tables: Iterable[TableRead], snapshot: OccupancySnapshot
) -> bool:
    """Some active table seats the party and is free right now"""
    for table in tables:
        if not table.is_active or table.max_capacity < entry.party_size:
            continue
        occupancy = snapshot.get(table.id)
        if occupancy is not None and not occupancy.is_occupied:
            return True
    return False


def notify(
    entry: WaitlistEntryRead,
    tables: Iterable[TableRead],
    snapshot: OccupancySnapshot,
    now: datetime,
) -> WaitlistEntryRead:
    """Start the response window; the input entry is left untouched"""
    if entry.status != WaitlistStatus.ACTIVE:
        raise InvalidWaitlistTransitionError(
            f"Only active entries can be notified (entry is {entry.status.value})"
        )
    if not has_availability(entry, tables, snapshot):
        raise NoAvailabilityError(
            f"No free table seats a party of {entry.party_size}"
        )
    return entry.model_copy(update={
        "status": WaitlistStatus.NOTIFIED,
        "notified_at": now,
        "notification_expires_at": now + NOTIFICATION_WINDOW,
    })


def is_notification_expired(entry: WaitlistEntryRead, now: datetime) -> bool:
    return (
        entry.status == WaitlistStatus.NOTIFIED
        and entry.notification_expires_at is not None
        and entry.notification_expires_at < now
    )


def sweep_expired(entries: Iterable[WaitlistEntryRead], now: datetime) -> SweepResult:
    """Reclassify notified entries whose window has passed; safe to repeat"""
    swept = []
    expired_ids = []
    for entry in entries:
        if is_notification_expired(entry, now):
            expired_ids.append(entry.id)
            entry = entry.model_copy(update={"status": WaitlistStatus.EXPIRED})
        swept.append(entry)
    return SweepResult(entries=swept, expired_ids=expired_ids)


def generate_time_slots(entry: WaitlistEntryRead) -> List[time]:
    """Half-hour starts from the range start up to, not including, its end"""
    start, end = entry.time_window
    cursor = datetime.combine(entry.desired_date, start)
    limit = datetime.combine(entry.desired_date, end)
    slots = []
    while cursor < limit:
        slots.append(cursor.time())
        cursor += SLOT_INCREMENT
    return slots


def selection_capacity(
    selected: Sequence[TableRead], combinations: Iterable[TableCombinationRead]
) -> int:
    """Seats offered by the chosen tables, honouring a declared combination"""
    combination = find_declared_combination([t.id for t in selected], combinations)
    if combination is not None:
        return combination.combined_capacity
    return sum(t.max_capacity for t in selected)


def _require_open(entry: WaitlistEntryRead, now: datetime):
    if entry.status not in OPEN_STATUSES or is_notification_expired(entry, now):
        status = WaitlistStatus.EXPIRED if is_notification_expired(entry, now) else entry.status
        raise InvalidWaitlistTransitionError(
            f"Waitlist entry is {status.value} and cannot be converted"
        )


def plan_conversion(
    entry: WaitlistEntryRead,
    slot: time,
    table_ids: Sequence[str],
    tables: Iterable[TableRead],
    bookings: Iterable[BookingRead],
    now: datetime,
    combinations: Iterable[TableCombinationRead] = (),
    turn_time_minutes: Optional[int] = None,
) -> BookingCreate:
    """
    Check an explicit conversion and build the booking to insert.

    Raises:
        InvalidWaitlistTransitionError: entry is not open, or its notification lapsed
        ValidationError: slot outside the desired range, unknown or inactive tables
        NoAvailabilityError: selected tables cannot seat the party
        ConflictError: another live booking overlaps the slot on a selected table
    """
    _require_open(entry, now)
    if turn_time_minutes is None:
        turn_time_minutes = settings.default_turn_time_minutes

    if slot not in generate_time_slots(entry):
        raise ValidationError(
            f"Slot {slot.strftime('%H:%M')} is not within {entry.desired_time_range}"
        )

    wanted = list(dict.fromkeys(table_ids))
    if not wanted:
        raise ValidationError("Select at least one table")

    by_id = {t.id: t for t in tables if t.is_active}
    missing = [tid for tid in wanted if tid not in by_id]
    if missing:
        raise ValidationError(f"Tables not available for booking: {missing}")
    selected = [by_id[tid] for tid in wanted]

    capacity = selection_capacity(selected, combinations)
    if capacity < entry.party_size:
        raise NoAvailabilityError(
            f"Selected tables seat {capacity}, party of {entry.party_size}"
        )

    booking_time = datetime.combine(entry.desired_date, slot)
    conflicts = find_schedule_conflicts(wanted, booking_time, turn_time_minutes, bookings)
    if conflicts:
        raise ConflictError(
            f"Selected tables are booked at {slot.strftime('%H:%M')}",
            error_code="SCHEDULE_CONFLICT",
        )

    return BookingCreate(
        restaurant_id=entry.restaurant_id,
        user_id=entry.user_id,
        guest_name=None if entry.user_id else entry.display_name,
        guest_phone=None if entry.user_id else entry.guest_phone,
        guest_email=None if entry.user_id else entry.guest_email,
        booking_time=booking_time,
        turn_time_minutes=turn_time_minutes,
        party_size=entry.party_size,
        status=DiningStatus.CONFIRMED,
        special_requests=entry.special_requests,
        source="waitlist",
        waitlist_entry_id=entry.id,
        table_ids=wanted,
    )


def auto_select_tables(
    entry: WaitlistEntryRead, tables: Iterable[TableRead], snapshot: OccupancySnapshot
) -> TableRead:
    """Best fitting free single table matching the entry's type preference"""
    candidates = [
        t for t in tables
        if entry.table_type == ANY_TABLE_TYPE or t.table_type.value == entry.table_type
    ]
    table = best_fit_table(candidates, entry.party_size, snapshot)
    if table is None:
        raise NoAvailabilityError(
            f"No free table seats a party of {entry.party_size}"
        )
    return table


def build_board(
    entries: Iterable[WaitlistEntryRead],
    tables: Sequence[TableRead],
    snapshot: OccupancySnapshot,
    now: datetime,
) -> List[WaitlistEntryView]:
    """Open entries decorated with urgency and availability, soonest first"""
    views = [
        WaitlistEntryView(
            entry=entry,
            urgency=classify_urgency(entry, now),
            has_availability=has_availability(entry, tables, snapshot),
        )
        for entry in entries
        if entry.status in OPEN_STATUSES
    ]
    return sorted(views, key=lambda v: (desired_start(v.entry), v.entry.id))


class WaitlistService:
    """Waitlist actions against the store"""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or restaurant_now
        self.reservations = ReservationStore(db)
        self.tables = TableStore(db)
        self.floor_plan = FloorPlanService(db, self.clock)

    def _floor_state(self, restaurant_id: str, now: datetime):
        return self.floor_plan.load_snapshot(restaurant_id, now)

    def sweep(self, restaurant_id: str, now: Optional[datetime] = None) -> List[str]:
        """Expire lapsed notifications of the restaurant"""
        now = now or self.clock()
        entries = self.reservations.list_notified_waitlist(restaurant_id)
        result = sweep_expired(entries, now)
        self.reservations.expire_waitlist_entries(result.expired_ids)
        return result.expired_ids

    def get_board(
        self, restaurant_id: str, target_date: Optional[date] = None
    ) -> WaitlistBoardResponse:
        now = self.clock()
        expired_ids = self.sweep(restaurant_id, now)

        target_date = target_date or now.date()
        entries = self.reservations.list_waitlist(restaurant_id, target_date, target_date)
        tables, _, snapshot = self._floor_state(restaurant_id, now)
        views = build_board(entries, tables, snapshot, now)

        return WaitlistBoardResponse(
            restaurant_id=restaurant_id,
            generated_at=now,
            expired_ids=expired_ids,
            entries=views,
            active_count=sum(1 for v in views if v.entry.status == WaitlistStatus.ACTIVE),
            notified_count=sum(1 for v in views if v.entry.status == WaitlistStatus.NOTIFIED),
        )

    def _load_open_entry(self, entry_id: str, now: datetime) -> WaitlistEntryRead:
        entry = self.reservations.get_waitlist_entry(entry_id)
        if is_notification_expired(entry, now):
            self.reservations.expire_waitlist_entries([entry.id])
            entry = entry.model_copy(update={"status": WaitlistStatus.EXPIRED})
        return entry

    def notify_entry(self, entry_id: str, actor_id: str) -> WaitlistEntryRead:
        now = self.clock()
        entry = self._load_open_entry(entry_id, now)
        tables, _, snapshot = self._floor_state(entry.restaurant_id, now)

        try:
            notified = notify(entry, tables, snapshot, now)
        except (InvalidWaitlistTransitionError, NoAvailabilityError) as e:
            logger.warning(f"Notify rejected for waitlist entry {entry_id}: {e.detail}")
            raise

        updated = self.reservations.update_waitlist_entry(entry_id, {
            "status": notified.status,
            "notified_at": notified.notified_at,
            "notification_expires_at": notified.notification_expires_at,
        })
        logger.info(f"Waitlist entry {entry_id} notified by {actor_id} until {updated.notification_expires_at}")
        return updated

    def get_time_slots(self, entry_id: str) -> List[time]:
        return generate_time_slots(self.reservations.get_waitlist_entry(entry_id))

    def cancel_entry(self, entry_id: str, actor_id: str) -> WaitlistEntryRead:
        now = self.clock()
        entry = self._load_open_entry(entry_id, now)
        validate_waitlist_transition(entry.status, WaitlistStatus.CANCELLED)
        updated = self.reservations.update_waitlist_entry(entry_id, {
            "status": WaitlistStatus.CANCELLED,
            "notified_at": None,
            "notification_expires_at": None,
        })
        logger.info(f"Waitlist entry {entry_id} cancelled by {actor_id}")
        return updated

    def revert_entry(self, entry_id: str, actor_id: str) -> WaitlistEntryRead:
        """Put a notified entry back in the queue"""
        now = self.clock()
        entry = self._load_open_entry(entry_id, now)
        validate_waitlist_transition(entry.status, WaitlistStatus.ACTIVE)
        updated = self.reservations.update_waitlist_entry(entry_id, {
            "status": WaitlistStatus.ACTIVE,
            "notified_at": None,
            "notification_expires_at": None,
        })
        logger.info(f"Waitlist entry {entry_id} returned to the queue by {actor_id}")
        return updated

    def convert(
        self, entry_id: str, request: WaitlistConversionRequest
    ) -> ConversionResponse:
        """Book the entry on the slot and tables the host picked"""
        now = self.clock()
        entry = self._load_open_entry(entry_id, now)
        day_start = datetime.combine(entry.desired_date, time.min)
        tables = self.tables.list_active_tables(entry.restaurant_id)
        bookings = self.reservations.list_bookings(
            entry.restaurant_id, day_start - timedelta(days=1), day_start + timedelta(days=1)
        )
        combinations = self.tables.list_combinations(entry.restaurant_id)

        try:
            payload = plan_conversion(
                entry, request.slot, request.table_ids, tables, bookings, now,
                combinations=combinations,
            )
        except (ValidationError, ConflictError) as e:
            logger.warning(f"Conversion rejected for waitlist entry {entry_id}: {e.detail}")
            raise

        booking = self.reservations.insert_booking(payload, request.actor_id, now)
        logger.info(f"Waitlist entry {entry_id} converted to booking {booking.id}")
        return ConversionResponse(
            booking=booking,
            waitlist_entry=self.reservations.get_waitlist_entry(entry_id),
        )

    def quick_convert(self, entry_id: str, actor_id: str) -> ConversionResponse:
        """Book the first slot on the best fitting free table"""
        now = self.clock()
        entry = self._load_open_entry(entry_id, now)
        _require_open(entry, now)
        tables, _, snapshot = self._floor_state(entry.restaurant_id, now)
        table = auto_select_tables(entry, tables, snapshot)

        slots = generate_time_slots(entry)
        if not slots:
            raise ValidationError(f"No bookable slot in {entry.desired_time_range}")
        return self.convert(entry_id, WaitlistConversionRequest(
            slot=slots[0], table_ids=[table.id], actor_id=actor_id
        ))
