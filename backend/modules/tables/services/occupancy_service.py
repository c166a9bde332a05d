# backend/modules/tables/services/occupancy_service.py

"""
Occupancy resolver for the live floor plan.

Pure functions over already-loaded tables and bookings: the poller, the HTTP
routes and any push channel feed the same inputs and get the same snapshot.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Sequence
import logging

from core.clock import start_of_day
from core.config import settings
from modules.reservations.models.reservation_models import DiningStatus
from modules.reservations.schemas.reservation_schemas import BookingRead
from modules.reservations.services.dining_status import (
    PHYSICALLY_PRESENT_STATUSES,
    dining_progress,
)
from ..schemas.table_schemas import TableRead

logger = logging.getLogger(__name__)


UPCOMING_STATUSES = frozenset({DiningStatus.CONFIRMED, DiningStatus.PENDING})
HISTORY_STATUSES = frozenset({DiningStatus.COMPLETED, DiningStatus.NO_SHOW})
ASSIGNABLE_STATUSES = frozenset({DiningStatus.CONFIRMED}) | PHYSICALLY_PRESENT_STATUSES


@dataclass
class OccupancyAnomaly:
    """More than one seated party claims the same table"""
    table_id: str
    booking_ids: List[str]
    chosen_booking_id: str


@dataclass
class TableOccupancy:
    table: TableRead
    current: Optional[BookingRead] = None
    upcoming: Optional[BookingRead] = None
    all_upcoming: List[BookingRead] = field(default_factory=list)
    recent_history: List[BookingRead] = field(default_factory=list)
    can_accept_walk_in: bool = False

    @property
    def table_id(self) -> str:
        return self.table.id

    @property
    def is_occupied(self) -> bool:
        return self.current is not None

    @property
    def estimated_completion(self) -> Optional[datetime]:
        if self.current is None:
            return None
        return booking_end(self.current)

    @property
    def dining_progress(self) -> Optional[int]:
        if self.current is None:
            return None
        return dining_progress(self.current.status)


@dataclass
class OccupancySnapshot:
    generated_at: datetime
    tables: List[TableOccupancy]
    occupied_count: int
    available_count: int
    occupancy_rate: int
    anomalies: List[OccupancyAnomaly] = field(default_factory=list)

    def get(self, table_id: str) -> Optional[TableOccupancy]:
        for occupancy in self.tables:
            if occupancy.table_id == table_id:
                return occupancy
        return None

    def is_occupied(self, table_id: str) -> bool:
        occupancy = self.get(table_id)
        return occupancy is not None and occupancy.is_occupied


@dataclass
class SectionStats:
    section_id: Optional[str]
    table_count: int
    occupied_count: int
    available_count: int
    occupancy_rate: int


@dataclass
class BookingDelta:
    """Changes pushed by a real-time channel between two full loads"""
    upserted: List[BookingRead] = field(default_factory=list)
    deleted_ids: List[str] = field(default_factory=list)


def booking_end(booking: BookingRead) -> datetime:
    return booking.booking_time + timedelta(minutes=booking.turn_time_minutes)


def window_contains(booking: BookingRead, moment: datetime) -> bool:
    """Half-open ``[booking_time, booking_time + turn)`` membership"""
    return booking.booking_time <= moment < booking_end(booking)


def occupancy_rate(occupied: int, total: int) -> int:
    """Whole percentage, halves rounded up"""
    if total <= 0:
        return 0
    rate = Decimal(100 * occupied) / Decimal(total)
    return int(rate.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _latest(bookings: Sequence[BookingRead]) -> BookingRead:
    return max(bookings, key=lambda b: (b.booking_time, b.id))


def _resolve_current(
    table: TableRead, bookings: Sequence[BookingRead], now: datetime
):
    present = [b for b in bookings if b.status in PHYSICALLY_PRESENT_STATUSES]
    if present:
        chosen = _latest(present)
        anomaly = None
        if len(present) > 1:
            anomaly = OccupancyAnomaly(
                table_id=table.id,
                booking_ids=sorted(b.id for b in present),
                chosen_booking_id=chosen.id,
            )
            logger.warning(
                f"Table {table.table_number} ({table.id}) has {len(present)} "
                f"seated bookings {anomaly.booking_ids}; showing {chosen.id}"
            )
        return chosen, anomaly

    in_window = [
        b for b in bookings
        if b.status == DiningStatus.CONFIRMED and window_contains(b, now)
    ]
    if in_window:
        return _latest(in_window), None
    return None, None


def resolve_table(
    table: TableRead,
    bookings: Sequence[BookingRead],
    now: datetime,
    walk_in_buffer_minutes: Optional[int] = None,
    max_upcoming: Optional[int] = None,
    max_history: Optional[int] = None,
):
    """Occupancy of one table from the bookings assigned to it"""
    if walk_in_buffer_minutes is None:
        walk_in_buffer_minutes = settings.walk_in_buffer_minutes
    if max_upcoming is None:
        max_upcoming = settings.max_upcoming_per_table
    if max_history is None:
        max_history = settings.max_history_per_table

    assigned = [b for b in bookings if table.id in b.table_ids]
    current, anomaly = _resolve_current(table, assigned, now)

    upcoming = sorted(
        (b for b in assigned if b.status in UPCOMING_STATUSES and b.booking_time > now),
        key=lambda b: (b.booking_time, b.id),
    )[:max_upcoming]

    day_start = start_of_day(now)
    history = sorted(
        (
            b for b in assigned
            if b.status in HISTORY_STATUSES and day_start <= b.booking_time < now
        ),
        key=lambda b: (b.booking_time, b.id),
        reverse=True,
    )[:max_history]

    next_booking = upcoming[0] if upcoming else None
    can_accept_walk_in = current is None and (
        next_booking is None
        or next_booking.booking_time - now > timedelta(minutes=walk_in_buffer_minutes)
    )

    occupancy = TableOccupancy(
        table=table,
        current=current,
        upcoming=next_booking,
        all_upcoming=upcoming,
        recent_history=history,
        can_accept_walk_in=can_accept_walk_in,
    )
    return occupancy, anomaly


def resolve_occupancy(
    tables: Iterable[TableRead],
    bookings: Sequence[BookingRead],
    now: datetime,
    walk_in_buffer_minutes: Optional[int] = None,
    max_upcoming: Optional[int] = None,
    max_history: Optional[int] = None,
) -> OccupancySnapshot:
    """
    Compute who sits where at ``now``.

    Inactive tables are left out. Bookings may be in any order and may
    reference unknown tables; such references are ignored.

    Args:
        tables: Tables of one restaurant
        bookings: Bookings with their table ids, usually today's
        now: Restaurant-local reference time

    Returns:
        OccupancySnapshot with one entry per active table
    """
    occupancies = []
    anomalies = []
    for table in tables:
        if not table.is_active:
            continue
        occupancy, anomaly = resolve_table(
            table,
            bookings,
            now,
            walk_in_buffer_minutes=walk_in_buffer_minutes,
            max_upcoming=max_upcoming,
            max_history=max_history,
        )
        occupancies.append(occupancy)
        if anomaly is not None:
            anomalies.append(anomaly)

    occupied = sum(1 for o in occupancies if o.is_occupied)
    total = len(occupancies)
    return OccupancySnapshot(
        generated_at=now,
        tables=occupancies,
        occupied_count=occupied,
        available_count=total - occupied,
        occupancy_rate=occupancy_rate(occupied, total),
        anomalies=anomalies,
    )


def section_stats(snapshot: OccupancySnapshot) -> List[SectionStats]:
    """Per-section counts in first-seen order; unsectioned tables group under None"""
    grouped: Dict[Optional[str], List[TableOccupancy]] = {}
    for occupancy in snapshot.tables:
        grouped.setdefault(occupancy.table.section_id, []).append(occupancy)

    stats = []
    for section_id, members in grouped.items():
        occupied = sum(1 for o in members if o.is_occupied)
        stats.append(SectionStats(
            section_id=section_id,
            table_count=len(members),
            occupied_count=occupied,
            available_count=len(members) - occupied,
            occupancy_rate=occupancy_rate(occupied, len(members)),
        ))
    return stats


def bookings_needing_assignment(
    bookings: Iterable[BookingRead], now: datetime
) -> List[BookingRead]:
    """Today's confirmed or seated bookings that still have no table"""
    today = now.date()
    pending = [
        b for b in bookings
        if b.status in ASSIGNABLE_STATUSES
        and not b.table_ids
        and b.booking_time.date() == today
    ]
    return sorted(pending, key=lambda b: (b.booking_time, b.id))


def merge_booking_delta(
    bookings: Iterable[BookingRead], delta: BookingDelta
) -> List[BookingRead]:
    """Apply pushed upserts and deletions to a loaded booking list"""
    deleted = set(delta.deleted_ids)
    merged = {b.id: b for b in bookings if b.id not in deleted}
    for booking in delta.upserted:
        if booking.id in deleted:
            continue
        merged[booking.id] = booking
    return list(merged.values())
