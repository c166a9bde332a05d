# backend/modules/tables/services/availability_service.py

"""
Availability checks against an occupancy snapshot.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from modules.reservations.models.reservation_models import DiningStatus
from modules.reservations.schemas.reservation_schemas import BookingRead
from modules.reservations.services.dining_status import PHYSICALLY_PRESENT_STATUSES
from ..schemas.table_schemas import TableCombinationRead, TableRead
from .occupancy_service import OccupancySnapshot, booking_end

BLOCKING_STATUSES = frozenset({DiningStatus.CONFIRMED}) | PHYSICALLY_PRESENT_STATUSES


def is_table_available(
    table: TableRead, party_size: int, snapshot: OccupancySnapshot
) -> bool:
    """Active, big enough, and nobody currently at it"""
    return (
        table.is_active
        and table.max_capacity >= party_size
        and not snapshot.is_occupied(table.id)
    )


def find_available_tables(
    tables: Iterable[TableRead], party_size: int, snapshot: OccupancySnapshot
) -> List[TableRead]:
    return [t for t in tables if is_table_available(t, party_size, snapshot)]


def best_fit_table(
    tables: Iterable[TableRead], party_size: int, snapshot: OccupancySnapshot
) -> Optional[TableRead]:
    """Available table wasting the fewest seats; first one wins a tie"""
    best = None
    for table in find_available_tables(tables, party_size, snapshot):
        if best is None or table.max_capacity < best.max_capacity:
            best = table
    return best


def find_combination_fit(
    party_size: int,
    combinations: Iterable[TableCombinationRead],
    snapshot: OccupancySnapshot,
) -> Optional[TableCombinationRead]:
    """
    Smallest active combination that seats the party.

    Both member tables must be on the snapshot (active) and unoccupied.
    """
    candidates = sorted(
        (c for c in combinations if c.is_active),
        key=lambda c: c.combined_capacity,
    )
    for combination in candidates:
        if combination.combined_capacity < party_size:
            continue
        members = [snapshot.get(tid) for tid in combination.table_ids]
        if all(m is not None and not m.is_occupied for m in members):
            return combination
    return None


def find_schedule_conflicts(
    table_ids: Sequence[str],
    start: datetime,
    turn_time_minutes: int,
    bookings: Iterable[BookingRead],
    exclude_booking_id: Optional[str] = None,
) -> List[BookingRead]:
    """Live bookings on any of ``table_ids`` whose window overlaps the proposed one"""
    end = start + timedelta(minutes=turn_time_minutes)
    wanted = set(table_ids)
    conflicts = []
    for booking in bookings:
        if booking.id == exclude_booking_id:
            continue
        if booking.status not in BLOCKING_STATUSES:
            continue
        if not wanted.intersection(booking.table_ids):
            continue
        if booking.booking_time < end and start < booking_end(booking):
            conflicts.append(booking)
    return sorted(conflicts, key=lambda b: (b.booking_time, b.id))
