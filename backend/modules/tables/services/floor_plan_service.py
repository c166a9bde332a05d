# backend/modules/tables/services/floor_plan_service.py

"""
Floor-plan views assembled from the store and the occupancy resolver.
"""

from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Callable, Optional
import logging

from core.clock import restaurant_now, start_of_day
from core.exceptions import ValidationError
from modules.reservations.services.reservation_store import ReservationStore
from ..schemas.table_schemas import (
    AvailableTablesResponse,
    FloorPlanResponse,
    OccupancyAnomalyResponse,
    SectionStatsResponse,
    TableCombinationCreate,
    TableCombinationRead,
    TableOccupancyResponse,
)
from .availability_service import best_fit_table, find_available_tables, find_combination_fit
from .combination_service import suggest_combined_capacity, validate_combination
from .occupancy_service import (
    OccupancySnapshot,
    bookings_needing_assignment,
    resolve_occupancy,
    section_stats,
)
from .table_store import TableStore

logger = logging.getLogger(__name__)


class FloorPlanService:
    """Live floor plan, availability lookups and combination management"""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or restaurant_now
        self.tables = TableStore(db)
        self.reservations = ReservationStore(db)

    def load_snapshot(self, restaurant_id: str, now: Optional[datetime] = None):
        """Tables, today's bookings and the occupancy resolved from them"""
        now = now or self.clock()
        day_start = start_of_day(now)
        tables = self.tables.list_active_tables(restaurant_id)
        bookings = self.reservations.list_bookings(
            restaurant_id, day_start, day_start + timedelta(days=1)
        )
        return tables, bookings, resolve_occupancy(tables, bookings, now)

    def get_floor_plan(
        self, restaurant_id: str, now: Optional[datetime] = None
    ) -> FloorPlanResponse:
        now = now or self.clock()
        _, bookings, snapshot = self.load_snapshot(restaurant_id, now)

        if snapshot.anomalies:
            logger.warning(
                f"Restaurant {restaurant_id}: {len(snapshot.anomalies)} tables with double seating"
            )

        return build_floor_plan_response(restaurant_id, snapshot, bookings, now)

    def get_available_tables(
        self, restaurant_id: str, party_size: int
    ) -> AvailableTablesResponse:
        if party_size < 1:
            raise ValidationError("Party size must be at least 1")

        tables, _, snapshot = self.load_snapshot(restaurant_id)
        combinations = self.tables.list_combinations(restaurant_id)
        return AvailableTablesResponse(
            restaurant_id=restaurant_id,
            party_size=party_size,
            tables=find_available_tables(tables, party_size, snapshot),
            best_fit=best_fit_table(tables, party_size, snapshot),
            combination=find_combination_fit(party_size, combinations, snapshot),
        )

    def create_combination(
        self, restaurant_id: str, payload: TableCombinationCreate
    ) -> TableCombinationRead:
        primary = self.tables.get_table(payload.primary_table_id, restaurant_id)
        secondary = self.tables.get_table(payload.secondary_table_id, restaurant_id)
        if payload.combined_capacity is None:
            payload = payload.model_copy(
                update={"combined_capacity": suggest_combined_capacity(primary, secondary)}
            )
        try:
            validate_combination(primary, secondary, payload.combined_capacity)
        except ValidationError as e:
            logger.warning(f"Combination rejected for restaurant {restaurant_id}: {e.detail}")
            raise
        return self.tables.create_combination(restaurant_id, payload)


def build_floor_plan_response(
    restaurant_id: str, snapshot: OccupancySnapshot, bookings, now: datetime
) -> FloorPlanResponse:
    return FloorPlanResponse(
        restaurant_id=restaurant_id,
        generated_at=now,
        tables=[TableOccupancyResponse.model_validate(o) for o in snapshot.tables],
        occupied_count=snapshot.occupied_count,
        available_count=snapshot.available_count,
        occupancy_rate=snapshot.occupancy_rate,
        sections=[SectionStatsResponse.model_validate(s) for s in section_stats(snapshot)],
        anomalies=[OccupancyAnomalyResponse.model_validate(a) for a in snapshot.anomalies],
        needs_assignment=bookings_needing_assignment(bookings, now),
    )
