# backend/modules/tables/routes/floor_plan_routes.py

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from core.database import get_db
from modules.reservations.services.waitlist_service import WaitlistService
from modules.reservations.tasks.polling_tasks import floor_plan_poller
from ..schemas.table_schemas import (
    AvailableTablesResponse,
    FloorPlanResponse,
    TableCombinationCreate,
    TableCombinationRead,
    TablePositionUpdate,
    TableRead,
)
from ..services.floor_plan_service import FloorPlanService
from ..services.layout_sync_service import layout_sync_service
from ..services.table_store import TableStore

router = APIRouter(prefix="/restaurants/{restaurant_id}", tags=["Floor Plan"])


@router.get("/floor-plan", response_model=FloorPlanResponse)
async def get_floor_plan(restaurant_id: str, db: Session = Depends(get_db)):
    """
    Live floor plan.

    Expires lapsed waitlist notifications, then resolves who sits where.
    The restaurant is also added to the background refresh.
    """
    service = FloorPlanService(db)
    now = service.clock()
    WaitlistService(db, service.clock).sweep(restaurant_id, now)
    floor_plan = service.get_floor_plan(restaurant_id, now)

    floor_plan_poller.register(restaurant_id)
    return floor_plan


@router.get("/tables/available", response_model=AvailableTablesResponse)
async def get_available_tables(
    restaurant_id: str,
    party_size: int = Query(..., ge=1),
    db: Session = Depends(get_db),
):
    """Free tables seating the party, the tightest fit and the smallest combination"""
    return FloorPlanService(db).get_available_tables(restaurant_id, party_size)


@router.post(
    "/table-combinations",
    response_model=TableCombinationRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_combination(
    restaurant_id: str,
    payload: TableCombinationCreate,
    db: Session = Depends(get_db),
):
    return FloorPlanService(db).create_combination(restaurant_id, payload)


@router.patch(
    "/tables/{table_id}/position",
    response_model=TableRead,
    status_code=status.HTTP_202_ACCEPTED,
)
async def update_table_position(
    restaurant_id: str,
    table_id: str,
    position: TablePositionUpdate,
    db: Session = Depends(get_db),
):
    """
    Queue an editor move.

    Rapid moves of the same table are coalesced; only the last one is
    written once the table has been still for a moment.
    """
    table = TableStore(db).get_table(table_id, restaurant_id)
    layout_sync_service.queue_position(table_id, position)
    return table.model_copy(update=position.model_dump(exclude_none=True))
