# backend/modules/reservations/routes/booking_routes.py

"""
Booking actions on the live floor.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from ..services.reservation_service import ReservationService
from ..schemas.reservation_schemas import (
    BookingRead,
    CheckInRequest,
    StatusTransitionRequest,
    TableAssignmentRequest,
    TransitionOptionsResponse,
)

router = APIRouter(prefix="/bookings")


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(booking_id: str, db: Session = Depends(get_db)):
    return ReservationService(db).get_booking(booking_id)


@router.get("/{booking_id}/transitions", response_model=TransitionOptionsResponse)
async def get_transitions(booking_id: str, db: Session = Depends(get_db)):
    """Statuses the booking may move to next, with its dining progress"""
    return ReservationService(db).get_transition_options(booking_id)


@router.post("/{booking_id}/status", response_model=BookingRead)
async def change_status(
    booking_id: str,
    request: StatusTransitionRequest,
    db: Session = Depends(get_db),
):
    """
    Move the booking one step through its dining lifecycle.

    - Forward moves go one step at a time
    - Cancellation is possible until the visit ends
    - No-show only before the guest has arrived
    """
    return ReservationService(db).change_status(
        booking_id, request.status, request.actor_id
    )


@router.post("/{booking_id}/check-in", response_model=BookingRead)
async def check_in(
    booking_id: str,
    request: CheckInRequest,
    db: Session = Depends(get_db),
):
    """
    Mark the party arrived and seat them on the chosen tables.

    Opens 30 minutes before the booking time; `actual_party_size` corrects
    the head count.
    """
    return ReservationService(db).check_in(
        booking_id,
        request.table_ids,
        request.actor_id,
        actual_party_size=request.actual_party_size,
    )


@router.put("/{booking_id}/tables", response_model=BookingRead)
async def switch_tables(
    booking_id: str,
    request: TableAssignmentRequest,
    db: Session = Depends(get_db),
):
    """Replace the booking's tables"""
    return ReservationService(db).switch_tables(
        booking_id, request.table_ids, request.actor_id, reason=request.reason
    )
