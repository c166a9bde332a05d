# backend/modules/reservations/routes/waitlist_routes.py

"""
Waitlist API routes for the host stand.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date, time

from core.database import get_db
from ..services.waitlist_service import WaitlistService
from ..schemas.reservation_schemas import (
    ConversionResponse,
    WaitlistActionRequest,
    WaitlistBoardResponse,
    WaitlistConversionRequest,
    WaitlistEntryRead,
)

router = APIRouter()


@router.get(
    "/restaurants/{restaurant_id}/waitlist", response_model=WaitlistBoardResponse
)
async def get_waitlist(
    restaurant_id: str,
    target_date: Optional[date] = Query(None, description="Defaults to today"),
    db: Session = Depends(get_db),
):
    """
    Open waitlist entries for one day.

    - Lapsed notifications are expired first
    - Each entry carries its urgency and whether a free table fits it
    """
    return WaitlistService(db).get_board(restaurant_id, target_date)


@router.post("/waitlist/{entry_id}/notify", response_model=WaitlistEntryRead)
async def notify_entry(
    entry_id: str,
    request: WaitlistActionRequest,
    db: Session = Depends(get_db),
):
    """Tell the party a table is free and start the 15 minute response window"""
    return WaitlistService(db).notify_entry(entry_id, request.actor_id)


@router.get("/waitlist/{entry_id}/time-slots", response_model=List[time])
async def get_time_slots(entry_id: str, db: Session = Depends(get_db)):
    """Half-hour slots the entry can be booked on"""
    return WaitlistService(db).get_time_slots(entry_id)


@router.post(
    "/waitlist/{entry_id}/convert",
    response_model=ConversionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def convert_entry(
    entry_id: str,
    request: WaitlistConversionRequest,
    db: Session = Depends(get_db),
):
    """
    Turn the entry into a confirmed booking.

    The host picks both the slot and the tables; a declared combination
    counts with its own capacity.
    """
    return WaitlistService(db).convert(entry_id, request)


@router.post(
    "/waitlist/{entry_id}/quick-convert",
    response_model=ConversionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def quick_convert_entry(
    entry_id: str,
    request: WaitlistActionRequest,
    db: Session = Depends(get_db),
):
    """Book the first slot on the best fitting free table"""
    return WaitlistService(db).quick_convert(entry_id, request.actor_id)


@router.post("/waitlist/{entry_id}/cancel", response_model=WaitlistEntryRead)
async def cancel_entry(
    entry_id: str,
    request: WaitlistActionRequest,
    db: Session = Depends(get_db),
):
    return WaitlistService(db).cancel_entry(entry_id, request.actor_id)


@router.post("/waitlist/{entry_id}/revert", response_model=WaitlistEntryRead)
async def revert_entry(
    entry_id: str,
    request: WaitlistActionRequest,
    db: Session = Depends(get_db),
):
    """Put a notified party back in the queue"""
    return WaitlistService(db).revert_entry(entry_id, request.actor_id)
