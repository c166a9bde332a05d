# backend/modules/reservations/schemas/reservation_schemas.py

"""
Pydantic schemas for bookings and the waitlist.

Read schemas double as the inputs of the occupancy engine and are built
straight from ORM rows (``from_attributes``).
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from datetime import date, datetime, time
from typing import List, Optional, Tuple
from enum import Enum

from ..models.reservation_models import DiningStatus, WaitlistStatus

ANY_TABLE_TYPE = "any"
TABLE_TYPE_PREFERENCES = {
    ANY_TABLE_TYPE, "standard", "booth", "window", "patio", "bar", "private"
}


class WaitlistUrgency(str, Enum):
    """Time-based urgency tier of a waitlist entry"""

    NORMAL = "normal"
    SOON = "soon"
    URGENT = "urgent"
    OVERDUE = "overdue"


def parse_time_range(value: str) -> Tuple[time, time]:
    """Split ``"HH:MM-HH:MM"`` into its start and end times."""
    try:
        start_raw, end_raw = value.split("-")
        start = datetime.strptime(start_raw.strip(), "%H:%M").time()
        end = datetime.strptime(end_raw.strip(), "%H:%M").time()
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time range '{value}', expected HH:MM-HH:MM")
    return start, end


def _check_identity(user_id, guest_name, guest_phone, guest_email):
    has_guest_contact = any([guest_name, guest_phone, guest_email])
    if user_id and has_guest_contact:
        raise ValueError("Provide either user_id or guest contact details, not both")
    if not user_id and not guest_name:
        raise ValueError("Either user_id or guest_name is required")


# Booking schemas
class BookingRead(BaseModel):
    """Booking as loaded from the store"""

    id: str
    restaurant_id: str
    user_id: Optional[str] = None
    guest_name: Optional[str] = None
    guest_phone: Optional[str] = None
    guest_email: Optional[str] = None
    booking_time: datetime
    turn_time_minutes: int = 120
    party_size: int
    status: DiningStatus
    confirmation_code: Optional[str] = None
    special_requests: Optional[str] = None
    source: Optional[str] = None
    checked_in_at: Optional[datetime] = None
    table_ids: List[str] = []

    model_config = ConfigDict(from_attributes=True)

    @field_validator("turn_time_minutes", mode="before")
    @classmethod
    def default_turn_time(cls, v):
        return v or 120

    @field_validator("table_ids", mode="before")
    @classmethod
    def default_table_ids(cls, v):
        return list(v or [])


class BookingCreate(BaseModel):
    """Payload for a new booking (waitlist conversion)"""

    restaurant_id: str
    user_id: Optional[str] = None
    guest_name: Optional[str] = Field(None, max_length=100)
    guest_phone: Optional[str] = Field(None, max_length=20)
    guest_email: Optional[str] = Field(None, max_length=100)
    booking_time: datetime
    turn_time_minutes: int = Field(120, ge=1)
    party_size: int = Field(..., ge=1)
    status: DiningStatus = DiningStatus.CONFIRMED
    special_requests: Optional[str] = Field(None, max_length=500)
    source: str = "waitlist"
    waitlist_entry_id: Optional[str] = None
    table_ids: List[str] = []

    @model_validator(mode="after")
    def validate_identity(self):
        _check_identity(self.user_id, self.guest_name, self.guest_phone, self.guest_email)
        return self


class StatusHistoryRecord(BaseModel):
    """One row of the append-only booking status log"""

    booking_id: str
    old_status: Optional[DiningStatus] = None
    new_status: DiningStatus
    changed_at: datetime
    changed_by: Optional[str] = None
    reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class StatusTransitionRequest(BaseModel):
    status: DiningStatus
    actor_id: str


class TableAssignmentRequest(BaseModel):
    table_ids: List[str] = Field(..., min_length=1)
    actor_id: str
    reason: Optional[str] = None


class CheckInRequest(TableAssignmentRequest):
    """Tables to seat the party on, with the head count seen at the door"""

    actual_party_size: Optional[int] = Field(None, ge=1)


class TransitionOptionsResponse(BaseModel):
    booking_id: str
    current_status: DiningStatus
    allowed: List[DiningStatus]
    progress: int


# Waitlist schemas
class WaitlistEntryRead(BaseModel):
    """Waitlist entry as loaded from the store"""

    id: str
    restaurant_id: str
    user_id: Optional[str] = None
    guest_name: Optional[str] = None
    guest_phone: Optional[str] = None
    guest_email: Optional[str] = None
    desired_date: date
    desired_time_range: str
    party_size: int
    table_type: str = ANY_TABLE_TYPE
    special_requests: Optional[str] = None
    status: WaitlistStatus
    notified_at: Optional[datetime] = None
    notification_expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("desired_time_range")
    @classmethod
    def validate_time_range(cls, v):
        parse_time_range(v)
        return v

    @field_validator("table_type", mode="before")
    @classmethod
    def default_table_type(cls, v):
        return v or ANY_TABLE_TYPE

    @property
    def time_window(self) -> Tuple[time, time]:
        return parse_time_range(self.desired_time_range)

    @property
    def display_name(self) -> str:
        return self.guest_name or "Guest"


class WaitlistEntryCreate(BaseModel):
    """Schema for adding a party to the waitlist"""

    restaurant_id: str
    user_id: Optional[str] = None
    guest_name: Optional[str] = Field(None, max_length=100)
    guest_phone: Optional[str] = Field(None, max_length=20)
    guest_email: Optional[str] = Field(None, max_length=100)
    desired_date: date
    desired_time_range: str
    party_size: int = Field(..., ge=1)
    table_type: str = ANY_TABLE_TYPE
    special_requests: Optional[str] = Field(None, max_length=500)

    @field_validator("desired_time_range")
    @classmethod
    def validate_time_range(cls, v):
        start, end = parse_time_range(v)
        if end <= start:
            raise ValueError("Time range must end after it starts")
        return v

    @field_validator("table_type")
    @classmethod
    def validate_table_type(cls, v):
        if v not in TABLE_TYPE_PREFERENCES:
            raise ValueError(f"Unknown table type '{v}'")
        return v

    @model_validator(mode="after")
    def validate_identity(self):
        _check_identity(self.user_id, self.guest_name, self.guest_phone, self.guest_email)
        return self


class WaitlistActionRequest(BaseModel):
    actor_id: str


class WaitlistConversionRequest(BaseModel):
    """Explicit conversion: host picks the slot and the tables"""

    slot: time
    table_ids: List[str] = Field(..., min_length=1)
    actor_id: str


class WaitlistEntryView(BaseModel):
    """Waitlist entry decorated for the host stand"""

    entry: WaitlistEntryRead
    urgency: WaitlistUrgency
    has_availability: bool


class WaitlistBoardResponse(BaseModel):
    restaurant_id: str
    generated_at: datetime
    expired_ids: List[str] = []
    entries: List[WaitlistEntryView]
    active_count: int
    notified_count: int


class ConversionResponse(BaseModel):
    booking: BookingRead
    waitlist_entry: WaitlistEntryRead
