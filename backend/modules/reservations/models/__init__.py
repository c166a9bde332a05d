from .reservation_models import (
    Booking,
    BookingTable,
    BookingStatusHistory,
    DiningStatus,
    WaitlistEntry,
    WaitlistStatus,
)

__all__ = [
    "Booking",
    "BookingTable",
    "BookingStatusHistory",
    "DiningStatus",
    "WaitlistEntry",
    "WaitlistStatus",
]
