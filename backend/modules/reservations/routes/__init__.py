from fastapi import APIRouter
from .booking_routes import router as booking_router
from .waitlist_routes import router as waitlist_router

# Create main router
router = APIRouter()

# Include sub-routers
router.include_router(booking_router, tags=["Bookings"])
router.include_router(waitlist_router, tags=["Waitlist"])

__all__ = ["router"]
