from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from core.exceptions import register_exception_handlers
from app.startup import configure_logging, run_startup_checks

# ========== Floor Plan & Tables ==========
from modules.tables.routes import router as floor_plan_router
from modules.tables.services.layout_sync_service import layout_sync_service

# ========== Bookings & Waitlist ==========
from modules.reservations.routes import router as reservations_router
from modules.reservations.tasks.polling_tasks import (
    start_floor_plan_poller,
    stop_floor_plan_poller,
)

configure_logging()

app = FastAPI(
    title="Floor Plan & Waitlist API",
    description="""
    Live table occupancy, booking lifecycle and waitlist handling for the
    restaurant host stand.
    """,
    version="1.0.0",
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(floor_plan_router, prefix="/api/v1")
app.include_router(reservations_router, prefix="/api/v1")


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "environment": settings.environment}


# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    """Initialize services on application startup"""
    run_startup_checks()
    await start_floor_plan_poller()


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on application shutdown"""
    await layout_sync_service.flush()
    layout_sync_service.shutdown()
    await stop_floor_plan_poller()
