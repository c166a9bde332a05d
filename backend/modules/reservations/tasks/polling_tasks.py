# backend/modules/reservations/tasks/polling_tasks.py

"""
Periodic floor-plan refresh.

Every tick sweeps lapsed waitlist notifications and then recomputes the
floor plan of each registered restaurant. Both steps can be repeated at any
time, so a manual refresh may overlap a scheduled one.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from core.clock import restaurant_now
from core.config import settings
from core.database import SessionLocal
from core.exceptions import APIError
from modules.tables.schemas.table_schemas import FloorPlanResponse
from modules.tables.services.floor_plan_service import FloorPlanService
from ..services.waitlist_service import WaitlistService

logger = logging.getLogger(__name__)


class FloorPlanPoller:
    """Keeps the latest floor plan of each restaurant fresh"""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        clock: Optional[Callable[[], datetime]] = None,
        interval_seconds: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.clock = clock or restaurant_now
        self.interval_seconds = interval_seconds or settings.poll_interval_seconds
        self.scheduler = AsyncIOScheduler()
        self.job_id = "floor_plan_refresh"
        self.is_running = False
        self.restaurant_ids: Set[str] = set()
        self.latest: Dict[str, FloorPlanResponse] = {}
        self.last_expired: Dict[str, List[str]] = {}

    def register(self, restaurant_id: str):
        self.restaurant_ids.add(restaurant_id)

    def unregister(self, restaurant_id: str):
        self.restaurant_ids.discard(restaurant_id)
        self.latest.pop(restaurant_id, None)
        self.last_expired.pop(restaurant_id, None)

    def start(self):
        """Start the refresh job"""
        if self.is_running:
            logger.warning("Floor plan poller already running")
            return

        self.scheduler.add_job(
            func=self.refresh_all,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=self.job_id,
            name=f"Floor plan refresh (every {self.interval_seconds} seconds)",
            replace_existing=True,
            max_instances=1,
        )
        self.scheduler.start()
        self.is_running = True
        logger.info(f"Floor plan poller started, interval {self.interval_seconds}s")

    def stop(self):
        if not self.is_running:
            return
        try:
            self.scheduler.shutdown(wait=False)
        except RuntimeError as e:
            logger.warning(f"Poller scheduler already stopped: {e}")
        self.is_running = False
        logger.info("Floor plan poller stopped")

    def refresh(self, restaurant_id: str) -> FloorPlanResponse:
        """Sweep expired notifications, then recompute the floor plan"""
        db = self.session_factory()
        try:
            now = self.clock()
            expired = WaitlistService(db, self.clock).sweep(restaurant_id, now)
            floor_plan = FloorPlanService(db, self.clock).get_floor_plan(restaurant_id, now)
        finally:
            db.close()

        self.latest[restaurant_id] = floor_plan
        self.last_expired[restaurant_id] = expired
        return floor_plan

    async def refresh_all(self) -> Dict[str, FloorPlanResponse]:
        """Refresh every registered restaurant; one failure does not stop the rest"""
        refreshed = {}
        for restaurant_id in sorted(self.restaurant_ids):
            try:
                refreshed[restaurant_id] = self.refresh(restaurant_id)
            except APIError as e:
                logger.error(f"Floor plan refresh failed for {restaurant_id}: {e.detail}")
        logger.debug(f"Refreshed {len(refreshed)}/{len(self.restaurant_ids)} floor plans")
        return refreshed

    def get_latest(self, restaurant_id: str) -> Optional[FloorPlanResponse]:
        return self.latest.get(restaurant_id)

    def get_job_status(self) -> Dict[str, Any]:
        job = self.scheduler.get_job(self.job_id)
        return {
            "scheduler_running": self.is_running,
            "restaurants": sorted(self.restaurant_ids),
            "next_run_time": (
                job.next_run_time.isoformat() if job and job.next_run_time else None
            ),
        }


# Global poller instance
floor_plan_poller = FloorPlanPoller()


async def start_floor_plan_poller():
    """Start the poller on application startup"""
    try:
        floor_plan_poller.start()
    except Exception as e:
        logger.error(f"Failed to start floor plan poller: {e}", exc_info=True)


async def stop_floor_plan_poller():
    """Stop the poller on application shutdown"""
    floor_plan_poller.stop()
