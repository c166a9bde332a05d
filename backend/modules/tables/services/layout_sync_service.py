# backend/modules/tables/services/layout_sync_service.py

"""
Debounced persistence of floor-plan editor moves.
"""

from typing import Callable, Dict, Optional
import asyncio
import logging

from sqlalchemy.orm import Session

from core.config import settings
from core.database import SessionLocal
from core.debounce import Debouncer
from ..schemas.table_schemas import TablePositionUpdate, TableRead
from .table_store import TableStore

logger = logging.getLogger(__name__)


class LayoutSyncService:
    """Coalesces drag and resize updates into one write per table"""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        delay_ms: Optional[int] = None,
    ):
        if delay_ms is None:
            delay_ms = settings.layout_debounce_ms
        self.session_factory = session_factory
        self.debouncer = Debouncer(delay_ms / 1000)
        self._queued: Dict[str, TablePositionUpdate] = {}

    def queue_position(
        self, table_id: str, position: TablePositionUpdate
    ) -> asyncio.Task:
        """
        Schedule a position write for the table.

        A pending update for the same table is merged field by field, so a
        resize followed by a move still writes the new size.
        """
        pending = self._queued.get(table_id)
        if pending is not None and table_id in self.debouncer.pending_keys():
            position = pending.model_copy(update=position.model_dump(exclude_none=True))
        self._queued[table_id] = position
        return self.debouncer.schedule(table_id, self._write_position, table_id, position)

    async def _write_position(
        self, table_id: str, position: TablePositionUpdate
    ) -> TableRead:
        if self._queued.get(table_id) is position:
            del self._queued[table_id]
        db = self.session_factory()
        try:
            return TableStore(db).update_table_position(table_id, position)
        finally:
            db.close()

    def pending_tables(self):
        return self.debouncer.pending_keys()

    async def flush(self):
        await self.debouncer.flush()

    def shutdown(self):
        pending = self.debouncer.pending_keys()
        if pending:
            logger.warning(f"Dropping {len(pending)} pending layout writes on shutdown")
        self.debouncer.cancel_all()
        self._queued.clear()


layout_sync_service = LayoutSyncService()
