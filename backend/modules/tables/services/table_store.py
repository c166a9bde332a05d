# backend/modules/tables/services/table_store.py

"""
Table and combination reads and writes.
"""

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import and_, or_
from typing import List, Optional
import logging

from core.exceptions import ConflictError, NotFoundError, StorageError
from ..models.table_models import Table, TableCombination
from ..schemas.table_schemas import (
    TableCombinationCreate,
    TableCombinationRead,
    TablePositionUpdate,
    TableRead,
)

logger = logging.getLogger(__name__)


class TableStore:
    """Storage access for tables of one or more restaurants"""

    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, error: SQLAlchemyError):
        self.db.rollback()
        logger.error(f"Failed to {action}: {error}")
        raise StorageError(f"Failed to {action}") from error

    def list_active_tables(self, restaurant_id: str) -> List[TableRead]:
        try:
            tables = self.db.query(Table).filter(
                Table.restaurant_id == restaurant_id,
                Table.is_active.is_(True)
            ).order_by(Table.table_number).all()
        except SQLAlchemyError as e:
            self._fail(f"load tables for restaurant {restaurant_id}", e)
        return [TableRead.model_validate(t) for t in tables]

    def get_table(self, table_id: str, restaurant_id: Optional[str] = None) -> TableRead:
        try:
            query = self.db.query(Table).filter(Table.id == table_id)
            if restaurant_id is not None:
                query = query.filter(Table.restaurant_id == restaurant_id)
            table = query.first()
        except SQLAlchemyError as e:
            self._fail(f"load table {table_id}", e)
        if not table:
            raise NotFoundError(f"Table {table_id} not found")
        return TableRead.model_validate(table)

    def list_combinations(self, restaurant_id: str) -> List[TableCombinationRead]:
        try:
            combinations = self.db.query(TableCombination).filter(
                TableCombination.restaurant_id == restaurant_id
            ).order_by(TableCombination.combined_capacity).all()
        except SQLAlchemyError as e:
            self._fail(f"load combinations for restaurant {restaurant_id}", e)
        return [TableCombinationRead.model_validate(c) for c in combinations]

    def find_combination(
        self, primary_table_id: str, secondary_table_id: str
    ) -> Optional[TableCombinationRead]:
        """Existing pair in either direction"""
        try:
            combination = self.db.query(TableCombination).filter(
                or_(
                    and_(
                        TableCombination.primary_table_id == primary_table_id,
                        TableCombination.secondary_table_id == secondary_table_id,
                    ),
                    and_(
                        TableCombination.primary_table_id == secondary_table_id,
                        TableCombination.secondary_table_id == primary_table_id,
                    ),
                )
            ).first()
        except SQLAlchemyError as e:
            self._fail("look up table combination", e)
        if combination is None:
            return None
        return TableCombinationRead.model_validate(combination)

    def create_combination(
        self, restaurant_id: str, payload: TableCombinationCreate
    ) -> TableCombinationRead:
        existing = self.find_combination(payload.primary_table_id, payload.secondary_table_id)
        if existing:
            raise ConflictError(
                "These tables are already combined",
                error_code="DUPLICATE_COMBINATION",
            )

        combination = TableCombination(
            restaurant_id=restaurant_id,
            primary_table_id=payload.primary_table_id,
            secondary_table_id=payload.secondary_table_id,
            combined_capacity=payload.combined_capacity,
            is_active=payload.is_active,
        )
        try:
            self.db.add(combination)
            self.db.commit()
            self.db.refresh(combination)
        except SQLAlchemyError as e:
            self._fail("create table combination", e)

        logger.info(
            f"Combined tables {payload.primary_table_id} + {payload.secondary_table_id} "
            f"(capacity {payload.combined_capacity}) for restaurant {restaurant_id}"
        )
        return TableCombinationRead.model_validate(combination)

    def update_table_position(
        self, table_id: str, position: TablePositionUpdate
    ) -> TableRead:
        """Write editor geometry; last write wins"""
        try:
            table = self.db.query(Table).filter(Table.id == table_id).first()
        except SQLAlchemyError as e:
            self._fail(f"load table {table_id}", e)
        if not table:
            raise NotFoundError(f"Table {table_id} not found")

        for field, value in position.model_dump(exclude_none=True).items():
            setattr(table, field, value)
        try:
            self.db.commit()
            self.db.refresh(table)
        except SQLAlchemyError as e:
            self._fail(f"move table {table_id}", e)

        logger.debug(f"Table {table_id} moved to ({table.x_position}, {table.y_position})")
        return TableRead.model_validate(table)
