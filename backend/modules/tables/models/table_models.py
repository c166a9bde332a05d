# backend/modules/tables/models/table_models.py

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    JSON,
    Enum as SQLEnum,
    UniqueConstraint,
    CheckConstraint,
)
from enum import Enum

from core.database import Base
from core.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class TableType(str, Enum):
    """Kind of seating unit"""

    STANDARD = "standard"
    BOOTH = "booth"
    WINDOW = "window"
    PATIO = "patio"
    BAR = "bar"
    PRIVATE = "private"


class TableShape(str, Enum):
    """Table shape for visual representation"""

    RECTANGLE = "rectangle"
    CIRCLE = "circle"


class Table(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Physical restaurant table"""

    __tablename__ = "restaurant_tables"

    restaurant_id = Column(String(36), nullable=False, index=True)
    section_id = Column(String(36), index=True)

    # Basic info
    table_number = Column(String(20), nullable=False)
    table_type = Column(SQLEnum(TableType), default=TableType.STANDARD, nullable=False)

    # Capacity
    min_capacity = Column(Integer, nullable=False, default=1)
    max_capacity = Column(Integer, nullable=False)

    # Position and dimensions (floor plan editor only)
    x_position = Column(Integer, nullable=False, default=0)
    y_position = Column(Integer, nullable=False, default=0)
    width = Column(Integer, nullable=False, default=100)
    height = Column(Integer, nullable=False, default=100)
    shape = Column(SQLEnum(TableShape), default=TableShape.RECTANGLE)
    rotation = Column(Integer, default=0)  # degrees

    # Availability
    is_active = Column(Boolean, default=True, nullable=False)
    is_combinable = Column(Boolean, default=False, nullable=False)
    combinable_with = Column(JSON, default=list)  # table ids
    priority_score = Column(Integer, default=0)

    __table_args__ = (
        UniqueConstraint(
            "restaurant_id", "table_number", name="uix_table_restaurant_number"
        ),
        CheckConstraint("min_capacity >= 1", name="chk_table_min_capacity"),
        CheckConstraint("min_capacity <= max_capacity", name="chk_table_capacity"),
        CheckConstraint("rotation >= 0 AND rotation < 360", name="chk_table_rotation"),
    )

    def __repr__(self):
        return f"<Table {self.table_number} ({self.min_capacity}-{self.max_capacity})>"


class TableCombination(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Declared pairing of two combinable tables for larger parties"""

    __tablename__ = "table_combinations"

    restaurant_id = Column(String(36), nullable=False, index=True)
    primary_table_id = Column(String(36), nullable=False)
    secondary_table_id = Column(String(36), nullable=False)

    # Operator-declared, not necessarily the sum of both tables
    combined_capacity = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "primary_table_id", "secondary_table_id", name="uix_combination_pair"
        ),
        CheckConstraint("combined_capacity >= 1", name="chk_combination_capacity"),
        CheckConstraint(
            "primary_table_id <> secondary_table_id", name="chk_combination_distinct"
        ),
    )
