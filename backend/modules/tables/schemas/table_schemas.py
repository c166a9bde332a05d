# backend/modules/tables/schemas/table_schemas.py

from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict

from ..models.table_models import TableShape, TableType
from modules.reservations.schemas.reservation_schemas import BookingRead


# Table Schemas
class TableRead(BaseModel):
    """Table as loaded from the store"""

    id: str
    restaurant_id: str
    section_id: Optional[str] = None
    table_number: str
    table_type: TableType = TableType.STANDARD
    min_capacity: int = 1
    max_capacity: int
    x_position: int = 0
    y_position: int = 0
    width: int = 100
    height: int = 100
    shape: TableShape = TableShape.RECTANGLE
    rotation: int = 0
    is_active: bool = True
    is_combinable: bool = False
    combinable_with: List[str] = []
    priority_score: int = 0

    model_config = ConfigDict(from_attributes=True)

    @field_validator("combinable_with", mode="before")
    @classmethod
    def default_combinable_with(cls, v):
        return list(v or [])


class TablePositionUpdate(BaseModel):
    """Editor drag / resize payload"""

    x_position: int = Field(..., ge=0)
    y_position: int = Field(..., ge=0)
    width: Optional[int] = Field(None, gt=0)
    height: Optional[int] = Field(None, gt=0)
    rotation: Optional[int] = Field(None, ge=0, lt=360)


# Combination Schemas
class TableCombinationRead(BaseModel):
    id: str
    restaurant_id: str
    primary_table_id: str
    secondary_table_id: str
    combined_capacity: int
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)

    @property
    def table_ids(self) -> List[str]:
        return [self.primary_table_id, self.secondary_table_id]


class TableCombinationCreate(BaseModel):
    """Declare two combinable tables as one seating unit"""

    primary_table_id: str
    secondary_table_id: str
    combined_capacity: Optional[int] = None  # defaults to the two capacities summed
    is_active: bool = True

    @model_validator(mode="after")
    def validate_distinct(self):
        if self.primary_table_id == self.secondary_table_id:
            raise ValueError("A table cannot be combined with itself")
        return self


# Floor plan responses
class TableOccupancyResponse(BaseModel):
    """One table on the live floor plan"""

    table: TableRead
    current: Optional[BookingRead] = None
    upcoming: Optional[BookingRead] = None
    all_upcoming: List[BookingRead] = []
    recent_history: List[BookingRead] = []
    is_occupied: bool
    can_accept_walk_in: bool
    estimated_completion: Optional[datetime] = None
    dining_progress: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class OccupancyAnomalyResponse(BaseModel):
    table_id: str
    booking_ids: List[str]
    chosen_booking_id: str

    model_config = ConfigDict(from_attributes=True)


class SectionStatsResponse(BaseModel):
    section_id: Optional[str] = None
    table_count: int
    occupied_count: int
    available_count: int
    occupancy_rate: int

    model_config = ConfigDict(from_attributes=True)


class FloorPlanResponse(BaseModel):
    """Full floor-plan view for the host stand"""

    restaurant_id: str
    generated_at: datetime
    tables: List[TableOccupancyResponse]
    occupied_count: int
    available_count: int
    occupancy_rate: int
    sections: List[SectionStatsResponse] = []
    anomalies: List[OccupancyAnomalyResponse] = []
    needs_assignment: List[BookingRead] = []


class AvailableTablesResponse(BaseModel):
    restaurant_id: str
    party_size: int
    tables: List[TableRead]
    best_fit: Optional[TableRead] = None
    combination: Optional[TableCombinationRead] = None
