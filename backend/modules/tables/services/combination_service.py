# backend/modules/tables/services/combination_service.py

from typing import Iterable, Optional

from core.exceptions import CombinationValidationError
from ..schemas.table_schemas import TableCombinationRead, TableRead


def validate_combination(
    primary: TableRead, secondary: TableRead, combined_capacity: int
):
    """Raise CombinationValidationError unless the pair may be declared"""
    if primary.id == secondary.id:
        raise CombinationValidationError("A table cannot be combined with itself")
    if not primary.is_combinable:
        raise CombinationValidationError(
            f"Table {primary.table_number} is not combinable"
        )
    if not secondary.is_combinable:
        raise CombinationValidationError(
            f"Table {secondary.table_number} is not combinable"
        )
    if combined_capacity < 1:
        raise CombinationValidationError("Combined capacity must be at least 1")


def suggest_combined_capacity(primary: TableRead, secondary: TableRead) -> int:
    """Default offered to the operator; the stored value is theirs to choose"""
    return primary.max_capacity + secondary.max_capacity


def find_declared_combination(
    table_ids: Iterable[str], combinations: Iterable[TableCombinationRead]
) -> Optional[TableCombinationRead]:
    """Active combination made of exactly these two tables, in either order"""
    wanted = set(table_ids)
    if len(wanted) != 2:
        return None
    for combination in combinations:
        if combination.is_active and set(combination.table_ids) == wanted:
            return combination
    return None
