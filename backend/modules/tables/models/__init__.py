from .table_models import Table, TableCombination, TableShape, TableType

__all__ = ["Table", "TableCombination", "TableShape", "TableType"]
