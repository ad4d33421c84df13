"""Destination warehouse used by the staging transports."""
from .sqlite_tables import SQLiteWarehouse, physical_table_name

__all__ = ["SQLiteWarehouse", "physical_table_name"]
