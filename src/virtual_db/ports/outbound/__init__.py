"""Outbound ports - interfaces for data sources.

Virtual tables implement TableInterface to expose collections, files
and services to the query engine.
"""

from virtual_db.ports.outbound.virtual_table import SelectResult, TableInterface

__all__ = [
    "SelectResult",
    "TableInterface",
]
