"""
Virtual DB - SQL over virtual tables

Parses SQL and evaluates it against non-SQL data sources (in-memory
collections, CSV files, generators, remote APIs) exposed through a small
table capability interface.
"""

__version__ = "0.1.0"
__author__ = "Systems Engineering Portfolio"


def vdb():
    """Return the process-wide VirtualDatabase from the DI container."""
    from virtual_db.infrastructure.container import get_container

    return get_container().database
