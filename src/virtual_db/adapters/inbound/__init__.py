"""Inbound adapters for the virtual database.

Inbound adapters handle incoming requests and convert them to
internal domain operations.

Exports:
    SQL Parser:
        - SQLParser: Parser that converts SQL strings to statement trees

The REST API lives in ``virtual_db.adapters.inbound.rest_api``
(``create_app``, ``run_server``); it is imported on demand because it
depends on the application layer.
"""

from virtual_db.adapters.inbound.sql_parser import SQLParser

__all__ = [
    "SQLParser",
]
