"""REST API adapter for the virtual database.

This module provides a FastAPI-based REST API for running SQL against
the tables registered in a VirtualDatabase.

Endpoints:
    GET /health - Health check
    GET /tables - Registered table names
    POST /query - Run a SELECT
    POST /execute - Run an INSERT, UPDATE or DELETE

Usage:
    from virtual_db.adapters.inbound.rest_api import create_app
    from virtual_db.application import VirtualDatabase

    db = VirtualDatabase()
    db.register_table("users", users_table)

    app = create_app(db)
    # Run with uvicorn: uvicorn app:app --host 0.0.0.0 --port 8000

References:
    - FastAPI documentation: https://fastapi.tiangolo.com/
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from virtual_db import __version__
from virtual_db.domain.errors import UnknownTableError, VirtualDatabaseError

if TYPE_CHECKING:
    from virtual_db.application import VirtualDatabase

logger = logging.getLogger(__name__)


class SQLRequest(BaseModel):
    """Request model for SQL execution."""

    sql: str = Field(..., description="SQL statement to run")
    params: list[Any] | dict[str, Any] = Field(
        default_factory=list, description="Positional (list) or named (object) parameters"
    )


class QueryResponse(BaseModel):
    """Response model for SELECT queries."""

    success: bool = Field(..., description="Whether the query succeeded")
    message: str = Field("", description="Status or error message")
    rows: list[dict[str, Any]] = Field(default_factory=list, description="Result rows")
    columns: list[str] = Field(default_factory=list, description="Column names")


class ExecuteResponse(BaseModel):
    """Response model for INSERT, UPDATE and DELETE."""

    success: bool = Field(..., description="Whether the statement succeeded")
    message: str = Field("", description="Status or error message")
    affected_rows: int = Field(0, description="Number of affected rows")


class TablesResponse(BaseModel):
    """Response model for the table listing."""

    tables: list[str] = Field(default_factory=list, description="Registered table names")


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")


def _columns(rows: list[dict[str, Any]]) -> list[str]:
    columns: dict[str, None] = {}
    for row in rows:
        columns.update(dict.fromkeys(row))
    return list(columns)


def create_app(db: VirtualDatabase) -> FastAPI:
    """Create a FastAPI application for a virtual database.

    Args:
        db: The virtual database to serve.

    Returns:
        A configured FastAPI application.
    """
    app = FastAPI(
        title="Virtual DB API",
        description="REST API for running SQL over virtual tables",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy", version=__version__)

    @app.get("/tables", response_model=TablesResponse, tags=["Tables"])
    async def list_tables() -> TablesResponse:
        """List registered tables."""
        return TablesResponse(tables=db.table_names())

    @app.post("/query", response_model=QueryResponse, tags=["SQL"])
    def run_query(request: SQLRequest) -> QueryResponse:
        """Run a SELECT statement and return all result rows."""
        try:
            rows = list(db.query(request.sql, request.params))
        except UnknownTableError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except VirtualDatabaseError as e:
            logger.info(f"Query failed: {e}")
            return QueryResponse(success=False, message=f"Error: {e}")

        return QueryResponse(
            success=True,
            message=f"{len(rows)} rows",
            rows=rows,
            columns=_columns(rows),
        )

    @app.post("/execute", response_model=ExecuteResponse, tags=["SQL"])
    def execute_sql(request: SQLRequest) -> ExecuteResponse:
        """Run an INSERT, UPDATE or DELETE statement."""
        try:
            affected = db.execute(request.sql, request.params)
        except UnknownTableError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except VirtualDatabaseError as e:
            logger.info(f"Statement failed: {e}")
            return ExecuteResponse(success=False, message=f"Error: {e}")

        return ExecuteResponse(
            success=True,
            message=f"{affected} rows affected",
            affected_rows=affected,
        )

    return app


def run_server(
    db: VirtualDatabase,
    host: str = "0.0.0.0",
    port: int = 8000,
) -> None:
    """Run the REST API server.

    Args:
        db: The virtual database.
        host: Host to bind to.
        port: Port to bind to.
    """
    import uvicorn

    app = create_app(db)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    # Example usage
    from virtual_db.adapters.outbound import InMemoryTable
    from virtual_db.infrastructure.config import get_config
    from virtual_db.infrastructure.container import get_container
    from virtual_db.infrastructure.metrics import setup_metrics

    config = get_config()
    setup_metrics(port=config.server.metrics_port)
    database = get_container().database
    database.register_table(
        "users",
        InMemoryTable([{"name": "Bob", "age": 25}, {"name": "alice", "age": 30}], sorted_by="name"),
    )
    print(f"Serving tables {database.table_names()} on port {config.server.port}")
    run_server(database, host=config.server.host, port=config.server.port)
