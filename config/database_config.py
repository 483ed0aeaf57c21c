"""
PostgreSQL Database Configuration.

Provides configuration for:
    - Connection settings (host, port, database, credentials, SSL)
    - Connection pool sizing
    - Statement timeout applied to every pooled connection
    - Content schema, dataset table and stored-function names

Exports:
    DatabaseConfig: Pydantic database configuration model
"""

import os
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field

from .defaults import DatabaseDefaults


# ============================================================================
# DATABASE CONFIGURATION
# ============================================================================

class DatabaseConfig(BaseModel):
    """
    PostgreSQL configuration for the content database.

    Password authentication only; the worker runs next to the database in
    the same virtual network.
    """

    host: str = Field(
        ...,
        description="PostgreSQL server hostname",
        examples=["tdei-db.postgres.database.azure.com"]
    )

    port: int = Field(
        default=DatabaseDefaults.PORT,
        description="PostgreSQL server port number"
    )

    user: Optional[str] = Field(
        default=None,
        description="PostgreSQL username"
    )

    password: Optional[str] = Field(
        default=None,
        repr=False,
        description="PostgreSQL password from POSTGRES_PASSWORD"
    )

    database: str = Field(
        ...,
        description="PostgreSQL database name"
    )

    ssl: bool = Field(
        default=DatabaseDefaults.SSL,
        description="Require SSL (sslmode=require) when true"
    )

    # Pool
    pool_min_size: int = Field(
        default=DatabaseDefaults.POOL_MIN,
        ge=0,
        description="Minimum pooled connections kept open"
    )

    pool_max_size: int = Field(
        default=DatabaseDefaults.POOL_MAX,
        ge=1,
        description="Maximum pooled connections (shared by concurrent loads)"
    )

    pool_timeout_seconds: float = Field(
        default=DatabaseDefaults.POOL_TIMEOUT_SECONDS,
        gt=0,
        description="Seconds to wait for a free pooled connection"
    )

    statement_timeout_ms: int = Field(
        default=DatabaseDefaults.STATEMENT_TIMEOUT_MS,
        ge=0,
        description="statement_timeout set on each connection; 0 disables it"
    )

    # Content layout
    content_schema: str = Field(
        default=DatabaseDefaults.CONTENT_SCHEMA,
        description="Schema holding the dataset table and per-kind feature tables"
    )

    dataset_table: str = Field(
        default=DatabaseDefaults.DATASET_TABLE,
        description="Table holding one row per dataset with per-kind metadata columns"
    )

    delete_function: str = Field(
        default=DatabaseDefaults.DELETE_FUNCTION,
        description="Stored function removing every content row of a dataset"
    )

    stats_function: str = Field(
        default=DatabaseDefaults.STATS_FUNCTION,
        description="Stored function recomputing dataset statistics"
    )

    def connection_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for psycopg connect / pool kwargs."""
        kwargs: Dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "dbname": self.database,
            "sslmode": "require" if self.ssl else "prefer",
        }
        if self.user:
            kwargs["user"] = self.user
        if self.password:
            kwargs["password"] = self.password
        if self.statement_timeout_ms:
            kwargs["options"] = f"-c statement_timeout={self.statement_timeout_ms}"
        return kwargs

    def debug_dict(self) -> Dict[str, Any]:
        """Sanitized view for logging (password masked)."""
        return {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.user,
            "password": "***MASKED***" if self.password else None,
            "ssl": self.ssl,
            "pool_min_size": self.pool_min_size,
            "pool_max_size": self.pool_max_size,
            "statement_timeout_ms": self.statement_timeout_ms,
            "content_schema": self.content_schema,
        }

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            host=os.environ.get("POSTGRES_HOST", ""),
            port=int(os.environ.get("POSTGRES_PORT", str(DatabaseDefaults.PORT))),
            user=os.environ.get("POSTGRES_USER"),
            password=os.environ.get("POSTGRES_PASSWORD"),
            database=os.environ.get("POSTGRES_DB", ""),
            ssl=os.environ.get("SSL", "false").lower() in ("true", "1", "yes"),
            pool_min_size=int(os.environ.get("POSTGRES_POOL_MIN", str(DatabaseDefaults.POOL_MIN))),
            pool_max_size=int(os.environ.get("POSTGRES_POOL_MAX", str(DatabaseDefaults.POOL_MAX))),
            pool_timeout_seconds=float(
                os.environ.get("POSTGRES_POOL_TIMEOUT", str(DatabaseDefaults.POOL_TIMEOUT_SECONDS))
            ),
            statement_timeout_ms=int(
                os.environ.get("POSTGRES_STATEMENT_TIMEOUT_MS", str(DatabaseDefaults.STATEMENT_TIMEOUT_MS))
            ),
            content_schema=os.environ.get("CONTENT_SCHEMA", DatabaseDefaults.CONTENT_SCHEMA),
            dataset_table=os.environ.get("DATASET_TABLE", DatabaseDefaults.DATASET_TABLE),
            delete_function=os.environ.get("DATASET_DELETE_FUNCTION", DatabaseDefaults.DELETE_FUNCTION),
            stats_function=os.environ.get("DATASET_STATS_FUNCTION", DatabaseDefaults.STATS_FUNCTION),
        )
