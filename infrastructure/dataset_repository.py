# ============================================================================
# DATASET REPOSITORY
# ============================================================================
# STATUS: Infrastructure - content-schema writes for one dataset
# PURPOSE: Stored-operation calls (delete, statistics) and SQL composition for
#          feature rows and per-kind dataset metadata
# EXPORTS: DatasetRepository
# DEPENDENCIES: psycopg.sql, psycopg.types.json, infrastructure.connection_pool
# ============================================================================
"""
Dataset Repository

All statements are composed with psycopg.sql so schema, table and column
names are quoted as identifiers and every value travels as a parameter.
Features and metadata are sent as Jsonb.

Statements run either on their own autocommitted connection
(delete_dataset, recompute_statistics) or on the caller's transaction
connection (update_metadata, insert_features).
"""

from typing import Any, Dict, Sequence

import psycopg
from psycopg import sql
from psycopg.types.json import Jsonb

from config.database_config import DatabaseConfig
from util_logger import LoggerFactory, ComponentType
from .connection_pool import DataSource

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "DatasetRepository")

FEATURE_COLUMNS = ("tdei_dataset_id", "feature", "requested_by")


class DatasetRepository:
    """Content-schema operations keyed by dataset id."""

    def __init__(self, data_source: DataSource, config: DatabaseConfig):
        self.data_source = data_source
        self.schema = config.content_schema
        self.dataset_table = config.dataset_table
        self.delete_function = config.delete_function
        self.stats_function = config.stats_function

    def _function_call(self, function_name: str) -> sql.Composed:
        return sql.SQL("SELECT {}.{}(%s)").format(
            sql.Identifier(self.schema),
            sql.Identifier(function_name),
        )

    # ========================================================================
    # STORED OPERATIONS (outside the load transaction)
    # ========================================================================

    async def delete_dataset(self, dataset_id: str) -> None:
        """Remove every content row for dataset_id. Safe to repeat."""
        logger.info(f"Deleting existing content for dataset {dataset_id}")
        await self.data_source.query(self._function_call(self.delete_function), [dataset_id])

    async def recompute_statistics(self, dataset_id: str) -> None:
        logger.info(f"Recomputing statistics for dataset {dataset_id}")
        await self.data_source.query(self._function_call(self.stats_function), [dataset_id])

    # ========================================================================
    # TRANSACTIONAL WRITES
    # ========================================================================

    async def update_metadata(
        self,
        conn: psycopg.AsyncConnection,
        dataset_id: str,
        column: str,
        metadata: Dict[str, Any],
    ) -> int:
        """Overwrite one metadata column of the dataset row."""
        query = sql.SQL("UPDATE {}.{} SET {} = %s WHERE tdei_dataset_id = %s").format(
            sql.Identifier(self.schema),
            sql.Identifier(self.dataset_table),
            sql.Identifier(column),
        )
        return await self.data_source.execute_query(conn, query, [Jsonb(metadata), dataset_id])

    async def insert_features(
        self,
        conn: psycopg.AsyncConnection,
        table: str,
        dataset_id: str,
        features: Sequence[Any],
        requested_by: str,
    ) -> int:
        """
        Insert features as one multi-row statement, preserving order.

        Args:
            conn: Transaction connection
            table: Content table for the geometry kind
            dataset_id: Provenance written to every row
            features: Opaque feature values, one row each
            requested_by: Initiating user id

        Returns:
            Row count reported by the database
        """
        if not features:
            return 0

        row_placeholder = sql.SQL("({})").format(
            sql.SQL(", ").join(sql.Placeholder() for _ in FEATURE_COLUMNS)
        )
        query = sql.SQL("INSERT INTO {}.{} ({}) VALUES {}").format(
            sql.Identifier(self.schema),
            sql.Identifier(table),
            sql.SQL(", ").join(sql.Identifier(column) for column in FEATURE_COLUMNS),
            sql.SQL(", ").join(row_placeholder for _ in features),
        )
        params = []
        for feature in features:
            params.extend((dataset_id, Jsonb(feature), requested_by))
        return await self.data_source.execute_query(conn, query, params)
