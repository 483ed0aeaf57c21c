# ============================================================================
# BATCH INSERTER
# ============================================================================
# STATUS: Core - chunked writes for one geometry kind
# PURPOSE: Write a parsed feature collection into its kind's table and its
#          metadata into the dataset row
# EXPORTS: BatchInserter, KindStorage, GEOMETRY_STORAGE
# DEPENDENCIES: infrastructure.dataset_repository, extract_load.contracts
# ============================================================================
"""
Batch Inserter

One generic write path for every geometry kind. The per-kind layout lives
in GEOMETRY_STORAGE:

    kind               table               metadata column
    node               node                node_info
    edge               edge                edge_info
    extension_point    extension_point     ext_point_info
    extension_line     extension_line      ext_line_info
    extension_polygon  extension_polygon   ext_polygon_info
    zone               zone                zone_info

insert() writes the metadata column first, then the features in chunks of
at most batch_size. Chunks of one kind run strictly in order on the
caller's transaction connection; the orchestrator runs kinds concurrently.
"""

from typing import Any, Dict, Iterator, List, NamedTuple, Sequence

import psycopg

from exceptions import ContractViolationError, DatabaseError, GeometryInsertionError
from infrastructure.dataset_repository import DatasetRepository
from util_logger import LoggerFactory, ComponentType
from .contracts import FeatureCollection, GeometryKind

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "BatchInserter")


class KindStorage(NamedTuple):
    table: str
    metadata_column: str


GEOMETRY_STORAGE: Dict[GeometryKind, KindStorage] = {
    GeometryKind.NODE: KindStorage("node", "node_info"),
    GeometryKind.EDGE: KindStorage("edge", "edge_info"),
    GeometryKind.EXTENSION_POINT: KindStorage("extension_point", "ext_point_info"),
    GeometryKind.EXTENSION_LINE: KindStorage("extension_line", "ext_line_info"),
    GeometryKind.EXTENSION_POLYGON: KindStorage("extension_polygon", "ext_polygon_info"),
    GeometryKind.ZONE: KindStorage("zone", "zone_info"),
}


class BatchInserter:
    """Writes feature collections through DatasetRepository in fixed-size chunks."""

    def __init__(self, repository: DatasetRepository, batch_size: int):
        if not isinstance(batch_size, int) or isinstance(batch_size, bool) or batch_size < 1:
            raise ContractViolationError(f"batch_size must be a positive integer, got {batch_size!r}")
        missing = set(GeometryKind) - set(GEOMETRY_STORAGE)
        if missing:
            raise ContractViolationError(f"No storage layout for geometry kinds: {sorted(k.value for k in missing)}")
        self.repository = repository
        self.batch_size = batch_size

    def chunks(self, features: Sequence[Any]) -> Iterator[List[Any]]:
        """Consecutive slices of at most batch_size, in feature order."""
        for start in range(0, len(features), self.batch_size):
            yield list(features[start:start + self.batch_size])

    async def insert(
        self,
        conn: psycopg.AsyncConnection,
        dataset_id: str,
        kind: GeometryKind,
        collection: FeatureCollection,
        requested_by: str,
    ) -> int:
        """
        Write one collection for one kind.

        Args:
            conn: Transaction connection shared by the whole load
            dataset_id: Dataset the rows belong to
            kind: Geometry kind selecting table and metadata column
            collection: Parsed feature collection (features may be empty)
            requested_by: Initiating user id

        Returns:
            Number of features written

        Raises:
            GeometryInsertionError: Any database failure, with the cause chained
        """
        storage = GEOMETRY_STORAGE[kind]

        try:
            await self.repository.update_metadata(
                conn, dataset_id, storage.metadata_column, collection.metadata()
            )
        except DatabaseError as e:
            raise GeometryInsertionError(
                kind, f"Failed to write {kind.value} metadata for dataset {dataset_id}: {e}"
            ) from e

        inserted = 0
        for chunk_index, chunk in enumerate(self.chunks(collection.features)):
            try:
                await self.repository.insert_features(
                    conn, storage.table, dataset_id, chunk, requested_by
                )
            except DatabaseError as e:
                raise GeometryInsertionError(
                    kind,
                    f"Failed to insert {kind.value} chunk {chunk_index} "
                    f"({len(chunk)} rows) for dataset {dataset_id}: {e}",
                    chunk_index=chunk_index,
                ) from e
            inserted += len(chunk)

        logger.debug(
            f"Inserted {inserted} {kind.value} rows into {storage.table}",
            extra={'custom_dimensions': {'dataset_id': dataset_id, 'kind': kind.value, 'rows': inserted}},
        )
        return inserted
