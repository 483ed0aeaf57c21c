# ============================================================================
# LOAD ORCHESTRATOR
# ============================================================================
# STATUS: Core - one load, start to report
# PURPOSE: Validate, authorize, delete-before-insert, load the archive in one
#          transaction, recompute statistics and report the outcome
# EXPORTS: LoadOrchestrator, DatasetLoader, OswDatasetLoader,
#          UnsupportedDatasetLoader
# DEPENDENCIES: infrastructure.*, extract_load.*
# ============================================================================
"""
Load Orchestrator

State machine per load:

    START -> DELETING -> LOADING -> AGGREGATING -> DONE
    START -> FAILED                (invalid request, unknown or unimplemented
                                    data type, unauthorized user)
    DELETING -> FAILED             (no transaction opened)
    LOADING -> FAILED              (transaction rolled back)

Statistics recomputation runs after COMMIT on its own connection. When it
fails the committed rows stay and the load is still reported as successful;
the failure is logged at ERROR with the dataset id.

Dispatch over DataType goes through a loader table that must cover every
member; LoadOrchestrator refuses to start otherwise. Only OSW has a loader
that writes anything.

Inside LOADING, entries are read one at a time. Each classified collection
becomes a task on the shared transaction connection; tasks of the same kind
run one after another (per-kind lock), different kinds interleave. A
semaphore bounds how many parsed collections are in flight, so the archive
is not decompressed ahead of the inserts. Every task is awaited before the
transaction ends; the earliest failure is the one reported.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import psycopg
from pydantic import ValidationError

from config.load_config import LoadConfig
from exceptions import (
    AuthorizationError,
    BusinessLogicError,
    ContractViolationError,
    DatabaseError,
    UnsupportedDataTypeError,
)
from infrastructure.authorizer import HostedAuthorizer
from infrastructure.blob import BlobStorageClient, FileEntity
from infrastructure.connection_pool import DataSource
from infrastructure.dataset_repository import DatasetRepository
from util_logger import LoggerFactory, ComponentType, LogContext
from .archive import ArchiveEntry, ArchiveEntryStream
from .classifier import UNCLASSIFIED, EntryClassifier
from .contracts import (
    DataType,
    ExtractLoadRequest,
    FeatureCollection,
    GeometryKind,
    LoadResult,
    LoadState,
    QueueMessage,
)
from .inserter import BatchInserter
from .reporter import ResultReporter

logger = LoggerFactory.create_logger(ComponentType.CONTROLLER, "LoadOrchestrator")

SUCCESS_MESSAGE = "Data loaded successfully"
INVALID_DATA_TYPE_MESSAGE = "Invalid data type"
UNAUTHORIZED_MESSAGE = "Unauthorized user"
PROCESSING_ERROR_PREFIX = "Error processing dataset: "


def _dims(request: ExtractLoadRequest, message_id: Optional[str] = None) -> dict:
    context = LogContext(
        message_id=message_id,
        dataset_id=request.tdei_dataset_id,
        data_type=request.data_type,
        user_id=request.user_id,
        project_group_id=request.tdei_project_group_id,
    )
    return {'custom_dimensions': context.to_dict()}


# ============================================================================
# LOADERS
# ============================================================================

class DatasetLoader(ABC):
    """Loads one data type. Updates result.state as it moves through phases."""

    @abstractmethod
    async def load(self, request: ExtractLoadRequest, result: LoadResult) -> None:
        ...


class UnsupportedDatasetLoader(DatasetLoader):
    """Placeholder for data types the worker accepts but cannot load yet."""

    def __init__(self, data_type: DataType):
        self.data_type = data_type

    async def load(self, request: ExtractLoadRequest, result: LoadResult) -> None:
        raise UnsupportedDataTypeError(f"Loading {self.data_type.value} datasets is not implemented")


class OswDatasetLoader(DatasetLoader):
    """Delete, load in one transaction, recompute statistics."""

    def __init__(
        self,
        data_source: DataSource,
        repository: DatasetRepository,
        storage: BlobStorageClient,
        inserter: BatchInserter,
        classifier: EntryClassifier,
        load_config: LoadConfig,
    ):
        self.data_source = data_source
        self.repository = repository
        self.storage = storage
        self.inserter = inserter
        self.classifier = classifier
        self.load_config = load_config

    async def load(self, request: ExtractLoadRequest, result: LoadResult) -> None:
        dataset_id = request.tdei_dataset_id
        file_entity = await self.storage.get_file_from_url(request.file_upload_path)

        result.state = LoadState.DELETING
        await self.repository.delete_dataset(dataset_id)

        result.state = LoadState.LOADING

        async def work(conn: psycopg.AsyncConnection) -> None:
            await self._load_entries(conn, request, file_entity, result)

        await self.data_source.run_in_transaction(work)
        logger.info(
            f"Committed {result.total_rows} rows for dataset {dataset_id}",
            extra=_dims(request),
        )

        result.state = LoadState.AGGREGATING
        try:
            await self.repository.recompute_statistics(dataset_id)
            result.statistics_refreshed = True
        except DatabaseError as e:
            logger.error(
                f"Statistics recomputation failed for committed dataset {dataset_id}: {e}",
                extra=_dims(request),
            )

    async def _parse_entry(self, entry: ArchiveEntry, result: LoadResult) -> Optional[FeatureCollection]:
        """Parse one entry; None (logged, recorded as skipped) if it is not a feature collection."""
        payload = await entry.read()
        try:
            return FeatureCollection.model_validate_json(payload.decode("utf-8"))
        except (UnicodeDecodeError, ValidationError) as e:
            logger.warning(f"Skipping {entry.path}: not a valid feature collection ({e})")
            result.skipped_entries.append(entry.path)
            return None

    async def _load_entries(
        self,
        conn: psycopg.AsyncConnection,
        request: ExtractLoadRequest,
        file_entity: FileEntity,
        result: LoadResult,
    ) -> None:
        inflight = asyncio.Semaphore(self.load_config.max_inflight_entries)
        kind_locks: Dict[GeometryKind, asyncio.Lock] = {kind: asyncio.Lock() for kind in GeometryKind}
        tasks: List[asyncio.Task] = []
        # Completion order; later errors on the shared connection follow from the first
        failures: List[Exception] = []

        async def insert_entry(path: str, kind: GeometryKind, collection: FeatureCollection) -> Tuple[GeometryKind, int]:
            try:
                async with kind_locks[kind]:
                    logger.debug(f"Inserting {len(collection.features)} {kind.value} features from {path}")
                    rows = await self.inserter.insert(
                        conn, request.tdei_dataset_id, kind, collection, request.user_id
                    )
                return kind, rows
            except Exception as e:
                failures.append(e)
                raise
            finally:
                inflight.release()

        try:
            async with ArchiveEntryStream(
                file_entity.get_stream(),
                spool_max_memory=self.load_config.spool_max_memory_bytes,
            ) as archive:
                async for entry in archive:
                    if entry.is_directory or not self.classifier.is_data_file(entry.path):
                        continue
                    if any(task.done() and not task.cancelled() and task.exception() for task in tasks):
                        # A kind already failed; the transaction will roll back
                        break

                    await inflight.acquire()
                    try:
                        collection = await self._parse_entry(entry, result)
                    except BaseException:
                        inflight.release()
                        raise
                    kind = self.classifier.classify(entry.path) if collection is not None else UNCLASSIFIED
                    if kind is UNCLASSIFIED:
                        inflight.release()
                        continue

                    tasks.append(asyncio.create_task(insert_entry(entry.path, kind, collection)))
        finally:
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        if failures:
            raise failures[0]
        errors = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        if errors:
            raise errors[0]

        for kind, rows in outcomes:
            result.rows_by_kind[kind] = result.rows_by_kind.get(kind, 0) + rows


# ============================================================================
# ORCHESTRATOR
# ============================================================================

class LoadOrchestrator:
    """
    Runs one load per inbound message and reports its outcome.

    Example:
        orchestrator = LoadOrchestrator.create(config, data_source, storage, reporter, authorizer)
        result = await orchestrator.process(queue_message)
    """

    def __init__(
        self,
        loaders: Dict[DataType, DatasetLoader],
        reporter: ResultReporter,
        authorizer: Optional[HostedAuthorizer] = None,
    ):
        missing = [data_type.value for data_type in DataType if data_type not in loaders]
        if missing:
            raise ContractViolationError(f"No loader registered for data types: {missing}")
        self.loaders = loaders
        self.reporter = reporter
        self.authorizer = authorizer

    @classmethod
    def create(
        cls,
        config,
        data_source: DataSource,
        storage: BlobStorageClient,
        reporter: ResultReporter,
        authorizer: Optional[HostedAuthorizer] = None,
    ) -> "LoadOrchestrator":
        """Wire the production loader table from AppConfig."""
        repository = DatasetRepository(data_source, config.database)
        osw_loader = OswDatasetLoader(
            data_source=data_source,
            repository=repository,
            storage=storage,
            inserter=BatchInserter(repository, config.load.batch_size),
            classifier=EntryClassifier(config.load.data_file_suffix),
            load_config=config.load,
        )
        loaders: Dict[DataType, DatasetLoader] = {
            DataType.OSW: osw_loader,
            DataType.FLEX: UnsupportedDatasetLoader(DataType.FLEX),
            DataType.PATHWAYS: UnsupportedDatasetLoader(DataType.PATHWAYS),
        }
        return cls(loaders, reporter, authorizer)

    async def _fail(self, message: QueueMessage, result: LoadResult, detail: str) -> LoadResult:
        result.state = LoadState.FAILED
        result.message = detail
        await self.reporter.report(message, False, detail)
        return result

    async def process(self, message: QueueMessage) -> LoadResult:
        """
        Run one load end to end. Failures are reported, not raised.

        Returns:
            LoadResult with the final state
        """
        result = LoadResult(state=LoadState.START)

        try:
            request = ExtractLoadRequest.from_message(message)
        except ValidationError as e:
            logger.error(f"Invalid load request in message {message.message_id}: {e}")
            return await self._fail(message, result, f"Invalid request: {e.error_count()} field error(s)")

        result.dataset_id = request.tdei_dataset_id
        dims = _dims(request, message.message_id)
        logger.info(f"Starting load of dataset {request.tdei_dataset_id} ({request.data_type})", extra=dims)

        data_type = DataType.parse(request.data_type)
        if data_type is None:
            logger.warning(f"Rejecting unknown data type {request.data_type!r}", extra=dims)
            return await self._fail(message, result, INVALID_DATA_TYPE_MESSAGE)

        try:
            if self.authorizer is not None:
                permitted = await self.authorizer.has_permission(
                    request.user_id, request.tdei_project_group_id, data_type.value
                )
                if not permitted:
                    raise AuthorizationError(UNAUTHORIZED_MESSAGE)

            await self.loaders[data_type].load(request, result)

        except AuthorizationError as e:
            logger.warning(f"Permission denied for user {request.user_id}", extra=dims)
            return await self._fail(message, result, str(e))
        except UnsupportedDataTypeError as e:
            logger.warning(str(e), extra=dims)
            return await self._fail(message, result, str(e))
        except BusinessLogicError as e:
            logger.error(
                f"Load of dataset {request.tdei_dataset_id} failed during {result.state.value}: {e}",
                exc_info=True,
                extra=dims,
            )
            return await self._fail(message, result, f"{PROCESSING_ERROR_PREFIX}{e}")
        except Exception as e:
            logger.error(
                f"Unexpected error loading dataset {request.tdei_dataset_id} during {result.state.value}: "
                f"{type(e).__name__}: {e}",
                exc_info=True,
                extra=dims,
            )
            return await self._fail(message, result, f"{PROCESSING_ERROR_PREFIX}{e}")

        result.state = LoadState.DONE
        result.message = SUCCESS_MESSAGE
        rows_by_kind = {kind.value: rows for kind, rows in result.rows_by_kind.items()}
        logger.info(
            f"Loaded dataset {request.tdei_dataset_id}: rows={rows_by_kind} "
            f"skipped={len(result.skipped_entries)}",
            extra=dims,
        )
        await self.reporter.report(message, True, SUCCESS_MESSAGE)
        return result
