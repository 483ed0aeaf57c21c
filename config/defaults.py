"""
Configuration Defaults - Single source of truth for all default values.

Organization:
    - DatabaseDefaults: PostgreSQL connection, pool and stored-function names
    - QueueDefaults: Service Bus topics and subscription
    - StorageDefaults: Blob download settings
    - LoadDefaults: Extract-load pipeline tuning
    - AuthDefaults: Permission check settings

Usage:
    from config.defaults import DatabaseDefaults

    # In Pydantic Field definitions:
    port: int = Field(default=DatabaseDefaults.PORT, ...)
"""


# =============================================================================
# DATABASE DEFAULTS
# =============================================================================

class DatabaseDefaults:
    """PostgreSQL connection and content-schema defaults."""

    PORT = 5432
    SSL = False

    POOL_MIN = 1
    POOL_MAX = 10
    POOL_TIMEOUT_SECONDS = 30.0

    # Per-statement ceiling; a hung insert becomes a DatabaseError instead of
    # blocking the load forever
    STATEMENT_TIMEOUT_MS = 300_000

    CONTENT_SCHEMA = "content"
    DATASET_TABLE = "dataset"

    # Stored operations, called as SELECT schema.fn(dataset_id)
    DELETE_FUNCTION = "delete_dataset_content"
    STATS_FUNCTION = "recompute_dataset_statistics"


# =============================================================================
# QUEUE DEFAULTS
# =============================================================================

class QueueDefaults:
    """Service Bus topic/subscription defaults."""

    REQUEST_TOPIC = "extract-load-request"
    REQUEST_SUBSCRIPTION = "extract-load-processor"
    RESPONSE_TOPIC = "extract-load-response"

    MAX_CONCURRENT_MESSAGES = 2
    MAX_WAIT_SECONDS = 5
    MESSAGE_TTL_HOURS = 24

    # Loads of large archives outlive the default 60s peek-lock
    MAX_LOCK_RENEWAL_SECONDS = 3600


# =============================================================================
# STORAGE DEFAULTS
# =============================================================================

class StorageDefaults:
    """Blob download defaults."""

    DOWNLOAD_CONCURRENCY = 1


# =============================================================================
# LOAD DEFAULTS
# =============================================================================

class LoadDefaults:
    """Extract-load pipeline defaults."""

    BULK_INSERT_BATCH_SIZE = 1000

    # PostgreSQL binds at most 65535 parameters per statement; three per row
    MAX_BULK_INSERT_BATCH_SIZE = 65535 // 3
    DATA_FILE_SUFFIX = ".geojson"

    # Compressed bytes kept in memory before the spool rolls over to disk
    SPOOL_MAX_MEMORY_BYTES = 16 * 1024 * 1024

    # Parsed collections allowed in flight at once (one per archive entry)
    MAX_INFLIGHT_ENTRIES = 6


# =============================================================================
# AUTH DEFAULTS
# =============================================================================

class AuthDefaults:
    """Permission check defaults."""

    PERMISSION_PATH = "/api/v1/hasPermission"
    TIMEOUT_SECONDS = 30.0
