"""
Config test fixtures: clean environment via monkeypatch.
"""

import pytest


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all env vars that config modules might read, for isolation."""
    env_vars_to_clear = [
        "POSTGRES_HOST", "POSTGRES_PORT", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB",
        "SSL", "POSTGRES_POOL_MIN", "POSTGRES_POOL_MAX", "POSTGRES_POOL_TIMEOUT",
        "POSTGRES_STATEMENT_TIMEOUT_MS",
        "CONTENT_SCHEMA", "DATASET_TABLE", "DATASET_DELETE_FUNCTION", "DATASET_STATS_FUNCTION",
        "QUEUECONNECTION", "SERVICE_BUS_NAMESPACE",
        "EXTRACT_LOAD_REQUEST_TOPIC", "EXTRACT_LOAD_REQUEST_SUBSCRIPTION", "EXTRACT_LOAD_RESPONSE_TOPIC",
        "SERVICE_BUS_MAX_CONCURRENT_MESSAGES", "SERVICE_BUS_MAX_LOCK_RENEWAL_SECONDS",
        "SERVICE_BUS_MAX_WAIT_SECONDS",
        "STORAGECONNECTION", "STORAGE_ACCOUNT_NAME", "STORAGE_DOWNLOAD_CONCURRENCY",
        "BULK_INSERT_BATCH_SIZE", "LOAD_DATA_FILE_SUFFIX", "LOAD_MAX_INFLIGHT_ENTRIES",
        "LOAD_SPOOL_MAX_MEMORY_BYTES",
        "AUTH_HOST", "AUTH_TIMEOUT_SECONDS", "APP_NAME", "ENVIRONMENT",
    ]
    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch
