"""
Root conftest.py: sys.path, env vars, shared fixtures.

Sets up the test environment so all production code can be imported
without database connections or Azure credentials.
"""

import os
import sys

import pytest

# Add project root to sys.path so 'config', 'infrastructure', 'extract_load' are importable
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


@pytest.fixture(autouse=True, scope="session")
def set_minimal_env_vars():
    """
    Set minimal environment variables so get_config() succeeds without
    Azure infrastructure.
    """
    defaults = {
        "POSTGRES_HOST": "localhost",
        "POSTGRES_DB": "testdb",
        "QUEUECONNECTION": "Endpoint=sb://test.servicebus.windows.net/;SharedAccessKeyName=k;SharedAccessKey=v",
        "STORAGECONNECTION": "UseDevelopmentStorage=true",
        "ENVIRONMENT": "dev",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


@pytest.fixture(autouse=True)
def fresh_config():
    """Drop the cached AppConfig around every test."""
    from config import reset_config
    reset_config()
    yield
    reset_config()
