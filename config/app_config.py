"""
Main Application Configuration.

Composes the domain configs into one AppConfig loaded from the environment.

Exports:
    AppConfig: Composed configuration model
"""

import os
from typing import List
from pydantic import BaseModel, Field

from .auth_config import AuthConfig
from .database_config import DatabaseConfig
from .load_config import LoadConfig
from .queue_config import QueueConfig
from .storage_config import StorageConfig


class AppConfig(BaseModel):
    """
    Extract-load worker configuration.

    Composition:
        database - content database connection and stored operations
        queues   - Service Bus topics
        storage  - Blob credentials
        load     - pipeline tuning
        auth     - permission check
    """

    app_name: str = Field(
        default="osw-extract-load",
        description="Service name, reported in logs"
    )

    environment: str = Field(
        default="dev",
        description="Deployment environment (dev, stage, prod)"
    )

    database: DatabaseConfig
    queues: QueueConfig = Field(default_factory=QueueConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    load: LoadConfig = Field(default_factory=LoadConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)

    def validate_runtime(self) -> List[str]:
        """
        Validate settings needed to actually run the worker.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []
        if not self.database.host:
            errors.append("POSTGRES_HOST is required")
        if not self.database.database:
            errors.append("POSTGRES_DB is required")
        if not (self.queues.connection_string or self.queues.namespace):
            errors.append("QUEUECONNECTION or SERVICE_BUS_NAMESPACE is required")
        if not (self.storage.connection_string or self.storage.account_name):
            errors.append("STORAGECONNECTION or STORAGE_ACCOUNT_NAME is required")
        return errors

    @classmethod
    def from_environment(cls):
        """Load all configs from environment."""
        return cls(
            app_name=os.environ.get("APP_NAME", "osw-extract-load"),
            environment=os.environ.get("ENVIRONMENT", "dev"),
            database=DatabaseConfig.from_environment(),
            queues=QueueConfig.from_environment(),
            storage=StorageConfig.from_environment(),
            load=LoadConfig.from_environment(),
            auth=AuthConfig.from_environment(),
        )
