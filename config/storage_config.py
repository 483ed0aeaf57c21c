"""
Azure Blob Storage Configuration.

Archives are referenced by full blob URL in the request message; the worker
only needs credentials for the account(s) those URLs point at.

Exports:
    StorageConfig: Pydantic storage configuration model
"""

import os
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field

from .defaults import StorageDefaults


class StorageConfig(BaseModel):
    """Blob storage credentials and download settings."""

    connection_string: Optional[str] = Field(
        default=None,
        repr=False,
        description="Storage account connection string (STORAGECONNECTION)"
    )

    account_name: Optional[str] = Field(
        default=None,
        description="Storage account for DefaultAzureCredential auth when no connection string is set"
    )

    download_concurrency: int = Field(
        default=StorageDefaults.DOWNLOAD_CONCURRENCY,
        ge=1,
        le=16,
        description="Parallel range requests per blob download"
    )

    def debug_dict(self) -> Dict[str, Any]:
        return {
            "connection_string": "***MASKED***" if self.connection_string else None,
            "account_name": self.account_name,
            "download_concurrency": self.download_concurrency,
        }

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            connection_string=os.environ.get("STORAGECONNECTION"),
            account_name=os.environ.get("STORAGE_ACCOUNT_NAME"),
            download_concurrency=int(
                os.environ.get("STORAGE_DOWNLOAD_CONCURRENCY", str(StorageDefaults.DOWNLOAD_CONCURRENCY))
            ),
        )
