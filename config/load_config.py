"""
Extract-Load Pipeline Configuration.

Provides configuration for:
    - Bulk insert batch size (rows per INSERT statement)
    - Recognized data-file suffix inside archives
    - Spool threshold for the downloaded archive
    - Backpressure bound on in-flight archive entries

Exports:
    LoadConfig: Pydantic load configuration model
"""

import os
from pydantic import BaseModel, Field

from .defaults import LoadDefaults


class LoadConfig(BaseModel):
    """
    Extract-load pipeline configuration.

    Controls chunked inserts and the memory envelope of a single load.
    """

    batch_size: int = Field(
        default=LoadDefaults.BULK_INSERT_BATCH_SIZE,
        ge=1,
        le=LoadDefaults.MAX_BULK_INSERT_BATCH_SIZE,
        description="Features per multi-row INSERT statement"
    )

    data_file_suffix: str = Field(
        default=LoadDefaults.DATA_FILE_SUFFIX,
        min_length=1,
        description="Archive entries without this suffix are ignored"
    )

    spool_max_memory_bytes: int = Field(
        default=LoadDefaults.SPOOL_MAX_MEMORY_BYTES,
        ge=1,
        description="Compressed bytes held in memory before spooling to disk"
    )

    max_inflight_entries: int = Field(
        default=LoadDefaults.MAX_INFLIGHT_ENTRIES,
        ge=1,
        le=64,
        description="Parsed entries allowed to wait on inserts at once"
    )

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            batch_size=int(os.environ.get("BULK_INSERT_BATCH_SIZE", str(LoadDefaults.BULK_INSERT_BATCH_SIZE))),
            data_file_suffix=os.environ.get("LOAD_DATA_FILE_SUFFIX", LoadDefaults.DATA_FILE_SUFFIX),
            spool_max_memory_bytes=int(
                os.environ.get("LOAD_SPOOL_MAX_MEMORY_BYTES", str(LoadDefaults.SPOOL_MAX_MEMORY_BYTES))
            ),
            max_inflight_entries=int(
                os.environ.get("LOAD_MAX_INFLIGHT_ENTRIES", str(LoadDefaults.MAX_INFLIGHT_ENTRIES))
            ),
        )
