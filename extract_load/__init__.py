# ============================================================================
# EXTRACT-LOAD MODULE
# ============================================================================
# STATUS: Core - OSW dataset extract-load pipeline
# PURPOSE: Receive load requests, stream archives into the content schema,
#          report outcomes
# ============================================================================
"""
Extract-Load Module

    ┌──────────────┐   ┌──────────────────┐   ┌────────────────────┐
    │   Listener   │──▶│ LoadOrchestrator │──▶│   ResultReporter   │
    └──────────────┘   └────────┬─────────┘   └────────────────────┘
                                │
              ┌─────────────────┼──────────────────┐
              ▼                 ▼                  ▼
     ArchiveEntryStream  EntryClassifier     BatchInserter

Components:
    - archive.py:      Spooled, lazy zip traversal
    - classifier.py:   Entry path -> GeometryKind
    - inserter.py:     Metadata + chunked multi-row inserts per kind
    - orchestrator.py: Load state machine and data-type dispatch
    - reporter.py:     Outcome messages on the response topic
    - listener.py:     Request subscription consumer
    - main.py:         Worker process entry point
    - contracts.py:    Message schemas and enums

Usage:
    python -m extract_load
"""

from .contracts import (
    DataType,
    ExtractLoadRequest,
    ExtractLoadResponse,
    FeatureCollection,
    GeometryKind,
    LoadResult,
    LoadState,
    QueueMessage,
)

__all__ = [
    "DataType",
    "ExtractLoadRequest",
    "ExtractLoadResponse",
    "FeatureCollection",
    "GeometryKind",
    "LoadResult",
    "LoadState",
    "QueueMessage",
]
