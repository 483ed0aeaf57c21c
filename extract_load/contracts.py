# ============================================================================
# EXTRACT-LOAD CONTRACTS
# ============================================================================
# STATUS: Core - message and data schemas
# PURPOSE: Define queue envelopes, load request/response, geometry kinds,
#          feature collections and load results
# DEPENDENCIES: pydantic
# ============================================================================
"""
Extract-Load Contracts

Message schemas shared with the upstream publisher and the response
consumers, plus the in-process types that flow through one load.

QueueMessage: Service Bus envelope ({messageId, messageType, data})
ExtractLoadRequest: What the publisher asks for (envelope data)
ExtractLoadResponse: What the worker reports back (envelope data)
FeatureCollection: One parsed .geojson entry
LoadResult: Outcome of one load, used for logging and tests
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class DataType(str, Enum):
    """
    Closed set of dataset types the worker is subscribed for.

    Adding a member forces a matching entry in the orchestrator's loader
    table (checked when the orchestrator is built).
    """
    OSW = "osw"
    FLEX = "flex"
    PATHWAYS = "pathways"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["DataType"]:
        """Return the member for value, or None when it is not in the set."""
        try:
            return cls(value)
        except ValueError:
            return None


class GeometryKind(str, Enum):
    """
    Feature categories of an OSW dataset, in classification order.

    Node is checked before edge before the extension kinds.
    """
    NODE = "node"
    EDGE = "edge"
    EXTENSION_POINT = "extension_point"
    EXTENSION_LINE = "extension_line"
    EXTENSION_POLYGON = "extension_polygon"
    ZONE = "zone"


class LoadState(str, Enum):
    """Load lifecycle states."""
    START = "start"
    DELETING = "deleting"
    LOADING = "loading"
    AGGREGATING = "aggregating"
    DONE = "done"
    FAILED = "failed"


# ============================================================================
# QUEUE ENVELOPES
# ============================================================================

class QueueMessage(BaseModel):
    """
    Service Bus message envelope.

    Field names on the wire are camelCase; Python code uses snake_case.
    """
    model_config = ConfigDict(populate_by_name=True)

    message_id: str = Field(..., alias="messageId", max_length=256)
    message_type: Optional[str] = Field(default=None, alias="messageType")
    published_date: Optional[str] = Field(default=None, alias="publishedDate")
    data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_queue_message(cls, body: Dict[str, Any]) -> "QueueMessage":
        """
        Deserialize from a Service Bus message body.

        Args:
            body: Parsed JSON from message body

        Returns:
            QueueMessage instance
        """
        return cls.model_validate(body)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for publishing (camelCase keys)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ExtractLoadRequest(BaseModel):
    """
    Load request carried in QueueMessage.data.

    data_type stays a raw string here so an unknown type is reported back
    instead of failing envelope parsing.
    """
    model_config = ConfigDict(extra="ignore")

    data_type: str
    tdei_dataset_id: str = Field(..., min_length=1)
    file_upload_path: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    tdei_project_group_id: Optional[str] = None

    @classmethod
    def from_message(cls, message: QueueMessage) -> "ExtractLoadRequest":
        return cls.model_validate(message.data)


class ExtractLoadResponse(BaseModel):
    """Outcome carried in the response envelope's data."""
    message: str
    success: bool
    data_type: Optional[str] = None
    file_upload_path: Optional[str] = None
    tdei_dataset_id: Optional[str] = None


# ============================================================================
# DATASET CONTENT
# ============================================================================

class FeatureCollection(BaseModel):
    """
    GeoJSON-like FeatureCollection.

    Features are kept as opaque JSON values. Any top-level key other than
    type and features is preserved in model_extra and becomes dataset
    metadata for the entry's geometry kind.
    """
    model_config = ConfigDict(extra="allow")

    type: str = "FeatureCollection"
    features: List[Any]

    def metadata(self) -> Dict[str, Any]:
        """Non-feature top-level keys, null values replaced by empty string."""
        return {
            key: ("" if value is None else value)
            for key, value in (self.model_extra or {}).items()
        }


class LoadResult(BaseModel):
    """Outcome of one load."""
    dataset_id: Optional[str] = None
    state: LoadState = LoadState.START
    message: str = ""
    rows_by_kind: Dict[GeometryKind, int] = Field(default_factory=dict)
    skipped_entries: List[str] = Field(default_factory=list)
    statistics_refreshed: bool = False

    @property
    def success(self) -> bool:
        return self.state == LoadState.DONE

    @property
    def total_rows(self) -> int:
        return sum(self.rows_by_kind.values())
