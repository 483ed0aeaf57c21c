# ============================================================================
# ENTRY CLASSIFIER
# ============================================================================
# STATUS: Core - archive path to geometry kind
# PURPOSE: Decide which content table an archive entry belongs to
# EXPORTS: EntryClassifier, UNCLASSIFIED, KIND_MATCH_TOKENS
# DEPENDENCIES: extract_load.contracts
# ============================================================================
"""
Entry Classifier

An entry is data only when its name ends with the data-file suffix. Its
geometry kind is then the first kind, in GeometryKind order, whose match
token occurs in the lowercased path. Tokens are the plural file stems the
OSW producers write (nodes.geojson, edges.geojson, ...).

Checking node before edge keeps "nodes" and "edges" from cross-matching;
the extension tokens never occur in either stem.
"""

from typing import Dict, Optional

from config.defaults import LoadDefaults
from .contracts import GeometryKind

# Sentinel for paths that map to no kind; such entries are dropped silently
UNCLASSIFIED: Optional[GeometryKind] = None

KIND_MATCH_TOKENS: Dict[GeometryKind, str] = {
    GeometryKind.NODE: "nodes",
    GeometryKind.EDGE: "edges",
    GeometryKind.EXTENSION_POINT: "points",
    GeometryKind.EXTENSION_LINE: "lines",
    GeometryKind.EXTENSION_POLYGON: "polygons",
    GeometryKind.ZONE: "zones",
}


class EntryClassifier:
    """Maps archive entry paths to geometry kinds."""

    def __init__(self, data_file_suffix: str = LoadDefaults.DATA_FILE_SUFFIX):
        self.data_file_suffix = data_file_suffix.lower()

    def is_data_file(self, path: str) -> bool:
        return path.lower().endswith(self.data_file_suffix)

    def classify(self, path: str) -> Optional[GeometryKind]:
        """
        Classify one entry path.

        Args:
            path: Entry name inside the archive (may include folders)

        Returns:
            GeometryKind, or UNCLASSIFIED when the entry is not a data file
            or matches no kind
        """
        if not self.is_data_file(path):
            return UNCLASSIFIED

        lowered = path.lower()
        for kind in GeometryKind:
            if KIND_MATCH_TOKENS[kind] in lowered:
                return kind
        return UNCLASSIFIED
