"""Schema synchronization - status, push and pull."""

from .analyzer import (
    SchemaGateway,
    SchemaSource,
    SchemaStatus,
    StatusAnalyzer,
    StatusResult,
)
from .comparator import VersionComparison, VersionStatus, compare_versions
from .orchestrator import (
    PullOrchestrator,
    PushOrchestrator,
    StatusReport,
    StatusReporter,
    SyncOrchestrator,
    SyncPhase,
    SyncResult,
)

__all__ = [
    "SchemaGateway",
    "SchemaSource",
    "SchemaStatus",
    "StatusAnalyzer",
    "StatusResult",
    "VersionComparison",
    "VersionStatus",
    "compare_versions",
    "SyncOrchestrator",
    "PushOrchestrator",
    "PullOrchestrator",
    "SyncPhase",
    "SyncResult",
    "StatusReporter",
    "StatusReport",
]
