"""TaskTrack engine - workflow operations and state machine."""

from tasktrack.engine.admission import AdmissionController
from tasktrack.engine.audit import AuditRecorder
from tasktrack.engine.core import ImportReport, TaskWorkflowEngine
from tasktrack.engine.directory import MemberDirectory, ProjectRegistry
from tasktrack.errors import (
    CapacityExceeded,
    DuplicateKeyError,
    NotFoundError,
    StorageError,
    TaskTrackError,
    ValidationError,
)

__all__ = [
    "AdmissionController",
    "AuditRecorder",
    "CapacityExceeded",
    "DuplicateKeyError",
    "ImportReport",
    "MemberDirectory",
    "NotFoundError",
    "ProjectRegistry",
    "StorageError",
    "TaskTrackError",
    "TaskWorkflowEngine",
    "ValidationError",
]
