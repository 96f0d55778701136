"""TaskTrack error taxonomy."""


class TaskTrackError(Exception):
    """Base error for TaskTrack operations."""

    def __init__(self, message: str, code: str = "TASKTRACK_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(TaskTrackError):
    """Missing or invalid field."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, "VALIDATION_ERROR")
        self.field = field


class NotFoundError(TaskTrackError):
    """Operation target does not exist."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found: {entity_id}", "NOT_FOUND")
        self.entity = entity
        self.entity_id = entity_id


class CapacityExceeded(TaskTrackError):
    """Member already holds the maximum number of in-progress tasks."""

    def __init__(self, member_id: str, limit: int):
        super().__init__(
            f"Assignee has too many in_progress tasks (limit {limit}).",
            "CAPACITY_EXCEEDED",
        )
        self.member_id = member_id
        self.limit = limit


class DuplicateKeyError(TaskTrackError):
    """Project key already in use."""

    def __init__(self, key: str):
        super().__init__(f"Project key already exists: {key}", "DUPLICATE_KEY")
        self.key = key


class StorageError(TaskTrackError):
    """Underlying persistence call failed."""

    def __init__(self, operation: str, cause: Exception | None = None):
        detail = f"{operation} failed"
        if cause is not None:
            detail = f"{detail}: {cause}"
        super().__init__(detail, "STORAGE_ERROR")
        self.operation = operation
        self.cause = cause
