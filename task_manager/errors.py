from typing import Optional


class TaskManagerError(Exception):
    """Base class for every error the tracker reports to the user."""


class ValidationError(TaskManagerError):
    pass


class NotFoundError(TaskManagerError):
    def __init__(self, task_id: int, message: Optional[str] = None):
        self.task_id = task_id
        super().__init__(message or f"Task {task_id} not found")


class StorageError(TaskManagerError):
    """Connection, read or write failure of the underlying database."""


class MigrationError(StorageError):
    """Schema migrations could not be applied or verified."""


class ConfigError(TaskManagerError):
    pass
