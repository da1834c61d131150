"""Custom exception hierarchy."""

from typing import Optional, Sequence


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ValidationError(AppError):
    """Raised when input validation fails, before the store is touched."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass


class StoreError(DatabaseError):
    """A query or transaction failed; the transaction was rolled back."""
    pass


class NotFoundError(AppError):
    """Raised when a referenced work or volume does not exist."""

    def __init__(self, entity: str, entity_id: int):
        super().__init__(f"{entity} with ID {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class AlreadyArchivedError(AppError):
    """Raised when archiving a record whose deleted_at is already set."""

    def __init__(self, entity: str, entity_id: int):
        super().__init__(f"{entity} with ID {entity_id} is already archived")
        self.entity = entity
        self.entity_id = entity_id


class NotArchivedError(AppError):
    """Raised when restoring or purging a record that is not archived."""

    def __init__(self, entity: str, entity_id: int):
        super().__init__(f"{entity} with ID {entity_id} is not archived")
        self.entity = entity
        self.entity_id = entity_id


class ConsistencyViolationError(AppError):
    """Join table and compiled_parent_id disagree for a volume."""

    def __init__(self, volume_id: int, work_ids: Sequence[int]):
        ids = ", ".join(str(work_id) for work_id in sorted(work_ids))
        super().__init__(
            f"Volume {volume_id} has inconsistent child links for works: {ids}"
        )
        self.volume_id = volume_id
        self.work_ids = sorted(work_ids)
