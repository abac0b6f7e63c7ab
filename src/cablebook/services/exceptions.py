"""Service layer exception classes for Cablebook.

This module defines all custom exceptions used by the service layer to provide
consistent error handling across the application.

Exception Hierarchy:
    ServiceError (base)
    └── ImportServiceError
        ├── RowInvalid              (row-local, counted as skipped)
        ├── DuplicateKeyInBatch     (row-local, counted as skipped)
        ├── MissingRequiredColumns  (batch-fatal)
        ├── UnresolvedReference     (batch-fatal)
        ├── ParentNotFound          (batch-fatal)
        ├── EmptyChildSet           (batch-fatal)
        └── StorageFailure          (batch-fatal, transaction rolled back)

Row-local errors never escape an import call; the engine catches them and
records a skip. Batch-fatal errors always leave persisted data unchanged.
"""

from typing import Any, Iterable, List, Optional


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions should inherit from this class.
    """

    pass


class ImportServiceError(ServiceError):
    """Base exception for spreadsheet import errors."""

    pass


# ============================================================================
# Row-local errors
# ============================================================================


class RowInvalid(ImportServiceError):
    """Raised when a single row cannot become a candidate entity.

    Args:
        reason: Machine-readable skip reason (see SkipReason)
        message: Human-readable explanation
        identifier: Display identifier of the row, if one was found
    """

    def __init__(self, reason: str, message: str, identifier: Optional[str] = None):
        self.reason = reason
        self.identifier = identifier
        super().__init__(message)


class DuplicateKeyInBatch(ImportServiceError):
    """Raised when a later row reuses an earlier row's natural key.

    Args:
        key: The normalized natural key
        first_row: Sheet row number of the row that was kept
    """

    def __init__(self, key: str, first_row: int):
        self.key = key
        self.first_row = first_row
        super().__init__(f"Duplicate of row {first_row} (key '{key}')")


# ============================================================================
# Batch-fatal errors
# ============================================================================


class MissingRequiredColumns(ImportServiceError):
    """Raised when the sheet lacks one or more required columns.

    Args:
        missing_columns: Header names that were not found

    Example:
        >>> raise MissingRequiredColumns(["Cable Id"])
        MissingRequiredColumns: Import cancelled. Missing required columns: Cable Id
    """

    def __init__(self, missing_columns: Iterable[str]):
        self.missing_columns: List[str] = list(missing_columns)
        super().__init__(
            f"Import cancelled. Missing required columns: {', '.join(self.missing_columns)}"
        )


class UnresolvedReference(ImportServiceError):
    """Raised when reference names in the batch have no match.

    Every missing name is reported, not just the first, so the sheet can be
    fixed in one pass.

    Args:
        entity_type: The referenced collection (e.g., "cable type")
        missing_names: Display names that could not be resolved

    Example:
        >>> raise UnresolvedReference("cable type", ["TypeB"])
        UnresolvedReference: Import cancelled. Missing cable types: TypeB.
    """

    def __init__(self, entity_type: str, missing_names: Iterable[str]):
        self.entity_type = entity_type
        self.missing_names: List[str] = list(missing_names)
        super().__init__(
            f"Import cancelled. Missing {entity_type}s: {', '.join(self.missing_names)}."
        )


class ParentNotFound(ImportServiceError):
    """Raised when the parent owning the imported collection does not exist.

    Args:
        parent_type: Parent kind (e.g., "load curve", "project")
        parent_id: The ID that was not found
    """

    def __init__(self, parent_type: str, parent_id: Any):
        self.parent_type = parent_type
        self.parent_id = parent_id
        super().__init__(f"{parent_type.capitalize()} with ID {parent_id} not found")


class EmptyChildSet(ImportServiceError):
    """Raised when a child-set import yields no valid items.

    Args:
        total_rows: Number of rows that were examined
    """

    def __init__(self, total_rows: int):
        self.total_rows = total_rows
        super().__init__(f"No valid points found in {total_rows} row(s)")


class StorageFailure(ImportServiceError):
    """Raised when a persistence call fails during an import.

    The transaction has been rolled back when this is raised; no partial
    state is left behind. The original exception is chained and kept on
    ``original_error``.

    Args:
        message: Description of the failed operation
        original_error: The exception raised by the store
    """

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        self.original_error = original_error
        super().__init__(f"Import failed: {message}")
