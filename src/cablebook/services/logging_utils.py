"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across the import services.

Usage:
    from cablebook.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="reconcile_batch",
        outcome="success",
        entity_type="cable",
        inserted=12,
        updated=3,
    )
"""

import logging
from typing import Any


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger instance with the 'cablebook.services' prefix.

    Example:
        >>> logger = get_service_logger(__name__)
        >>> logger.name
        'cablebook.services.upsert_reconciler'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"cablebook.services.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The context is passed via the 'extra' parameter for structured logging.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "reconcile_batch", "replace_child_set")
        outcome: Outcome description (e.g., "success", "aborted", "error")
        level: Log level (default: INFO). Use DEBUG for verbose/frequent logs.
        **context: Additional context fields
            Common fields:
            - entity_type: Profile being imported
            - total_rows / inserted / updated / skipped: Summary counts
            - missing_names: Unresolved reference names
            - error: Error message if outcome is "error"

    Example:
        >>> log_operation(
        ...     logger,
        ...     operation="resolve_references",
        ...     outcome="unresolved",
        ...     level=logging.WARNING,
        ...     missing_names=["TypeB"],
        ... )
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)
