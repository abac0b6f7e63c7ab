"""Services package - spreadsheet import engine for Cablebook.

Architecture:
- Engine: Pure pipeline functions (row preparation, deduplication,
  reference resolution, upsert reconciliation, child-set replacement)
  working against injected store protocols
- Stores: SQLAlchemy implementations of the store protocols
- Transactions: Managed via session_scope() context manager
- Exceptions: Consistent error handling via ServiceError hierarchy

Service Modules:
- spreadsheet_import_service: Import entry points and refresh queries
- upsert_reconciler_service: Insert-or-update by natural key
- child_set_service: Full replacement of load curve points
- row_preparation_service: Row validation and in-batch deduplication
- reference_resolver_service: Reference-by-name resolution
- import_profiles: Column maps per entity kind
- import_store: SQLAlchemy stores

Infrastructure:
- exceptions: Custom exception classes for service layer errors
- database: Session management and database utilities
- logging_utils: Structured operation logging
"""

from . import database

from .exceptions import (
    ServiceError,
    ImportServiceError,
    RowInvalid,
    DuplicateKeyInBatch,
    MissingRequiredColumns,
    UnresolvedReference,
    ParentNotFound,
    EmptyChildSet,
    StorageFailure,
)

from .import_result import ImportSummary, ChildSetResult, SkipDetail, SkipReason

from .spreadsheet_import_service import (
    import_cables,
    import_cable_types,
    import_trays,
    import_material_trays,
    import_material_supports,
    import_load_curve_points,
    list_collection,
    get_load_curve,
)

__all__ = [
    "database",
    # Exceptions
    "ServiceError",
    "ImportServiceError",
    "RowInvalid",
    "DuplicateKeyInBatch",
    "MissingRequiredColumns",
    "UnresolvedReference",
    "ParentNotFound",
    "EmptyChildSet",
    "StorageFailure",
    # Results
    "ImportSummary",
    "ChildSetResult",
    "SkipDetail",
    "SkipReason",
    # Entry points
    "import_cables",
    "import_cable_types",
    "import_trays",
    "import_material_trays",
    "import_material_supports",
    "import_load_curve_points",
    "list_collection",
    "get_load_curve",
]
