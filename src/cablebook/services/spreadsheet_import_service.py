"""
Spreadsheet Import Service - entry points for importing tokenized sheets.

Each function takes the rows produced by a spreadsheet tokenizer (one
mapping of header -> cell value per data row) and runs the import engine
against the database:

  • import_cables / import_cable_types / import_trays (project scoped)
  • import_material_trays / import_material_supports (global catalogs)
  • import_load_curve_points (full replacement of a curve's points)

After an import the caller refetches the canonical collection with
list_collection() or get_load_curve().

All functions accept an optional session. Without one, the import runs in
its own transaction; with one, it runs in a SAVEPOINT on the caller's
session and the caller owns the commit.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from cablebook.models import MaterialLoadCurve, Project
from cablebook.services.child_set_service import replace_child_set
from cablebook.services.database import session_scope
from cablebook.services.exceptions import ParentNotFound
from cablebook.services.import_profiles import (
    CABLE_PROFILE,
    CABLE_TYPE_PROFILE,
    MATERIAL_SUPPORT_PROFILE,
    MATERIAL_TRAY_PROFILE,
    TRAY_PROFILE,
    ImportProfile,
    get_profile,
)
from cablebook.services.import_result import ChildSetResult, ImportSummary
from cablebook.services.import_store import SqlAlchemyChildSetStore, SqlAlchemyUpsertStore, get_binding
from cablebook.services.row_preparation_service import RawRow
from cablebook.services.upsert_reconciler_service import reconcile_batch


# ============================================================================
# Internal helpers
# ============================================================================


def _require_project(project_id: int, session: Session) -> None:
    if session.get(Project, project_id) is None:
        raise ParentNotFound("project", project_id)


def _run_import(
    profile: ImportProfile,
    parent_scope: Any,
    rows: Sequence[RawRow],
    headers: Optional[Iterable[str]],
    session: Optional[Session],
) -> ImportSummary:
    """Check the parent project, then reconcile the rows through a SQLAlchemy store."""
    if profile.project_scoped:
        if session is not None:
            _require_project(parent_scope, session)
        else:
            with session_scope() as check_session:
                _require_project(parent_scope, check_session)

    store = SqlAlchemyUpsertStore(profile, session=session)
    return reconcile_batch(parent_scope, rows, profile, store, headers=headers)


# ============================================================================
# Project-scoped imports
# ============================================================================


def import_cables(
    project_id: int,
    rows: Sequence[RawRow],
    headers: Optional[Iterable[str]] = None,
    session: Optional[Session] = None,
) -> ImportSummary:
    """
    Import a cable schedule into a project.

    Cables are matched by "Cable Id" (case-insensitive). Every cable must
    name an existing cable type of the project in its "Type" column; an
    unknown type cancels the whole import.

    Args:
        project_id: Target project ID
        rows: Tokenized data rows
        headers: Optional header row reported by the tokenizer
        session: Optional database session

    Returns:
        ImportSummary with inserted/updated/skipped counts

    Raises:
        ParentNotFound: If the project does not exist
        MissingRequiredColumns: If "Cable Id" or "Type" is missing
        UnresolvedReference: If any cable type name has no match
        StorageFailure: If the database write fails
    """
    return _run_import(CABLE_PROFILE, project_id, rows, headers, session)


def import_cable_types(
    project_id: int,
    rows: Sequence[RawRow],
    headers: Optional[Iterable[str]] = None,
    session: Optional[Session] = None,
) -> ImportSummary:
    """Import cable types into a project, matched by "Type"."""
    return _run_import(CABLE_TYPE_PROFILE, project_id, rows, headers, session)


def import_trays(
    project_id: int,
    rows: Sequence[RawRow],
    headers: Optional[Iterable[str]] = None,
    session: Optional[Session] = None,
) -> ImportSummary:
    """Import trays into a project, matched by "Name"."""
    return _run_import(TRAY_PROFILE, project_id, rows, headers, session)


# ============================================================================
# Material catalog imports
# ============================================================================


def import_material_trays(
    rows: Sequence[RawRow],
    headers: Optional[Iterable[str]] = None,
    session: Optional[Session] = None,
) -> ImportSummary:
    """
    Import catalog trays, matched by "Type".

    A "Load Curve" column, when present, links each tray to a load curve by
    name; a blank cell clears the link.
    """
    return _run_import(MATERIAL_TRAY_PROFILE, None, rows, headers, session)


def import_material_supports(
    rows: Sequence[RawRow],
    headers: Optional[Iterable[str]] = None,
    session: Optional[Session] = None,
) -> ImportSummary:
    """Import catalog supports, matched by "Type"."""
    return _run_import(MATERIAL_SUPPORT_PROFILE, None, rows, headers, session)


def import_load_curve_points(
    load_curve_id: int,
    rows: Sequence[Any],
    session: Optional[Session] = None,
) -> ChildSetResult:
    """
    Replace a load curve's points with the rows of a sheet.

    Column 0 holds the span [m], column 1 the load [kN/m]; header text is
    ignored.

    Args:
        load_curve_id: Target load curve ID
        rows: Positional rows (sequences or header -> value mappings)
        session: Optional database session

    Returns:
        ChildSetResult with the number of imported points

    Raises:
        EmptyChildSet: If no row yields a valid point
        ParentNotFound: If the load curve does not exist
        StorageFailure: If the database write fails
    """
    store = SqlAlchemyChildSetStore(session=session)
    return replace_child_set(load_curve_id, rows, store)


# ============================================================================
# Refresh queries
# ============================================================================


def list_collection(
    entity_type: str,
    project_id: Optional[int] = None,
    session: Optional[Session] = None,
) -> List[Dict[str, Any]]:
    """
    Fetch the canonical collection an import wrote to.

    Args:
        entity_type: Import profile name (e.g., "cable", "material_tray")
        project_id: Project ID for project-scoped collections
        session: Optional database session

    Returns:
        List of record dictionaries ordered by natural key (case-insensitive)

    Raises:
        ValueError: If entity_type is unknown, or project_id is missing for a
            project-scoped collection
    """
    profile = get_profile(entity_type)
    if profile.project_scoped and project_id is None:
        raise ValueError(f"project_id is required to list {entity_type} records")

    if session is not None:
        return _list_collection_impl(profile, project_id, session)
    with session_scope() as session:
        return _list_collection_impl(profile, project_id, session)


def _list_collection_impl(
    profile: ImportProfile,
    project_id: Optional[int],
    session: Session,
) -> List[Dict[str, Any]]:
    """Implementation of list_collection."""
    binding = get_binding(profile.entity_type)
    model = binding.model
    query = session.query(model)
    if binding.scope_attr is not None:
        query = query.filter(getattr(model, binding.scope_attr) == project_id)
    query = query.order_by(getattr(model, binding.match_attr), model.id)
    return [record.to_dict() for record in query.all()]


def get_load_curve(load_curve_id: int, session: Optional[Session] = None) -> Dict[str, Any]:
    """
    Fetch a load curve with its ordered points.

    Raises:
        ParentNotFound: If the load curve does not exist
    """
    if session is not None:
        return _get_load_curve_impl(load_curve_id, session)
    with session_scope() as session:
        return _get_load_curve_impl(load_curve_id, session)


def _get_load_curve_impl(load_curve_id: int, session: Session) -> Dict[str, Any]:
    curve = session.get(MaterialLoadCurve, load_curve_id)
    if curve is None:
        raise ParentNotFound("load curve", load_curve_id)
    return curve.to_dict(include_relationships=True)
