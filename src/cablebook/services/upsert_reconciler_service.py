"""
Upsert Reconciler Service - merges an imported row set into a collection.

This is the primary import mode, used for independently addressable records
(cables, cable types, trays, material trays and supports). The pipeline is:

    prepare rows -> deduplicate -> resolve references -> reconcile -> summary

Reconciliation runs inside one transaction. Existing records matching the
batch's natural keys are fetched once with a locking read; each candidate
then updates its match or inserts a new record. Any failure rolls back the
whole batch, so a call either fully applies or leaves the collection exactly
as it was.

Persistence is injected through the UpsertStore protocol so the engine can
run against SQLAlchemy (see import_store) or an in-memory fake.

Usage:
    from cablebook.services.upsert_reconciler_service import reconcile_batch

    summary = reconcile_batch(project_id, rows, CABLE_PROFILE, store)
"""

import logging
import uuid
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Protocol, Sequence, Set

from cablebook.services.exceptions import ImportServiceError, StorageFailure
from cablebook.services.import_profiles import ImportProfile
from cablebook.services.import_result import ImportSummary
from cablebook.services.logging_utils import get_service_logger, log_operation
from cablebook.services.reference_resolver_service import resolve_references
from cablebook.services.row_preparation_service import CandidateEntity, RawRow, prepare_rows

logger = get_service_logger(__name__)


# ============================================================================
# Store Protocol
# ============================================================================


@dataclass
class ExistingRecord:
    """
    A persisted record matching a candidate's natural key.

    Attributes:
        record_id: Store identifier of the record
        key: Normalized natural key
        fields: Current value of every tracked field
        reference_id: Current reference id (None if unset or not applicable)
    """

    record_id: Any
    key: str
    fields: Dict[str, Any] = field(default_factory=dict)
    reference_id: Any = None


@dataclass
class PersistRequest:
    """
    A full field set to write for one candidate.

    Attributes:
        record_id: Existing record id for updates, freshly generated id for inserts
        is_new: True for inserts
        key_value: Display form of the natural key
        fields: Value for every tracked field
        reference_id: Reference id to store
    """

    record_id: Any
    is_new: bool
    key_value: str
    fields: Dict[str, Any]
    reference_id: Any = None


class UpsertStore(Protocol):
    """Persistence operations needed by reconcile_batch."""

    def transaction(self) -> AbstractContextManager:
        """Open a transaction; commit on normal exit, roll back on any exception."""
        ...

    def lookup_references(self, parent_scope: Any, names: Set[str]) -> Dict[str, Any]:
        """Map normalized reference names to ids, scoped like the import."""
        ...

    def fetch_existing(self, parent_scope: Any, keys: Sequence[str]) -> Dict[str, ExistingRecord]:
        """Locking read of records whose natural key is in keys, keyed by natural key."""
        ...

    def persist(self, parent_scope: Any, request: PersistRequest) -> None:
        """Insert or update one record."""
        ...


# ============================================================================
# Merge Rules
# ============================================================================


def merge_fields(
    candidate: CandidateEntity,
    existing: ExistingRecord,
    tracked_fields: Iterable[str],
) -> Dict[str, Any]:
    """
    Build the update field set for a matched record.

    A field the sheet supplied (even as an explicit None) takes the sheet's
    value; a field whose column was absent keeps the stored value.
    """
    merged = {}
    for name in tracked_fields:
        if candidate.has_field(name):
            merged[name] = candidate.fields[name]
        else:
            merged[name] = existing.fields.get(name)
    return merged


def build_new_fields(candidate: CandidateEntity, tracked_fields: Iterable[str]) -> Dict[str, Any]:
    """Build the insert field set: sheet values where present, None elsewhere."""
    return {name: candidate.fields.get(name) for name in tracked_fields}


def merge_reference(candidate: CandidateEntity, existing: Optional[ExistingRecord]) -> Any:
    """Pick the reference id: the sheet's when its column is present, else the stored one."""
    if candidate.reference_present or existing is None:
        return candidate.reference_id
    return existing.reference_id


def build_persist_request(
    candidate: CandidateEntity,
    existing: Optional[ExistingRecord],
    profile: ImportProfile,
) -> PersistRequest:
    """Build the insert or update request for one candidate."""
    if existing is not None:
        return PersistRequest(
            record_id=existing.record_id,
            is_new=False,
            key_value=candidate.key_value,
            fields=merge_fields(candidate, existing, profile.tracked_fields),
            reference_id=merge_reference(candidate, existing),
        )
    return PersistRequest(
        record_id=str(uuid.uuid4()),
        is_new=True,
        key_value=candidate.key_value,
        fields=build_new_fields(candidate, profile.tracked_fields),
        reference_id=merge_reference(candidate, None),
    )


# ============================================================================
# Public API
# ============================================================================


def reconcile_batch(
    parent_scope: Any,
    raw_rows: Sequence[RawRow],
    profile: ImportProfile,
    store: UpsertStore,
    headers: Optional[Iterable[str]] = None,
) -> ImportSummary:
    """
    Import a row set into a collection, inserting or updating by natural key.

    Args:
        parent_scope: Scope of the collection (project id, or None for global catalogs)
        raw_rows: Tokenized rows (header -> raw cell value)
        profile: Import profile of the entity kind
        store: Persistence backend
        headers: Optional header row reported by the tokenizer

    Returns:
        ImportSummary with inserted/updated/skipped counts

    Raises:
        MissingRequiredColumns: If the sheet lacks a required column
        UnresolvedReference: If any referenced name has no match (nothing is written)
        StorageFailure: If any store call fails (the transaction is rolled back)
    """
    summary = ImportSummary(profile.entity_type, total_rows=len(raw_rows))

    batch = prepare_rows(raw_rows, profile, headers)
    summary.add_skips(batch.skips)

    if batch.is_empty:
        log_operation(
            logger,
            operation="reconcile_batch",
            outcome="empty_batch",
            entity_type=profile.entity_type,
            total_rows=summary.total_rows,
            skipped=summary.skipped,
        )
        return summary

    try:
        resolve_references(
            batch.candidates,
            profile,
            lambda names: store.lookup_references(parent_scope, names),
        )
    except ImportServiceError:
        raise
    except Exception as exc:
        log_operation(
            logger,
            operation="reconcile_batch",
            outcome="error",
            level=logging.ERROR,
            entity_type=profile.entity_type,
            error=str(exc),
        )
        raise StorageFailure(f"reference lookup for {profile.entity_type} failed", exc) from exc

    inserted = 0
    updated = 0
    try:
        with store.transaction():
            existing_records = store.fetch_existing(
                parent_scope, [candidate.key for candidate in batch.candidates]
            )
            for candidate in batch.candidates:
                request = build_persist_request(
                    candidate, existing_records.get(candidate.key), profile
                )
                store.persist(parent_scope, request)
                if request.is_new:
                    inserted += 1
                else:
                    updated += 1
    except ImportServiceError:
        raise
    except Exception as exc:
        log_operation(
            logger,
            operation="reconcile_batch",
            outcome="rolled_back",
            level=logging.ERROR,
            entity_type=profile.entity_type,
            error=str(exc),
        )
        raise StorageFailure(f"{profile.entity_type} import rolled back", exc) from exc

    summary.inserted = inserted
    summary.updated = updated

    log_operation(
        logger,
        operation="reconcile_batch",
        outcome="success",
        entity_type=profile.entity_type,
        total_rows=summary.total_rows,
        inserted=summary.inserted,
        updated=summary.updated,
        skipped=summary.skipped,
    )
    return summary
