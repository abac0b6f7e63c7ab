"""
Reference Resolver Service - resolves reference-by-name columns during import.

Imported rows name related records (e.g., a cable's type) instead of
carrying ids. All names in a batch are resolved with a single lookup call
against the target collection. A name without a match aborts the whole
import before anything is persisted, and every missing name is reported so
the sheet can be fixed in one pass.

Usage:
    from cablebook.services.reference_resolver_service import resolve_references

    resolve_references(candidates, profile, lambda names: lookup(project_id, names))
"""

import logging
from typing import Any, Callable, Dict, List, Set

from cablebook.services.exceptions import UnresolvedReference
from cablebook.services.import_profiles import ImportProfile
from cablebook.services.logging_utils import get_service_logger, log_operation
from cablebook.services.row_preparation_service import CandidateEntity

logger = get_service_logger(__name__)

ReferenceLookup = Callable[[Set[str]], Dict[str, Any]]


def collect_reference_names(candidates: List[CandidateEntity]) -> Dict[str, str]:
    """
    Collect the distinct reference names of a batch.

    Returns:
        Mapping of normalized name -> first display form seen, in first-seen order
    """
    names: Dict[str, str] = {}
    for candidate in candidates:
        reference_key = candidate.reference_key
        if reference_key is not None and reference_key not in names:
            names[reference_key] = candidate.reference_name
    return names


def resolve_references(
    candidates: List[CandidateEntity],
    profile: ImportProfile,
    lookup: ReferenceLookup,
) -> Dict[str, Any]:
    """
    Resolve every candidate's reference name to an id.

    The lookup is called at most once, with exactly the set of normalized
    names appearing in the batch. Candidates without a reference name get
    ``reference_id = None``.

    Args:
        candidates: Deduplicated candidates (updated in place)
        profile: Import profile declaring the reference column
        lookup: Callable mapping a set of normalized names to {name: id}

    Returns:
        The lookup table that was used (empty when nothing needed resolving)

    Raises:
        UnresolvedReference: If any name has no match in the lookup table
    """
    if profile.reference is None:
        return {}

    names = collect_reference_names(candidates)
    if not names:
        log_operation(
            logger,
            operation="resolve_references",
            outcome="no_references",
            level=logging.DEBUG,
            entity_type=profile.entity_type,
        )
        return {}

    table = lookup(set(names))

    missing = [display for key, display in names.items() if key not in table]
    if missing:
        log_operation(
            logger,
            operation="resolve_references",
            outcome="unresolved",
            level=logging.WARNING,
            entity_type=profile.entity_type,
            missing_names=missing,
        )
        raise UnresolvedReference(profile.reference.entity_type, missing)

    for candidate in candidates:
        reference_key = candidate.reference_key
        candidate.reference_id = table[reference_key] if reference_key is not None else None

    log_operation(
        logger,
        operation="resolve_references",
        outcome="success",
        level=logging.DEBUG,
        entity_type=profile.entity_type,
        resolved_count=len(names),
    )
    return table
