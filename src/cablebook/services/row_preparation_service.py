"""
Row Preparation Service - turns raw spreadsheet rows into candidate entities.

Responsibilities:
  • Required-column check against the sheet's column set
  • Per-row extraction of the natural key, reference name and mapped fields
  • Tracking which columns the sheet actually supplied (sparse field maps)
  • In-batch deduplication by natural key, first occurrence wins

A sheet that omits an optional column leaves no entry in a candidate's
field map; a sheet that has the column but a blank cell produces an
explicit ``None``. The reconciler relies on that distinction to avoid
blanking out stored data the sheet never mentioned.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from cablebook.services.exceptions import DuplicateKeyInBatch, MissingRequiredColumns, RowInvalid
from cablebook.services.import_profiles import ImportProfile
from cablebook.services.import_result import SkipDetail, SkipReason
from cablebook.utils.normalizers import normalize_key, normalize_text

RawRow = Mapping[str, Any]

# Sheet row number of the first data row (row 1 holds the headers)
FIRST_DATA_ROW = 2


@dataclass
class CandidateEntity:
    """
    A prepared row, ready for reference resolution and reconciliation.

    Attributes:
        key: Normalized natural key (lowercase, trimmed); used only for matching
        key_value: Display form of the natural key, stored on insert
        row_number: Sheet row the candidate came from
        fields: Sparse field map; only columns present in the sheet have entries
        reference_name: Display form of the referenced name, or None
        reference_present: True when the sheet has the reference column
        reference_id: Resolved id, filled in by the reference resolver
    """

    key: str
    key_value: str
    row_number: int
    fields: Dict[str, Any] = field(default_factory=dict)
    reference_name: Optional[str] = None
    reference_present: bool = False
    reference_id: Any = None

    @property
    def reference_key(self) -> Optional[str]:
        """Normalized reference name used for lookups."""
        if self.reference_name is None:
            return None
        return normalize_key(self.reference_name)

    def has_field(self, name: str) -> bool:
        """True when the sheet supplied the column for this field."""
        return name in self.fields


@dataclass
class PreparedBatch:
    """Candidates that survived preparation and deduplication, plus the skips."""

    total_rows: int
    candidates: List[CandidateEntity] = field(default_factory=list)
    skips: List[SkipDetail] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.candidates


# ============================================================================
# Column handling
# ============================================================================


def sheet_columns(raw_rows: Sequence[RawRow], headers: Optional[Iterable[str]] = None) -> Dict[str, str]:
    """
    Build the sheet's column set.

    Header names are matched after stripping surrounding whitespace. When the
    tokenizer does not report headers, the column set is the union of the
    row keys in first-seen order.

    Args:
        raw_rows: Tokenized rows
        headers: Optional header row reported by the tokenizer

    Returns:
        Mapping of stripped header -> header as it appears in the rows
    """
    columns: Dict[str, str] = {}
    source = headers if headers is not None else (key for row in raw_rows for key in row.keys())
    for header in source:
        if header is None:
            continue
        stripped = str(header).strip()
        if stripped and stripped not in columns:
            columns[stripped] = header
    return columns


def check_required_columns(profile: ImportProfile, columns: Mapping[str, str]) -> None:
    """
    Abort the import when a required column is missing from the sheet.

    Raises:
        MissingRequiredColumns: Listing every missing header
    """
    missing = [header for header in profile.required_headers if header not in columns]
    if missing:
        raise MissingRequiredColumns(missing)


def _cell(raw_row: RawRow, columns: Mapping[str, str], header: str) -> Any:
    return raw_row.get(columns[header])


# ============================================================================
# Row preparation
# ============================================================================


def prepare_row(
    raw_row: RawRow,
    profile: ImportProfile,
    columns: Mapping[str, str],
    row_number: int,
) -> CandidateEntity:
    """
    Validate one row and build its candidate entity.

    Args:
        raw_row: Header -> raw cell value
        profile: Import profile of the entity kind
        columns: Sheet column set from sheet_columns()
        row_number: Sheet row number for reporting

    Returns:
        CandidateEntity with a sparse field map

    Raises:
        RowInvalid: If the row has no identifier, lacks a required reference
            name, or fails the entity's validation rules
    """
    key_value = normalize_text(_cell(raw_row, columns, profile.key_column.header))
    if key_value is None:
        raise RowInvalid(SkipReason.MISSING_IDENTIFIER.value, "Missing identifier")

    candidate = CandidateEntity(
        key=normalize_key(key_value),
        key_value=key_value,
        row_number=row_number,
    )

    reference = profile.reference
    if reference is not None and reference.header in columns:
        candidate.reference_present = True
        candidate.reference_name = normalize_text(_cell(raw_row, columns, reference.header))
        if candidate.reference_name is None and reference.required:
            raise RowInvalid(
                SkipReason.MISSING_REFERENCE.value,
                f"Missing {reference.entity_type} name",
                identifier=key_value,
            )

    for column in profile.columns:
        if column.header in columns:
            candidate.fields[column.field] = column.convert(_cell(raw_row, columns, column.header))

    errors = profile.validate(key_value, candidate.fields)
    if errors:
        raise RowInvalid(SkipReason.INVALID_FIELD.value, "; ".join(errors), identifier=key_value)

    return candidate


def deduplicate_candidates(
    candidates: Iterable[CandidateEntity],
) -> Tuple[List[CandidateEntity], List[SkipDetail]]:
    """
    Collapse candidates to one per natural key.

    The first candidate for a key is kept; later ones are skipped. First
    occurrence order is preserved so counts are reproducible.

    Returns:
        Tuple of (kept candidates, skip details for the discarded ones)
    """
    first_rows: Dict[str, int] = {}
    kept: List[CandidateEntity] = []
    skips: List[SkipDetail] = []

    for candidate in candidates:
        if candidate.key in first_rows:
            duplicate = DuplicateKeyInBatch(candidate.key, first_rows[candidate.key])
            skips.append(
                SkipDetail(
                    row_number=candidate.row_number,
                    reason=SkipReason.DUPLICATE_KEY.value,
                    message=str(duplicate),
                    identifier=candidate.key_value,
                )
            )
            continue
        first_rows[candidate.key] = candidate.row_number
        kept.append(candidate)

    return kept, skips


def prepare_rows(
    raw_rows: Sequence[RawRow],
    profile: ImportProfile,
    headers: Optional[Iterable[str]] = None,
) -> PreparedBatch:
    """
    Prepare and deduplicate a whole row set.

    Args:
        raw_rows: Tokenized rows (header -> raw cell value)
        profile: Import profile of the entity kind
        headers: Optional header row reported by the tokenizer

    Returns:
        PreparedBatch with surviving candidates and every skipped row

    Raises:
        MissingRequiredColumns: If the sheet lacks a required column
    """
    batch = PreparedBatch(total_rows=len(raw_rows))
    if not raw_rows and headers is None:
        return batch

    columns = sheet_columns(raw_rows, headers)
    check_required_columns(profile, columns)

    prepared: List[CandidateEntity] = []
    for row_number, raw_row in enumerate(raw_rows, start=FIRST_DATA_ROW):
        try:
            prepared.append(prepare_row(raw_row, profile, columns, row_number))
        except RowInvalid as exc:
            batch.skips.append(
                SkipDetail(
                    row_number=row_number,
                    reason=exc.reason,
                    message=str(exc),
                    identifier=exc.identifier,
                )
            )

    batch.candidates, duplicate_skips = deduplicate_candidates(prepared)
    batch.skips.extend(duplicate_skips)
    batch.skips.sort(key=lambda detail: detail.row_number)
    return batch
