"""
Import result types returned by the spreadsheet import engine.

ImportSummary is the only output of an upsert import besides the refreshed
collection the caller fetches afterwards. ChildSetResult is the output of a
child-set replacement (load curve points).

Usage:
    summary = reconcile_batch(project_id, rows, CABLE_PROFILE, store)
    print(summary.get_summary())
    payload = summary.to_dict()
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from cablebook.utils.constants import MIN_CHART_POINTS, SUMMARY_SKIP_DETAIL_LIMIT


class SkipReason(str, Enum):
    """Why a row was counted as skipped."""

    MISSING_IDENTIFIER = "missing_identifier"
    MISSING_REFERENCE = "missing_reference"
    INVALID_FIELD = "invalid_field"
    DUPLICATE_KEY = "duplicate_key"


@dataclass
class SkipDetail:
    """One skipped row."""

    row_number: int  # 1-based sheet row; the header is row 1
    reason: str
    message: str
    identifier: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row": self.row_number,
            "reason": self.reason,
            "message": self.message,
            "identifier": self.identifier,
        }


# ============================================================================
# Upsert Mode
# ============================================================================


class ImportSummary:
    """
    Counts for one upsert import.

    Invariant: ``inserted + updated + skipped == total_rows``. Rows that fail
    preparation or lose deduplication are already counted as skipped before
    reconciliation starts.
    """

    def __init__(self, entity_type: str, total_rows: int = 0):
        self.entity_type = entity_type
        self.total_rows = total_rows
        self.inserted = 0
        self.updated = 0
        self.skip_details: List[SkipDetail] = []
        # The caller should refetch the canonical collection for display
        self.refresh_required = True

    @property
    def skipped(self) -> int:
        """Number of skipped rows."""
        return len(self.skip_details)

    @property
    def processed(self) -> int:
        """Rows that were inserted or updated."""
        return self.inserted + self.updated

    @property
    def is_consistent(self) -> bool:
        """Check the counting invariant."""
        return self.inserted + self.updated + self.skipped == self.total_rows

    def add_skip(self, detail: SkipDetail) -> None:
        """Record a skipped row."""
        self.skip_details.append(detail)

    def add_skips(self, details: List[SkipDetail]) -> None:
        """Record several skipped rows."""
        self.skip_details.extend(details)

    def skipped_by_reason(self) -> Dict[str, int]:
        """Count skips per reason."""
        counts: Dict[str, int] = {}
        for detail in self.skip_details:
            counts[detail.reason] = counts.get(detail.reason, 0) + 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the summary for API responses."""
        return {
            "entity_type": self.entity_type,
            "total_rows": self.total_rows,
            "inserted": self.inserted,
            "updated": self.updated,
            "skipped": self.skipped,
            "skipped_rows": [detail.to_dict() for detail in self.skip_details],
            "refresh_required": self.refresh_required,
        }

    def get_summary(self) -> str:
        """Generate user-friendly summary for display."""
        lines = [
            "=" * 60,
            f"Import Summary ({self.entity_type})",
            "=" * 60,
            f"Total Rows: {self.total_rows}",
            f"  Inserted: {self.inserted}",
            f"  Updated:  {self.updated}",
            f"  Skipped:  {self.skipped}",
        ]

        if self.skip_details:
            lines.append("\nSkipped Rows:")
            for detail in self.skip_details[:SUMMARY_SKIP_DETAIL_LIMIT]:
                label = f" ({detail.identifier})" if detail.identifier else ""
                lines.append(f"  - Row {detail.row_number}{label}: {detail.message}")
            if len(self.skip_details) > SUMMARY_SKIP_DETAIL_LIMIT:
                remaining = len(self.skip_details) - SUMMARY_SKIP_DETAIL_LIMIT
                lines.append(f"  ... and {remaining} more skipped rows")

        lines.append("=" * 60)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"ImportSummary(entity_type='{self.entity_type}', total_rows={self.total_rows}, "
            f"inserted={self.inserted}, updated={self.updated}, skipped={self.skipped})"
        )


# ============================================================================
# Child-Set Mode
# ============================================================================


@dataclass
class ChildSetResult:
    """Result of replacing a parent's ordered child set."""

    imported_points: int
    deleted_points: int = 0
    dropped_rows: int = 0
    truncated_points: int = 0
    refresh_required: bool = field(default=True)

    @property
    def meets_chart_minimum(self) -> bool:
        """True when the curve has enough points to be drawn."""
        return self.imported_points >= MIN_CHART_POINTS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imported_points": self.imported_points,
            "deleted_points": self.deleted_points,
            "dropped_rows": self.dropped_rows,
            "truncated_points": self.truncated_points,
            "meets_chart_minimum": self.meets_chart_minimum,
        }
