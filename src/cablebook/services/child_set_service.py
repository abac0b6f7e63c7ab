"""
Child-Set Service - full replacement of a load curve's ordered point set.

Load curve points have no identity of their own; a re-import replaces the
whole set. Rows are positional pairs (span, load). Pairs with a missing or
negative value are dropped, the rest are sorted by span and renumbered
1..n before being written.

The replacement is transactional: the parent check, the delete of the old
points, the insert of the new ones and the parent's timestamp bump either
all happen or none do.
"""

import logging
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Protocol, Sequence, Tuple

from cablebook.services.exceptions import (
    EmptyChildSet,
    ImportServiceError,
    ParentNotFound,
    StorageFailure,
)
from cablebook.services.import_result import ChildSetResult
from cablebook.services.logging_utils import get_service_logger, log_operation
from cablebook.utils.constants import CURVE_LOAD_COLUMN, CURVE_SPAN_COLUMN, MAX_CURVE_POINTS
from cablebook.utils.normalizers import Number, normalize_number

logger = get_service_logger(__name__)

Pair = Tuple[Number, Number]


@dataclass(frozen=True)
class ChildItem:
    """One ordered point of a load curve."""

    order: int
    primary_value: Number  # span [m]
    secondary_value: Number  # load [kN/m]


class ChildSetStore(Protocol):
    """Persistence operations needed by replace_child_set."""

    def transaction(self) -> AbstractContextManager:
        ...

    def parent_exists(self, parent_id: Any) -> bool:
        ...

    def delete_children(self, parent_id: Any) -> int:
        """Delete every child of the parent; return how many were removed."""
        ...

    def insert_children(self, parent_id: Any, items: Sequence[ChildItem]) -> None:
        ...

    def touch_parent(self, parent_id: Any) -> None:
        """Bump the parent's updated_at."""
        ...


# ============================================================================
# Parsing
# ============================================================================


def _positional_cells(raw_row: Any) -> List[Any]:
    if raw_row is None:
        return []
    if isinstance(raw_row, Mapping):
        return list(raw_row.values())
    if isinstance(raw_row, (str, bytes)):
        return [raw_row]
    return list(raw_row)


def parse_child_row(raw_row: Any) -> Optional[Pair]:
    """
    Parse one positional row into a (span, load) pair.

    Mapping rows are read by column position, so the header text does not
    matter.

    Returns:
        The pair, or None when either value is missing, unparseable or negative
    """
    cells = _positional_cells(raw_row)
    if len(cells) <= max(CURVE_SPAN_COLUMN, CURVE_LOAD_COLUMN):
        return None

    primary = normalize_number(cells[CURVE_SPAN_COLUMN])
    secondary = normalize_number(cells[CURVE_LOAD_COLUMN])
    if primary is None or secondary is None:
        return None
    if primary < 0 or secondary < 0:
        return None
    return primary, secondary


def parse_child_rows(raw_pair_rows: Sequence[Any]) -> Tuple[List[Pair], int]:
    """
    Parse every row, dropping the invalid ones.

    Returns:
        Tuple of (valid pairs in sheet order, number of dropped rows)
    """
    pairs: List[Pair] = []
    dropped = 0
    for raw_row in raw_pair_rows:
        pair = parse_child_row(raw_row)
        if pair is None:
            dropped += 1
        else:
            pairs.append(pair)
    return pairs, dropped


def order_child_items(pairs: Sequence[Pair], max_items: int = MAX_CURVE_POINTS) -> List[ChildItem]:
    """
    Sort pairs by span and number them 1..n.

    The sort is stable, so equal spans keep their sheet order. Only the
    first ``max_items`` points after sorting are kept.
    """
    ordered = sorted(pairs, key=lambda pair: pair[0])[:max_items]
    return [
        ChildItem(order=index, primary_value=primary, secondary_value=secondary)
        for index, (primary, secondary) in enumerate(ordered, start=1)
    ]


# ============================================================================
# Public API
# ============================================================================


def replace_child_set(
    parent_id: Any,
    raw_pair_rows: Sequence[Any],
    store: ChildSetStore,
    max_items: int = MAX_CURVE_POINTS,
) -> ChildSetResult:
    """
    Replace a load curve's points with the rows of a sheet.

    Args:
        parent_id: Load curve ID
        raw_pair_rows: Positional rows; column 0 is the span, column 1 the load
        store: Persistence backend
        max_items: Maximum number of points kept

    Returns:
        ChildSetResult with the number of imported points

    Raises:
        EmptyChildSet: If no row yields a valid pair (nothing is written)
        ParentNotFound: If the load curve does not exist
        StorageFailure: If any store call fails (the transaction is rolled back)
    """
    pairs, dropped = parse_child_rows(raw_pair_rows)
    if not pairs:
        log_operation(
            logger,
            operation="replace_child_set",
            outcome="empty",
            level=logging.WARNING,
            parent_id=parent_id,
            total_rows=len(raw_pair_rows),
        )
        raise EmptyChildSet(len(raw_pair_rows))

    items = order_child_items(pairs, max_items)

    try:
        with store.transaction():
            if not store.parent_exists(parent_id):
                raise ParentNotFound("load curve", parent_id)
            deleted = store.delete_children(parent_id)
            store.insert_children(parent_id, items)
            store.touch_parent(parent_id)
    except ImportServiceError as exc:
        log_operation(
            logger,
            operation="replace_child_set",
            outcome="aborted",
            level=logging.WARNING,
            parent_id=parent_id,
            error=str(exc),
        )
        raise
    except Exception as exc:
        log_operation(
            logger,
            operation="replace_child_set",
            outcome="rolled_back",
            level=logging.ERROR,
            parent_id=parent_id,
            error=str(exc),
        )
        raise StorageFailure(f"load curve {parent_id} points rolled back", exc) from exc

    result = ChildSetResult(
        imported_points=len(items),
        deleted_points=deleted or 0,
        dropped_rows=dropped,
        truncated_points=len(pairs) - len(items),
    )

    log_operation(
        logger,
        operation="replace_child_set",
        outcome="success",
        parent_id=parent_id,
        imported_points=result.imported_points,
        deleted_points=result.deleted_points,
        dropped_rows=result.dropped_rows,
    )
    return result
