"""
Tests for load curve point replacement against an in-memory store.
"""

import copy
from contextlib import contextmanager

import pytest

from cablebook.services.child_set_service import (
    ChildItem,
    order_child_items,
    parse_child_row,
    parse_child_rows,
    replace_child_set,
)
from cablebook.services.exceptions import EmptyChildSet, ParentNotFound, StorageFailure


class FakeChildSetStore:
    """ChildSetStore holding point lists per parent."""

    def __init__(self, parents=None, fail_on=None):
        self.children = {parent_id: list(items) for parent_id, items in (parents or {}).items()}
        self.touched = []
        self.fail_on = fail_on
        self.calls = []
        self.transactions = 0

    @contextmanager
    def transaction(self):
        self.transactions += 1
        snapshot = copy.deepcopy(self.children)
        touched = list(self.touched)
        try:
            yield self
        except BaseException:
            self.children = snapshot
            self.touched = touched
            raise

    def _call(self, name):
        self.calls.append(name)
        if self.fail_on == name:
            raise RuntimeError(f"{name} failed")

    def parent_exists(self, parent_id):
        self._call("parent_exists")
        return parent_id in self.children

    def delete_children(self, parent_id):
        self._call("delete_children")
        deleted = len(self.children[parent_id])
        self.children[parent_id] = []
        return deleted

    def insert_children(self, parent_id, items):
        self._call("insert_children")
        self.children[parent_id].extend(items)

    def touch_parent(self, parent_id):
        self._call("touch_parent")
        self.touched.append(parent_id)


OLD_POINTS = [ChildItem(1, 0.5, 9.0), ChildItem(2, 1.0, 4.0)]


class TestParsing:
    """Test positional row parsing."""

    def test_sequence_rows(self):
        assert parse_child_row([1.5, "2,5"]) == (1.5, 2.5)

    def test_mapping_rows_are_positional(self):
        assert parse_child_row({"Span [m]": 3, "Load [kN/m]": 1}) == (3, 1)

    def test_extra_columns_are_ignored(self):
        assert parse_child_row([1, 2, "note"]) == (1, 2)

    def test_invalid_rows_are_dropped(self):
        assert parse_child_row([None, 2]) is None
        assert parse_child_row([1, "abc"]) is None
        assert parse_child_row([-1, 2]) is None
        assert parse_child_row([1, -0.5]) is None
        assert parse_child_row([1]) is None
        assert parse_child_row(None) is None

    def test_zero_is_valid(self):
        assert parse_child_row([0, 0]) == (0, 0)

    def test_parse_child_rows_counts_dropped(self):
        pairs, dropped = parse_child_rows([[1, 2], ["x", 1], [2, 3], []])
        assert pairs == [(1, 2), (2, 3)]
        assert dropped == 2


class TestOrdering:
    """Test sorting, numbering and truncation."""

    def test_sorted_by_span_and_numbered(self):
        items = order_child_items([(3, 1), (1, 2), (2, 0.5)])
        assert [(i.order, i.primary_value, i.secondary_value) for i in items] == [
            (1, 1, 2),
            (2, 2, 0.5),
            (3, 3, 1),
        ]

    def test_equal_spans_keep_sheet_order(self):
        items = order_child_items([(2, 5), (1, 1), (2, 3)])
        assert [i.secondary_value for i in items] == [1, 5, 3]

    def test_truncation_after_sorting(self):
        items = order_child_items([(5, 1), (4, 1), (3, 1), (2, 1), (1, 1)], max_items=3)
        assert [i.primary_value for i in items] == [1, 2, 3]
        assert [i.order for i in items] == [1, 2, 3]


class TestReplaceChildSet:
    """Test the transactional replacement."""

    def test_replaces_points_in_span_order(self):
        store = FakeChildSetStore({10: OLD_POINTS})

        result = replace_child_set(10, [[3, 1], [1, 2], [2, 0.5]], store)

        assert result.imported_points == 3
        assert result.deleted_points == 2
        assert result.meets_chart_minimum
        assert [(i.order, i.primary_value, i.secondary_value) for i in store.children[10]] == [
            (1, 1, 2),
            (2, 2, 0.5),
            (3, 3, 1),
        ]
        assert store.touched == [10]
        assert store.calls == ["parent_exists", "delete_children", "insert_children", "touch_parent"]

    def test_dropped_rows_are_reported(self):
        store = FakeChildSetStore({10: []})
        result = replace_child_set(10, [[1, 2], [None, 3], [-1, 1]], store)

        assert result.imported_points == 1
        assert result.dropped_rows == 2
        assert not result.meets_chart_minimum

    def test_truncates_to_max_items(self):
        store = FakeChildSetStore({10: []})
        rows = [[span, 1] for span in range(10, 0, -1)]

        result = replace_child_set(10, rows, store, max_items=4)

        assert result.imported_points == 4
        assert result.truncated_points == 6
        assert [i.primary_value for i in store.children[10]] == [1, 2, 3, 4]

    def test_empty_set_raises_without_transaction(self):
        store = FakeChildSetStore({10: OLD_POINTS})

        with pytest.raises(EmptyChildSet) as exc:
            replace_child_set(10, [["span", "load"], [None, None]], store)

        assert exc.value.total_rows == 2
        assert store.transactions == 0
        assert store.children[10] == OLD_POINTS

    def test_missing_parent_deletes_nothing(self):
        store = FakeChildSetStore({10: OLD_POINTS})

        with pytest.raises(ParentNotFound) as exc:
            replace_child_set(99, [[1, 2]], store)

        assert exc.value.parent_id == 99
        assert store.calls == ["parent_exists"]
        assert store.children[10] == OLD_POINTS

    def test_insert_failure_restores_old_points(self):
        store = FakeChildSetStore({10: OLD_POINTS}, fail_on="insert_children")

        with pytest.raises(StorageFailure) as exc:
            replace_child_set(10, [[1, 2], [2, 1]], store)

        assert store.children[10] == OLD_POINTS
        assert store.touched == []
        assert isinstance(exc.value.original_error, RuntimeError)

    def test_to_dict(self):
        store = FakeChildSetStore({10: []})
        result = replace_child_set(10, [[1, 2], [2, 1]], store)

        assert result.to_dict() == {
            "imported_points": 2,
            "deleted_points": 0,
            "dropped_rows": 0,
            "truncated_points": 0,
            "meets_chart_minimum": True,
        }
