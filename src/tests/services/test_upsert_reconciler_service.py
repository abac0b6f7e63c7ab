"""
Tests for the upsert reconciler against an in-memory store.

Tests cover:
- Insert vs update by natural key, and idempotent re-imports
- All-or-nothing rollback when a write fails mid-batch
- Field-presence preservation (absent column keeps stored value)
- In-batch duplicates and the summary counting invariant
- Reference abort before any persistence
- Empty batches
"""

import copy
from contextlib import contextmanager

import pytest

from cablebook.services.exceptions import (
    MissingRequiredColumns,
    StorageFailure,
    UnresolvedReference,
)
from cablebook.services.import_profiles import (
    CABLE_PROFILE,
    MATERIAL_TRAY_PROFILE,
    TRAY_PROFILE,
)
from cablebook.services.import_result import SkipReason
from cablebook.services.upsert_reconciler_service import (
    ExistingRecord,
    reconcile_batch,
)
from cablebook.utils.normalizers import normalize_key


# ============================================================================
# In-memory store
# ============================================================================


class FakeUpsertStore:
    """UpsertStore keeping records in a dict keyed by natural key."""

    def __init__(self, references=None, fail_on_persist=None, fail_on_lookup=False):
        self.records = {}
        self.references = references or {}
        self.fail_on_persist = fail_on_persist
        self.fail_on_lookup = fail_on_lookup
        self.transactions = 0
        self.lookup_calls = []
        self.fetch_calls = []
        self.persist_calls = 0
        self._next_id = 1

    def seed(self, key_value, fields, reference_id=None):
        record_id = f"seed-{self._next_id}"
        self._next_id += 1
        self.records[normalize_key(key_value)] = {
            "record_id": record_id,
            "key_value": key_value,
            "fields": dict(fields),
            "reference_id": reference_id,
        }
        return record_id

    def get(self, key_value):
        return self.records[normalize_key(key_value)]

    @contextmanager
    def transaction(self):
        self.transactions += 1
        snapshot = copy.deepcopy(self.records)
        try:
            yield self
        except BaseException:
            self.records = snapshot
            raise

    def lookup_references(self, parent_scope, names):
        self.lookup_calls.append(set(names))
        if self.fail_on_lookup:
            raise RuntimeError("connection lost")
        return {name: ref_id for name, ref_id in self.references.items() if name in names}

    def fetch_existing(self, parent_scope, keys):
        self.fetch_calls.append(list(keys))
        return {
            key: ExistingRecord(
                record_id=record["record_id"],
                key=key,
                fields=dict(record["fields"]),
                reference_id=record["reference_id"],
            )
            for key, record in self.records.items()
            if key in keys
        }

    def persist(self, parent_scope, request):
        self.persist_calls += 1
        if self.fail_on_persist == self.persist_calls:
            raise RuntimeError("disk full")

        if request.is_new:
            self.records[normalize_key(request.key_value)] = {
                "record_id": request.record_id,
                "key_value": request.key_value,
                "fields": dict(request.fields),
                "reference_id": request.reference_id,
            }
            return

        for record in self.records.values():
            if record["record_id"] == request.record_id:
                record["fields"] = dict(request.fields)
                record["reference_id"] = request.reference_id
                return
        raise KeyError(request.record_id)


def cable_rows(*pairs):
    return [{"Cable Id": cable_id, "Type": type_name} for cable_id, type_name in pairs]


# ============================================================================
# Tests
# ============================================================================


class TestInsertAndUpdate:
    """Test matching by natural key."""

    def test_new_rows_are_inserted(self):
        store = FakeUpsertStore(references={"typea": 1})
        summary = reconcile_batch(1, cable_rows(("C-1", "TypeA"), ("C-2", "TypeA")), CABLE_PROFILE, store)

        assert summary.inserted == 2
        assert summary.updated == 0
        assert summary.skipped == 0
        assert summary.is_consistent
        assert store.get("C-1")["reference_id"] == 1
        assert store.transactions == 1

    def test_fetch_existing_called_once_with_batch_keys(self):
        store = FakeUpsertStore(references={"typea": 1})
        reconcile_batch(1, cable_rows(("C-1", "TypeA"), (" c-2 ", "TypeA")), CABLE_PROFILE, store)
        assert store.fetch_calls == [["c-1", "c-2"]]

    def test_existing_record_is_updated_case_insensitively(self):
        store = FakeUpsertStore(references={"typea": 1})
        record_id = store.seed("C-1", {"tag": "old"}, reference_id=1)

        summary = reconcile_batch(
            1, [{"Cable Id": " c-1", "Type": "TypeA", "Tag": "new"}], CABLE_PROFILE, store
        )

        assert summary.updated == 1
        assert summary.inserted == 0
        record = store.get("C-1")
        assert record["record_id"] == record_id
        assert record["fields"]["tag"] == "new"
        # Display key is not rewritten on update
        assert record["key_value"] == "C-1"

    def test_new_records_get_distinct_identifiers(self):
        store = FakeUpsertStore(references={"typea": 1})
        reconcile_batch(1, cable_rows(("C-1", "TypeA"), ("C-2", "TypeA")), CABLE_PROFILE, store)
        assert store.get("C-1")["record_id"] != store.get("C-2")["record_id"]

    def test_insert_defaults_absent_fields_to_none(self):
        store = FakeUpsertStore()
        reconcile_batch(None, [{"Name": "T1", "Width [mm]": 50}], TRAY_PROFILE, store)

        fields = store.get("T1")["fields"]
        assert fields["width_mm"] == 50
        assert fields["height_mm"] is None
        assert fields["purpose"] is None

    def test_reimport_is_idempotent(self):
        store = FakeUpsertStore(references={"typea": 1})
        rows = [
            {"Cable Id": "C-1", "Type": "TypeA", "Tag": "T1", "Install Length [m]": 12},
            {"Cable Id": "C-2", "Type": "TypeA", "Tested": "2024-03-05"},
        ]

        first = reconcile_batch(1, rows, CABLE_PROFILE, store)
        state_after_first = copy.deepcopy(store.records)
        second = reconcile_batch(1, rows, CABLE_PROFILE, store)

        assert (first.inserted, first.updated) == (2, 0)
        assert (second.inserted, second.updated) == (0, 2)
        assert store.records == state_after_first


class TestAtomicity:
    """Test rollback when a write fails part-way."""

    def test_failure_on_third_write_leaves_store_unchanged(self):
        store = FakeUpsertStore(references={"typea": 1}, fail_on_persist=3)
        store.seed("C-1", {"tag": "keep"}, reference_id=1)
        before = copy.deepcopy(store.records)

        rows = [
            {"Cable Id": "C-1", "Type": "TypeA", "Tag": "changed"},
            {"Cable Id": "C-2", "Type": "TypeA"},
            {"Cable Id": "C-3", "Type": "TypeA"},
            {"Cable Id": "C-4", "Type": "TypeA"},
        ]
        with pytest.raises(StorageFailure) as exc:
            reconcile_batch(1, rows, CABLE_PROFILE, store)

        assert store.records == before
        assert isinstance(exc.value.original_error, RuntimeError)
        assert exc.value.__cause__ is exc.value.original_error
        assert str(exc.value).startswith("Import failed:")

    def test_lookup_failure_is_storage_failure(self):
        store = FakeUpsertStore(fail_on_lookup=True)
        with pytest.raises(StorageFailure):
            reconcile_batch(1, cable_rows(("C-1", "TypeA")), CABLE_PROFILE, store)
        assert store.transactions == 0


class TestFieldPresence:
    """Test that absent columns never overwrite stored values."""

    def test_absent_column_keeps_stored_value(self):
        store = FakeUpsertStore()
        store.seed("T1", {"tray_type": "Ladder", "width_mm": 50, "height_mm": 60, "length_mm": 3000, "purpose": None})

        reconcile_batch(None, [{"Name": "T1", "Height [mm]": 80}], TRAY_PROFILE, store)

        fields = store.get("T1")["fields"]
        assert fields["width_mm"] == 50
        assert fields["height_mm"] == 80
        assert fields["tray_type"] == "Ladder"

    def test_blank_cell_clears_stored_value(self):
        store = FakeUpsertStore()
        store.seed("T1", {"width_mm": 50, "height_mm": 60})

        reconcile_batch(None, [{"Name": "T1", "Width [mm]": ""}], TRAY_PROFILE, store)

        fields = store.get("T1")["fields"]
        assert fields["width_mm"] is None
        assert fields["height_mm"] == 60

    def test_absent_reference_column_keeps_stored_reference(self):
        store = FakeUpsertStore(references={"lc-100": 7})
        store.seed("KL 60", {"manufacturer": "Acme"}, reference_id=7)

        reconcile_batch(None, [{"Type": "KL 60", "Manufacturer": "Other"}], MATERIAL_TRAY_PROFILE, store)

        record = store.get("KL 60")
        assert record["reference_id"] == 7
        assert record["fields"]["manufacturer"] == "Other"
        assert store.lookup_calls == []

    def test_blank_optional_reference_clears_link(self):
        store = FakeUpsertStore(references={"lc-100": 7})
        store.seed("KL 60", {}, reference_id=7)

        reconcile_batch(None, [{"Type": "KL 60", "Load Curve": ""}], MATERIAL_TRAY_PROFILE, store)

        assert store.get("KL 60")["reference_id"] is None


class TestReferenceAbort:
    """Test that unresolved references abort before any write."""

    def test_one_bad_reference_aborts_whole_batch(self):
        store = FakeUpsertStore(references={"typea": 1})
        store.seed("C-1", {"tag": "keep"}, reference_id=1)
        before = copy.deepcopy(store.records)

        rows = cable_rows(
            ("C-1", "TypeA"), ("C-2", "TypeA"), ("C-3", "TypeA"),
            ("C-4", "TypeA"), ("C-5", "TypeA"), ("C-6", "Missing"),
        )
        with pytest.raises(UnresolvedReference) as exc:
            reconcile_batch(1, rows, CABLE_PROFILE, store)

        assert exc.value.missing_names == ["Missing"]
        assert store.records == before
        assert store.transactions == 0
        assert store.persist_calls == 0


class TestCableIdScenarios:
    """Duplicate key combined with an unknown cable type."""

    ROWS = cable_rows(("C-1", "TypeA"), ("c-1", "TypeA"), ("C-2", "TypeB"))

    def test_unknown_type_aborts_and_lists_it(self):
        store = FakeUpsertStore(references={"typea": 1})

        with pytest.raises(UnresolvedReference) as exc:
            reconcile_batch(1, self.ROWS, CABLE_PROFILE, store)

        assert exc.value.missing_names == ["TypeB"]
        assert store.records == {}

    def test_known_type_inserts_two_and_skips_duplicate(self):
        store = FakeUpsertStore(references={"typea": 1, "typeb": 2})

        summary = reconcile_batch(1, self.ROWS, CABLE_PROFILE, store)

        assert summary.to_dict()["total_rows"] == 3
        assert (summary.inserted, summary.updated, summary.skipped) == (2, 0, 1)
        assert summary.skip_details[0].row_number == 3
        assert summary.skip_details[0].reason == SkipReason.DUPLICATE_KEY.value
        assert store.get("C-2")["reference_id"] == 2


class TestEmptyBatch:
    """Test batches with nothing to persist."""

    def test_no_rows(self):
        store = FakeUpsertStore()
        summary = reconcile_batch(1, [], CABLE_PROFILE, store)

        assert (summary.total_rows, summary.inserted, summary.updated, summary.skipped) == (0, 0, 0, 0)
        assert store.transactions == 0

    def test_all_rows_invalid_opens_no_transaction(self):
        store = FakeUpsertStore(references={"typea": 1})
        summary = reconcile_batch(1, cable_rows(("", "TypeA"), ("C-1", "")), CABLE_PROFILE, store)

        assert summary.total_rows == 2
        assert summary.skipped == 2
        assert summary.is_consistent
        assert summary.skipped_by_reason() == {
            SkipReason.MISSING_IDENTIFIER.value: 1,
            SkipReason.MISSING_REFERENCE.value: 1,
        }
        assert store.transactions == 0
        assert store.lookup_calls == []

    def test_missing_columns_abort(self):
        store = FakeUpsertStore()
        with pytest.raises(MissingRequiredColumns):
            reconcile_batch(1, [{"Tag": "x"}], CABLE_PROFILE, store)
        assert store.transactions == 0
