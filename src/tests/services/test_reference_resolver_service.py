"""
Tests for reference-by-name resolution.
"""

import pytest

from cablebook.services.exceptions import UnresolvedReference
from cablebook.services.import_profiles import (
    CABLE_PROFILE,
    CABLE_TYPE_PROFILE,
    MATERIAL_TRAY_PROFILE,
)
from cablebook.services.reference_resolver_service import (
    collect_reference_names,
    resolve_references,
)
from cablebook.services.row_preparation_service import prepare_rows


class RecordingLookup:
    """Lookup callable that records every call."""

    def __init__(self, table):
        self.table = table
        self.calls = []

    def __call__(self, names):
        self.calls.append(set(names))
        return {name: ref_id for name, ref_id in self.table.items() if name in names}


def cable_candidates(*pairs):
    rows = [{"Cable Id": cable_id, "Type": type_name} for cable_id, type_name in pairs]
    return prepare_rows(rows, CABLE_PROFILE).candidates


class TestCollectReferenceNames:
    def test_distinct_names_in_first_seen_order(self):
        candidates = cable_candidates(("C-1", "TypeA"), ("C-2", "typea "), ("C-3", "TypeB"))
        assert collect_reference_names(candidates) == {"typea": "TypeA", "typeb": "TypeB"}


class TestResolveReferences:
    """Test reference resolution."""

    def test_single_lookup_with_all_names(self):
        candidates = cable_candidates(("C-1", "TypeA"), ("C-2", "NYY 3x2.5"), ("C-3", "typea"))
        lookup = RecordingLookup({"typea": 1, "nyy 3x2.5": 2})

        resolve_references(candidates, CABLE_PROFILE, lookup)

        assert lookup.calls == [{"typea", "nyy 3x2.5"}]
        assert [c.reference_id for c in candidates] == [1, 2, 1]

    def test_missing_names_abort_with_every_name(self):
        candidates = cable_candidates(("C-1", "TypeA"), ("C-2", "TypeB"), ("C-3", "TypeC"))
        lookup = RecordingLookup({"typea": 1})

        with pytest.raises(UnresolvedReference) as exc:
            resolve_references(candidates, CABLE_PROFILE, lookup)

        assert exc.value.missing_names == ["TypeB", "TypeC"]
        assert exc.value.entity_type == "cable type"
        assert str(exc.value) == "Import cancelled. Missing cable types: TypeB, TypeC."

    def test_profile_without_reference_is_noop(self):
        candidates = prepare_rows([{"Type": "NYY"}], CABLE_TYPE_PROFILE).candidates
        lookup = RecordingLookup({})

        assert resolve_references(candidates, CABLE_TYPE_PROFILE, lookup) == {}
        assert lookup.calls == []

    def test_no_names_skips_lookup(self):
        rows = [{"Type": "KL 60", "Load Curve": ""}, {"Type": "KL 100"}]
        candidates = prepare_rows(rows, MATERIAL_TRAY_PROFILE).candidates
        lookup = RecordingLookup({})

        resolve_references(candidates, MATERIAL_TRAY_PROFILE, lookup)

        assert lookup.calls == []
        assert all(c.reference_id is None for c in candidates)

    def test_candidates_without_name_get_none(self):
        rows = [
            {"Type": "KL 60", "Load Curve": "LC-100"},
            {"Type": "KL 100", "Load Curve": None},
        ]
        candidates = prepare_rows(rows, MATERIAL_TRAY_PROFILE).candidates

        resolve_references(candidates, MATERIAL_TRAY_PROFILE, RecordingLookup({"lc-100": 7}))

        assert [c.reference_id for c in candidates] == [7, None]
