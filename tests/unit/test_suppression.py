"""
Unit tests for the dismissed-pair suppression store.
"""

import json

import pytest

from coachtrack.suppression import (
    COACH_PAIRS_KEY,
    SCHOOL_PAIRS_KEY,
    JsonFileBackend,
    MemoryBackend,
    SuppressionStore,
    local_suppression_store,
    pair_key,
)


class TestPairKey:

    def test_order_independent(self):
        assert pair_key(12, 7) == pair_key(7, 12)

    def test_sorted_as_strings(self):
        # "12" sorts before "7"
        assert pair_key(7, 12) == "12-7"

    def test_accepts_string_ids(self):
        assert pair_key("a1", "b2") == "a1-b2"


class TestSuppressionStore:

    def test_dismiss_then_lookup_either_order(self, suppression):
        suppression.dismiss(3, 9)
        assert suppression.is_dismissed(3, 9)
        assert suppression.is_dismissed(9, 3)
        assert not suppression.is_dismissed(3, 4)

    def test_dismiss_twice_stores_once(self, suppression):
        suppression.dismiss(3, 9)
        suppression.dismiss(9, 3)
        assert suppression.keys() == ["3-9"]
        assert len(suppression) == 1

    def test_keys_keep_insertion_order(self, suppression):
        suppression.dismiss(5, 6)
        suppression.dismiss(1, 2)
        assert suppression.keys() == ["5-6", "1-2"]

    def test_clear_all(self, suppression):
        suppression.dismiss(1, 2)
        suppression.dismiss(3, 4)
        assert suppression.clear_all() == 2
        assert len(suppression) == 0
        assert not suppression.is_dismissed(1, 2)

    def test_snapshot_is_frozen(self, suppression):
        suppression.dismiss(1, 2)
        snapshot = suppression.snapshot()
        suppression.dismiss(3, 4)
        assert snapshot == frozenset({"1-2"})

    def test_coach_and_school_keys_are_separate(self):
        backend = MemoryBackend()
        coaches = SuppressionStore(backend, key=COACH_PAIRS_KEY)
        schools = SuppressionStore(backend, key=SCHOOL_PAIRS_KEY)
        coaches.dismiss(1, 2)
        assert not schools.is_dismissed(1, 2)
        schools.clear_all()
        assert coaches.is_dismissed(1, 2)


class TestJsonFileBackend:

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "suppressions.json"
        local_suppression_store("coach", path=path).dismiss(12, 7)

        reopened = local_suppression_store("coach", path=path)
        assert reopened.is_dismissed(7, 12)

    def test_file_layout(self, tmp_path):
        path = tmp_path / "suppressions.json"
        local_suppression_store("school", path=path).dismiss(1, 2)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == {"dismissedSchoolPairs": ["1-2"]}

    def test_missing_file_is_empty(self, tmp_path):
        backend = JsonFileBackend(tmp_path / "nested" / "missing.json")
        assert backend.get(COACH_PAIRS_KEY) is None

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "suppressions.json"
        local_suppression_store("coach", path=path).dismiss(1, 2)
        assert path.exists()

    def test_clear_all_removes_key(self, tmp_path):
        path = tmp_path / "suppressions.json"
        store = local_suppression_store("coach", path=path)
        store.dismiss(1, 2)
        store.clear_all()
        assert COACH_PAIRS_KEY not in json.loads(path.read_text(encoding="utf-8"))

    def test_rejects_non_object_file(self, tmp_path):
        path = tmp_path / "suppressions.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(ValueError):
            JsonFileBackend(path).get(COACH_PAIRS_KEY)


def test_unknown_kind():
    with pytest.raises(ValueError):
        local_suppression_store("game")
