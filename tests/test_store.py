"""Tests for the in-memory category store and its name index."""

import pytest

from masterlist.catalog import CategoryStore, DuplicateName, EmptyValue, NotFound, ShapeError


def assert_index_consistent(store):
    index = store.index()
    names = store.names()
    assert all(0 <= position < len(store) for position in index.values())
    for key, position in index.items():
        assert names[position].strip().lower() == key
        # first row carrying the name
        assert [n.strip().lower() for n in names].index(key) == position
    assert set(index) == {n.strip().lower() for n in names}


class TestLookup:
    """Tests for case-insensitive, trimmed lookup."""

    def test_insert_then_lookup_returns_position(self):
        store = CategoryStore()
        assert store.insert_category("PLC") == 0
        assert store.insert_category("Tools") == 1

        assert store.lookup("tools") == 1
        assert store.lookup("  PLC ") == 0
        assert_index_consistent(store)

    def test_lookup_missing_raises_not_found(self):
        store = CategoryStore([["PLC"]])
        with pytest.raises(NotFound):
            store.lookup("Garden")
        assert store.find("Garden") is None


class TestInsertCategory:
    """Tests for category insertion."""

    @pytest.mark.parametrize("variant", ["plc", " PLC ", "Plc\t"])
    def test_equivalent_name_is_duplicate(self, variant):
        store = CategoryStore([["PLC", "x"]])
        with pytest.raises(DuplicateName):
            store.insert_category(variant)
        assert store.rows() == [["PLC", "x"]]
        assert_index_consistent(store)

    def test_blank_name_rejected(self):
        store = CategoryStore()
        with pytest.raises(EmptyValue):
            store.insert_category("   ")
        assert len(store) == 0

    def test_name_is_trimmed(self):
        store = CategoryStore()
        store.insert_category("  Garden ")
        assert store.names() == ["Garden"]


class TestDeleteCategory:
    """Tests for category deletion."""

    def test_removes_every_matching_row(self):
        store = CategoryStore([["A", "x"], ["B"], ["a", "y"]])

        removed = store.delete_category(" A ")

        assert removed == 2
        assert len(store) == 1
        assert store.rows() == [["B"]]
        assert store.index() == {"b": 0}
        assert_index_consistent(store)

    def test_missing_category_leaves_store_unchanged(self):
        store = CategoryStore([["A", "x"]])
        with pytest.raises(NotFound):
            store.delete_category("B")
        assert store.rows() == [["A", "x"]]


class TestItems:
    """Tests for item add/remove/edit/clear."""

    def test_add_then_remove_round_trip(self):
        store = CategoryStore([["X", "b"]])
        before = store.rows()

        store.add_item("X", "a")
        store.remove_item("X", "a")

        assert store.rows() == before

    def test_add_trims_and_allows_duplicates(self):
        store = CategoryStore([["X"]])
        store.add_item("x", "  milk ")
        store.add_item("X", "milk")
        assert store.items("X") == ["milk", "milk"]

    def test_add_blank_item_rejected(self):
        store = CategoryStore([["X"]])
        with pytest.raises(EmptyValue):
            store.add_item("X", " ")
        assert store.rows() == [["X"]]

    def test_add_to_missing_category(self):
        store = CategoryStore([["X"]])
        with pytest.raises(NotFound):
            store.add_item("Y", "a")
        assert store.rows() == [["X"]]

    def test_remove_first_case_insensitive_match(self):
        store = CategoryStore([["X", "a", "A", "b"]])
        assert store.remove_item("X", " A ") == "a"
        assert store.rows() == [["X", "A", "b"]]

    def test_remove_missing_item(self):
        store = CategoryStore([["X", "a"]])
        with pytest.raises(NotFound):
            store.remove_item("X", "z")
        assert store.rows() == [["X", "a"]]

    def test_edit_replaces_first_exact_match(self):
        store = CategoryStore([["X", "a", "b", "a"]])
        store.edit_item("X", "a", "c")
        assert store.rows() == [["X", "c", "b", "a"]]

    def test_edit_is_case_sensitive(self):
        store = CategoryStore([["X", "Apple"]])
        with pytest.raises(NotFound):
            store.edit_item("X", "apple", "pear")
        assert store.rows() == [["X", "Apple"]]

    def test_edit_to_same_value_is_noop(self):
        store = CategoryStore([["X", "a", "b"]])
        store.edit_item("X", "a", "a")
        assert store.rows() == [["X", "a", "b"]]

    def test_edit_blank_new_value_rejected(self):
        store = CategoryStore([["X", "a"]])
        with pytest.raises(EmptyValue):
            store.edit_item("X", "a", "  ")
        assert store.rows() == [["X", "a"]]

    def test_clear_items_keeps_name(self):
        store = CategoryStore([["X", "a", "b"], ["Y", "c"]])
        assert store.clear_items("x") == 2
        assert store.rows() == [["X"], ["Y", "c"]]


class TestReplaceAll:
    """Tests for the wholesale swap."""

    def test_invalid_row_rejects_whole_swap(self):
        store = CategoryStore([["A", "x"]])
        with pytest.raises(ShapeError):
            store.replace_all([["B"], ["  "]])
        assert store.rows() == [["A", "x"]]
        assert store.index() == {"a": 0}

    def test_index_points_at_first_duplicate(self):
        store = CategoryStore([["Dup", "1"], ["Other"], ["dup", "2"]])
        assert store.lookup("DUP") == 0
        assert_index_consistent(store)

    def test_rows_returns_independent_copy(self):
        store = CategoryStore([["A", "x"]])
        rows = store.rows()
        rows[0].append("y")
        assert store.rows() == [["A", "x"]]
