"""
Tests for query description: filters, sorters, Query windows and
in-process evaluation.
"""

from datetime import date, datetime

import pytest

from docbase.database import (
    AndFilter,
    Blob,
    GeoPoint,
    KeywordFilter,
    ListFilter,
    MapFilter,
    MultiSorter,
    NotFilter,
    OrFilter,
    PropertySorter,
    Query,
    RangeFilter,
    RegExpFilter,
    Snapshot,
    ValueFilter,
    compare_values,
    where,
)


class TestFilterMatching:
    def test_value_filter(self):
        assert ValueFilter("thai").matches("thai")
        assert not ValueFilter("thai").matches("Thai")

    def test_range_filter_bounds(self):
        f = RangeFilter(min=2, max=4)
        assert f.matches(2) and f.matches(4)
        assert not f.matches(5)
        assert not f.matches(None)

    def test_range_filter_exclusive(self):
        f = RangeFilter(min=2, max=4, is_exclusive_min=True, is_exclusive_max=True)
        assert not f.matches(2)
        assert f.matches(3)
        assert not f.matches(4)

    def test_range_filter_needs_a_bound(self):
        with pytest.raises(ValueError):
            RangeFilter()

    def test_keyword_filter_is_case_insensitive_and_nested(self):
        f = KeywordFilter("curry")
        assert f.matches({"name": "Green Curry"})
        assert f.matches({"meta": {"tags": ["thai", "CURRY paste"]}})
        assert not f.matches({"name": "Pad Thai", "servings": 2})

    def test_map_filter_treats_missing_fields_as_none(self):
        assert MapFilter({"rating": ValueFilter(None)}).matches({"name": "x"})
        assert not MapFilter({"rating": ValueFilter(5)}).matches({"name": "x"})

    def test_list_filter_matches_any_item(self):
        f = ListFilter(ValueFilter("quick"))
        assert f.matches(["breakfast", "quick"])
        assert not f.matches(["slow"])
        assert not f.matches("quick")

    def test_regexp_filter(self):
        assert RegExpFilter(r"^Pad").matches("Pad Thai")
        assert not RegExpFilter(r"^Pad").matches(12)

    def test_boolean_combinators(self):
        thai = where(cuisine="thai")
        quick = MapFilter({"servings": RangeFilter(max=2)})
        doc = {"cuisine": "thai", "servings": 4}

        assert not AndFilter((thai, quick)).matches(doc)
        assert OrFilter((thai, quick)).matches(doc)
        assert NotFilter(quick).matches(doc)

    def test_uses_full_text_finds_nested_keyword(self):
        nested = AndFilter((where(cuisine="thai"), OrFilter((KeywordFilter("curry"),))))
        assert nested.uses_full_text()
        assert not where(cuisine="thai").uses_full_text()


class TestFilterRendering:
    def test_map_of_values(self):
        assert str(where(cuisine="thai", servings=2)) == 'cuisine:"thai" AND servings:2'

    def test_ranges(self):
        assert str(RangeFilter(min=1, max=5)) == "[1 TO 5]"
        assert str(RangeFilter(min=1, is_exclusive_min=True)) == "{1 TO *]"
        assert str(RangeFilter(max=5, is_exclusive_max=True)) == "[* TO 5}"

    def test_not_and_regexp(self):
        assert str(NotFilter(RegExpFilter("a.c"))) == "NOT (/a.c/)"

    def test_map_filter_is_hashable_and_order_independent(self):
        a = MapFilter({"a": ValueFilter(1), "b": ValueFilter(2)})
        b = MapFilter({"b": ValueFilter(2), "a": ValueFilter(1)})
        assert a == b
        assert hash(a) == hash(b)


class TestSorters:
    def test_compare_values_orders_kinds(self):
        ordered = [None, False, 1, 2.5, "a", datetime(2024, 1, 1), date(2024, 1, 1)]
        for low, high in zip(ordered, ordered[1:]):
            assert compare_values(low, high) < 0
            assert compare_values(high, low) > 0

    def test_property_sorter_descending(self):
        items = [{"n": 1}, {"n": 3}, {"n": 2}]
        result = PropertySorter("n", ascending=False).sort(items, key=lambda d: d)
        assert [d["n"] for d in result] == [3, 2, 1]

    def test_multi_sorter_breaks_ties(self):
        items = [
            {"cuisine": "thai", "name": "b"},
            {"cuisine": "italian", "name": "z"},
            {"cuisine": "thai", "name": "a"},
        ]
        sorter = MultiSorter((PropertySorter("cuisine"), PropertySorter("name", ascending=False)))
        result = sorter.sort(items, key=lambda d: d)

        assert [(d["cuisine"], d["name"]) for d in result] == [
            ("italian", "z"),
            ("thai", "b"),
            ("thai", "a"),
        ]
        assert str(sorter) == "cuisine,-name"
        assert sorter.names() == ["cuisine", "name"]


class TestQuery:
    @pytest.mark.parametrize("skip, take", [(-1, None), (0, -1)])
    def test_negative_window_rejected(self, skip, take):
        with pytest.raises(ValueError):
            Query(skip=skip, take=take)

    def test_apply_filters_sorts_and_windows(self, database):
        partition = database.collection("numbers").partition("p")
        snapshots = [
            Snapshot(document=partition.document(f"d{i}"), data={"n": i, "even": i % 2 == 0})
            for i in range(10)
        ]
        query = Query(
            filter=where(even=True),
            sorter=PropertySorter("n", ascending=False),
            skip=1,
            take=2,
        )

        assert [s["n"] for s in query.apply(snapshots)] == [6, 4]

    def test_take_zero_returns_nothing(self, database):
        partition = database.collection("numbers").partition("p")
        snapshots = [Snapshot(document=partition.document("d"), data={"n": 1})]
        assert Query(take=0).apply(snapshots) == []

    def test_with_and_without_window(self):
        query = Query(filter=where(a=1), skip=3, take=4)
        assert query.without_window() == Query(filter=where(a=1))
        assert query.with_window(10, 5).skip == 10


class TestPrimitives:
    def test_geo_point_range_checked(self):
        assert str(GeoPoint(60.17, 24.94)) == "60.17,24.94"
        with pytest.raises(ValueError):
            GeoPoint(91, 0)
        with pytest.raises(ValueError):
            GeoPoint(0, -181)

    def test_blob_equality(self):
        assert Blob(b"abc", "text/plain") == Blob(b"abc", "text/plain")
        assert len(Blob(b"abc")) == 3


class TestSnapshot:
    def test_data_is_a_read_only_copy(self, database):
        source = {"name": "Pancakes", "tags": ["breakfast"]}
        snapshot = Snapshot(document=database.collection("c").document("d"), data=source)
        source["tags"].append("mutated")

        assert snapshot["tags"] == ["breakfast"]
        with pytest.raises(TypeError):
            snapshot.data["name"] = "x"

    def test_to_dict_is_mutable_copy(self, database):
        snapshot = Snapshot(document=database.collection("c").document("d"), data={"a": 1})
        copy = snapshot.to_dict()
        copy["a"] = 2
        assert snapshot.get("a") == 1
