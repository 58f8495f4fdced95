"""
Tests for the join engine.

1. Join types (inner / left / right / full) and their cardinalities
2. Key matching (case-insensitive, one-to-many, empty keys)
3. Prefixing, aliases and merged type metadata
4. Multi-stage joins and missing tables
"""

import logging

import pytest

from gridsight.errors import InvalidConfigError
from gridsight.services.joins import JoinSpec, default_alias, perform_join
from gridsight.services.table import Table


@pytest.fixture
def tables(customers_table, orders_table, regions_table):
    return {"customers": customers_table, "orders": orders_table, "regions": regions_table}


def orders_to_customers(join_type="inner"):
    return JoinSpec("orders", "customer_id", "customers", "id", join_type)


# ============================================================================
# JOIN TYPES
# ============================================================================

class TestJoinTypes:
    def test_inner(self, tables):
        result = perform_join(tables, [orders_to_customers()])
        assert [r["orders.order_id"] for r in result.rows] == ["o1", "o2", "o3"]
        assert result.rows[0]["customers.name"] == "Alice"

    def test_left_keeps_unmatched_left_rows(self, tables):
        result = perform_join(tables, [orders_to_customers("left")])
        assert len(result) >= len(tables["orders"])
        unmatched = [r for r in result.rows if r["orders.order_id"] == "o4"]
        assert unmatched == [
            {
                "orders.order_id": "o4",
                "orders.customer_id": "4",
                "orders.total": "99",
                "customers.id": None,
                "customers.name": None,
                "customers.region_id": None,
            }
        ]

    def test_right_keeps_unmatched_right_rows(self, tables):
        result = perform_join(tables, [orders_to_customers("right")])
        names = [r["customers.name"] for r in result.rows]
        assert names == ["Alice", "Alice", "Bob", "Carol"]
        carol = result.rows[-1]
        assert carol["orders.order_id"] is None

    def test_full_is_union_without_double_counting(self, tables):
        result = perform_join(tables, [orders_to_customers("full")])
        # 3 matched pairs + unmatched order o4 + unmatched customer Carol
        assert len(result) == 5
        assert sum(1 for r in result.rows if r["orders.order_id"] is None) == 1
        assert sum(1 for r in result.rows if r["customers.id"] is None) == 1

    @pytest.mark.parametrize("join_type", ["inner", "left", "right", "full"])
    def test_left_columns_come_first(self, tables, join_type):
        result = perform_join(tables, [orders_to_customers(join_type)])
        assert result.columns == [
            "orders.order_id", "orders.customer_id", "orders.total",
            "customers.id", "customers.name", "customers.region_id",
        ]

    def test_unknown_join_type_raises(self):
        with pytest.raises(InvalidConfigError):
            JoinSpec("a", "id", "b", "id", "cross")


# ============================================================================
# KEY MATCHING
# ============================================================================

class TestKeyMatching:
    def test_self_join_on_unique_column_keeps_row_count(self, customers_table):
        result = perform_join({"customers": customers_table}, [JoinSpec("customers", "id", "customers", "id")])
        assert len(result) == len(customers_table)

    def test_keys_match_case_insensitively(self, tables):
        result = perform_join(tables, [JoinSpec("customers", "region_id", "regions", "id")])
        assert [(r["customers.name"], r["regions.label"]) for r in result.rows] == [
            ("Alice", "North"),
            ("Bob", "South"),
        ]

    def test_one_to_many(self, tables):
        result = perform_join(tables, [JoinSpec("customers", "id", "orders", "customer_id")])
        alice = [r for r in result.rows if r["customers.name"] == "Alice"]
        assert len(alice) == 2

    def test_empty_keys_match_each_other(self):
        left = Table([{"k": "", "v": "l1"}, {"k": "x", "v": "l2"}])
        right = Table([{"k": "", "w": "r1"}, {"k": None, "w": "r2"}])
        result = perform_join({"left": left, "right": right}, [JoinSpec("left", "k", "right", "k")])
        assert sorted(r["right.w"] for r in result.rows) == ["r1", "r2"]
        assert all(r["left.v"] == "l1" for r in result.rows)

    def test_numbers_match_their_text_form(self):
        left = Table([{"id": 1}])
        right = Table([{"id": "1", "name": "one"}])
        result = perform_join({"l": left, "r": right}, [JoinSpec("l", "id", "r", "id")])
        assert result.rows[0]["r.name"] == "one"


# ============================================================================
# PREFIXES & METADATA
# ============================================================================

class TestPrefixes:
    def test_aliases_replace_table_names(self, tables):
        result = perform_join(tables, [orders_to_customers()], aliases={"orders": "o", "customers": "c"})
        assert "o.total" in result.columns
        assert "c.name" in result.columns
        assert "orders.total" not in result.columns

    def test_types_are_merged_under_prefixes(self, tables):
        result = perform_join(tables, [orders_to_customers()])
        assert result.types["orders.total"] == "number"
        assert result.types["customers.name"] == "string"

    def test_smart_types_are_merged(self):
        people = Table([{"id": "1", "email": "a@example.com"}])
        visits = Table([{"person": "1", "page": "home"}])
        result = perform_join(
            {"people": people, "visits": visits}, [JoinSpec("visits", "person", "people", "id")]
        )
        assert result.smart_types["people.email"].kind == "email"


class TestDefaultAlias:
    @pytest.mark.parametrize(
        "name,index,expected",
        [
            ("sales.csv", 0, "sales"),
            ("Q1.XLSX", 0, "Q1"),
            ("a b.json", 2, "a_b"),
            ("customers_2024.xlsx", 1, "t2"),
            ("my-file.csv", 0, "t1"),
            ("data.xls", 4, "data"),
        ],
    )
    def test_default_alias(self, name, index, expected):
        assert default_alias(name, index) == expected


# ============================================================================
# MULTI-STAGE & DEGENERATE CONFIGURATIONS
# ============================================================================

class TestMultiStage:
    def test_second_stage_uses_prefixed_key(self, tables):
        joins = [
            orders_to_customers(),
            JoinSpec("customers", "region_id", "regions", "id"),
        ]
        result = perform_join(tables, joins)
        assert [(r["orders.order_id"], r["regions.label"]) for r in result.rows] == [
            ("o1", "North"),
            ("o2", "North"),
            ("o3", "South"),
        ]
        assert result.columns[-2:] == ["regions.id", "regions.label"]

    def test_second_stage_accepts_already_prefixed_key(self, tables):
        joins = [
            orders_to_customers(),
            JoinSpec("customers", "customers.region_id", "regions", "id", "left"),
        ]
        result = perform_join(tables, joins)
        assert len(result) == 3
        assert result.rows[0]["regions.label"] == "North"

    def test_second_stage_with_aliases(self, tables):
        joins = [
            orders_to_customers(),
            JoinSpec("customers", "region_id", "regions", "id"),
        ]
        aliases = {"customers": "c", "regions": "r"}
        result = perform_join(tables, joins, aliases)
        assert [r["r.label"] for r in result.rows] == ["North", "North", "South"]


class TestDegenerate:
    def test_no_joins_gives_empty_table(self, tables):
        result = perform_join(tables, [])
        assert len(result) == 0
        assert result.columns == []

    def test_missing_table_gives_empty_table(self, tables, caplog):
        with caplog.at_level(logging.WARNING, logger="gridsight.services.joins"):
            result = perform_join(tables, [JoinSpec("orders", "customer_id", "ghosts", "id")])
        assert len(result) == 0
        assert result.columns == []
        assert result.types == {}
        assert "ghosts" in caplog.text

    def test_missing_table_in_later_stage(self, tables):
        joins = [orders_to_customers(), JoinSpec("customers", "region_id", "ghosts", "id")]
        assert len(perform_join(tables, joins)) == 0
