"""Tests for pivot / crosstab aggregation."""

import pytest

from gridsight.errors import InvalidConfigError
from gridsight.services.filter_tree import FilterCondition, FilterGroup
from gridsight.services.filtering import filter_rows
from gridsight.services.pivot import PivotConfig, PivotResult, create_pivot, pivot_to_rows
from gridsight.services.table import Table


# ============================================================================
# STRUCTURE
# ============================================================================

class TestPivotStructure:
    def test_keys_are_sorted_and_empty_is_bucketed(self, sales_table):
        result = create_pivot(sales_table, PivotConfig("region", "product", "amount"))
        assert result.rows == ["(Empty)", "North", "South"]
        assert result.columns == ["Gadget", "Widget"]

    def test_no_column_field_uses_total_bucket(self, sales_table):
        result = create_pivot(sales_table, PivotConfig("product", value_field="amount"))
        assert result.columns == ["Total"]
        assert result.data == {"Gadget": {"Total": 60.0}, "Widget": {"Total": 200.0}}

    def test_missing_cells_are_zero(self, sales_table):
        result = create_pivot(sales_table, PivotConfig("region", "product", "amount"))
        assert result.data["South"]["Gadget"] == 0
        assert result.data["(Empty)"]["Widget"] == 0

    def test_empty_string_is_its_own_key(self):
        table = Table([{"k": ""}, {"k": None}, {"k": "a"}])
        result = create_pivot(table, PivotConfig("k"))
        assert result.rows == ["", "(Empty)", "a"]

    def test_numeric_keys_use_display_form(self):
        table = Table([{"year": 2024.0}, {"year": 2023}])
        assert create_pivot(table, PivotConfig("year")).rows == ["2023", "2024"]


# ============================================================================
# AGGREGATION
# ============================================================================

class TestAggregation:
    @pytest.mark.parametrize(
        "agg_func,north,south",
        [
            ("sum", 150.0, 100.0),
            ("avg", 75.0, 50.0),
            ("count", 2, 2),
            ("min", 50.0, 24.5),
            ("max", 100.0, 75.5),
            ("countDistinct", 2, 2),
        ],
    )
    def test_functions(self, sales_table, agg_func, north, south):
        result = create_pivot(sales_table, PivotConfig("region", value_field="amount", agg_func=agg_func))
        assert result.data["North"]["Total"] == north
        assert result.data["South"]["Total"] == south

    def test_no_value_field_counts_rows(self, sales_table):
        result = create_pivot(sales_table, PivotConfig("product"))
        assert result.data == {"Gadget": {"Total": 2}, "Widget": {"Total": 3}}

    def test_non_numeric_values_are_dropped(self):
        table = Table([{"g": "x", "v": "10"}, {"g": "x", "v": "oops"}, {"g": "x", "v": ""}])
        result = create_pivot(table, PivotConfig("g", value_field="v", agg_func="avg"))
        assert result.data["x"]["Total"] == 10.0

    def test_cell_with_no_numeric_values_is_zero(self):
        table = Table([{"g": "x", "v": "n/a"}])
        for agg_func in ("avg", "min", "max"):
            result = create_pivot(table, PivotConfig("g", value_field="v", agg_func=agg_func))
            assert result.data["x"]["Total"] == 0

    def test_count_distinct(self):
        table = Table([{"g": "x", "v": "1"}, {"g": "x", "v": "1.0"}, {"g": "x", "v": "2"}])
        result = create_pivot(table, PivotConfig("g", value_field="v", agg_func="countDistinct"))
        assert result.data["x"]["Total"] == 2

    def test_values_round_half_up_to_two_decimals(self):
        table = Table([{"g": "x", "v": "0.125"}])
        result = create_pivot(table, PivotConfig("g", value_field="v"))
        assert result.data["x"]["Total"] == 0.13


# ============================================================================
# TOTALS
# ============================================================================

class TestTotals:
    def test_row_column_and_grand_totals(self, sales_table):
        result = create_pivot(sales_table, PivotConfig("region", "product", "amount"))
        assert result.totals["row"] == {"(Empty)": 10.0, "North": 150.0, "South": 100.0}
        assert result.totals["column"] == {"Gadget": 60.0, "Widget": 200.0}
        assert result.totals["grand"] == 260.0

    @pytest.mark.parametrize("row_field,column_field", [("region", None), ("product", "region"), ("date", "product")])
    def test_grand_total_is_independent_of_dimensions(self, sales_table, row_field, column_field):
        result = create_pivot(sales_table, PivotConfig(row_field, column_field, "amount"))
        assert result.totals["grand"] == 260.0

    def test_grand_total_without_value_field_is_row_count(self, sales_table):
        result = create_pivot(sales_table, PivotConfig("region", "product"))
        assert result.totals["grand"] == len(sales_table)


# ============================================================================
# CONFIGURATION & EDGE CASES
# ============================================================================

class TestConfiguration:
    def test_unknown_aggregation_raises(self):
        with pytest.raises(InvalidConfigError) as exc_info:
            PivotConfig("region", agg_func="median")
        assert exc_info.value.field == "agg_func"

    def test_empty_table(self):
        result = create_pivot(Table([]), PivotConfig("region"))
        assert result == PivotResult(rows=[], columns=[], data={}, totals={"row": {}, "column": {}, "grand": 0})

    def test_missing_row_field(self, sales_table):
        assert create_pivot(sales_table, PivotConfig(None)).rows == []


class TestEndToEnd:
    def test_filter_then_pivot(self, amounts_table):
        tree = FilterGroup(id="root", children=(FilterCondition(id="c", field="amt", operator=">", value="15"),))
        filtered = filter_rows(amounts_table, tree)
        assert [r["id"] for r in filtered.rows] == ["b", "c"]

        result = create_pivot(filtered, PivotConfig("id", value_field="amt", agg_func="sum"))
        assert result.totals["grand"] == 50


class TestExportRows:
    def test_pivot_to_rows(self, sales_table):
        result = create_pivot(sales_table, PivotConfig("product", "region", "amount"))
        rows = pivot_to_rows(result, "product")
        assert rows[0] == {"product": "Gadget", "(Empty)": 10.0, "North": 50.0, "South": 0, "Total": 60.0}
        assert rows[-1]["product"] == "Total"
        assert rows[-1]["Total"] == 260.0
        assert len(rows) == len(result.rows) + 1

    def test_empty_result_exports_nothing(self):
        assert pivot_to_rows(PivotResult(), "x") == []
