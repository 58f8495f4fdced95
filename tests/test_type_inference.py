"""
Tests for type inference.

1. Single-value basic types (string / number / date)
2. Column types from the first sampled rows
3. Smart-type patterns and their precedence
4. Dominant smart type per column
"""

import pytest

from gridsight.services.table import Table
from gridsight.services.type_inference import (
    SmartTypeInfo,
    detect_column_types,
    detect_smart_column_types,
    detect_smart_type,
    detect_type,
)


# ============================================================================
# BASIC TYPES
# ============================================================================

class TestDetectType:
    @pytest.mark.parametrize("value", ["42", "3.5", "-7", "1e5", 12, 0.25])
    def test_numbers(self, value):
        assert detect_type(value) == "number"

    @pytest.mark.parametrize("value", ["2024-01-15", "1/15/2024", "2023/12/31"])
    def test_dates(self, value):
        assert detect_type(value) == "date"

    @pytest.mark.parametrize("value", ["hello", "abc123", "inf", "1_000", "N/A"])
    def test_strings(self, value):
        assert detect_type(value) == "string"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_is_string(self, value):
        assert detect_type(value) == "string"

    def test_impossible_calendar_date_is_string(self):
        assert detect_type("2024-02-30") == "string"

    def test_number_checked_before_date(self):
        assert detect_type("2024") == "number"


class TestDetectColumnTypes:
    def test_mixed_columns(self, sales_table):
        types = detect_column_types(sales_table.rows)
        assert types == {
            "region": "string",
            "product": "string",
            "amount": "number",
            "date": "date",
        }

    def test_blank_cells_are_skipped(self):
        rows = [{"x": ""}, {"x": None}, {"x": "5"}]
        assert detect_column_types(rows) == {"x": "number"}

    def test_first_non_string_type_wins(self):
        rows = [{"x": "abc"}, {"x": "5"}, {"x": "2024-01-01"}]
        assert detect_column_types(rows) == {"x": "number"}

    def test_only_first_ten_rows_are_sampled(self):
        """A column that is text for 10 rows stays 'string' even if numbers follow."""
        rows = [{"x": "text"} for _ in range(10)] + [{"x": str(i)} for i in range(50)]
        assert detect_column_types(rows) == {"x": "string"}

    def test_eleventh_row_is_not_sampled(self):
        rows = [{"x": ""} for _ in range(10)] + [{"x": "7"}]
        assert detect_column_types(rows) == {"x": "string"}

    def test_empty_rows(self):
        assert detect_column_types([]) == {}

    def test_table_types_use_inference(self, sales_table):
        assert sales_table.types["amount"] == "number"


# ============================================================================
# SMART TYPES
# ============================================================================

class TestDetectSmartType:
    @pytest.mark.parametrize(
        "value,kind",
        [
            ("john@example.com", "email"),
            ("(555) 123-4567", "phone"),
            ("+1 555 123 4567", "phone"),
            ("https://example.com/path", "url"),
            ("www.Example.org", "url"),
            ("$1,234.56", "currency"),
            ("€99", "currency"),
            ("01/15/2024", "date"),
            ("01/15/2024 10:30 PM", "date"),
            ("45%", "percentage"),
            ("-2.5%", "percentage"),
            ("SW1A 1AA", "zipcode"),
            ("hello world", "none"),
        ],
    )
    def test_patterns(self, value, kind):
        assert detect_smart_type(value) == kind

    def test_value_is_trimmed(self):
        assert detect_smart_type("  jane@example.org  ") == "email"

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_blank_is_none(self, value):
        assert detect_smart_type(value) == "none"

    def test_phone_takes_precedence_over_zipcode(self):
        """Five digits satisfy both phone and zipcode; phone is tried first."""
        assert detect_smart_type("12345") == "phone"


class TestDetectSmartColumnTypes:
    def test_dominant_kind_with_counts(self):
        rows = [
            {"contact": "a@example.com"},
            {"contact": "b@example.com"},
            {"contact": "c@example.com"},
            {"contact": "not an email"},
        ]
        info = detect_smart_column_types(rows)["contact"]
        assert info == SmartTypeInfo(kind="email", valid_count=3, invalid_count=1, valid_percent=75)

    def test_below_half_is_none(self):
        rows = [{"c": "a@example.com"}, {"c": "plain"}, {"c": "text"}]
        assert detect_smart_column_types(rows)["c"].kind == "none"

    def test_exactly_half_is_enough(self):
        rows = [{"c": "a@example.com"}, {"c": "plain"}]
        assert detect_smart_column_types(rows)["c"].kind == "email"

    def test_blank_values_are_ignored(self):
        rows = [{"c": "a@example.com"}, {"c": ""}, {"c": None}]
        info = detect_smart_column_types(rows)["c"]
        assert info.kind == "email"
        assert info.valid_count == 1
        assert info.invalid_count == 0
        assert info.valid_percent == 100

    def test_valid_percent_rounds_half_up(self):
        rows = [{"c": "a@example.com"}, {"c": "b@example.com"}, {"c": "nope"}]
        assert detect_smart_column_types(rows)["c"].valid_percent == 67

    def test_all_blank_column(self):
        rows = [{"c": ""}, {"c": None}]
        assert detect_smart_column_types(rows)["c"] == SmartTypeInfo()

    def test_table_smart_types(self):
        table = Table([{"email": "x@y.io", "n": "1"}, {"email": "z@y.io", "n": "2"}])
        assert table.smart_types["email"].kind == "email"
