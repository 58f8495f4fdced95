"""Tests for column statistics and unique-value lists."""

from gridsight.services.statistics import calculate_column_stats, column_sums, unique_values
from gridsight.services.table import Table


def table_of(values):
    return Table([{"v": v} for v in values])


class TestColumnStats:
    def test_summary(self):
        stats = calculate_column_stats(table_of(["1", "2", "2", "3", "4"]), "v")
        assert stats["count"] == 5
        assert stats["sum"] == 12
        assert stats["min"] == 1
        assert stats["max"] == 4
        assert stats["avg"] == 2.4
        assert stats["median"] == 2
        assert stats["mode"] == 2
        assert stats["std_dev"] == 1.02

    def test_even_count_median(self):
        assert calculate_column_stats(table_of(["1", "2", "3", "10"]), "v")["median"] == 2.5

    def test_distribution_has_ten_buckets(self):
        stats = calculate_column_stats(table_of(["1", "2", "2", "3", "4"]), "v")
        assert len(stats["distribution"]) == 10
        assert sum(stats["distribution"]) == 5
        assert stats["distribution"][0] == 1
        assert stats["distribution"][-1] == 1

    def test_constant_column_lands_in_first_bucket(self):
        stats = calculate_column_stats(table_of(["5", "5", "5"]), "v")
        assert stats["distribution"][0] == 3
        assert stats["std_dev"] == 0

    def test_mode_is_none_when_all_unique(self):
        assert calculate_column_stats(table_of(["1", "2", "3"]), "v")["mode"] is None

    def test_std_dev_needs_two_values(self):
        stats = calculate_column_stats(table_of(["7", "x", ""]), "v")
        assert stats["count"] == 1
        assert stats["std_dev"] is None

    def test_no_numeric_values(self):
        assert calculate_column_stats(table_of(["a", "b", None]), "v") is None

    def test_memoized_per_snapshot(self):
        table = table_of(["1", "2"])
        assert calculate_column_stats(table, "v") is calculate_column_stats(table, "v")

    def test_new_snapshot_recomputes(self):
        table = table_of(["1", "2"])
        replaced = table.replace([{"v": "10"}, {"v": "20"}])
        assert calculate_column_stats(replaced, "v")["sum"] == 30


class TestColumnSums:
    def test_only_number_columns(self):
        table = Table([{"name": "a", "n": "0.125"}, {"name": "b", "n": "0.25"}])
        assert column_sums(table) == {"n": 0.38}

    def test_unparseable_cells_count_as_zero(self):
        assert column_sums(table_of(["10", "n/a", "", None, "5"])) == {"v": 15}

    def test_empty_table(self):
        assert column_sums(Table([])) == {}

    def test_returns_a_copy(self):
        table = table_of(["1", "2"])
        column_sums(table)["v"] = 0
        assert column_sums(table) == {"v": 3}


class TestUniqueValues:
    def test_sorted_distinct_non_blank(self):
        table = table_of(["b", "a", "b", "", None, 3])
        assert unique_values(table, "v") == ["3", "a", "b"]

    def test_limit(self):
        table = table_of([str(i) for i in range(10)])
        assert unique_values(table, "v", limit=3) == ["0", "1", "2"]
