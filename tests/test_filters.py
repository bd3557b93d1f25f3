"""Tests for the CSV query layer."""

import polars as pl
import pytest

from csvpick.filters import apply_query, assign_item_ids, query_item_ids


@pytest.fixture
def lazy_df(sample_csv_path):
    return pl.scan_csv(sample_csv_path, infer_schema_length=0)


class TestLiteralQuery:
    """Plain-text queries are case-insensitive substring searches."""

    def test_blank_query_keeps_every_row(self, lazy_df):
        assert query_item_ids(lazy_df, "id", "") == list(range(10, 18))
        assert query_item_ids(lazy_df, "id", "   ") == list(range(10, 18))

    def test_case_insensitive(self, lazy_df):
        lower = query_item_ids(lazy_df, "id", "scranton")
        upper = query_item_ids(lazy_df, "id", "SCRANTON")
        assert lower == upper == [11, 12, 15, 17]

    def test_matches_any_column(self, lazy_df):
        # "sales" is a department, "new york" a city
        assert query_item_ids(lazy_df, "id", "sales") == [11, 14, 17]
        assert query_item_ids(lazy_df, "id", "new york") == [10, 13]

    def test_regex_characters_are_literal(self, lazy_df):
        assert query_item_ids(lazy_df, "id", "a.*") == []

    def test_no_matches(self, lazy_df):
        assert query_item_ids(lazy_df, "id", "NonExistentCity") == []

    def test_id_column_not_searched_by_default(self, lazy_df):
        assert query_item_ids(lazy_df, "id", "12") == []

    def test_explicit_columns(self, lazy_df):
        ids = query_item_ids(lazy_df, "id", "ing", columns=["department"])
        assert ids == [10, 12, 13, 15, 16]


class TestRegexQuery:
    """Queries starting with '/' are case-insensitive regexes."""

    def test_anchored_pattern(self, lazy_df):
        assert query_item_ids(lazy_df, "id", "/^j") == [10, 11]

    def test_alternation(self, lazy_df):
        assert query_item_ids(lazy_df, "id", "/boston|stamford") == [14, 16]

    def test_invalid_regex_does_not_filter(self, lazy_df):
        assert query_item_ids(lazy_df, "id", "/[unclosed") == list(range(10, 18))

    def test_empty_pattern_does_not_filter(self, lazy_df):
        filtered = apply_query(lazy_df, ["name"], "/")
        assert filtered.select(pl.len()).collect().item() == 8


class TestItemIds:
    def test_existing_id_column_is_kept(self, lazy_df):
        assert assign_item_ids(lazy_df, "id") is lazy_df

    def test_row_numbers_used_when_missing(self, no_id_csv_path):
        lazy = assign_item_ids(pl.scan_csv(no_id_csv_path), "id")
        assert query_item_ids(lazy, "id", "") == [0, 1, 2]
        assert query_item_ids(lazy, "id", "oslo") == [0, 2]

    def test_non_numeric_ids_are_dropped(self, tmp_path):
        path = tmp_path / "mixed.csv"
        path.write_text("id,name\n1,a\nx,b\n3,c\n")
        lazy = pl.scan_csv(path, infer_schema_length=0)
        assert query_item_ids(lazy, "id", "") == [1, 3]
