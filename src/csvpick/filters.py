"""Query utilities that turn a CSV into an ordered list of item ids."""

from __future__ import annotations

import logging
import re
from typing import Optional

import polars as pl

logger = logging.getLogger(__name__)


def assign_item_ids(lazy_df: pl.LazyFrame, id_column: str) -> pl.LazyFrame:
    """Make sure ``id_column`` exists, numbering rows from 0 if it does not."""
    if id_column in lazy_df.collect_schema().names():
        return lazy_df
    logger.info("No %r column, using row numbers as item ids", id_column)
    return lazy_df.with_row_index(id_column)


def apply_query(
    lazy_df: pl.LazyFrame, columns: list[str], query: str
) -> pl.LazyFrame:
    """
    Filter rows where any of ``columns`` matches ``query``.

    Queries starting with '/' are case-insensitive regex patterns; an
    invalid pattern leaves the frame unfiltered. Anything else is a
    case-insensitive literal substring search.

    Args:
        lazy_df: The lazy frame to filter
        columns: Columns searched by the query
        query: Query text as typed by the user

    Returns:
        Filtered LazyFrame
    """
    query = query.strip()
    if not query or not columns:
        return lazy_df

    if query.startswith("/"):
        pattern = query[1:]
        if not pattern:
            return lazy_df
        try:
            re.compile(pattern, re.IGNORECASE)
        except re.error:
            logger.debug("Ignoring invalid regex query %r", pattern)
            return lazy_df
        exprs = [
            pl.col(col).cast(pl.Utf8).str.contains(f"(?i){pattern}")
            for col in columns
        ]
    else:
        needle = query.lower()
        exprs = [
            pl.col(col)
            .cast(pl.Utf8)
            .str.to_lowercase()
            .str.contains(needle, literal=True)
            for col in columns
        ]

    return lazy_df.filter(pl.any_horizontal(exprs).fill_null(False))


def query_item_ids(
    lazy_df: pl.LazyFrame,
    id_column: str,
    query: str,
    columns: Optional[list[str]] = None,
) -> list[int]:
    """Return the item ids of rows matching ``query``, in file order."""
    if columns is None:
        columns = [c for c in lazy_df.collect_schema().names() if c != id_column]
    filtered = apply_query(lazy_df, columns, query)
    ids = (
        filtered.select(pl.col(id_column).cast(pl.Int64, strict=False))
        .drop_nulls()
        .collect()
        .to_series()
    )
    return ids.to_list()
