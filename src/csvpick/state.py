"""Application state shared by the csvpick UI."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

import polars as pl

from csvpick.filters import assign_item_ids, query_item_ids
from csvpick.selection_manager import SelectionManager

logger = logging.getLogger(__name__)


class StateError(Exception):
    """Raised when a CSV cannot be opened or queried."""


class AppState:
    """Owns the item id list and the selection that indexes into it.

    Only this class replaces ``item_ids``; it does so in place so the
    selection manager keeps seeing the live list, and clears the selection
    whenever the list changes since stored positions no longer line up.
    """

    def __init__(self, id_column: str = "id") -> None:
        self.path: Optional[Path] = None
        self.status: Optional[str] = None
        self.query = ""
        self.id_column = id_column
        self.item_ids: list[int] = []
        self.columns: list[str] = []
        self.lazy_df: Optional[pl.LazyFrame] = None
        self.total_rows = 0
        self.selection = SelectionManager(self.item_ids)

        self.refresh_funcs: list[Callable[[], None]] = [
            self.refresh_path,
            self.refresh_item_ids,
            self.refresh_status,
        ]

    def open(self, path: str | Path) -> None:
        try:
            lazy_df = pl.scan_csv(path, infer_schema_length=0)
            lazy_df = assign_item_ids(lazy_df, self.id_column)
            columns = lazy_df.collect_schema().names()
            total_rows = lazy_df.select(pl.len()).collect().item()
        except (OSError, pl.exceptions.PolarsError) as exc:
            self.close()
            raise StateError(f"Error loading CSV: {exc}") from exc

        self.path = Path(path)
        self.lazy_df = lazy_df
        self.columns = columns
        self.total_rows = total_rows
        self.query = ""
        logger.info("Opened %s (%d rows)", self.path, total_rows)
        self.refresh_all()

    def close(self) -> None:
        self.path = None
        self.status = None
        self.lazy_df = None
        self.columns = []
        self.total_rows = 0
        self.query = ""
        self.item_ids.clear()
        self.selection.clear()

    def set_query(self, query: str) -> None:
        """Apply a new query, keeping the previous one if it fails to run."""
        previous = self.query
        self.query = query
        try:
            self.refresh_all()
        except StateError:
            self.query = previous
            raise

    # ------------------------------------------------------------------
    # Refresh functions
    # ------------------------------------------------------------------
    def refresh_path(self) -> None:
        if self.path is None:
            return
        resolved = self.path.resolve()
        if resolved != self.path:
            self.path = resolved

    def refresh_item_ids(self) -> None:
        if self.lazy_df is None:
            new_ids: list[int] = []
        else:
            try:
                new_ids = query_item_ids(self.lazy_df, self.id_column, self.query)
            except pl.exceptions.PolarsError as exc:
                raise StateError(f"Error running query: {exc}") from exc
        if new_ids == self.item_ids:
            return
        self.item_ids[:] = new_ids
        self.selection.clear()
        logger.debug("Item list refreshed: %d ids", len(new_ids))

    def refresh_status(self) -> None:
        if self.lazy_df is None:
            new_status = None
        else:
            new_status = f"{len(self.item_ids):,} of {self.total_rows:,} rows"
        if new_status != self.status:
            self.status = new_status

    def refresh_all(self) -> None:
        for refresh_func in self.refresh_funcs:
            refresh_func()

    # ------------------------------------------------------------------
    # Data access
    # ------------------------------------------------------------------
    def rows_for_ids(self, item_ids: list[int]) -> pl.DataFrame:
        """Return rows for ``item_ids`` in the order given."""
        if self.lazy_df is None:
            return pl.DataFrame()
        order = pl.DataFrame(
            {
                self.id_column: item_ids,
                "__order": list(range(len(item_ids))),
            },
            schema={self.id_column: pl.Int64, "__order": pl.Int64},
        )
        rows = (
            self.lazy_df.with_columns(
                pl.col(self.id_column).cast(pl.Int64, strict=False)
            )
            .join(order.lazy(), on=self.id_column, how="inner")
            .sort("__order")
            .drop("__order")
            .collect()
        )
        return rows

    def selected_rows(self) -> pl.DataFrame:
        return self.rows_for_ids(self.selection.selected_item_ids())
