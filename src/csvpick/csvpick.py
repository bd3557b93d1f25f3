#!/usr/bin/env python3
"""
csvpick - pick rows out of a CSV file with list-box style selection, using
Polars and Urwid.
"""

from __future__ import annotations

import argparse
import logging
from io import StringIO
from pathlib import Path
from typing import Callable, Optional

import polars as pl
import pyperclip
import urwid

from csvpick.selection_manager import SelectionError
from csvpick.selection_utils import describe_selection, selection_size
from csvpick.state import AppState, StateError

logger = logging.getLogger(__name__)


def _truncate(text: str, width: int) -> str:
    """Truncate and pad text to a fixed width."""
    if len(text) > width:
        return text[: width - 1] + "…"
    return text.ljust(width)


class FlowColumns(urwid.Columns):
    """Columns that behave as a 1-line flow widget for ListBox rows."""

    sizing = frozenset(["flow"])

    def rows(self, size, focus=False):  # noqa: ANN001, D401
        return 1


class PromptDialog(urwid.WidgetWrap):
    """Modal dialog with a single line of input."""

    def __init__(
        self,
        title: str,
        prompt: str,
        on_submit: Callable[[str], None],
        on_cancel: Callable[[], None],
        initial: str = "",
        hint: str = "Enter to apply, Esc to cancel",
    ) -> None:
        self.edit = urwid.Edit(f"{prompt}: ", initial)
        self.on_submit = on_submit
        self.on_cancel = on_cancel
        pile = urwid.Pile(
            [
                urwid.Text(hint),
                urwid.Divider(),
                urwid.AttrMap(self.edit, None, focus_map="focus"),
            ]
        )
        boxed = urwid.LineBox(pile, title=title)
        super().__init__(urwid.Filler(boxed, valign="top"))

    def keypress(self, size, key):  # noqa: ANN001
        if key in ("enter",):
            self.on_submit(self.edit.edit_text.strip())
            return None
        if key in ("esc", "ctrl g"):
            self.on_cancel()
            return None
        return super().keypress(size, key)


class CSVPickApp:
    """Urwid-based row picker with click, ctrl-click and shift-click selection."""

    PAGE_SIZE = 50

    def __init__(self, csv_path: str, id_column: str = "id", query: str = "") -> None:
        self.csv_path = Path(csv_path)
        self.state = AppState(id_column=id_column)
        self.initial_query = query
        self.column_widths: dict[str, int] = {}
        self.cached_page_df: Optional[pl.DataFrame] = None
        self.cursor_row = 0  # absolute position in state.item_ids

        # UI state
        self.loop: Optional[urwid.MainLoop] = None
        self.table_walker = urwid.SimpleFocusListWalker([])
        self.table_header = urwid.Columns([])
        self.listbox = urwid.ListBox(self.table_walker)
        self.status_widget = urwid.Text("")
        self.overlaying = False

    @property
    def selection(self):
        return self.state.selection

    # ------------------------------------------------------------------
    # Data loading and preparation
    # ------------------------------------------------------------------
    def load_csv(self) -> None:
        try:
            self.state.open(self.csv_path)
            if self.initial_query:
                self.state.set_query(self.initial_query)
        except StateError as exc:
            raise SystemExit(str(exc)) from exc
        self._calculate_column_widths()

    def _calculate_column_widths(self) -> None:
        if self.state.lazy_df is None:
            return
        sample_size = min(1000, self.state.total_rows)
        sample_df = self.state.lazy_df.head(sample_size).collect()

        self.column_widths = {}
        for col in self.state.columns:
            header_len = len(col) + 2
            if col in sample_df.columns:
                lengths = sample_df[col].cast(pl.Utf8).str.len_chars()
                max_len = lengths.max() or 0
            else:
                max_len = 0
            width = max(header_len, max_len)
            width = max(6, min(int(width), 40))
            self.column_widths[col] = width

    # ------------------------------------------------------------------
    # UI construction
    # ------------------------------------------------------------------
    def build_ui(self) -> urwid.Widget:
        header_text = urwid.Text(f"csvpick - {self.csv_path.name}", align="center")
        header = urwid.AttrMap(header_text, "header")
        self.table_header = self._build_header_row(self._current_screen_width())
        body = urwid.Pile(
            [
                ("pack", self.table_header),
                ("pack", urwid.Divider("─")),
                self.listbox,
            ]
        )
        footer = urwid.AttrMap(self.status_widget, "status")
        return urwid.Frame(body=body, header=header, footer=footer)

    def _build_header_row(self, max_width: Optional[int] = None) -> urwid.Columns:
        if max_width is None:
            max_width = self._current_screen_width()
        cols = [(2, urwid.Text("  "))]
        for col in self._visible_column_names(max_width):
            width = self.column_widths.get(col, 12)
            cols.append((width, urwid.Text(_truncate(col, width), wrap="clip")))
        return urwid.Columns(cols, dividechars=1)

    def _current_screen_width(self) -> int:
        if self.loop and self.loop.screen:
            cols, _rows = self.loop.screen.get_cols_rows()
            return max(cols, 40)
        return 80

    def _visible_column_names(self, max_width: int) -> list[str]:
        chosen: list[str] = []
        used = 3  # selection marker plus divider
        for col in self.state.columns:
            w = self.column_widths.get(col, 12)
            extra = w if not chosen else w + 1
            if used + extra > max_width and chosen:
                break
            chosen.append(col)
            used += extra
        return chosen

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    @property
    def current_page(self) -> int:
        return self.cursor_row // self.PAGE_SIZE

    def _page_positions(self) -> range:
        start = self.current_page * self.PAGE_SIZE
        end = min(start + self.PAGE_SIZE, len(self.state.item_ids))
        return range(start, end)

    def _get_page_df(self) -> pl.DataFrame:
        positions = self._page_positions()
        page_ids = [self.state.item_ids[pos] for pos in positions]
        return self.state.rows_for_ids(page_ids)

    def _refresh_rows(self) -> None:
        if self.state.lazy_df is None:
            return
        self.cursor_row = min(self.cursor_row, max(0, len(self.state.item_ids) - 1))
        max_width = self._current_screen_width()
        page_df = self._get_page_df()
        self.cached_page_df = page_df
        self.table_walker.clear()

        visible_cols = self._visible_column_names(max_width)
        positions = self._page_positions()
        rows = page_df.select(visible_cols).iter_rows()
        for position, row in zip(positions, rows):
            row_widget = self._build_row_widget(position, row, visible_cols)
            self.table_walker.append(row_widget)

        if self.table_walker:
            self.table_walker.set_focus(self.cursor_row - positions.start)
        self.table_header = self._build_header_row(max_width)
        if self.loop:
            frame_widget = self.loop.widget
            if isinstance(frame_widget, urwid.Overlay):
                frame_widget = frame_widget.bottom_w
            if isinstance(frame_widget, urwid.Frame):
                frame_widget.body.contents[0] = (
                    self.table_header,
                    frame_widget.body.options("pack"),
                )
        self._update_status()

    def _build_row_widget(
        self, position: int, row: tuple, columns: list[str]
    ) -> urwid.Widget:
        is_selected = self.selection.contains(position)
        is_cursor = position == self.cursor_row
        if is_selected and is_cursor:
            attr = "cursor_selected"
        elif is_selected:
            attr = "row_selected"
        elif is_cursor:
            attr = "cursor"
        else:
            attr = None

        marker = "* " if is_selected else "  "
        cells = [(2, urwid.Text(marker))]
        for col, cell in zip(columns, row):
            width = self.column_widths.get(col, 12)
            text = _truncate("" if cell is None else str(cell), width)
            cells.append((width, urwid.Text(text, wrap="clip")))
        return urwid.AttrMap(FlowColumns(cells, dividechars=1), attr)

    # ------------------------------------------------------------------
    # Interaction handlers
    # ------------------------------------------------------------------
    def handle_input(self, key: str) -> None:
        if self.overlaying:
            return
        if key in ("q", "Q"):
            raise urwid.ExitMainLoop()
        if key in ("r", "R"):
            self.reset_query()
            return
        if key in ("/",):
            self.open_query_dialog()
            return
        if key in ("ctrl d", "page down"):
            self.move_cursor(self.PAGE_SIZE)
            return
        if key in ("ctrl u", "page up"):
            self.move_cursor(-self.PAGE_SIZE)
            return
        if key in ("c", "C"):
            self.copy_selection()
            return
        if key in ("w", "W"):
            self.save_selection_dialog()
            return
        if key == "esc":
            self.selection.clear()
            self._refresh_rows()
            return
        if key == "enter":
            self.apply_selection(self.selection.isolate)
            return
        if key == " ":
            self.apply_selection(self.selection.toggle)
            return
        if key in ("up", "down"):
            self.move_cursor(-1 if key == "up" else 1)
            return
        if key in ("shift up", "shift down"):
            self.move_cursor(-1 if key.endswith("up") else 1, refresh=False)
            self.apply_selection(self.selection.extend_to)
            return
        if key in ("meta up", "meta down"):
            self.move_cursor(-1 if key.endswith("up") else 1, refresh=False)
            self.apply_selection(self.selection.add_to)

    def move_cursor(self, delta: int, refresh: bool = True) -> None:
        last = max(0, len(self.state.item_ids) - 1)
        self.cursor_row = max(0, min(last, self.cursor_row + delta))
        if refresh:
            self._refresh_rows()

    def apply_selection(self, action: Callable[[int], None]) -> None:
        """Run one selection gesture at the cursor, reporting contract errors."""
        if not self.state.item_ids:
            return
        try:
            action(self.cursor_row)
        except SelectionError as exc:
            logger.debug("Selection gesture rejected: %s", exc)
            self.notify(str(exc))
            return
        self._refresh_rows()

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------
    def open_query_dialog(self) -> None:
        if self.loop is None:
            return

        def _on_submit(query: str) -> None:
            self.close_overlay()
            self.apply_query(query)

        def _on_cancel() -> None:
            self.close_overlay()

        dialog = PromptDialog(
            "Query",
            "Find",
            _on_submit,
            _on_cancel,
            initial=self.state.query,
            hint="Text or /regex, Enter to apply, Esc to cancel",
        )
        self.show_overlay(dialog)

    def apply_query(self, query: str) -> None:
        try:
            self.state.set_query(query)
        except StateError as exc:
            self.notify(str(exc))
            return
        self.cursor_row = 0
        self._refresh_rows()

    def reset_query(self) -> None:
        self.apply_query("")
        self.notify("Query cleared")

    # ------------------------------------------------------------------
    # Copy, save
    # ------------------------------------------------------------------
    def _rows_to_export(self) -> pl.DataFrame:
        if self.selection.selection is None:
            return self.state.rows_for_ids(list(self.state.item_ids))
        return self.state.selected_rows()

    def copy_selection(self) -> None:
        if self.selection.selection is None:
            self.notify("Nothing selected")
            return
        selected_df = self.state.selected_rows()
        buffer = StringIO()
        selected_df.write_csv(buffer, include_header=True)
        try:
            pyperclip.copy(buffer.getvalue())
        except pyperclip.PyperclipException as exc:
            self.notify(f"Clipboard unavailable: {exc}")
            return
        self.notify(f"Copied {selected_df.height} rows")

    def save_selection_dialog(self) -> None:
        if self.state.lazy_df is None or self.loop is None:
            return

        def _on_submit(filename: str) -> None:
            if not filename:
                self.notify("Filename required")
                return
            self.close_overlay()
            self._save_to_file(filename)

        def _on_cancel() -> None:
            self.close_overlay()

        dialog = PromptDialog(
            "Save Selection",
            "Save as",
            _on_submit,
            _on_cancel,
            hint="Enter filename and press Enter",
        )
        self.show_overlay(dialog)

    def _save_to_file(self, file_path: str) -> None:
        if self.state.lazy_df is None:
            self.notify("No data to save")
            return
        target = Path(file_path)
        if target.exists():
            self.notify(f"File {target} exists")
            return
        try:
            df_to_save = self._rows_to_export()
            df_to_save.write_csv(target, include_header=True)
        except (OSError, pl.exceptions.PolarsError) as exc:
            logger.warning("Saving %s failed: %s", target, exc)
            self.notify(f"Error saving file: {exc}")
            return
        self.notify(f"Saved {df_to_save.height} rows to {target.name}")

    # ------------------------------------------------------------------
    # Overlay helpers
    # ------------------------------------------------------------------
    def show_overlay(self, widget: urwid.Widget) -> None:
        if self.loop is None:
            return
        overlay = urwid.Overlay(
            widget,
            self.loop.widget,
            align="center",
            width=("relative", 60),
            valign="middle",
            height=("relative", 40),
        )
        self.loop.widget = overlay
        self.overlaying = True

    def close_overlay(self) -> None:
        if self.loop is None:
            return
        if isinstance(self.loop.widget, urwid.Overlay):
            self.loop.widget = self.loop.widget.bottom_w
        self.overlaying = False
        self._refresh_rows()

    # ------------------------------------------------------------------
    # Status handling
    # ------------------------------------------------------------------
    def notify(self, message: str, duration: float = 2.0) -> None:
        self.status_widget.set_text(message)
        if self.loop:
            self.loop.set_alarm_in(duration, lambda *_: self._update_status())

    def _update_status(self, *_args) -> None:  # noqa: ANN002, D401
        if self.state.lazy_df is None:
            return
        selection = self.selection.selection
        selection_text = ""
        if selection is not None:
            selection_text = (
                f"SELECT {selection_size(selection)} "
                f"({describe_selection(selection)}) | "
            )
        query_text = f" | Query: {self.state.query}" if self.state.query else ""
        total = len(self.state.item_ids)
        status = (
            f"{selection_text}Row {min(self.cursor_row + 1, total):,}/{total:,} "
            f"({self.state.status}){query_text}"
        )
        self.status_widget.set_text(status)

    # ------------------------------------------------------------------
    # Main entry
    # ------------------------------------------------------------------
    def run(self) -> None:
        self.load_csv()
        root = self.build_ui()
        self.loop = urwid.MainLoop(
            root,
            palette=[
                ("header", "black", "light gray"),
                ("status", "light gray", "dark gray"),
                ("row_selected", "black", "yellow"),
                ("cursor", "black", "light cyan"),
                ("cursor_selected", "black", "brown"),
                ("focus", "black", "light cyan"),
            ],
            unhandled_input=self.handle_input,
        )
        self._refresh_rows()

        try:
            self.loop.run()
        finally:
            # Ensure terminal modes are restored even on errors/interrupts
            try:
                self.loop.screen.clear()
                self.loop.screen.reset_default_terminal_colors()
            except Exception:  # noqa: BLE001
                logger.debug("Terminal reset failed", exc_info=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="csvpick", description="Pick rows out of a CSV file."
    )
    parser.add_argument("csv_path", help="CSV file to open")
    parser.add_argument(
        "--id-column",
        default="id",
        help="Column holding integer item ids (row numbers are used if missing)",
    )
    parser.add_argument("--query", default="", help="Initial query (text or /regex)")
    parser.add_argument("--log-file", help="Write logs to this file")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def configure_logging(verbose: bool, log_file: Optional[str]) -> None:
    if log_file:
        logging.basicConfig(
            filename=log_file,
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    else:
        # urwid owns the terminal, keep stderr quiet
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(message)s")


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, args.log_file)

    if not Path(args.csv_path).exists():
        print(f"Error: File '{args.csv_path}' not found.")
        raise SystemExit(1)

    app = CSVPickApp(args.csv_path, id_column=args.id_column, query=args.query)
    app.run()


if __name__ == "__main__":
    main()
