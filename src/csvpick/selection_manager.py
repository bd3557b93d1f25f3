"""Row selection manager for csvpick.

Positions index into a live list of item ids owned by the caller. The
manager never reads that list except in ``item_id_to_index`` and
``selected_item_ids``, so positions must be cleared or remapped by the
owner whenever the list is refreshed.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from csvpick.selection_utils import (
    RangeSelection,
    SeparateSelection,
    Selection,
    contains_position,
    describe_selection,
    iter_range,
    range_min_max,
    range_to_list,
)

logger = logging.getLogger(__name__)


class SelectionError(Exception):
    """Base class for selection contract violations."""


class NotFound(SelectionError, LookupError):
    def __init__(self, item_id: int) -> None:
        super().__init__(f"Item id {item_id} is not in the list")
        self.item_id = item_id


class AlreadySelected(SelectionError):
    def __init__(self, position: int) -> None:
        super().__init__(f"Row {position} is already selected")
        self.position = position


class NoActiveSelection(SelectionError):
    def __init__(self) -> None:
        super().__init__("No active selection")


class NotInSelection(SelectionError):
    def __init__(self, position: int) -> None:
        super().__init__(f"Row {position} is not selected")
        self.position = position


class SelectionManager:
    """Tracks selected rows using click, ctrl-click and shift-click rules."""

    def __init__(self, item_ids: list[int]) -> None:
        self.item_ids = item_ids
        self.selection: Optional[Selection] = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def iter_selected(self) -> Iterator[int]:
        """Iterate selected positions without expanding ranges up front."""
        selection = self.selection
        if selection is None:
            return iter(())
        if isinstance(selection, RangeSelection):
            return iter(iter_range(selection))
        return iter(list(selection.indexes))

    def selected(self) -> list[int]:
        """Return selected positions.

        Ranges come back ascending; separate selections in the order they
        were built.
        """
        selection = self.selection
        if selection is None:
            return []
        if isinstance(selection, RangeSelection):
            return range_to_list(selection)
        return list(selection.indexes)

    def contains(self, position: int) -> bool:
        return contains_position(self.selection, position)

    def item_id_to_index(self, item_id: int) -> int:
        try:
            return self.item_ids.index(item_id)
        except ValueError:
            raise NotFound(item_id) from None

    def selected_item_ids(self) -> list[int]:
        total = len(self.item_ids)
        return [
            self.item_ids[pos] for pos in self.iter_selected() if 0 <= pos < total
        ]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def isolate(self, position: int) -> None:
        """Select a single row and drop everything else."""
        self.selection = SeparateSelection([position], position)
        self._log("isolate", position)

    def clear(self) -> None:
        self.selection = None
        logger.debug("selection cleared")

    def add(self, position: int) -> None:
        if self.selection is None:
            self.isolate(position)
            return
        if self.contains(position):
            raise AlreadySelected(position)

        indexes = self.selected()
        indexes.append(position)
        self.selection = SeparateSelection(indexes, position)
        self._log("add", position)

    def remove(self, position: int) -> None:
        selection = self.selection
        if selection is None:
            raise NoActiveSelection()
        if not self.contains(position):
            raise NotInSelection(position)

        if isinstance(selection, RangeSelection):
            indexes = [i for i in iter_range(selection) if i != position]
            self.selection = SeparateSelection(indexes, position)
        else:
            selection.indexes.remove(position)
        self._log("remove", position)

    def toggle(self, position: int) -> None:
        if self.contains(position):
            self.remove(position)
        else:
            self.add(position)

    def extend_to(self, position: int) -> None:
        """Stretch a contiguous range from the anchor to ``position``."""
        selection = self.selection
        if selection is None:
            # no prior click, so the range starts at the top of the list
            self.selection = RangeSelection(0, position)
        elif isinstance(selection, RangeSelection):
            selection.extend_to_index = position
        else:
            self.selection = RangeSelection(selection.last_toggled_index, position)
        self._log("extend_to", position)

    def add_to(self, position: int) -> None:
        """Grow the selection toward ``position`` without dropping any row."""
        selection = self.selection
        if selection is None:
            self.selection = RangeSelection(0, position)
        elif isinstance(selection, RangeSelection):
            small, large = range_min_max(selection)
            indexes = range_to_list(selection)
            if position < small:
                indexes.extend(range(position, small))
            elif position > large:
                indexes.extend(range(large + 1, position + 1))
            self.selection = SeparateSelection(indexes, position)
        else:
            start = selection.last_toggled_index
            small, large = min(start, position), max(start, position)
            present = set(selection.indexes)
            for i in range(small, large + 1):
                if i not in present:
                    selection.indexes.append(i)
            selection.last_toggled_index = position
        self._log("add_to", position)

    def _log(self, action: str, position: int) -> None:
        logger.debug(
            "%s(%d) -> %s", action, position, describe_selection(self.selection)
        )
