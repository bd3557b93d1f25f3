"""Selection model for csvpick: range and separate row selections."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass
class RangeSelection:
    """Contiguous inclusive span between an anchor and a moving end."""

    root_index: int
    extend_to_index: int


@dataclass
class SeparateSelection:
    """Explicit set of positions plus the most recently toggled one."""

    indexes: list[int]
    # anchor used when converting back to a range
    last_toggled_index: int


Selection = Union[RangeSelection, SeparateSelection]


def range_min_max(range_sel: RangeSelection) -> tuple[int, int]:
    """Return the (small, large) inclusive bounds of a range selection."""
    if range_sel.root_index < range_sel.extend_to_index:
        return range_sel.root_index, range_sel.extend_to_index
    return range_sel.extend_to_index, range_sel.root_index


def iter_range(range_sel: RangeSelection) -> range:
    """Return the positions covered by a range selection, ascending.

    A ``range`` is lazy, so large spans are never materialized unless the
    caller asks for a list.
    """
    small, large = range_min_max(range_sel)
    return range(small, large + 1)


def range_to_list(range_sel: RangeSelection) -> list[int]:
    return list(iter_range(range_sel))


def contains_position(selection: Optional[Selection], position: int) -> bool:
    if selection is None:
        return False
    if isinstance(selection, RangeSelection):
        small, large = range_min_max(selection)
        return small <= position <= large
    if isinstance(selection, SeparateSelection):
        return position in selection.indexes
    raise TypeError(f"Unknown selection type: {type(selection).__name__}")


def selection_size(selection: Optional[Selection]) -> int:
    if selection is None:
        return 0
    if isinstance(selection, RangeSelection):
        small, large = range_min_max(selection)
        return large - small + 1
    return len(selection.indexes)


def describe_selection(selection: Optional[Selection]) -> str:
    """Short label for logs and the status bar."""
    if selection is None:
        return "none"
    if isinstance(selection, RangeSelection):
        small, large = range_min_max(selection)
        if small == large:
            return f"range {small}"
        return f"range {small}-{large}"
    return f"{len(selection.indexes)} separate"
