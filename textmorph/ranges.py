# textmorph/ranges.py
"""
Tracked ranges: the live location of a rendered tag in the surface text.

A range is created with a start anchor that stays put when text is inserted
exactly at it and a stop anchor that moves past such text, so whatever is
typed at either edge of a span (or into an empty one) becomes part of it.

Hosts may report positions past the end of the text after deletions, or a
start that has overtaken the stop after concurrent edits. Both are normalised
here rather than raised: clamped to the last valid position, and read as
empty text.
"""

import logging
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Dict, List, Optional

from .base import Pos
from .surface import TextSurface

logger = logging.getLogger(__name__)


@dataclass
class TrackedRange:
    id: int
    start: Pos
    stop: Pos
    details: Dict[str, Any] = field(default_factory=dict)
    surface: Optional[TextSurface] = field(default=None, repr=False, compare=False)

    @classmethod
    def create(cls, surface: TextSurface, start: Pos, stop: Pos, details: Optional[Dict[str, Any]] = None) -> "TrackedRange":
        range_id = surface.create_range(start, stop, details or {}, right_gravity=False, end_right_gravity=True)
        return cls(id=range_id, start=start, stop=stop, details=dict(details or {}), surface=surface)

    @classmethod
    def from_host(cls, surface: TextSurface, range_id: int, start: Pos, stop: Pos, details: Optional[Dict[str, Any]] = None) -> "TrackedRange":
        """Builds a range from raw host data, clamping rows past the end of the text."""
        lines = surface.get_lines() or [""]
        last_row = max(0, len(lines) - 1)
        end = Pos(last_row, len(lines[last_row]))
        if start.row > last_row:
            logger.debug("range %s: start %s past end of text, clamping to %s", range_id, start, end)
            start = end
        if stop.row > last_row:
            logger.debug("range %s: stop %s past end of text, clamping to %s", range_id, stop, end)
            stop = end
        return cls(id=range_id, start=start, stop=stop, details=dict(details or {}), surface=surface)

    @classmethod
    def by_id(cls, surface: TextSurface, range_id: int) -> Optional["TrackedRange"]:
        raw = surface.get_range(range_id)
        if raw is None:
            return None
        start, stop, details = raw
        return cls.from_host(surface, range_id, start, stop, details)

    @classmethod
    def overlapping(cls, surface: TextSurface, start: Pos, stop: Pos) -> List["TrackedRange"]:
        """All ranges overlapping ``[start, stop]``. A failing host query yields no ranges."""
        try:
            raw = surface.query_overlapping(start, stop)
        except Exception:
            logger.warning("range query %s..%s failed on %r; treating as empty", start, stop, surface, exc_info=True)
            return []
        return [cls.from_host(surface, range_id, s, e, details) for range_id, s, e, details in raw]

    @property
    def is_empty(self) -> bool:
        return self.start >= self.stop

    def text(self) -> str:
        """The text currently covered by this range (empty when empty or inverted)."""
        if self.is_empty or self.surface is None:
            return ""
        line = self._line_length(self.stop.row)
        stop = self.stop if self.stop.col <= line else Pos(self.stop.row, line)
        start_line = self._line_length(self.start.row)
        start = self.start if self.start.col <= start_line else Pos(self.start.row, start_line)
        if start >= stop:
            return ""
        return self.surface.get_text(start, stop)

    def _line_length(self, row: int) -> int:
        lines = self.surface.get_lines()
        return len(lines[row]) if 0 <= row < len(lines) else 0


def _innermost_first(a: TrackedRange, b: TrackedRange) -> int:
    if a.start == b.start and a.stop == b.stop:
        return a.id - b.id
    if a.start >= b.start and a.stop <= b.stop:
        return -1
    if b.start >= a.start and b.stop <= a.stop:
        return 1
    # disjoint or partially overlapping: later start is "more inner"
    if a.start != b.start:
        return -1 if a.start > b.start else 1
    return -1 if a.stop < b.stop else 1


def sort_innermost_first(ranges: List[TrackedRange]) -> List[TrackedRange]:
    """Orders ranges innermost to outermost; identical extents keep creation order."""
    return sorted(ranges, key=cmp_to_key(_innermost_first))
