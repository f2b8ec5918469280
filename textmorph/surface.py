# textmorph/surface.py
"""
Host text surfaces.

`TextSurface` is everything a `Morph` needs from the thing it draws into: a
mutable sequence of lines with range replacement, ranges that follow edits,
a per-mode handler table, a mutation lock with a way to run work once it is
released, and change notifications.

`MemorySurface` is a complete in-memory implementation, used by the tests and
the CLI. ``textmorph.qt_surface`` adapts a Qt text document.
"""

import abc
import logging
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional, Sequence, Tuple

from .base import Pos, as_pos

logger = logging.getLogger(__name__)

Handler = Callable[[], Optional[str]]
ChangeListener = Callable[[Pos, Pos, Pos], Any]
RawRange = Tuple[int, Pos, Pos, Dict[str, Any]]


class TextSurface(abc.ABC):
    """
    Abstract host surface.

    Positions are zero-based `Pos` values. ``set_lines`` follows end-exclusive
    line indexing; ``set_text`` replaces the characters between two positions.
    The text always holds at least one (possibly empty) line.

    The handler table, cursor and mode bookkeeping are implemented here;
    hosts with their own keymaps override them.
    """

    def __init__(self, mode: str = "n"):
        # Free-form per-surface variables (e.g. the "already mounted" marker).
        self.vars: Dict[str, Any] = {}
        self.mode = mode
        self._cursor = Pos(0, 0)
        self._handlers: Dict[str, Dict[str, Handler]] = {}

    # --- text ---
    @abc.abstractmethod
    def get_lines(self) -> List[str]: ...

    def line_count(self) -> int:
        return len(self.get_lines())

    @abc.abstractmethod
    def set_text(self, start: Pos, stop: Pos, replacement: Sequence[str]) -> None: ...

    @abc.abstractmethod
    def get_text(self, start: Pos, stop: Pos) -> str: ...

    @property
    @abc.abstractmethod
    def change_tick(self) -> int:
        """Increases on every edit, whoever made it."""

    def set_lines(self, start: int, end: int, replacement: Sequence[str]) -> None:
        """Replaces lines ``[start, end)`` with ``replacement``."""
        lines = self.get_lines()
        count = len(lines)
        if not 0 <= start <= end <= count:
            raise IndexError(f"line range [{start}, {end}) out of range (line count {count})")
        replacement = list(replacement)
        last = Pos(count - 1, len(lines[-1]))

        if replacement:
            joined = "\n".join(replacement)
            if end < count:
                self.set_text(Pos(start, 0), Pos(end, 0), (joined + "\n").split("\n"))
            elif start < count:
                self.set_text(Pos(start, 0), last, replacement)
            else:
                # appending after the last line
                self.set_text(last, last, [""] + replacement)
        elif start == end:
            return
        elif end < count:
            self.set_text(Pos(start, 0), Pos(end, 0), [""])
        elif start > 0:
            self.set_text(Pos(start - 1, len(lines[start - 1])), last, [""])
        else:
            self.set_text(Pos(0, 0), last, [""])

    # --- tracked ranges ---
    @abc.abstractmethod
    def create_range(
        self,
        start: Pos,
        stop: Pos,
        details: Optional[Dict[str, Any]] = None,
        right_gravity: bool = False,
        end_right_gravity: bool = True,
    ) -> int: ...

    @abc.abstractmethod
    def get_range(self, range_id: int) -> Optional[Tuple[Pos, Pos, Dict[str, Any]]]: ...

    @abc.abstractmethod
    def query_overlapping(self, start: Pos, stop: Pos) -> List[RawRange]: ...

    @abc.abstractmethod
    def clear_ranges(self) -> None: ...

    # --- input handlers ---
    def get_handlers(self, mode: str) -> Dict[str, Handler]:
        return dict(self._handlers.get(mode, {}))

    def set_handler(self, mode: str, lhs: str, callback: Handler) -> None:
        self._handlers.setdefault(mode, {})[lhs] = callback

    def del_handler(self, mode: str, lhs: str) -> None:
        self._handlers.get(mode, {}).pop(lhs, None)

    def feed_key(self, lhs: str, mode: Optional[str] = None) -> str:
        """
        Simulates a key press and returns the action the host would run:
        the handler's result, or ``lhs`` itself when nothing is mapped.
        An empty string means the key was swallowed.
        """
        handler = self._handlers.get(mode or self.get_mode(), {}).get(lhs)
        if handler is None:
            return lhs
        result = handler()
        return lhs if result is None else result

    def get_cursor(self) -> Pos:
        return self._cursor

    def set_cursor(self, pos) -> None:
        self._cursor = as_pos(pos)

    def get_mode(self) -> str:
        return self.mode

    # --- locking & notifications ---
    @abc.abstractmethod
    def is_mutation_locked(self) -> bool: ...

    @abc.abstractmethod
    def defer_until_unlocked(self, fn: Callable[[], Any]) -> None: ...

    @abc.abstractmethod
    def on_external_change(self, callback: ChangeListener) -> Callable[[], None]:
        """Registers ``callback(start, old_end, new_end)``; returns an unsubscribe function."""


@dataclass
class _Mark:
    start: int
    stop: int
    details: Dict[str, Any] = field(default_factory=dict)
    right_gravity: bool = False
    end_right_gravity: bool = True


class MemorySurface(TextSurface):
    """
    An in-memory line buffer.

    Ranges are kept as character offsets into the newline-joined text and
    follow every edit: an anchor inside or at the edge of a replaced region
    moves to the start of the replacement (left gravity) or to its end
    (right gravity).
    """

    def __init__(self, lines: Optional[Sequence[str]] = None, mode: str = "n"):
        super().__init__(mode=mode)
        self._lines: List[str] = list(lines) if lines else [""]
        self._tick = 0
        self._marks: Dict[int, _Mark] = {}
        self._next_mark_id = 1
        self._lock_depth = 0
        self._deferred: Deque[Callable[[], Any]] = deque()
        self._listeners: List[ChangeListener] = []

    # --- coordinates ---
    def _offset(self, pos: Pos) -> int:
        row, col = pos
        if not 0 <= row < len(self._lines):
            raise IndexError(f"row {row} out of range (line count {len(self._lines)})")
        if not 0 <= col <= len(self._lines[row]):
            raise IndexError(f"column {col} out of range for line {row}")
        return sum(len(line) + 1 for line in self._lines[:row]) + col

    def _pos(self, offset: int) -> Pos:
        for row, line in enumerate(self._lines):
            if offset <= len(line):
                return Pos(row, offset)
            offset -= len(line) + 1
        return self._end()

    def _end(self) -> Pos:
        last = len(self._lines) - 1
        return Pos(last, len(self._lines[last]))

    def _splice(self, start: Pos, stop: Pos, text: str) -> None:
        s, e = self._offset(start), self._offset(stop)
        if e < s:
            raise ValueError(f"inverted edit region {start} > {stop}")
        full = "\n".join(self._lines)
        self._lines = (full[:s] + text + full[e:]).split("\n")
        self._tick += 1

        inserted = len(text)
        delta = inserted - (e - s)

        def move(offset: int, right: bool) -> int:
            if offset < s:
                return offset
            if offset > e:
                return offset + delta
            return s + inserted if right else s

        for mark in self._marks.values():
            mark.start = move(mark.start, mark.right_gravity)
            mark.stop = move(mark.stop, mark.end_right_gravity)

        new_end = self._pos(s + inserted)
        for listener in list(self._listeners):
            listener(start, stop, new_end)

    # --- text ---
    def get_lines(self) -> List[str]:
        return list(self._lines)

    def line_count(self) -> int:
        return len(self._lines)

    @property
    def change_tick(self) -> int:
        return self._tick

    def set_text(self, start: Pos, stop: Pos, replacement: Sequence[str]) -> None:
        self._splice(as_pos(start), as_pos(stop), "\n".join(replacement))

    def get_text(self, start: Pos, stop: Pos) -> str:
        full = "\n".join(self._lines)
        return full[self._offset(as_pos(start)):self._offset(as_pos(stop))]

    def insert(self, pos: Pos, text: str) -> None:
        """Convenience for simulating typing: inserts ``text`` at ``pos``."""
        pos = as_pos(pos)
        self.set_text(pos, pos, text.split("\n"))

    def replace(self, start: Pos, stop: Pos, text: str) -> None:
        self.set_text(start, stop, text.split("\n"))

    @property
    def text(self) -> str:
        return "\n".join(self._lines)

    # --- tracked ranges ---
    def create_range(self, start, stop, details=None, right_gravity=False, end_right_gravity=True) -> int:
        mark_id = self._next_mark_id
        self._next_mark_id += 1
        self._marks[mark_id] = _Mark(
            start=self._offset(as_pos(start)),
            stop=self._offset(as_pos(stop)),
            details=dict(details or {}),
            right_gravity=right_gravity,
            end_right_gravity=end_right_gravity,
        )
        return mark_id

    def get_range(self, range_id: int) -> Optional[Tuple[Pos, Pos, Dict[str, Any]]]:
        mark = self._marks.get(range_id)
        if mark is None:
            return None
        return self._pos(mark.start), self._pos(mark.stop), dict(mark.details)

    def query_overlapping(self, start: Pos, stop: Pos) -> List[RawRange]:
        end = self._end()
        lo = self._offset(min(as_pos(start), end))
        hi = self._offset(min(as_pos(stop), end))
        found = []
        for mark_id in sorted(self._marks):
            mark = self._marks[mark_id]
            if mark.start <= hi and mark.stop >= lo:
                found.append((mark_id, self._pos(mark.start), self._pos(mark.stop), dict(mark.details)))
        return found

    def clear_ranges(self) -> None:
        self._marks.clear()

    # --- locking & notifications ---
    def is_mutation_locked(self) -> bool:
        return self._lock_depth > 0

    @contextmanager
    def locked(self) -> Iterator["MemorySurface"]:
        """Forbids mutation for the duration of the block; deferred work runs on exit."""
        self._lock_depth += 1
        try:
            yield self
        finally:
            self._lock_depth -= 1
        if self._lock_depth == 0:
            self.flush_deferred()

    def defer_until_unlocked(self, fn: Callable[[], Any]) -> None:
        self._deferred.append(fn)
        if self._lock_depth == 0:
            self.flush_deferred()

    def flush_deferred(self) -> None:
        while self._deferred and self._lock_depth == 0:
            fn = self._deferred.popleft()
            fn()

    def on_external_change(self, callback: ChangeListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def __repr__(self):
        return f"MemorySurface(lines={self._lines!r})"
