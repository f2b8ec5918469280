# textmorph/qt_surface.py
"""
A `TextSurface` over a Qt ``QTextDocument``.

Each line of the surface is one block of the document. Tracked ranges are
pairs of ``QTextCursor`` objects, which Qt moves along with every edit; the
start cursor keeps its position when text is inserted exactly at it.

Columns are document positions, which Qt counts in UTF-16 code units. For
text outside the Basic Multilingual Plane they differ from Python string
indices.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from PySide6.QtCore import QTimer
from PySide6.QtGui import QTextCursor, QTextDocument

from .base import Pos, as_pos
from .surface import ChangeListener, RawRange, TextSurface

logger = logging.getLogger(__name__)

# QTextCursor.selectedText() separates blocks with U+2029
_PARAGRAPH_SEPARATOR = "\u2029"


class QtDocumentSurface(TextSurface):
    """
    :param document: the document to draw into (a new one when omitted).
    :param editor: optional ``QPlainTextEdit``/``QTextEdit`` showing the
        document; when given, its text cursor is the surface cursor.
    """

    def __init__(self, document: Optional[QTextDocument] = None, editor: Any = None, mode: str = "n"):
        super().__init__(mode=mode)
        self.editor = editor
        if document is None:
            document = editor.document() if editor is not None else QTextDocument()
        self.document = document

        self._tick = 0
        self._ranges: Dict[int, Tuple[QTextCursor, QTextCursor, Dict[str, Any]]] = {}
        self._next_range_id = 1
        self._in_change = 0
        self._locked = 0
        self._listeners: List[ChangeListener] = []

        self.document.contentsChange.connect(self._on_contents_change)

    # --- coordinates ---
    def _offset(self, pos: Pos) -> int:
        row, col = as_pos(pos)
        block = self.document.findBlockByNumber(row)
        if not block.isValid():
            raise IndexError(f"row {row} out of range (line count {self.document.blockCount()})")
        # block.length() counts the trailing separator
        if not 0 <= col <= block.length() - 1:
            raise IndexError(f"column {col} out of range for line {row}")
        return block.position() + col

    def _pos(self, position: int) -> Pos:
        position = max(0, min(position, self.document.characterCount() - 1))
        block = self.document.findBlock(position)
        return Pos(block.blockNumber(), position - block.position())

    def _cursor_at(self, position: int, keep_position_on_insert: bool = False) -> QTextCursor:
        cursor = QTextCursor(self.document)
        cursor.setPosition(position)
        cursor.setKeepPositionOnInsert(keep_position_on_insert)
        return cursor

    # --- text ---
    def get_lines(self) -> List[str]:
        return self.document.toPlainText().split("\n")

    def line_count(self) -> int:
        return self.document.blockCount()

    @property
    def change_tick(self) -> int:
        return self._tick

    def set_text(self, start: Pos, stop: Pos, replacement: Sequence[str]) -> None:
        s, e = self._offset(start), self._offset(stop)
        if e < s:
            raise ValueError(f"inverted edit region {start} > {stop}")
        cursor = self._cursor_at(s)
        cursor.setPosition(e, QTextCursor.MoveMode.KeepAnchor)
        text = "\n".join(replacement)
        if text:
            cursor.insertText(text)
        elif s != e:
            cursor.removeSelectedText()

    def get_text(self, start: Pos, stop: Pos) -> str:
        cursor = self._cursor_at(self._offset(start))
        cursor.setPosition(self._offset(stop), QTextCursor.MoveMode.KeepAnchor)
        return cursor.selectedText().replace(_PARAGRAPH_SEPARATOR, "\n")

    # --- tracked ranges ---
    def create_range(self, start, stop, details=None, right_gravity=False, end_right_gravity=True) -> int:
        range_id = self._next_range_id
        self._next_range_id += 1
        self._ranges[range_id] = (
            self._cursor_at(self._offset(start), keep_position_on_insert=not right_gravity),
            self._cursor_at(self._offset(stop), keep_position_on_insert=not end_right_gravity),
            dict(details or {}),
        )
        return range_id

    def get_range(self, range_id: int) -> Optional[Tuple[Pos, Pos, Dict[str, Any]]]:
        entry = self._ranges.get(range_id)
        if entry is None:
            return None
        start, stop, details = entry
        return self._pos(start.position()), self._pos(stop.position()), dict(details)

    def query_overlapping(self, start: Pos, stop: Pos) -> List[RawRange]:
        lo = self._offset(start)
        hi = self._offset(stop)
        found = []
        for range_id in sorted(self._ranges):
            start_cursor, stop_cursor, details = self._ranges[range_id]
            if start_cursor.position() <= hi and stop_cursor.position() >= lo:
                found.append((
                    range_id,
                    self._pos(start_cursor.position()),
                    self._pos(stop_cursor.position()),
                    dict(details),
                ))
        return found

    def clear_ranges(self) -> None:
        self._ranges.clear()

    # --- cursor ---
    def get_cursor(self) -> Pos:
        if self.editor is not None:
            return self._pos(self.editor.textCursor().position())
        return super().get_cursor()

    def set_cursor(self, pos) -> None:
        pos = as_pos(pos)
        if self.editor is not None:
            cursor = self.editor.textCursor()
            cursor.setPosition(self._offset(pos))
            self.editor.setTextCursor(cursor)
        super().set_cursor(pos)

    # --- locking & notifications ---
    def is_mutation_locked(self) -> bool:
        # editing the document from inside contentsChange is not allowed
        return self._in_change > 0 or self._locked > 0

    def lock(self) -> None:
        self._locked += 1

    def unlock(self) -> None:
        self._locked = max(0, self._locked - 1)

    def defer_until_unlocked(self, fn: Callable[[], Any]) -> None:
        def run() -> None:
            if self.is_mutation_locked():
                self.defer_until_unlocked(fn)
            else:
                fn()

        QTimer.singleShot(0, run)

    def on_external_change(self, callback: ChangeListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _on_contents_change(self, position: int, chars_removed: int, chars_added: int) -> None:
        self._tick += 1
        if not self._listeners:
            return
        start = self._pos(position)
        new_end = self._pos(position + chars_added)
        logger.debug("contentsChange at %s: -%d +%d", start, chars_removed, chars_added)
        # The old end is gone by now; listeners only rely on start and new end.
        self._in_change += 1
        try:
            for listener in list(self._listeners):
                listener(start, start, new_end)
        finally:
            self._in_change -= 1

    def __repr__(self):
        return f"QtDocumentSurface(blocks={self.document.blockCount()})"
