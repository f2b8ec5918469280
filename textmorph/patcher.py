# textmorph/patcher.py
"""
Minimal text patching.

Lines are diffed first; every line classified as changed is diffed again
character by character, so an edit touches only the characters that really
differ and the host keeps its cursor, scroll offset and unrelated ranges.
"""

from dataclasses import dataclass
from typing import List, Literal, Optional, Sequence, Tuple, Union

from .base import Pos
from .levenshtein import levenshtein
from .surface import TextSurface

EditTarget = Literal["lines", "text"]


@dataclass(frozen=True)
class TextEdit:
    """
    One replacement issued to the surface.

    ``target == "lines"``: lines ``[start, end)`` replaced by ``replacement``.
    ``target == "text"``: characters between ``start`` and ``end`` (both
    `Pos`) replaced by ``replacement``.
    """
    target: EditTarget
    start: Union[int, Pos]
    end: Union[int, Pos]
    replacement: Tuple[str, ...]


def patch_lines(
    surface: TextSurface,
    old_lines: Optional[Sequence[str]],
    new_lines: Sequence[str],
) -> List[TextEdit]:
    """
    Edits ``surface`` from ``old_lines`` to ``new_lines`` and returns the
    edits that were issued, in order. ``old_lines=None`` reads the surface.

    Patching a sequence onto itself issues no edits.
    """
    if old_lines is None:
        old_lines = surface.get_lines()
    edits: List[TextEdit] = []

    for change in levenshtein(list(old_lines), list(new_lines)):
        line = change.index

        if change.kind == "add":
            edit = TextEdit("lines", line, line, (change.item,))
            surface.set_lines(line, line, [change.item])
            edits.append(edit)
        elif change.kind == "delete":
            edit = TextEdit("lines", line, line + 1, ())
            surface.set_lines(line, line + 1, [])
            edits.append(edit)
        elif change.kind == "change":
            # For changed lines, do character-level diffing for minimal edits
            for char_change in levenshtein(list(change.from_item), list(change.to_item)):
                col = char_change.index
                if char_change.kind == "add":
                    start, stop, text = Pos(line, col), Pos(line, col), char_change.item
                elif char_change.kind == "delete":
                    start, stop, text = Pos(line, col), Pos(line, col + 1), ""
                else:
                    start, stop, text = Pos(line, col), Pos(line, col + 1), char_change.to_item
                surface.set_text(start, stop, [text])
                edits.append(TextEdit("text", start, stop, (text,)))

    return edits
