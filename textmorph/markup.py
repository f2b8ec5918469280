# textmorph/markup.py
"""
Flattening: turns a Tree into lines of text.

Every tag reports where its text landed through the ``on_tag`` callback, as a
zero-based ``start``/``stop`` pair. Components met here are rendered
statelessly: mounted, visited and unmounted again straight away.
"""

from typing import Any, Callable, List, Optional

from .base import NodeKind, Pos, Tag, tree_type
from .state import Context

OnTag = Callable[[Tag, Pos, Pos], Any]


def markup_to_lines(tree: Any, on_tag: Optional[OnTag] = None) -> List[str]:
    """
    Flattens ``tree`` into a list of lines.

    An empty tree produces ``[""]``: a surface always has at least one line.
    Each tag's rendered text is cached on ``tag.curr_text``.
    """
    lines: List[str] = [""]
    # one accumulator per open tag, innermost last
    accumulators: List[List[str]] = []

    def emit_text(s: str) -> None:
        lines[-1] += s
        for acc in accumulators:
            acc.append(s)

    def emit_newline() -> None:
        lines.append("")
        for acc in accumulators:
            acc.append("\n")

    def cursor() -> Pos:
        return Pos(len(lines) - 1, len(lines[-1]))

    def visit(node: Any) -> None:
        kind = tree_type(node)

        if kind is NodeKind.EMPTY or kind is NodeKind.BOOLEAN:
            return
        elif kind is NodeKind.TEXT:
            if isinstance(node, str):
                for i, part in enumerate(node.split("\n")):
                    if i > 0:
                        emit_newline()
                    emit_text(part)
            else:
                emit_text(str(node))
        elif kind is NodeKind.ARRAY:
            for child in node:
                if child is not None:
                    visit(child)
        elif kind is NodeKind.TAG:
            accumulators.append([])
            start = cursor()
            visit(node.children)
            stop = cursor()
            node.curr_text = "".join(accumulators.pop())
            if on_tag:
                on_tag(node, start, stop)
        elif kind is NodeKind.COMPONENT:
            component = node.name
            ctx = Context(morph=None, props=node.attributes, state=None, children=node.children)
            start = cursor()
            visit(component(ctx))
            stop = cursor()
            # stateless rendering: unmount straight away
            ctx._set_phase("unmount")
            component(ctx)
            if on_tag:
                on_tag(node, start, stop)
        else:
            raise AssertionError(f"unhandled node kind {kind}")

    visit(tree)
    return lines


def markup_to_string(tree: Any) -> str:
    """Flattens ``tree`` into a single newline-joined string."""
    return "\n".join(markup_to_lines(tree))
