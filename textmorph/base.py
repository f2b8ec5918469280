# textmorph/base.py
"""
The tree model every other part of textmorph consumes.

A *Tree* is a Node or an ordered sequence of Nodes. Nodes come in a closed
set of kinds (see `NodeKind`):

- ``None``                  -> EMPTY, renders nothing
- ``True`` / ``False``      -> BOOLEAN, renders nothing (handy for ``cond and h(...)``)
- ``str`` / ``int`` / ``float`` -> TEXT, rendered verbatim
- ``Tag`` with a str name   -> TAG, a tracked (and possibly interactive) span
- ``Tag`` with a callable   -> COMPONENT, expanded by the reconciler
- ``list`` / ``tuple``      -> ARRAY

Tags are built with `h`::

    h("text", {"hl": "Comment"}, "Hello")
    h.Comment({}, "Hello")             # same thing
    h(Counter, {"key": "a"})           # component tag
"""

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Hashable, List, Optional, Sequence, Tuple, Union

if TYPE_CHECKING:
    from .state import Context


# --- Positions ---
@dataclass(frozen=True, order=True)
class Pos:
    """
    A zero-based ``(row, col)`` position in a surface.

    Positions order row-first, then column, so they can be compared directly.
    Columns count Python string characters.
    """
    row: int
    col: int

    def __iter__(self):
        yield self.row
        yield self.col

    def __repr__(self):
        return f"Pos({self.row}, {self.col})"


def as_pos(value: Union["Pos", Sequence[int]]) -> Pos:
    """Accepts a Pos or any ``(row, col)`` pair."""
    if isinstance(value, Pos):
        return value
    row, col = value
    return Pos(int(row), int(col))


# --- Node kinds ---
class NodeKind(enum.Enum):
    EMPTY = "empty"
    BOOLEAN = "boolean"
    TEXT = "text"
    ARRAY = "array"
    TAG = "tag"
    COMPONENT = "component"


@dataclass(eq=False)
class Tag:
    """
    A single node of a Tree: either a tracked span (``name`` is a string) or a
    component invocation (``name`` is a callable).

    Tags compare by identity. The reconciler stores the component Context on
    the tag it rendered (``ctx``), and flattening caches the text a tag
    produced (``curr_text``) so that later edits can be detected.
    """
    name: Union[str, Callable[["Context"], Any]]
    attributes: Dict[str, Any] = field(default_factory=dict)
    children: Any = field(default_factory=list)
    ctx: Optional["Context"] = field(default=None, repr=False)
    curr_text: Optional[str] = field(default=None, repr=False)

    @property
    def key(self) -> Any:
        return self.attributes.get("key")

    def handlers_for(self, mode: str) -> Dict[str, Callable]:
        """Returns the ``<mode>map`` handler table of this tag (may be empty)."""
        return self.attributes.get(f"{mode}map") or {}


Node = Union[None, bool, str, int, float, Tag]
Tree = Union[Node, Sequence[Any]]


class _Hyperscript:
    """
    Tag factory.

    ``h(name, attributes, children)`` creates a tag directly.
    ``h.<Highlight>(attributes, children)`` is shorthand for a ``"text"`` tag
    whose ``hl`` attribute is ``<Highlight>``.
    """

    def __call__(self, name, attributes: Optional[Dict[str, Any]] = None, children: Any = None) -> Tag:
        return Tag(name=name, attributes=dict(attributes or {}), children=children if children is not None else [])

    def __getattr__(self, highlight: str) -> Callable[..., Tag]:
        if highlight.startswith("__"):
            raise AttributeError(highlight)

        def make(attributes: Optional[Dict[str, Any]] = None, children: Any = None) -> Tag:
            merged = {"hl": highlight}
            merged.update(attributes or {})
            return self("text", merged, children)

        return make

    def __getitem__(self, highlight: str) -> Callable[..., Tag]:
        # h["@markup.heading"](...) for names that are not identifiers
        return self.__getattr__(highlight)


h = _Hyperscript()


def tree_type(node: Any) -> NodeKind:
    """Classifies a tree node. Raises TypeError for values that are not nodes."""
    if node is None:
        return NodeKind.EMPTY
    # bool before numbers: bool is an int subclass
    if isinstance(node, bool):
        return NodeKind.BOOLEAN
    if isinstance(node, (str, int, float)):
        return NodeKind.TEXT
    if isinstance(node, Tag):
        return NodeKind.COMPONENT if callable(node.name) else NodeKind.TAG
    if isinstance(node, (list, tuple)):
        return NodeKind.ARRAY
    raise TypeError(f"unknown tree node type: {type(node).__name__}")


# --- Identity keys ---
def make_hashable(value: Any) -> Hashable:
    """
    Converts a ``key`` attribute into something usable inside an identity key.

    Lists, tuples and dicts are converted recursively; anything else that
    cannot be hashed falls back to its ``repr``.
    """
    if isinstance(value, (list, tuple)):
        return tuple(make_hashable(v) for v in value)
    if isinstance(value, dict):
        return tuple(sorted((str(k), make_hashable(v)) for k, v in value.items()))
    try:
        hash(value)
        return value
    except TypeError:
        return repr(value)


IdentityKey = Tuple[NodeKind, Any, Any]


def identity_key(node: Any, index: int) -> IdentityKey:
    """
    Computes ``(kind, reference, key-or-index)`` for a node at ``index`` of an
    array.

    Primitive nodes share one identity per kind; arrays are positional; tags
    and components use their explicit ``key`` attribute when present and
    their position otherwise.
    """
    kind = tree_type(node)
    if kind in (NodeKind.EMPTY, NodeKind.BOOLEAN, NodeKind.TEXT):
        return (kind, None, None)
    if kind is NodeKind.ARRAY:
        return (kind, None, index)
    if kind in (NodeKind.TAG, NodeKind.COMPONENT):
        key = node.attributes.get("key")
        return (kind, node.name, make_hashable(key) if key is not None else index)
    raise AssertionError(f"unhandled node kind {kind}")


