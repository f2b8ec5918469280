# =============================================================================
# TEXTMORPH RECONCILER - correlates the previous tree with the next one
# =============================================================================
"""
textmorph Reconciler

Walks the previous and the next Tree side by side and decides, node by node,
what gets mounted, updated or unmounted. Components are expanded along the
way, so the tree that comes out contains only text, arrays and plain tags and
can be flattened straight into lines.

**How it works:**
1. **Dispatch on the new node's kind**: a kind change unmounts the old
   subtree first; primitives pass through; tags recurse into their children.
2. **Components**: the Context stored on the old component tag is reused
   (phase "update") or a new one is created (phase "mount"). The component's
   previous output is reconciled against its new output, one level down.
3. **Arrays**: every node gets an identity key ``(kind, reference,
   key-or-index)``. A Levenshtein diff with equality disabled visits every
   pair; substituting nodes with matching keys is cheaper than deleting and
   re-adding them, so identity is kept wherever it can be.

**Ordering:** within a pass every unmount happens (depth-first, innermost
component first) before any mount that could reuse the vacated text.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

from .base import NodeKind, Tag, identity_key, tree_type
from .errors import InvariantViolation
from .levenshtein import Change, LevenshteinCost, levenshtein
from .state import Context

if TYPE_CHECKING:
    from .core import Morph

logger = logging.getLogger(__name__)


@dataclass
class KeyedCost:
    """Costs of the keyed array diff."""
    add: int = 1
    delete: int = 1
    keyed_match: int = 1
    keyed_mismatch: int = 2

    @classmethod
    def from_config(cls, config) -> "KeyedCost":
        return cls(
            add=int(config.get_nested("cost.add", 1)),
            delete=int(config.get_nested("cost.delete", 1)),
            keyed_match=int(config.get_nested("cost.keyed_match", 1)),
            keyed_mismatch=int(config.get_nested("cost.keyed_mismatch", 2)),
        )


@dataclass
class ReconciliationResult:
    """The lifecycle work done by one reconciliation pass."""
    mounted: List[Context] = field(default_factory=list)
    updated: List[Context] = field(default_factory=list)
    unmounted: List[Context] = field(default_factory=list)
    invariant_violations: List[str] = field(default_factory=list)


def keyed_array_changes(
    old_nodes: List[Any],
    new_nodes: List[Any],
    cost: Optional[KeyedCost] = None,
) -> Tuple[List[Change], List[Any], List[Any]]:
    """
    Diffs two node arrays by identity.

    :return: ``(changes, old_keys, new_keys)``; changes are ordered from the
        end of the arrays towards the start.
    """
    cost = cost or KeyedCost()
    old_keys = [identity_key(node, i) for i, node in enumerate(old_nodes)]
    new_keys = [identity_key(node, i) for i, node in enumerate(new_nodes)]

    def of_change(_a, _b, old_idx: int, new_idx: int) -> int:
        return cost.keyed_match if old_keys[old_idx] == new_keys[new_idx] else cost.keyed_mismatch

    changes = levenshtein(
        old_nodes,
        new_nodes,
        are_any_equal=False,
        cost=LevenshteinCost(of_add=cost.add, of_delete=cost.delete, of_change=of_change),
    )
    return changes, old_keys, new_keys


def _has_explicit_key(node: Any) -> bool:
    return isinstance(node, Tag) and node.attributes.get("key") is not None


class Reconciler:
    """
    The side-by-side correlated visitor.

    :param morph: owner of the contexts created here (None for detached use).
    :param rerender: wired into every Context as its re-render callback.
    :param schedule_after_render: wired into every Context's ``do_after_render``.
    """

    def __init__(
        self,
        morph: Optional["Morph"] = None,
        rerender: Optional[Callable[[], None]] = None,
        schedule_after_render: Optional[Callable[[Callable[[], Any]], None]] = None,
        cost: Optional[KeyedCost] = None,
    ):
        self.morph = morph
        self._rerender = rerender
        self._schedule_after_render = schedule_after_render
        self.cost = cost or KeyedCost()
        self.result = ReconciliationResult()

    def begin_pass(self) -> ReconciliationResult:
        self.result = ReconciliationResult()
        return self.result

    # --- unmounting ---
    def unmount_tree(self, old_tree: Any) -> None:
        """Unmounts every component under ``old_tree``, innermost first."""
        kind = tree_type(old_tree)

        if kind is NodeKind.ARRAY:
            for node in reversed(list(old_tree)):
                self.unmount_tree(node)
        elif kind is NodeKind.TAG:
            self.unmount_tree(old_tree.children)
        elif kind is NodeKind.COMPONENT:
            ctx = old_tree.ctx
            if ctx is None:
                raise InvariantViolation(f"component {old_tree.name!r} missing context during unmount")
            if ctx.phase == "unmount":
                return
            # Unmount children first (depth-first)
            self.unmount_tree(ctx._prev_rendered)
            ctx._set_phase("unmount")
            old_tree.name(ctx)
            ctx._detach()
            self.result.unmounted.append(ctx)

    # --- reconciliation ---
    def reconcile_tree(self, old_tree: Any, new_tree: Any) -> Any:
        """Correlates ``old_tree`` with ``new_tree`` and returns the component-free rendering."""
        old_kind = tree_type(old_tree)
        new_kind = tree_type(new_tree)

        # If type changed, unmount old tree first
        if old_kind is not new_kind:
            self.unmount_tree(old_tree)

        if new_kind in (NodeKind.EMPTY, NodeKind.BOOLEAN, NodeKind.TEXT):
            return new_tree
        elif new_kind is NodeKind.ARRAY:
            old_array = old_tree if old_kind is NodeKind.ARRAY else None
            return self.reconcile_array(old_array, new_tree)
        elif new_kind is NodeKind.TAG:
            old_children = old_tree.children if old_kind is NodeKind.TAG else None
            children = self.reconcile_tree(old_children, new_tree.children)
            return Tag(name=new_tree.name, attributes=new_tree.attributes, children=children)
        elif new_kind is NodeKind.COMPONENT:
            return self.reconcile_component(old_tree, new_tree)
        raise AssertionError(f"unhandled node kind {new_kind}")

    def reconcile_component(self, old_tree: Any, new_tag: Tag) -> Any:
        """Mounts or updates the component behind ``new_tag`` and reconciles its output."""
        component = new_tag.name

        ctx: Optional[Context] = None
        if tree_type(old_tree) is NodeKind.COMPONENT:
            same_identity = old_tree.name is component and old_tree.attributes.get("key") == new_tag.attributes.get("key")
            if same_identity and old_tree.ctx is not None and old_tree.ctx.phase != "unmount":
                ctx = old_tree.ctx
            else:
                # a different component (or key) at the same position
                self.unmount_tree(old_tree)

        if ctx is not None:
            ctx._set_phase("update")
            self.result.updated.append(ctx)
        else:
            ctx = Context(morph=self.morph, props=new_tag.attributes, state=None, children=new_tag.children)
            self.result.mounted.append(ctx)

        # Overwrite props/children and wire up callbacks
        ctx.props = new_tag.attributes
        ctx.children = new_tag.children
        ctx._on_change = self._rerender
        ctx._register_after_render = self._schedule_after_render
        new_tag.ctx = ctx

        rendered_children = component(ctx)
        rendered = self.reconcile_tree(ctx._prev_rendered, rendered_children)
        ctx._prev_rendered = rendered_children

        # Leave the mount phase now, so update() re-renders from here on.
        ctx._set_phase("update")
        return rendered

    def reconcile_array(self, old_nodes: Optional[List[Any]], new_nodes: Optional[List[Any]]) -> List[Any]:
        """Matches old and new array items by identity and reconciles each pair."""
        old_nodes = list(old_nodes or [])
        new_nodes = list(new_nodes or [])
        changes, old_keys, new_keys = keyed_array_changes(old_nodes, new_nodes, self.cost)

        # An explicitly keyed node deleted in one place and added in another
        # has moved: keep its identity instead of unmounting and remounting.
        deleted_by_key: Dict[Any, List[Change]] = {}
        for change in changes:
            if change.kind == "delete" and _has_explicit_key(change.item):
                deleted_by_key.setdefault(old_keys[change.index], []).append(change)
        moves: Dict[int, Change] = {}
        for change in sorted((c for c in changes if c.kind == "add"), key=lambda c: c.to_index):
            candidates = deleted_by_key.get(new_keys[change.to_index])
            if candidates and _has_explicit_key(change.item):
                moves[change.to_index] = candidates.pop()
        moved_from = {id(c) for c in moves.values()}

        # Unmounts first, so nothing mounted below sees a half-vacated surface.
        for change in changes:
            if change.kind == "delete" and id(change) not in moved_from:
                self.reconcile_tree(change.item, None)

        slots: List[Any] = [None] * len(new_nodes)
        for change in sorted((c for c in changes if c.kind != "delete"), key=lambda c: c.to_index):
            j = change.to_index
            if change.kind == "add":
                moved = moves.get(j)
                if moved is not None:
                    slots[j] = self.reconcile_tree(moved.item, change.item)
                else:
                    slots[j] = self.reconcile_tree(None, change.item)
            elif old_keys[change.index] == new_keys[j]:
                slots[j] = self.reconcile_tree(change.from_item, change.to_item)
            else:
                message = (
                    "array reconciliation invariant: identity keys differ on a change edge "
                    f"({old_keys[change.index]!r} -> {new_keys[j]!r}); unmounting and remounting"
                )
                logger.error(message)
                self.result.invariant_violations.append(message)
                self.reconcile_tree(change.from_item, None)
                slots[j] = self.reconcile_tree(None, change.to_item)

        return [node for node in slots if node is not None]
