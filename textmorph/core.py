# textmorph/core.py

import logging
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional, Sequence

from .base import Pos, Tag, as_pos
from .config import Config, get_config
from .errors import AlreadyMountedError, InvariantViolation
from .events import ChangeEvent, KeyEvent
from .markup import markup_to_lines, markup_to_string
from .patcher import TextEdit, patch_lines
from .ranges import TrackedRange, sort_innermost_first
from .reconciler import KeyedCost, ReconciliationResult, Reconciler
from .surface import Handler, TextSurface

logger = logging.getLogger(__name__)

# surface.vars key marking a surface that already has a mounted tree
MOUNTED_VAR = "textmorph_mounted"


@dataclass
class Element:
    """A rendered tag together with its tracked range."""
    tag: Tag
    range: TrackedRange

    @property
    def attributes(self) -> Dict[str, Any]:
        return self.tag.attributes

    @property
    def text(self) -> str:
        return self.range.text()


@dataclass
class _TextContent:
    lines: List[str] = field(default_factory=list)
    range_to_tag: Dict[int, Tag] = field(default_factory=dict)
    tag_to_range: Dict[Tag, int] = field(default_factory=dict)


class Morph:
    """
    Renders trees into one text surface and keeps them live.

    ``render`` draws a static tree; ``mount`` runs a component tree with
    state and lifecycle and re-renders it whenever a component calls
    ``ctx.update``. Key presses and text edits inside rendered ``text`` tags
    are routed back to the handlers declared on those tags.
    """

    # Static helpers, usable without an instance
    markup_to_lines = staticmethod(markup_to_lines)
    markup_to_string = staticmethod(markup_to_string)
    patch_lines = staticmethod(patch_lines)

    def __init__(self, surface: TextSurface, config: Optional[Config] = None):
        self.surface = surface
        self.config = config or get_config()
        self.modes: List[str] = list(self.config.get("modes") or [])
        self.insert_mode: str = self.config.get("insert_mode", "i")
        self.text_tag: str = self.config.get("text_tag", "text")

        # None forces the first render to read the surface
        self._change_tick: Optional[int] = None
        self._changing = False
        self._lock_depth = 0
        self._deferred: Deque[Callable[[], Any]] = deque()
        self._drain_requested = False
        self._torn_down = False

        self._text = _TextContent()
        self.last_edits: List[TextEdit] = []

        # Component tree state (set by mount)
        self._tree: Any = None
        self._component_tree_old: Any = None
        self._reconciler: Optional[Reconciler] = None
        self._after_render: List[Callable[[], Any]] = []
        self.last_result: Optional[ReconciliationResult] = None

        # Snapshot the host's own handlers so every render starts from them
        self._original_handlers: Dict[str, Dict[str, Handler]] = {
            mode: surface.get_handlers(mode) for mode in self.modes
        }

        self._cleanup_hooks: List[Callable[[], None]] = [surface.on_external_change(self._on_external_change)]

    # --- locking and deferred work ---
    def _host_locked(self) -> bool:
        try:
            return bool(self.surface.is_mutation_locked())
        except Exception:
            logger.warning("mutation lock probe failed on %r; assuming locked", self.surface, exc_info=True)
            return True

    def is_locked(self) -> bool:
        """True while the surface must not be edited (own dispatch lock or host lock)."""
        return self._lock_depth > 0 or self._host_locked()

    @contextmanager
    def _dispatch_lock(self) -> Iterator[None]:
        self._lock_depth += 1
        try:
            yield
        finally:
            self._lock_depth -= 1
            # queued updates still run when a handler raises
            if self._lock_depth == 0 and self._deferred:
                self._request_drain()

    def schedule(self, fn: Callable[[], Any]) -> None:
        """Queues ``fn`` to run at the next point where the surface may be edited."""
        if self._torn_down:
            logger.debug("schedule() after teardown ignored")
            return
        self._deferred.append(fn)
        logger.debug("deferred work queued (%d pending)", len(self._deferred))
        self._request_drain()

    def _request_drain(self) -> None:
        if self._lock_depth > 0:
            # drained when the dispatch lock is released
            return
        if self._host_locked():
            if not self._drain_requested:
                self._drain_requested = True
                self.surface.defer_until_unlocked(self._on_host_unlocked)
            return
        self._drain_deferred()

    def _on_host_unlocked(self) -> None:
        self._drain_requested = False
        self._drain_deferred()

    def _drain_deferred(self) -> None:
        if self._torn_down:
            self._deferred.clear()
            return
        while self._deferred:
            if self.is_locked():
                self._request_drain()
                return
            fn = self._deferred.popleft()
            fn()

    # --- rendering ---
    def _restore_handlers(self) -> None:
        for mode in self.modes:
            for lhs in self.surface.get_handlers(mode):
                self.surface.del_handler(mode, lhs)
            for lhs, callback in self._original_handlers.get(mode, {}).items():
                self.surface.set_handler(mode, lhs, callback)

    def _key_handler(self, mode: str, lhs: str) -> Handler:
        def handler() -> str:
            return self.dispatch_keypress(mode, lhs)

        return handler

    def render(self, tree: Any) -> List[TextEdit]:
        """
        Renders a static tree: text plus tracked ranges, no lifecycle.

        Returns the edits that were applied to the surface.
        """
        if self._torn_down:
            logger.debug("render() after teardown ignored")
            return []

        # Detect edits made since our last render
        tick = self.surface.change_tick
        if tick != self._change_tick:
            self._text = _TextContent(lines=self.surface.get_lines())
            self._change_tick = tick

        # Ranges can only be created once the text is in place
        pending: List[tuple] = []
        self._restore_handlers()

        def on_tag(tag: Tag, start: Pos, stop: Pos) -> None:
            if tag.name != self.text_tag:
                return
            details = dict(tag.attributes.get("details") or {})
            hl = tag.attributes.get("hl")
            if isinstance(hl, str):
                details.setdefault("hl", hl)
            pending.append((tag, start, stop, details))

            for mode in self.modes:
                for lhs in tag.handlers_for(mode):
                    self.surface.set_handler(mode, lhs, self._key_handler(mode, lhs))

        lines = markup_to_lines(tree, on_tag=on_tag)

        old = self._text
        self._text = _TextContent(lines=lines)

        self._changing = True
        try:
            edits = patch_lines(self.surface, old.lines, lines)
        finally:
            self._changing = False
        self._change_tick = self.surface.change_tick
        self.last_edits = edits
        logger.debug("render: %d lines, %d edits, %d ranges", len(lines), len(edits), len(pending))

        self.surface.clear_ranges()
        for tag, start, stop, details in pending:
            tracked = TrackedRange.create(self.surface, start, stop, details)
            self._text.range_to_tag[tracked.id] = tag
            self._text.tag_to_range[tag] = tracked.id
        return edits

    def mount(self, tree: Any) -> None:
        """
        Mounts a component tree with full lifecycle management.
        Only one tree can be mounted per surface.
        """
        if self.surface.vars.get(MOUNTED_VAR):
            raise AlreadyMountedError("Morph.mount() can only be called once per surface")
        self.surface.vars[MOUNTED_VAR] = True

        self._tree = tree
        self._reconciler = Reconciler(
            morph=self,
            rerender=self._rerender,
            schedule_after_render=self._schedule_after_render,
            cost=KeyedCost.from_config(self.config),
        )
        self._rerender()

    def _schedule_after_render(self, fn: Callable[[], Any]) -> None:
        self._after_render.append(fn)

    def _rerender(self) -> None:
        if self._torn_down or self._reconciler is None:
            return

        # Updates requested while components render are queued and drained
        # when the pass is over.
        with self._dispatch_lock():
            self._after_render = []
            self.last_result = self._reconciler.begin_pass()
            simplified = self._reconciler.reconcile_tree(self._component_tree_old, self._tree)
            self._component_tree_old = self._tree
            self.render(simplified)
            callbacks, self._after_render = self._after_render, []

        result = self.last_result
        logger.debug(
            "rerender: %d mounted, %d updated, %d unmounted",
            len(result.mounted), len(result.updated), len(result.unmounted),
        )
        for callback in callbacks:
            callback()

    def teardown(self) -> None:
        """Unmounts the component tree and detaches from the surface."""
        if self._torn_down:
            return
        if self._reconciler is not None and self._component_tree_old is not None:
            self.last_result = self._reconciler.begin_pass()
            self._reconciler.reconcile_tree(self._component_tree_old, None)
            self._component_tree_old = None
            self.surface.vars.pop(MOUNTED_VAR, None)

        self._torn_down = True
        self._deferred.clear()
        self._restore_handlers()
        for cleanup in self._cleanup_hooks:
            cleanup()
        self._cleanup_hooks = []

    # --- queries ---
    def get_elements_at(self, pos: Any, mode: Optional[str] = None) -> List[Element]:
        """All elements containing ``pos``, innermost first."""
        pos = as_pos(pos)
        mode = (mode or self.surface.get_mode())[:1]

        elements: Dict[int, Element] = {}
        for tracked in TrackedRange.overlapping(self.surface, pos, pos):
            tag = self._text.range_to_tag.get(tracked.id)
            if tag is not None and self._position_intersects(pos, tracked, mode):
                elements[tracked.id] = Element(tag=tag, range=tracked)

        ordered = sort_innermost_first([e.range for e in elements.values()])
        return [elements[r.id] for r in ordered]

    def _position_intersects(self, pos: Pos, tracked: TrackedRange, mode: str) -> bool:
        # Host overlap queries are inclusive at both ends; narrow them down here.
        start, stop = tracked.start, tracked.stop

        # Zero-width ranges at the position count as inside
        if pos == start and pos == stop:
            return True

        if pos.row < start.row or pos.row > stop.row:
            return False
        if pos.row == start.row and pos.col < start.col:
            return False

        if pos.row == stop.row:
            # A range ending at column 0 of an empty line (an element ending
            # with a newline) still owns that line's only position.
            if pos.col == 0 and stop.col == 0:
                lines = self.surface.get_lines()
                if 0 <= pos.row < len(lines) and lines[pos.row] == "":
                    return True

            # Insert-mode cursors sit between characters, so the stop column
            # itself is still inside. Other modes cover a whole character.
            if mode == self.insert_mode:
                if pos.col > stop.col:
                    return False
            elif pos.col >= stop.col:
                return False

        return True

    def get_element_by_id(self, element_id: Any) -> Optional[Element]:
        for tag, range_id in self._text.tag_to_range.items():
            if tag.attributes.get("id") == element_id:
                tracked = TrackedRange.by_id(self.surface, range_id)
                if tracked is None:
                    raise InvariantViolation(f"range {range_id} of element {element_id!r} vanished from the surface")
                return Element(tag=tag, range=tracked)
        return None

    # --- input dispatch ---
    def dispatch_keypress(self, mode: str, lhs: str) -> str:
        """
        Routes a key press at the cursor to element handlers, innermost first.

        Returns the action for the host to run: ``lhs`` when nothing consumed
        the key, ``""`` to swallow it, or a handler's replacement keys.
        """
        elements = self.get_elements_at(self.surface.get_cursor(), mode)
        if not elements:
            return lhs

        should_cancel = False
        with self._dispatch_lock():
            for element in elements:
                handler = element.tag.handlers_for(mode).get(lhs)
                if not callable(handler):
                    continue
                event = KeyEvent(element=element, mode=mode, lhs=lhs)
                result = handler(event)

                if result is None:
                    continue
                if result == "":
                    # Swallow the key, but let outer elements see it too
                    should_cancel = True
                    if not event.bubble_up:
                        break
                else:
                    return result

        return "" if should_cancel else lhs

    def _on_external_change(self, start: Pos, old_end: Pos, new_end: Pos) -> None:
        # Our own patches are not user edits
        if self._changing or self._torn_down:
            return

        lines = self.surface.get_lines()
        last_row = len(lines) - 1
        start = as_pos(start)
        if start.row > last_row:
            start = Pos(last_row, len(lines[last_row]))
        elif start.col > len(lines[start.row]):
            start = Pos(start.row, len(lines[start.row]))
        new_end = as_pos(new_end)
        end_row = min(new_end.row, last_row)
        end = Pos(end_row, min(new_end.col, len(lines[end_row])))

        changed = []
        for tracked in TrackedRange.overlapping(self.surface, start, end):
            tag = self._text.range_to_tag.get(tracked.id)
            if tag is None:
                continue
            new_text = tracked.text()
            if tag.curr_text != new_text:
                tag.curr_text = new_text
                changed.append(tracked)
        if not changed:
            return

        # Handlers may update state; those re-renders wait until every
        # handler has seen the tag <-> range mapping as it was.
        with self._dispatch_lock():
            for tracked in sort_innermost_first(changed):
                tag = self._text.range_to_tag.get(tracked.id)
                on_change = tag.attributes.get("on_change") if tag is not None else None
                if not callable(on_change):
                    continue
                event = ChangeEvent(text=tag.curr_text)
                on_change(event)
                if not event.bubble_up:
                    break

    def __repr__(self):
        return f"Morph(surface={self.surface!r}, mounted={self._reconciler is not None})"
