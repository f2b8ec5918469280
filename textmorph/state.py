# textmorph/state.py
import logging
import weakref
from typing import TYPE_CHECKING, Any, Callable, Dict, Generic, Literal, Optional, TypeVar

from .errors import LifecycleError

# Use TYPE_CHECKING to prevent circular imports for type hints
if TYPE_CHECKING:
    from .core import Morph

logger = logging.getLogger(__name__)

Phase = Literal["mount", "update", "unmount"]

_PHASE_ORDER: Dict[str, int] = {"mount": 0, "update": 1, "unmount": 2}

TProps = TypeVar("TProps")
TState = TypeVar("TState")


class Context(Generic[TProps, TState]):
    """
    The persistent record behind one mounted component instance.

    A Context is created the first time a component is correlated
    (``phase == "mount"``), handed back on every later reconciliation
    (``phase == "update"``) and called one last time with
    ``phase == "unmount"`` when its identity disappears from the tree.

    :attr props: overwritten by the parent on every pass.
    :attr state: owned by the component; change it through `update`.
    :attr children: the tree the parent nested inside this component.
    """

    def __init__(
        self,
        morph: Optional["Morph"] = None,
        props: Optional[TProps] = None,
        state: Optional[TState] = None,
        children: Any = None,
    ):
        self._morph_ref: Optional[weakref.ref] = weakref.ref(morph) if morph is not None else None
        self.phase: Phase = "mount"
        self.props = props if props is not None else {}
        self.state = state
        self.children = children if children is not None else []
        # Wired by the reconciler on every pass.
        self._on_change: Optional[Callable[[], None]] = None
        self._register_after_render: Optional[Callable[[Callable[[], Any]], None]] = None
        self._prev_rendered: Any = None

    @property
    def morph(self) -> Optional["Morph"]:
        """The Morph this context renders into (None for stateless rendering)."""
        return self._morph_ref() if self._morph_ref else None

    def _set_phase(self, phase: Phase) -> None:
        """Moves the lifecycle forward. Going backwards, or leaving unmount, is an error."""
        current = self.phase
        if current == "unmount" or _PHASE_ORDER[phase] < _PHASE_ORDER[current]:
            raise LifecycleError(f"illegal component phase transition: {current} -> {phase}")
        self.phase = phase

    def _detach(self) -> None:
        self._on_change = None
        self._register_after_render = None

    def update(self, new_state: TState) -> None:
        """
        Replaces ``state`` and re-renders.

        During ``mount`` only the state is stored: the mount call's own return
        value is what gets rendered. When the owning Morph cannot touch its
        surface right now, the re-render is queued and runs at the next safe
        point.
        """
        self.state = new_state

        # Don't trigger re-render during mount (component is still being set up)
        if self.phase == "mount":
            return
        if self.phase == "unmount" or self._on_change is None:
            return

        morph = self.morph
        if morph is not None and morph.is_locked():
            logger.debug("Context.update: surface locked, deferring re-render")
            morph.schedule(self._on_change)
        else:
            self._on_change()

    def refresh(self) -> None:
        """Re-render with the current state."""
        self.update(self.state)

    def do_after_render(self, fn: Callable[[], Any]) -> None:
        """Runs ``fn`` once the current render has patched the surface."""
        if self._register_after_render is not None:
            self._register_after_render(fn)

    def __repr__(self):
        return f"Context(phase={self.phase!r}, props={self.props!r}, state={self.state!r})"
