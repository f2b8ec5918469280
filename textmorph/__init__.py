# textmorph/__init__.py

"""
textmorph

A retained-mode UI engine for line-oriented text surfaces. Describe what the
text should look like as a tree of tags and components; textmorph keeps the
surface in sync with the minimal set of edits, preserves component state
across renders and routes key presses and text edits back to the components
that rendered the text under the cursor.
"""

__version__ = "0.1.0"

# --- Tree model ---
from .base import NodeKind, Pos, Tag, h, identity_key, tree_type

# --- Engine ---
from .levenshtein import Change, LevenshteinCost, edit_distance, levenshtein
from .markup import markup_to_lines, markup_to_string
from .patcher import TextEdit, patch_lines
from .reconciler import KeyedCost, ReconciliationResult, Reconciler, keyed_array_changes
from .state import Context
from .core import Element, Morph

# --- Hosts ---
from .surface import MemorySurface, TextSurface
from .ranges import TrackedRange

# --- Events, configuration, errors ---
from .events import ChangeEvent, KeyEvent
from .config import Config, get_config
from .errors import (
    AlreadyMountedError,
    ConfigError,
    InvariantViolation,
    LifecycleError,
    MorphError,
)

__all__ = [
    "__version__",
    "NodeKind", "Pos", "Tag", "h", "identity_key", "tree_type",
    "Change", "LevenshteinCost", "edit_distance", "levenshtein",
    "markup_to_lines", "markup_to_string",
    "TextEdit", "patch_lines",
    "KeyedCost", "ReconciliationResult", "Reconciler", "keyed_array_changes",
    "Context", "Element", "Morph",
    "MemorySurface", "TextSurface", "TrackedRange",
    "ChangeEvent", "KeyEvent",
    "Config", "get_config",
    "AlreadyMountedError", "ConfigError", "InvariantViolation", "LifecycleError", "MorphError",
]
