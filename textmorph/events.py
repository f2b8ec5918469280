# textmorph/events.py

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .core import Element


@dataclass
class KeyEvent:
    """Passed to a ``<mode>map`` handler when its key is pressed inside the element."""
    element: "Element"
    mode: str
    lhs: str
    # Set to False to stop outer elements from seeing the key
    bubble_up: bool = True


@dataclass
class ChangeEvent:
    """Passed to ``on_change`` when the text of a tracked span was edited."""
    text: str
    bubble_up: bool = True
