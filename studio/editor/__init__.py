"""Interactive template editing: selection, dragging and property edits."""

from editor.session import EditorSession, hit_test
from editor.state import (
    NOTHING_SELECTED,
    DragState,
    LogoSelection,
    NameSelection,
    NoSelection,
    Selection,
    TextSelection,
)

__all__ = [
    "NOTHING_SELECTED",
    "DragState",
    "EditorSession",
    "LogoSelection",
    "NameSelection",
    "NoSelection",
    "Selection",
    "TextSelection",
    "hit_test",
]
