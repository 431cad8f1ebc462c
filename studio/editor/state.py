"""Selection and drag state for the template editor."""

from dataclasses import dataclass


@dataclass(frozen=True)
class NoSelection:
    kind = None


@dataclass(frozen=True)
class TextSelection:
    element_id: int
    kind = "text"


@dataclass(frozen=True)
class LogoSelection:
    kind = "logo"


@dataclass(frozen=True)
class NameSelection:
    kind = "name"


Selection = NoSelection | TextSelection | LogoSelection | NameSelection

NOTHING_SELECTED = NoSelection()


@dataclass(frozen=True)
class DragState:
    """An active drag: what is being moved and where it was grabbed.

    The offset is the pointer position minus the element origin at the
    moment the drag started, in canvas units.
    """

    target: TextSelection | LogoSelection | NameSelection
    offset_x: float
    offset_y: float
