"""Interactive template editing.

An EditorSession owns one template being edited plus the pointer state that
goes with it. Pointer events arrive in display coordinates and are converted
to canvas units before any hit test or move.

Selection/drag lifecycle:

    idle --pointer_down on element--> dragging --pointer_up/leave--> selected
    selected --pointer_down on element--> dragging
    selected --pointer_down on empty canvas--> idle
"""

from typing import Any

from core import get_logger
from core.config import get_settings
from core.geometry import DisplayRect, clamp_origin, contains, to_canvas_space
from editor.overlay import draw_selection
from editor.state import (
    NOTHING_SELECTED,
    DragState,
    LogoSelection,
    NameSelection,
    NoSelection,
    Selection,
    TextSelection,
)
from rendering.images import ImageLoader
from rendering.surface import Surface
from schemas import EditorMode, LogoPlacement, Template, TextAlign, TextBlock
from services.sanitize_service import coerce_number

logger = get_logger(__name__)

NEW_LOGO_BOX = {"x": 50, "y": 50, "width": 100, "height": 100}

# Properties each kind of element exposes for editing
TEXT_PROPERTIES = {"text", "font_family", "font_size", "font_weight", "color", "align"}
NAME_PROPERTIES = TEXT_PROPERTIES - {"text"}
LOGO_PROPERTIES = {"width", "height"}
NUMERIC_PROPERTIES = {"font_size", "width", "height"}

_CAMEL_TO_FIELD = {
    "fontFamily": "font_family",
    "fontSize": "font_size",
    "fontWeight": "font_weight",
}


def _field_name(prop: str, allowed: set[str]) -> str:
    name = _CAMEL_TO_FIELD.get(prop, prop)
    if name not in allowed:
        raise ValueError(f"Unknown property {prop!r}; expected one of {sorted(allowed)}")
    return name


def _set_property(target: Any, prop: str, value: Any, allowed: set[str]) -> bool:
    """Set one field in place. Non-numeric sizes and unknown alignments are ignored."""
    name = _field_name(prop, allowed)
    if name in NUMERIC_PROPERTIES:
        number = coerce_number(value)
        if number is None:
            logger.debug("editor.property.ignored", property=name, value=value)
            return False
        value = number
    elif name == "align":
        try:
            value = TextAlign(value)
        except ValueError:
            logger.debug("editor.property.ignored", property=name, value=value)
            return False
    setattr(target, name, value)
    return True


def hit_test(template: Template, x: float, y: float) -> Selection:
    """Which element is under a canvas-space point.

    Priority: name placeholder, then logo, then text elements from the
    topmost (last drawn) down. The name placeholder wins ties so it stays
    reachable under other elements.
    """
    if contains(template.name_placeholder, x, y):
        return NameSelection()
    if template.logo is not None and contains(template.logo, x, y):
        return LogoSelection()
    for element in reversed(template.text_elements):
        if contains(element, x, y):
            return TextSelection(element.id)
    return NOTHING_SELECTED


class EditorSession:
    """Editing state for one template."""

    def __init__(self, template: Template, *, mode: EditorMode | None = None) -> None:
        self.template = template
        self.mode = mode or template.mode
        self.selection: Selection = NOTHING_SELECTED
        self.drag: DragState | None = None

    @property
    def is_dragging(self) -> bool:
        return self.drag is not None

    def _canvas_point(
        self, pointer_x: float, pointer_y: float, display_rect: DisplayRect
    ) -> tuple[float, float]:
        return to_canvas_space(
            pointer_x,
            pointer_y,
            display_rect,
            canvas_width=self.template.canvas_width,
            canvas_height=self.template.canvas_height,
        )

    def selected_box(self) -> Any:
        """The selected element's model object, or None."""
        return self._box_for(self.selection)

    def hit_test(self, x: float, y: float) -> Selection:
        return hit_test(self.template, x, y)

    def selected_text_element(self) -> TextBlock | None:
        if isinstance(self.selection, TextSelection):
            return self.template.find_text_element(self.selection.element_id)
        return None

    def select(self, selection: Selection) -> None:
        self.selection = selection
        self.drag = None

    # Pointer events

    def pointer_down(
        self, pointer_x: float, pointer_y: float, display_rect: DisplayRect
    ) -> Selection:
        """Select the element under the pointer and start dragging it."""
        x, y = self._canvas_point(pointer_x, pointer_y, display_rect)
        self.select(NOTHING_SELECTED)

        hit = hit_test(self.template, x, y)
        if isinstance(hit, NoSelection):
            return hit

        box = self._box_for(hit)
        self.selection = hit
        self.drag = DragState(target=hit, offset_x=x - box.x, offset_y=y - box.y)
        return hit

    def pointer_move(
        self, pointer_x: float, pointer_y: float, display_rect: DisplayRect
    ) -> bool:
        """Move the dragged element, keeping its box inside the canvas.

        Returns:
            True if an element moved
        """
        if self.drag is None:
            return False
        box = self._box_for(self.drag.target)
        if box is None:
            # Element vanished mid-drag (deleted)
            self.drag = None
            return False

        x, y = self._canvas_point(pointer_x, pointer_y, display_rect)
        box.x, box.y = clamp_origin(
            x - self.drag.offset_x,
            y - self.drag.offset_y,
            box.width,
            box.height,
            self.template.canvas_width,
            self.template.canvas_height,
        )
        return True

    def pointer_up(self) -> None:
        self.drag = None

    def pointer_leave(self) -> None:
        self.drag = None

    def _box_for(self, selection: Selection) -> Any:
        match selection:
            case NameSelection():
                return self.template.name_placeholder
            case LogoSelection():
                return self.template.logo
            case TextSelection(element_id=element_id):
                return self.template.find_text_element(element_id)
        return None

    # Element operations

    def add_text_element(self) -> TextBlock:
        element = TextBlock(
            id=self.template.next_text_element_id(),
            text="New Text",
            x=100,
            y=100,
            width=200,
            height=40,
            font_size=24,
        )
        self.template.text_elements.append(element)
        self.select(TextSelection(element.id))
        logger.debug("editor.text.added", element_id=element.id)
        return element

    def delete_selected(self) -> bool:
        """Delete the selected text element or logo.

        The name placeholder can never be deleted; with it (or nothing)
        selected this is a no-op.
        """
        match self.selection:
            case TextSelection(element_id=element_id):
                self.template.text_elements = [
                    el for el in self.template.text_elements if el.id != element_id
                ]
            case LogoSelection():
                self.template.logo = None
            case _:
                return False
        self.select(NOTHING_SELECTED)
        return True

    def update_selected(self, prop: str, value: Any) -> bool:
        """Set a property on the selected element.

        Returns:
            False when nothing editable is selected or the value was ignored
        """
        match self.selection:
            case TextSelection():
                element = self.selected_text_element()
                if element is None:
                    return False
                return _set_property(element, prop, value, TEXT_PROPERTIES)
            case NameSelection():
                return self.update_name_placeholder(prop, value)
            case LogoSelection():
                return self.update_logo(prop, value)
        return False

    def update_name_placeholder(self, prop: str, value: Any) -> bool:
        return _set_property(self.template.name_placeholder, prop, value, NAME_PROPERTIES)

    def update_logo(self, prop: str, value: Any) -> bool:
        if self.template.logo is None:
            return False
        return _set_property(self.template.logo, prop, value, LOGO_PROPERTIES)

    def set_background(self, source: str | None) -> None:
        self.template.background_image = source or None

    def set_logo(self, url: str) -> LogoPlacement:
        """Place a newly uploaded logo at the default spot and select it."""
        self.template.logo = LogoPlacement(url=url, **NEW_LOGO_BOX)
        self.select(LogoSelection())
        return self.template.logo

    # Output

    def snapshot(self) -> Template:
        """Independent copy of the live template."""
        return self.template.model_copy(deep=True)

    async def redraw(
        self,
        surface: Surface,
        *,
        loader: ImageLoader,
        student_name: str = "",
    ) -> bool:
        """Render the live template plus selection outline onto surface."""
        substitution = student_name.strip() or get_settings().name_placeholder_text
        box = self.selected_box()
        outline = box.model_copy() if box is not None else None

        def overlay(image: Any) -> None:
            if outline is not None:
                draw_selection(image, outline)

        return await surface.draw(
            self.template, substitution, loader=loader, overlay=overlay
        )
