"""Pydantic schemas for certificate templates.

Templates are persisted with the camelCase keys the editor has always written
(``textElements``, ``namePlaceholder``, ``fontSize`` ...). Python code uses
the snake_case field names; both are accepted on input.
"""

import time
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.geometry import CANVAS_HEIGHT, CANVAS_WIDTH


class TextAlign(str, PyEnum):
    """Horizontal anchor of a text block inside its box."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class EditorMode(str, PyEnum):
    """How a template was started in the editor."""

    DEFAULT = "default"  # pre-populated showcase content
    CUSTOM = "custom"  # blank canvas


def new_template_id() -> int:
    """Millisecond timestamp, assigned once when a template is created."""
    return time.time_ns() // 1_000_000


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TextStyle(_CamelModel):
    """Box and font shared by static text blocks and the name placeholder."""

    x: float = 0
    y: float = 0
    width: float = 200
    height: float = 40
    font_size: float = 24
    font_family: str = "sans-serif"
    font_weight: str = "normal"
    color: str = "#000000"
    align: TextAlign = TextAlign.LEFT


class TextBlock(TextStyle):
    """A static text element; its text is part of the template."""

    id: int
    text: str = ""


class NamePlaceholder(TextStyle):
    """Styling for the recipient name; the text is supplied at generation."""

    width: float = 300
    height: float = 60
    font_size: float = 36
    font_family: str = "serif"
    font_weight: str = "bold"
    align: TextAlign = TextAlign.CENTER


class LogoPlacement(_CamelModel):
    """A single image stretched to its box."""

    url: str
    x: float = 0
    y: float = 0
    width: float = 100
    height: float = 100


def default_name_placeholder() -> NamePlaceholder:
    return NamePlaceholder(x=CANVAS_WIDTH / 2 - 150, y=320)


def showcase_text_elements() -> list[TextBlock]:
    """Example text shown when a template is started in default mode."""
    return [
        TextBlock(
            id=1,
            text="CERTIFICATE OF ACHIEVEMENT",
            x=CANVAS_WIDTH / 2 - 200,
            y=100,
            width=400,
            height=60,
            font_size=32,
            font_family="serif",
            font_weight="bold",
            color="#000000",
            align=TextAlign.CENTER,
        ),
        TextBlock(
            id=2,
            text="This certificate is awarded to",
            x=CANVAS_WIDTH / 2 - 150,
            y=250,
            width=300,
            height=40,
            font_size=20,
            color="#333333",
            align=TextAlign.CENTER,
        ),
        TextBlock(
            id=3,
            text="for successfully completing the program",
            x=CANVAS_WIDTH / 2 - 200,
            y=450,
            width=400,
            height=40,
            font_size=18,
            color="#666666",
            align=TextAlign.CENTER,
        ),
    ]


class Template(_CamelModel):
    """A reusable certificate layout.

    Two templates are equal when they share an ``id``; editing a template in
    place does not change its identity.
    """

    id: int = Field(default_factory=new_template_id)
    name: str = ""
    background_image: str | None = None
    logo: LogoPlacement | None = None
    text_elements: list[TextBlock] = Field(default_factory=list)
    name_placeholder: NamePlaceholder = Field(default_factory=default_name_placeholder)
    canvas_width: float = CANVAS_WIDTH
    canvas_height: float = CANVAS_HEIGHT
    mode: EditorMode = EditorMode.CUSTOM
    saved_at: datetime | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Template):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @classmethod
    def empty(cls, name: str = "") -> Self:
        return cls(name=name, mode=EditorMode.CUSTOM)

    @classmethod
    def showcase(cls, name: str = "", background_image: str | None = None) -> Self:
        return cls(
            name=name,
            mode=EditorMode.DEFAULT,
            background_image=background_image or None,
            text_elements=showcase_text_elements(),
        )

    def next_text_element_id(self) -> int:
        return max([0, *(el.id for el in self.text_elements)]) + 1

    def find_text_element(self, element_id: int) -> TextBlock | None:
        for element in self.text_elements:
            if element.id == element_id:
                return element
        return None

    def to_storage(self) -> dict[str, Any]:
        """Serialize with the persisted camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
