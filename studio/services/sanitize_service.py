"""Repair-on-load for persisted templates.

Stored templates are weakly typed: older editor versions, manual edits and
partial writes all leave fields missing or holding strings. Every template
read from the store passes through sanitize_template() before anything else
sees it. Nothing here raises; a broken field is replaced with its documented
default and the repair is logged.
"""

import math
from datetime import datetime
from typing import Any

from core import get_logger
from core.geometry import CANVAS_HEIGHT, CANVAS_WIDTH
from schemas import (
    LogoPlacement,
    NamePlaceholder,
    Template,
    TextAlign,
    TextBlock,
    default_name_placeholder,
    new_template_id,
)

logger = get_logger(__name__)

TEXT_BLOCK_DEFAULTS = {
    "x": 0,
    "y": 0,
    "width": 200,
    "height": 40,
    "fontSize": 24,
}
NAME_PLACEHOLDER_DEFAULTS = {
    "x": 0,
    "y": 0,
    "width": 300,
    "height": 60,
    "fontSize": 36,
}
LOGO_DEFAULTS = {
    "x": 0,
    "y": 0,
    "width": 100,
    "height": 100,
}

_TEXT_STYLE_DEFAULTS = {
    "fontFamily": "sans-serif",
    "fontWeight": "normal",
    "color": "#000000",
}
_NAME_STYLE_DEFAULTS = {
    "fontFamily": "serif",
    "fontWeight": "bold",
    "color": "#000000",
}

_VALID_ALIGNS = {align.value for align in TextAlign}


def coerce_number(value: Any) -> float | None:
    """Return value as a finite float, or None when it is not a number.

    Accepts ints, floats and numeric strings. Booleans, NaN and infinities
    are rejected.
    """
    if isinstance(value, bool):
        return None
    if not isinstance(value, int | float | str):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


def coerce_int(value: Any) -> int | None:
    number = coerce_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


class _Repairs:
    """Collects repaired fields for one template so they log together."""

    def __init__(self, template_id: Any) -> None:
        self.template_id = template_id
        self.fields: list[str] = []

    def note(self, path: str) -> None:
        self.fields.append(path)

    def emit(self) -> None:
        for path in self.fields:
            logger.warning(
                "template.field.repaired",
                template_id=self.template_id,
                field=path,
            )


def _numbers(
    raw: dict[str, Any], defaults: dict[str, float], path: str, repairs: _Repairs
) -> dict[str, float]:
    clean = {}
    for key, default in defaults.items():
        number = coerce_number(raw.get(key))
        if number is None:
            repairs.note(f"{path}.{key}")
            number = float(default)
        clean[key] = number
    return clean


def _strings(
    raw: dict[str, Any], defaults: dict[str, str], path: str, repairs: _Repairs
) -> dict[str, str]:
    clean = {}
    for key, default in defaults.items():
        value = raw.get(key)
        if not isinstance(value, str) or not value:
            repairs.note(f"{path}.{key}")
            value = default
        clean[key] = value
    return clean


def _align(raw: dict[str, Any], default: TextAlign, path: str, repairs: _Repairs) -> str:
    value = raw.get("align")
    if value not in _VALID_ALIGNS:
        repairs.note(f"{path}.align")
        return default.value
    return value


def _text_elements(raw: Any, repairs: _Repairs) -> list[TextBlock]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        repairs.note("textElements")
        return []

    entries = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            repairs.note(f"textElements[{index}]")
            continue
        entries.append((index, item))

    # Reassigned ids continue after the largest valid one
    valid_ids = [i for _, item in entries if (i := coerce_int(item.get("id"))) is not None]
    next_id = max([0, *valid_ids]) + 1
    seen: set[int] = set()

    elements = []
    for index, item in entries:
        path = f"textElements[{index}]"
        element_id = coerce_int(item.get("id"))
        if element_id is None or element_id in seen:
            repairs.note(f"{path}.id")
            element_id = next_id
            next_id += 1
        seen.add(element_id)

        text = item.get("text", "")
        if not isinstance(text, str):
            repairs.note(f"{path}.text")
            text = "" if text is None else str(text)

        elements.append(
            TextBlock.model_validate(
                {
                    "id": element_id,
                    "text": text,
                    **_numbers(item, TEXT_BLOCK_DEFAULTS, path, repairs),
                    **_strings(item, _TEXT_STYLE_DEFAULTS, path, repairs),
                    "align": _align(item, TextAlign.LEFT, path, repairs),
                }
            )
        )
    return elements


def _name_placeholder(raw: Any, repairs: _Repairs) -> NamePlaceholder:
    if not isinstance(raw, dict):
        repairs.note("namePlaceholder")
        return default_name_placeholder()

    path = "namePlaceholder"
    return NamePlaceholder.model_validate(
        {
            **_numbers(raw, NAME_PLACEHOLDER_DEFAULTS, path, repairs),
            **_strings(raw, _NAME_STYLE_DEFAULTS, path, repairs),
            "align": _align(raw, TextAlign.CENTER, path, repairs),
        }
    )


def _logo(raw: Any, repairs: _Repairs) -> LogoPlacement | None:
    if raw is None:
        return None
    if not isinstance(raw, dict) or not isinstance(raw.get("url"), str) or not raw["url"]:
        repairs.note("logo")
        return None
    return LogoPlacement.model_validate(
        {"url": raw["url"], **_numbers(raw, LOGO_DEFAULTS, "logo", repairs)}
    )


def _canvas_size(raw: dict[str, Any], repairs: _Repairs) -> tuple[float, float]:
    width = coerce_number(raw.get("canvasWidth"))
    height = coerce_number(raw.get("canvasHeight"))
    if width is None or height is None or width <= 0 or height <= 0:
        if "canvasWidth" in raw or "canvasHeight" in raw:
            repairs.note("canvasWidth/canvasHeight")
        return float(CANVAS_WIDTH), float(CANVAS_HEIGHT)
    return width, height


def _saved_at(raw: Any, repairs: _Repairs) -> datetime | None:
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, str):
        try:
            # Older saves use the JavaScript "Z" suffix
            return datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            pass
    repairs.note("savedAt")
    return None


def sanitize_template(raw: Any) -> Template:
    """Parse a persisted template, repairing anything malformed.

    Numeric fields fall back to fixed per-field defaults: text blocks use
    x=0, y=0, width=200, height=40, fontSize=24; the name placeholder uses
    width=300, height=60, fontSize=36; the logo uses width=100, height=100.

    Args:
        raw: Whatever the store returned for one template entry.

    Returns:
        A structurally valid Template. Never raises.
    """
    if not isinstance(raw, dict):
        template = Template.empty()
        logger.warning(
            "template.replaced",
            template_id=template.id,
            reason=f"expected an object, got {type(raw).__name__}",
        )
        return template

    repairs = _Repairs(raw.get("id"))

    template_id = coerce_int(raw.get("id"))
    if template_id is None:
        repairs.note("id")
        template_id = new_template_id()

    name = raw.get("name")
    if not isinstance(name, str):
        if name is not None:
            repairs.note("name")
        name = ""

    background = raw.get("backgroundImage")
    if background is not None and not isinstance(background, str):
        repairs.note("backgroundImage")
        background = None

    mode = raw.get("mode")
    if mode not in ("default", "custom"):
        mode = "custom"

    canvas_width, canvas_height = _canvas_size(raw, repairs)

    template = Template.model_validate(
        {
            "id": template_id,
            "name": name,
            "backgroundImage": background or None,
            "logo": _logo(raw.get("logo"), repairs),
            "textElements": _text_elements(raw.get("textElements"), repairs),
            "namePlaceholder": _name_placeholder(raw.get("namePlaceholder"), repairs),
            "canvasWidth": canvas_width,
            "canvasHeight": canvas_height,
            "mode": mode,
            "savedAt": _saved_at(raw.get("savedAt"), repairs),
        }
    )
    repairs.emit()
    return template
