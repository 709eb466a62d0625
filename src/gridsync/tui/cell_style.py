"""CSS-like cell style strings to rich Styles.

Column styles arrive as `prop: value; prop: value` text (after interpolation).
Only the properties a terminal can show are mapped; everything else, and any
value rich cannot parse, is ignored.
"""

from functools import lru_cache

from rich.color import Color, ColorParseError
from rich.style import Style


def _parse_color(value: str) -> str | None:
    try:
        Color.parse(value)
    except ColorParseError:
        return None
    return value


def _declarations(css: str) -> list[tuple[str, str]]:
    pairs = []
    for declaration in css.split(";"):
        prop, sep, value = declaration.partition(":")
        if sep:
            pairs.append((prop.strip().lower(), value.strip().lower()))
    return pairs


@lru_cache(maxsize=512)
def css_to_style(css: str) -> Style:
    """Map a CSS-like declaration list onto a rich Style."""
    attrs: dict[str, object] = {}
    for prop, value in _declarations(css):
        if prop == "color":
            attrs["color"] = _parse_color(value)
        elif prop in ("background", "background-color"):
            attrs["bgcolor"] = _parse_color(value)
        elif prop == "font-weight":
            attrs["bold"] = value in ("bold", "bolder", "700", "800", "900")
        elif prop == "font-style":
            attrs["italic"] = value == "italic"
        elif prop == "text-decoration":
            attrs["underline"] = "underline" in value
            attrs["strike"] = "line-through" in value
    return Style(**{k: v for k, v in attrs.items() if v is not None})
