"""Counter color constants and helpers.

Counter colors are "#RRGGBB" strings. The custom color tool works in HSL
(hue 0-360, saturation and lightness 0-100) and converts back to hex:

    hex -> rgb (0-255) -> hsl
    hsl -> rgb (0-255) -> hex

Text drawn on a counter uses contrast_color() to pick black or white from
the perceived luminance of the background:

    luminance = (0.299 * R + 0.587 * G + 0.114 * B) / 255
    > 0.5  -> "#000"
    <= 0.5 -> "#FFF"
"""

import colorsys
import re

# Default color for counters created without one
DEFAULT_COLOR = "#007AFF"

# Quick-pick palette
PRESET_COLORS: list[str] = [
    "#007AFF",
    "#34C759",
    "#FF9500",
    "#FF3B30",
    "#5856D6",
    "#AF52DE",
    "#FF2D55",
    "#5AC8FA",
    "#4CD964",
    "#FFCC00",
    "#8E8E93",
    "#000000",
]

_HEX_RE = re.compile(r"#[0-9A-Fa-f]{6}")
_NON_HEX_RE = re.compile(r"[^0-9A-Fa-f]")


def is_valid_hex(value: object) -> bool:
    """Check for a "#RRGGBB" string."""
    return isinstance(value, str) and bool(_HEX_RE.fullmatch(value))


def normalize_hex(value: str) -> str:
    """Return the canonical upper-case "#RRGGBB" form.

    Args:
        value: Color with or without leading "#".

    Returns:
        Upper-case hex color.

    Raises:
        ValueError: If value is not a 6-digit hex color.
    """
    candidate = value if value.startswith("#") else f"#{value}"
    if not is_valid_hex(candidate):
        raise ValueError(f"Invalid color: {value}. Expected #RRGGBB")
    return candidate.upper()


def clean_hex_input(text: str) -> str:
    """Strip everything but hex digits from typed input, max 6 characters."""
    return _NON_HEX_RE.sub("", text)[:6]


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    """Convert "#RRGGBB" to an (r, g, b) tuple of 0-255 ints.

    Raises:
        ValueError: If value is not a valid hex color.
    """
    hex_digits = normalize_hex(value)[1:]
    return (
        int(hex_digits[0:2], 16),
        int(hex_digits[2:4], 16),
        int(hex_digits[4:6], 16),
    )


def rgb_to_hex(r: int, g: int, b: int) -> str:
    """Convert 0-255 channel values to "#RRGGBB".

    Raises:
        ValueError: If any channel is out of range.
    """
    for channel in (r, g, b):
        if not 0 <= channel <= 255:
            raise ValueError(f"Invalid channel value: {channel}. Must be 0-255")
    return f"#{r:02X}{g:02X}{b:02X}"


def hex_to_hsl(value: str) -> tuple[int, int, int]:
    """Convert "#RRGGBB" to (hue 0-360, saturation 0-100, lightness 0-100).

    Values are rounded to whole numbers, which is what the color tool shows.
    """
    r, g, b = hex_to_rgb(value)
    # colorsys orders the result as h, l, s
    h, l, s = colorsys.rgb_to_hls(r / 255, g / 255, b / 255)
    return (round(h * 360) % 360, round(s * 100), round(l * 100))


def hsl_to_hex(hue: float, saturation: float, lightness: float) -> str:
    """Convert HSL to "#RRGGBB".

    Args:
        hue: Degrees, wrapped into 0-360.
        saturation: Percent, clamped to 0-100.
        lightness: Percent, clamped to 0-100.
    """
    h = (hue % 360) / 360
    s = min(max(saturation, 0), 100) / 100
    l = min(max(lightness, 0), 100) / 100
    r, g, b = colorsys.hls_to_rgb(h, l, s)
    return rgb_to_hex(round(r * 255), round(g * 255), round(b * 255))


def contrast_color(background: str) -> str:
    """Pick black or white text for a background color.

    Args:
        background: "#RRGGBB" background.

    Returns:
        "#000" for light backgrounds, "#FFF" for dark ones.
    """
    r, g, b = hex_to_rgb(background)
    luminance = (0.299 * r + 0.587 * g + 0.114 * b) / 255
    return "#000" if luminance > 0.5 else "#FFF"
