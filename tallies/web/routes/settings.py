"""Settings API Routes - Theme, templates and palette.

Endpoints:
- GET /api/settings/theme      - Saved theme
- PUT /api/settings/theme      - Save theme
- GET /api/settings/templates  - Quick-start counter templates
- GET /api/settings/colors     - Preset palette and default color
- GET /api/settings/colors/hsl   - Hex for an HSL color
- GET /api/settings/colors/{hex} - HSL and contrast text color for a color
"""

from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from tallies.core.colors import (
    DEFAULT_COLOR,
    PRESET_COLORS,
    clean_hex_input,
    contrast_color,
    hex_to_hsl,
    hsl_to_hex,
    normalize_hex,
)
from tallies.core.session import get_session
from tallies.core.templates import COUNTER_TEMPLATES
from tallies.web.websocket.manager import broadcast_theme_change

router = APIRouter()


class ThemeUpdate(BaseModel):
    """Request body for saving the theme."""

    theme: str


@router.get("/theme")
async def get_theme() -> dict[str, str]:
    """Get the saved theme."""
    return {"theme": get_session().get_theme()}


@router.put("/theme")
async def set_theme(body: ThemeUpdate) -> dict[str, str]:
    """Save the theme.

    Raises:
        HTTPException: If the theme is unknown or cannot be saved.
    """
    try:
        saved = get_session().set_theme(body.theme)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not saved:
        raise HTTPException(status_code=500, detail="Failed to save theme")

    broadcast_theme_change(body.theme)
    return {"theme": body.theme}


@router.get("/templates")
async def list_templates() -> list[dict[str, Any]]:
    """List quick-start counter templates."""
    return [t.to_dict() for t in COUNTER_TEMPLATES]


@router.get("/colors")
async def list_colors() -> dict[str, Any]:
    """Get the preset palette."""
    return {"default": DEFAULT_COLOR, "presets": PRESET_COLORS}


@router.get("/colors/hsl")
async def color_from_hsl(h: float, s: float, l: float) -> dict[str, Any]:
    """Convert the custom color tool's HSL sliders to a hex color.

    Hue wraps around 360; saturation and lightness are clamped to 0-100.
    """
    color = hsl_to_hex(h, s, l)
    return {"hex": color, "text": contrast_color(color)}


@router.get("/colors/{hex_value}")
async def describe_color(hex_value: str) -> dict[str, Any]:
    """Describe a color for the custom color tool.

    Args:
        hex_value: Typed color; anything but hex digits is dropped
            (e.g. "5AC8FA").

    Raises:
        HTTPException: If the value is not a 6-digit hex color.
    """
    try:
        color = normalize_hex(clean_hex_input(hex_value))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    hue, saturation, lightness = hex_to_hsl(color)
    return {
        "hex": color,
        "hsl": {"h": hue, "s": saturation, "l": lightness},
        "text": contrast_color(color),
    }
