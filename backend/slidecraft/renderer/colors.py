"""Hex color helpers and the contrast resolver."""

import re
from typing import Optional

HEX_COLOR_RE = re.compile(r"^#([0-9A-Fa-f]{3}){1,2}$")
RGBA_COLOR_RE = re.compile(
    r"^rgba\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d*\.?\d+)\s*\)$"
)

DARK_TEXT = "#0a0a0a"
LIGHT_TEXT = "#ffffff"


def is_hex_color(value) -> bool:
    return isinstance(value, str) and bool(HEX_COLOR_RE.match(value))


def parse_rgba(value) -> Optional[tuple]:
    """Parse "rgba(r,g,b,a)" into (r, g, b, a) with 0-255 channels and 0-1 alpha, or None."""
    match = RGBA_COLOR_RE.match(value) if isinstance(value, str) else None
    if match is None:
        return None
    r, g, b = (int(match.group(i)) for i in (1, 2, 3))
    alpha = float(match.group(4))
    if max(r, g, b) > 255 or alpha > 1:
        return None
    return (r, g, b, alpha)


def is_css_color(value) -> bool:
    """Hex or rgba() color, the only forms stored display options may carry."""
    return is_hex_color(value) or parse_rgba(value) is not None


def hex_to_rgb(hex_color: str) -> tuple:
    """Parse #rgb or #rrggbb into an (r, g, b) tuple of 0-255 ints."""
    clean = hex_color.lstrip("#")
    if len(clean) == 3:
        clean = "".join(ch * 2 for ch in clean)
    if len(clean) != 6:
        raise ValueError(f"Invalid hex color: {hex_color!r}")
    return (int(clean[0:2], 16), int(clean[2:4], 16), int(clean[4:6], 16))


def hex_to_rgba(hex_color: str, opacity: float) -> str:
    """Return the CSS rgba() string for a hex color at the given opacity."""
    r, g, b = hex_to_rgb(hex_color)
    return f"rgba({r},{g},{b},{_format_alpha(opacity)})"


def _format_alpha(opacity: float) -> str:
    opacity = max(0.0, min(1.0, float(opacity)))
    text = f"{opacity:.4f}".rstrip("0").rstrip(".")
    return text or "0"


def relative_luminance(hex_color: str) -> float:
    """WCAG relative luminance (0 = black, 1 = white)."""

    def channel(value: int) -> float:
        c = value / 255
        return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4

    r, g, b = hex_to_rgb(hex_color)
    return 0.2126 * channel(r) + 0.7152 * channel(g) + 0.0722 * channel(b)


def contrasting_text_color(background: str) -> str:
    """Pick black or white text for a background color, whichever reads better."""
    if not is_hex_color(background):
        return LIGHT_TEXT
    luminance = relative_luminance(background)
    # Contrast ratio against white vs against near-black
    against_white = 1.05 / (luminance + 0.05)
    against_dark = (luminance + 0.05) / (relative_luminance(DARK_TEXT) + 0.05)
    return LIGHT_TEXT if against_white >= against_dark else DARK_TEXT
