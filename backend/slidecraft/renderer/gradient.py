"""
Overlay gradient math.

A gradient runs from the edge opposite `direction` (0%) to the dark edge
(100%). `extent` is how far from the dark edge the effect reaches and
`solid_size` how much of that reach is flat color:

    0% ............ 100-extent% ...... full% ........ 100%
    transparent     transparent        color          color

with full = 100 - extent + extent * (100 - solid_size) / 100.
"""

from dataclasses import dataclass
from typing import Tuple

from slidecraft.renderer.colors import hex_to_rgba

DIRECTION_TO_CSS = {
    "top": "to top",
    "bottom": "to bottom",
    "left": "to left",
    "right": "to right",
}


@dataclass(frozen=True)
class GradientStop:
    offset: float  # percent along the gradient line
    alpha: float  # 0 = transparent, 1 = full overlay strength


def gradient_stops(extent: float, solid_size: float) -> Tuple[GradientStop, ...]:
    """Stops for a gradient of the given extent and solid share."""
    if extent <= 0:
        return (GradientStop(0, 0), GradientStop(100, 0))

    start = 100 - extent
    if solid_size >= 100:
        # Hard edge: solid block from `start` to the dark edge
        stops = (GradientStop(0, 0), GradientStop(start, 0), GradientStop(start, 1), GradientStop(100, 1))
    elif extent >= 100 and solid_size <= 0:
        return (GradientStop(0, 0), GradientStop(100, 1))
    else:
        full = start + extent * (100 - solid_size) / 100
        stops = (GradientStop(0, 0), GradientStop(start, 0), GradientStop(full, 1), GradientStop(100, 1))

    return _dedupe(stops)


def _dedupe(stops) -> Tuple[GradientStop, ...]:
    out = []
    for stop in stops:
        if out and out[-1] == stop:
            continue
        out.append(stop)
    return tuple(out)


def alpha_at(stops: Tuple[GradientStop, ...], position: float) -> float:
    """Overlay alpha multiplier at `position` percent along the gradient line."""
    if position <= stops[0].offset:
        return stops[0].alpha
    for before, after in zip(stops, stops[1:]):
        if position <= after.offset:
            span = after.offset - before.offset
            if span <= 0:
                return after.alpha
            t = (position - before.offset) / span
            return before.alpha + (after.alpha - before.alpha) * t
    return stops[-1].alpha


def _pct(value: float) -> str:
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return f"{text or '0'}%"


def css_linear_gradient(direction: str, color: str, strength: float, stops: Tuple[GradientStop, ...]) -> str:
    css_dir = DIRECTION_TO_CSS.get(direction, "to bottom")
    parts = [f"{hex_to_rgba(color, strength * stop.alpha)} {_pct(stop.offset)}" for stop in stops]
    return f"linear-gradient({css_dir}, {', '.join(parts)})"


def css_vignette(strength: float) -> str:
    return f"radial-gradient(ellipse at center, rgba(0,0,0,0) 55%, {hex_to_rgba('#000000', strength)} 100%)"
