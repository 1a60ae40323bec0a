"""
Per-slide override bag.

Overrides come from three tiers, lowest precedence first:

1. template defaults (the template row's `default_meta`)
2. slide meta (persisted with the slide)
3. UI overrides (live editor state, not yet saved)

`merge_overrides` folds the tiers in that order; `normalize_slide_meta`
then coerces the merged bag into typed, range-clamped values. The render
model builder never sees raw JSON.
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from slidecraft.renderer.colors import is_hex_color
from slidecraft.renderer.inline_format import HighlightSpan, coerce_spans

ZONE_RANGES = {
    "x": (0, 1080),
    "y": (0, 1080),
    "w": (1, 1080),
    "h": (1, 1080),
    "fontSize": (8, 200),
    "fontWeight": (100, 900),
    "lineHeight": (0.5, 3),
    "maxLines": (1, 20),
}
FONT_SIZE_RANGE = (8, 200)
CHROME_RANGES = {
    "top": (0, 1080),
    "right": (0, 1080),
    "bottom": (0, 1080),
    "x": (0, 1080),
    "y": (0, 1080),
    "logoX": (0, 1080),
    "logoY": (0, 1080),
    "fontSize": (8, 96),
    "maxWidth": (16, 1080),
    "maxHeight": (16, 1080),
}
WATERMARK_POSITIONS = ("top_left", "top_right", "bottom_left", "bottom_right", "custom")
MADE_WITH_DEFAULT_BOTTOM = 16


@dataclass(frozen=True)
class SlideOverrides:
    headline_zone: Mapping = field(default_factory=dict)
    body_zone: Mapping = field(default_factory=dict)
    headline_font_size: Optional[int] = None
    body_font_size: Optional[int] = None
    counter: Mapping = field(default_factory=dict)
    watermark: Mapping = field(default_factory=dict)
    made_with: Mapping = field(default_factory=lambda: {"bottom": MADE_WITH_DEFAULT_BOTTOM})
    made_with_text: Optional[str] = None
    show_counter: Optional[bool] = None
    show_watermark: Optional[bool] = None
    show_made_with: Optional[bool] = None
    headline_highlight_style: str = "text"
    body_highlight_style: str = "text"
    headline_highlights: Tuple[HighlightSpan, ...] = ()
    body_highlights: Tuple[HighlightSpan, ...] = ()

    def zone(self, zone_id: str) -> Mapping:
        return self.headline_zone if zone_id == "headline" else self.body_zone

    def font_size(self, zone_id: str) -> Optional[int]:
        return self.headline_font_size if zone_id == "headline" else self.body_font_size

    def highlight_style(self, zone_id: str) -> str:
        return self.headline_highlight_style if zone_id == "headline" else self.body_highlight_style

    def highlights(self, zone_id: str) -> Tuple[HighlightSpan, ...]:
        return self.headline_highlights if zone_id == "headline" else self.body_highlights


def merge_overrides(*tiers) -> dict:
    """
    Fold override bags left to right; later tiers win.

    None never replaces a value and nested dicts (zone / chrome overrides)
    merge key by key, so a UI tweak of one zone's y keeps the slide's x.
    """
    merged: dict = {}
    for tier in tiers:
        if not tier:
            continue
        for key, value in tier.items():
            if value is None:
                continue
            if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
                merged[key] = merge_overrides(merged[key], value)
            elif isinstance(value, Mapping):
                merged[key] = merge_overrides(value)
            else:
                merged[key] = value
    return merged


def _number(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return number


def _clamp(value: float, bounds) -> float:
    low, high = bounds
    return max(low, min(high, value))


def _zone_override(raw) -> dict:
    if not isinstance(raw, Mapping):
        return {}
    out = {}
    for key, bounds in ZONE_RANGES.items():
        number = _number(raw.get(key))
        if number is None:
            continue
        number = _clamp(number, bounds)
        out[key] = number if key == "lineHeight" else int(round(number))
    if raw.get("align") in ("left", "center"):
        out["align"] = raw["align"]
    if is_hex_color(raw.get("color")):
        out["color"] = raw["color"]
    return out


def _chrome_override(raw, keys) -> dict:
    if not isinstance(raw, Mapping):
        return {}
    out = {}
    for key in keys:
        number = _number(raw.get(key))
        if number is not None:
            out[key] = int(round(_clamp(number, CHROME_RANGES[key])))
    return out


def _font_size(value) -> Optional[int]:
    number = _number(value)
    if number is None:
        return None
    return int(round(_clamp(number, FONT_SIZE_RANGE)))


def _flag(value) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def normalize_slide_meta(meta) -> SlideOverrides:
    """Coerce a (merged) slide meta bag into SlideOverrides."""
    m = meta if isinstance(meta, Mapping) else {}

    watermark = _chrome_override(m.get("watermark_zone_override"),
                                 ("logoX", "logoY", "fontSize", "maxWidth", "maxHeight"))
    raw_watermark = m.get("watermark_zone_override")
    if isinstance(raw_watermark, Mapping) and raw_watermark.get("position") in WATERMARK_POSITIONS:
        watermark["position"] = raw_watermark["position"]

    made_with = _chrome_override(m.get("made_with_zone_override"), ("x", "y", "bottom", "fontSize"))
    if "y" in made_with:
        made_with.pop("bottom", None)
    else:
        made_with.setdefault("bottom", MADE_WITH_DEFAULT_BOTTOM)

    made_with_text = m.get("made_with_text")
    made_with_text = made_with_text.strip() if isinstance(made_with_text, str) and made_with_text.strip() else None

    return SlideOverrides(
        headline_zone=_zone_override(m.get("headline_zone_override")),
        body_zone=_zone_override(m.get("body_zone_override")),
        headline_font_size=_font_size(m.get("headline_font_size")),
        body_font_size=_font_size(m.get("body_font_size")),
        counter=_chrome_override(m.get("counter_zone_override"), ("top", "right", "fontSize")),
        watermark=watermark,
        made_with=made_with,
        made_with_text=made_with_text,
        show_counter=_flag(m.get("show_counter")),
        show_watermark=_flag(m.get("show_watermark")),
        show_made_with=_flag(m.get("show_made_with")),
        headline_highlight_style="background" if m.get("headline_highlight_style") == "background" else "text",
        body_highlight_style="background" if m.get("body_highlight_style") == "background" else "text",
        headline_highlights=tuple(coerce_spans(m.get("headline_highlights"))),
        body_highlights=tuple(coerce_spans(m.get("body_highlights"))),
    )


def resolve_slide_overrides(template_defaults=None, slide_meta=None, ui_overrides=None) -> SlideOverrides:
    """Three-tier merge followed by normalization."""
    return normalize_slide_meta(merge_overrides(template_defaults, slide_meta, ui_overrides))
