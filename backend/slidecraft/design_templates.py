"""
Design presets for carousel templates.

Three independent preset families:
1. LAYOUT PRESETS - text zone arrangements (headline bottom, centered, split, headline only)
2. OVERLAY PRESETS - gradient color / opacity / text color combinations for image slides
3. HIGHLIGHT COLORS - named colors for highlight spans (see renderer.inline_format)
"""

import copy

from slidecraft.renderer.inline_format import HIGHLIGHT_COLORS
from slidecraft.renderer.template_schema import TemplateConfig

# Design space every template is authored in
WIDTH = 1080
HEIGHT = 1080


# ============================================
# DEFAULT TEMPLATE
# ============================================
HEADLINE_BOTTOM_ZONES = [
    {"id": "headline", "x": 80, "y": 720, "w": 920, "h": 260, "fontSize": 68, "fontWeight": 800,
     "lineHeight": 1.05, "maxLines": 3, "align": "center"},
    {"id": "body", "x": 80, "y": 560, "w": 920, "h": 140, "fontSize": 32, "fontWeight": 600,
     "lineHeight": 1.2, "maxLines": 2, "align": "center"},
]

DEFAULT_TEMPLATE_CONFIG = {
    "layout": "headline_bottom",
    "safeArea": {"top": 80, "right": 80, "bottom": 120, "left": 80},
    "textZones": HEADLINE_BOTTOM_ZONES,
    "overlays": {
        "gradient": {"enabled": True, "direction": "bottom", "strength": 0.5, "extent": 50,
                     "color": "#000000", "solidSize": 25},
        "vignette": {"enabled": False, "strength": 0.2},
    },
    "chrome": {
        "showSwipe": True,
        "swipeType": "chevrons",
        "swipePosition": "bottom_center",
        "showCounter": True,
        "counterStyle": "1/8",
        "watermark": {"enabled": True, "position": "custom", "logoX": 24, "logoY": 24},
    },
    "backgroundRules": {"allowImage": True, "defaultStyle": "gradient"},
}


# ============================================
# LAYOUT PRESETS
# ============================================
LAYOUT_PRESETS = {
    "headline_bottom": {
        "id": "headline_bottom",
        "name": "Headline Bottom",
        "description": "Body above a large headline anchored to the bottom third",
        "textZones": HEADLINE_BOTTOM_ZONES,
    },
    "headline_center": {
        "id": "headline_center",
        "name": "Centered Hero",
        "description": "Headline in the middle, body underneath",
        "textZones": [
            {"id": "headline", "x": 80, "y": 380, "w": 920, "h": 320, "fontSize": 64, "fontWeight": 800,
             "lineHeight": 1.1, "maxLines": 5, "align": "center"},
            {"id": "body", "x": 80, "y": 720, "w": 920, "h": 200, "fontSize": 32, "fontWeight": 600,
             "lineHeight": 1.2, "maxLines": 3, "align": "center"},
        ],
    },
    "split_top_bottom": {
        "id": "split_top_bottom",
        "name": "Left Editorial",
        "description": "Left-aligned headline on top, long body below",
        "textZones": [
            {"id": "headline", "x": 80, "y": 80, "w": 920, "h": 200, "fontSize": 56, "fontWeight": 800,
             "lineHeight": 1.1, "maxLines": 3, "align": "left"},
            {"id": "body", "x": 80, "y": 320, "w": 920, "h": 600, "fontSize": 36, "fontWeight": 600,
             "lineHeight": 1.25, "maxLines": 12, "align": "left"},
        ],
    },
    "headline_only": {
        "id": "headline_only",
        "name": "Headline Only",
        "description": "One big centered statement, no body",
        "textZones": [
            {"id": "headline", "x": 80, "y": 340, "w": 920, "h": 400, "fontSize": 80, "fontWeight": 800,
             "lineHeight": 1.05, "maxLines": 4, "align": "center"},
        ],
    },
}


# ============================================
# OVERLAY PRESETS
# ============================================
OVERLAY_PRESETS = {
    "dark": {"id": "dark", "name": "Dark", "gradient_color": "#000000", "opacity": 0.6, "text_color": "#ffffff"},
    "warm": {"id": "warm", "name": "Warm", "gradient_color": "#1a0a00", "opacity": 0.55, "text_color": "#fff5eb"},
    "cool": {"id": "cool", "name": "Cool", "gradient_color": "#0a0a1a", "opacity": 0.55, "text_color": "#e8e8ff"},
    "high-contrast": {"id": "high-contrast", "name": "High contrast", "gradient_color": "#000000",
                      "opacity": 0.75, "text_color": "#ffffff"},
    "soft-dark": {"id": "soft-dark", "name": "Soft dark", "gradient_color": "#1a1a1a", "opacity": 0.45,
                  "text_color": "#f0f0f0"},
    "navy": {"id": "navy", "name": "Navy", "gradient_color": "#0a0a2e", "opacity": 0.6, "text_color": "#e0e8ff"},
    "forest": {"id": "forest", "name": "Forest", "gradient_color": "#0a1a0a", "opacity": 0.5,
               "text_color": "#e8ffe8"},
    "burgundy": {"id": "burgundy", "name": "Burgundy", "gradient_color": "#1a0505", "opacity": 0.55,
                 "text_color": "#ffe8e8"},
    "light": {"id": "light", "name": "Light (dark text)", "gradient_color": "#ffffff", "opacity": 0.35,
              "text_color": "#111111"},
    "custom": {"id": "custom", "name": "Custom", "gradient_color": "#000000", "opacity": 0.5,
               "text_color": "#ffffff"},
}


def get_default_template_config() -> TemplateConfig:
    """The config new templates start from."""
    return TemplateConfig.model_validate(DEFAULT_TEMPLATE_CONFIG)


def get_layout_preset(layout_id: str) -> TemplateConfig:
    """Default template config switched to a layout family's text zones."""
    preset = LAYOUT_PRESETS.get(layout_id)
    if preset is None:
        raise ValueError(f"Unknown layout: {layout_id}")
    config = copy.deepcopy(DEFAULT_TEMPLATE_CONFIG)
    config["layout"] = preset["id"]
    config["textZones"] = copy.deepcopy(preset["textZones"])
    return TemplateConfig.model_validate(config)


def get_overlay_preset(preset_id: str) -> dict:
    """Get an overlay preset by ID (falls back to custom)."""
    return OVERLAY_PRESETS.get(preset_id, OVERLAY_PRESETS["custom"])


def apply_overlay_preset(preset_id: str) -> dict:
    """Slide background `overlay` fields for a preset."""
    preset = get_overlay_preset(preset_id)
    return {
        "gradient": True,
        "color": preset["gradient_color"],
        "darken": preset["opacity"],
        "textColor": preset["text_color"],
    }


def list_layouts():
    """List all layout presets."""
    return [{"id": p["id"], "name": p["name"], "description": p["description"]} for p in LAYOUT_PRESETS.values()]


def list_overlay_presets():
    """List all overlay presets."""
    return list(OVERLAY_PRESETS.values())


def list_highlight_colors():
    """List named highlight colors."""
    return [{"id": name, "color": color} for name, color in HIGHLIGHT_COLORS.items()]
