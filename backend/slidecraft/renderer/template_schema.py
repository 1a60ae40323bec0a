"""
Template config models.

Templates are stored as camelCase JSON. They are parsed once into frozen
pydantic models so the render model builder can assume valid ranges.
"""

import logging
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

HEX_PATTERN = r"^#([0-9A-Fa-f]{3}){1,2}$"

LayoutFamily = Literal["headline_bottom", "headline_center", "split_top_bottom", "headline_only"]
GradientDirection = Literal["top", "bottom", "left", "right"]
WatermarkPosition = Literal["top_left", "top_right", "bottom_left", "bottom_right", "custom"]


class SchemaModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class SafeArea(SchemaModel):
    top: int = Field(ge=0)
    right: int = Field(ge=0)
    bottom: int = Field(ge=0)
    left: int = Field(ge=0)


class TextZone(SchemaModel):
    id: str
    x: int = Field(ge=0)
    y: int = Field(ge=0)
    w: int = Field(ge=1)
    h: int = Field(ge=1)
    font_size: int = Field(ge=8, le=200)
    font_weight: int = Field(ge=100, le=900)
    line_height: float = Field(ge=0.5, le=3)
    max_lines: int = Field(ge=1, le=20)
    align: Literal["left", "center"] = "center"
    # When unset, text uses the contrasting color of the effective background
    color: Optional[str] = Field(default=None, pattern=HEX_PATTERN)


class GradientOverlay(SchemaModel):
    enabled: bool = True
    direction: GradientDirection = "bottom"
    strength: float = Field(default=0.5, ge=0, le=1)
    # Percentage of the slide the gradient covers, measured from the dark edge
    extent: float = Field(default=100, ge=0, le=100)
    color: str = Field(default="#000000", pattern=HEX_PATTERN)
    # Share of the covered area that is flat color rather than transition
    solid_size: float = Field(default=0, ge=0, le=100)


class VignetteOverlay(SchemaModel):
    enabled: bool = False
    strength: float = Field(default=0.2, ge=0, le=1)


class Overlays(SchemaModel):
    gradient: GradientOverlay = GradientOverlay()
    vignette: VignetteOverlay = VignetteOverlay()


class WatermarkRule(SchemaModel):
    enabled: bool = False
    position: WatermarkPosition = "bottom_left"
    logo_x: Optional[int] = Field(default=None, ge=0, le=1080)
    logo_y: Optional[int] = Field(default=None, ge=0, le=1080)


class Chrome(SchemaModel):
    show_swipe: bool = False
    swipe_type: Literal["chevrons", "arrow", "text"] = "chevrons"
    swipe_position: Literal["bottom_center", "bottom_right"] = "bottom_center"
    show_counter: bool = False
    # Stored for editor round-trips; the counter always reads "i / n"
    counter_style: str = "1/8"
    watermark: WatermarkRule = WatermarkRule()


class BackgroundRules(SchemaModel):
    allow_image: bool = True
    default_style: Literal["gradient", "blur", "none"] = "gradient"
    default_color: Optional[str] = Field(default=None, pattern=HEX_PATTERN)

    @field_validator("default_style", mode="before")
    @classmethod
    def _legacy_darken(cls, value):
        return "gradient" if value == "darken" else value


class TemplateConfig(SchemaModel):
    layout: LayoutFamily
    safe_area: SafeArea
    text_zones: List[TextZone]
    overlays: Overlays = Overlays()
    chrome: Chrome = Chrome()
    background_rules: BackgroundRules = BackgroundRules()

    def zone(self, zone_id: str) -> Optional[TextZone]:
        for zone in self.text_zones:
            if zone.id == zone_id:
                return zone
        return None

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def parse_template_config(raw) -> Optional[TemplateConfig]:
    """Validate stored template JSON. Returns None when it is missing or invalid."""
    if raw is None:
        return None
    if isinstance(raw, TemplateConfig):
        return raw
    try:
        return TemplateConfig.model_validate(raw)
    except ValidationError as e:
        logger.warning("Invalid template config: %s", e.errors()[:3])
        return None
