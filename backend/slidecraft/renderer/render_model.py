"""
Render model builder.

`build_render_model` is the one place where a template, a slide, the
project's brand kit and the slide's overrides are resolved into what will
be painted. It is a pure function: same inputs, same model, on every
surface. Surfaces never re-derive layout decisions from raw inputs.
"""

from dataclasses import dataclass, field, replace
from typing import Iterator, Optional, Tuple

from slidecraft.renderer.background import (
    Background,
    ColorBackground,
    ImageSlot,
    MultiImage,
    SingleImage,
    image_urls,
)
from slidecraft.renderer.colors import contrasting_text_color, is_hex_color
from slidecraft.renderer.fit_text import fit_text_to_zone
from slidecraft.renderer.geometry import DESIGN_SIZE, Rect
from slidecraft.renderer.gradient import GradientStop, gradient_stops
from slidecraft.renderer.inline_format import (
    TextRun,
    inject_highlight_markers,
    normalize_highlight_spans,
    parse_inline_formatting,
)
from slidecraft.renderer.multi_image import ImageDisplay, ImageLayout, layout_images, layout_single
from slidecraft.renderer.overrides import SlideOverrides
from slidecraft.renderer.template_schema import TemplateConfig, TextZone

DEFAULT_BACKGROUND = "#0a0a0a"
DEFAULT_MADE_WITH = "Made with SlideCraft"
ZONE_IDS = ("headline", "body")

COUNTER_INSET = 20
COUNTER_FONT = 20
WATERMARK_INSET = 24
WATERMARK_BOTTOM = 80
WATERMARK_FONT = 20
WATERMARK_MAX_W = 160
WATERMARK_MAX_H = 60
MADE_WITH_FONT = 18
SWIPE_BOTTOM = 12
SWIPE_FONT = 24
SWIPE_TEXT = {"chevrons": "\u203a\u203a\u203a", "arrow": "\u2192", "text": "Swipe \u2192"}
BLUR_RADIUS = 24


@dataclass(frozen=True)
class BrandKit:
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    watermark_text: Optional[str] = None
    logo_url: Optional[str] = None

    @classmethod
    def from_json(cls, raw) -> "BrandKit":
        raw = raw or {}
        return cls(
            primary_color=raw.get("primary_color") if is_hex_color(raw.get("primary_color")) else None,
            secondary_color=raw.get("secondary_color") if is_hex_color(raw.get("secondary_color")) else None,
            watermark_text=(raw.get("watermark_text") or None),
            logo_url=(raw.get("logo_url") or None),
        )


@dataclass(frozen=True)
class SlideContent:
    headline: str
    body: Optional[str] = None
    slide_type: str = "point"
    background: Background = field(default_factory=ColorBackground)


@dataclass(frozen=True)
class ChromeOptions:
    """Account-level chrome knobs supplied by the caller."""
    paid_plan: bool = False
    made_with_text: str = DEFAULT_MADE_WITH


@dataclass(frozen=True)
class ResolvedBackground:
    color: str
    image_urls: Tuple[str, ...] = ()
    secondary_url: Optional[str] = None
    display: Optional[ImageDisplay] = None
    image_layout: Optional[ImageLayout] = None
    blur: bool = False
    gradient_on: bool = False
    gradient_direction: str = "bottom"
    gradient_strength: float = 0.0
    gradient_color: str = "#000000"
    gradient_extent: float = 100
    gradient_solid_size: float = 0
    gradient_stops: Tuple[GradientStop, ...] = ()
    vignette_strength: Optional[float] = None

    @property
    def has_image(self) -> bool:
        return bool(self.image_urls)

    @property
    def effective_color(self) -> str:
        """What text sits on: the overlay color when a gradient shows, else the fill."""
        if self.gradient_on and self.gradient_strength > 0:
            return self.gradient_color
        return self.color

    def cell_url(self, image_index: int) -> Optional[str]:
        if 0 <= image_index < len(self.image_urls):
            return self.image_urls[image_index]
        if image_index == len(self.image_urls):
            return self.secondary_url
        return None


@dataclass(frozen=True)
class TextLine:
    raw: str
    runs: Tuple[TextRun, ...]


@dataclass(frozen=True)
class TextBlock:
    zone_id: str
    rect: Rect  # design space
    font_size: float  # after text scale
    font_weight: int
    line_height: float
    align: str
    color: str
    highlight_style: str
    lines: Tuple[TextLine, ...]


@dataclass(frozen=True)
class ChromePlacement:
    """Edge-anchored chrome element in design units (scaled per frame later)."""
    kind: str
    top: Optional[float] = None
    right: Optional[float] = None
    bottom: Optional[float] = None
    left: Optional[float] = None
    center: bool = False
    font_size: float = 0
    max_w: Optional[float] = None
    max_h: Optional[float] = None


@dataclass(frozen=True)
class ResolvedChrome:
    color: str = "#ffffff"
    counter_text: Optional[str] = None
    counter: Optional[ChromePlacement] = None
    watermark_text: Optional[str] = None
    watermark_logo_url: Optional[str] = None
    watermark: Optional[ChromePlacement] = None
    made_with_text: Optional[str] = None
    made_with: Optional[ChromePlacement] = None
    swipe_type: Optional[str] = None
    swipe: Optional[ChromePlacement] = None

    @property
    def swipe_text(self) -> Optional[str]:
        if self.swipe_type is None:
            return None
        return SWIPE_TEXT.get(self.swipe_type, SWIPE_TEXT["chevrons"])

    def placements(self) -> Iterator[ChromePlacement]:
        for placement in (self.counter, self.watermark, self.made_with, self.swipe):
            if placement is not None:
                yield placement


@dataclass(frozen=True)
class RenderModel:
    layout: str
    background: ResolvedBackground
    text_blocks: Tuple[TextBlock, ...]
    chrome: ResolvedChrome
    slide_index: int = 1
    total_slides: int = 1
    placeholder: bool = False

    def block(self, zone_id: str) -> Optional[TextBlock]:
        for block in self.text_blocks:
            if block.zone_id == zone_id:
                return block
        return None

    def background_only(self, url: str) -> "RenderModel":
        """Same slide with one full-bleed image and nothing drawn over it."""
        display = self.background.display or ImageDisplay.from_options((), multi=False)
        display = replace(display, frame="none")
        background = ResolvedBackground(
            color=self.background.color,
            image_urls=(url,),
            display=display,
            image_layout=layout_single(display),
            blur=self.background.blur,
        )
        return replace(self, background=background, text_blocks=(), chrome=ResolvedChrome())


def _resolve_zone(zone: TextZone, overrides: SlideOverrides) -> dict:
    resolved = {
        "x": zone.x,
        "y": zone.y,
        "w": zone.w,
        "h": zone.h,
        "fontSize": zone.font_size,
        "fontWeight": zone.font_weight,
        "lineHeight": zone.line_height,
        "maxLines": zone.max_lines,
        "align": zone.align,
        "color": zone.color,
    }
    font_size = overrides.font_size(zone.id)
    if font_size is not None:
        resolved["fontSize"] = font_size
    resolved.update(overrides.zone(zone.id))
    return resolved


@dataclass(frozen=True)
class _WrapZone:
    w: float
    font_size: float
    max_lines: int


def _text_block(zone: TextZone, text: str, overrides: SlideOverrides, text_scale: float,
                fallback_color: str) -> TextBlock:
    z = _resolve_zone(zone, overrides)
    spans = normalize_highlight_spans(text, overrides.highlights(zone.id))
    marked = inject_highlight_markers(text, spans)
    # Wrapping is scale-invariant: width and font shrink together on remapped frames
    lines = fit_text_to_zone(marked, _WrapZone(z["w"], z["fontSize"], z["maxLines"]))
    return TextBlock(
        zone_id=zone.id,
        rect=Rect(z["x"], z["y"], z["w"], z["h"]),
        font_size=z["fontSize"] * text_scale,
        font_weight=z["fontWeight"],
        line_height=z["lineHeight"],
        align=z["align"],
        color=z["color"] or fallback_color,
        highlight_style=overrides.highlight_style(zone.id),
        lines=tuple(TextLine(line, tuple(parse_inline_formatting(line))) for line in lines),
    )


def resolve_background(template: TemplateConfig, background: Background, brand_kit: BrandKit,
                       slide_type: str) -> ResolvedBackground:
    rules = template.background_rules
    gradient = template.overlays.gradient
    overlay = background.overlay

    color = background.color or rules.default_color or brand_kit.primary_color or DEFAULT_BACKGROUND
    urls = image_urls(background) if rules.allow_image else ()
    has_image = bool(urls)

    if overlay.gradient_on is not None:
        gradient_on = overlay.gradient_on
    elif has_image and rules.default_style in ("none", "blur"):
        gradient_on = False
    else:
        gradient_on = gradient.enabled

    extent = overlay.extent if overlay.extent is not None else gradient.extent
    solid_size = overlay.solid_size if overlay.solid_size is not None else gradient.solid_size

    display = None
    image_layout = None
    secondary_url = None
    if has_image and isinstance(background, MultiImage) and len(urls) >= 2:
        display = ImageDisplay.from_options(background.display, multi=True)
        image_layout = layout_images(len(urls), display)
    elif has_image:
        urls = urls[:1]
        bordered = isinstance(background, SingleImage) and background.bordered
        options = background.display if isinstance(background, (SingleImage, MultiImage)) else ()
        display = ImageDisplay.from_options(options, multi=False, bordered=bordered)
        secondary = background.secondary if isinstance(background, SingleImage) else None
        if slide_type == "hook" and isinstance(secondary, ImageSlot) and secondary.url:
            secondary_url = secondary.url
        image_layout = layout_single(display, with_hook_circle=secondary_url is not None)

    vignette = template.overlays.vignette
    return ResolvedBackground(
        color=color,
        image_urls=tuple(urls),
        secondary_url=secondary_url,
        display=display,
        image_layout=image_layout,
        blur=has_image and rules.default_style == "blur",
        gradient_on=gradient_on,
        gradient_direction=overlay.direction or gradient.direction,
        gradient_strength=overlay.strength if overlay.strength is not None else gradient.strength,
        gradient_color=overlay.color or gradient.color,
        gradient_extent=extent,
        gradient_solid_size=solid_size,
        gradient_stops=gradient_stops(extent, solid_size) if gradient_on else (),
        vignette_strength=vignette.strength if vignette.enabled else None,
    )


def _watermark_placement(position: str, overrides: SlideOverrides, template: TemplateConfig) -> ChromePlacement:
    o = overrides.watermark
    font = o.get("fontSize", WATERMARK_FONT)
    max_w = o.get("maxWidth", WATERMARK_MAX_W)
    max_h = o.get("maxHeight", WATERMARK_MAX_H)
    common = {"kind": "watermark", "font_size": font, "max_w": max_w, "max_h": max_h}
    if position == "top_left":
        return ChromePlacement(top=WATERMARK_INSET, left=WATERMARK_INSET, **common)
    if position == "top_right":
        return ChromePlacement(top=WATERMARK_INSET, right=WATERMARK_INSET, **common)
    if position == "bottom_right":
        return ChromePlacement(bottom=WATERMARK_BOTTOM, right=WATERMARK_INSET, **common)
    if position == "custom":
        rule = template.chrome.watermark
        left = o.get("logoX", rule.logo_x if rule.logo_x is not None else WATERMARK_INSET)
        top = o.get("logoY", rule.logo_y if rule.logo_y is not None else WATERMARK_INSET)
        return ChromePlacement(top=top, left=left, **common)
    return ChromePlacement(bottom=WATERMARK_BOTTOM, left=WATERMARK_INSET, **common)


def resolve_chrome(template: TemplateConfig, brand_kit: BrandKit, slide_index: int, total_slides: int,
                   overrides: SlideOverrides, options: ChromeOptions, color: str) -> ResolvedChrome:
    chrome = template.chrome
    values = {"color": color}

    show_counter = overrides.show_counter if overrides.show_counter is not None else chrome.show_counter
    if show_counter:
        c = overrides.counter
        values["counter_text"] = f"{slide_index} / {total_slides}"
        values["counter"] = ChromePlacement(
            kind="counter",
            top=c.get("top", COUNTER_INSET),
            right=c.get("right", COUNTER_INSET),
            font_size=c.get("fontSize", COUNTER_FONT),
        )

    show_watermark = overrides.show_watermark if overrides.show_watermark is not None else chrome.watermark.enabled
    if show_watermark and (brand_kit.logo_url or brand_kit.watermark_text):
        position = overrides.watermark.get("position", chrome.watermark.position)
        values["watermark_logo_url"] = brand_kit.logo_url
        values["watermark_text"] = None if brand_kit.logo_url else brand_kit.watermark_text
        values["watermark"] = _watermark_placement(position, overrides, template)

    show_made_with = overrides.show_made_with if overrides.show_made_with is not None else not options.paid_plan
    if show_made_with:
        m = overrides.made_with
        custom = overrides.made_with_text if options.paid_plan else None
        values["made_with_text"] = custom or options.made_with_text
        values["made_with"] = ChromePlacement(
            kind="made_with",
            left=m.get("x"),
            top=m.get("y"),
            bottom=None if "y" in m else m.get("bottom"),
            center="x" not in m,
            font_size=m.get("fontSize", MADE_WITH_FONT),
        )

    if chrome.show_swipe and slide_index < total_slides:
        values["swipe_type"] = chrome.swipe_type
        if chrome.swipe_position == "bottom_right":
            values["swipe"] = ChromePlacement(kind="swipe", bottom=SWIPE_BOTTOM, right=WATERMARK_INSET,
                                              font_size=SWIPE_FONT)
        else:
            values["swipe"] = ChromePlacement(kind="swipe", bottom=SWIPE_BOTTOM, center=True, font_size=SWIPE_FONT)

    return ResolvedChrome(**values)


def placeholder_model(slide_index: int = 1, total_slides: int = 1, text_scale: float = 1.0) -> RenderModel:
    """What a slide without a usable template renders as."""
    block = TextBlock(
        zone_id="placeholder",
        rect=Rect(80, 440, DESIGN_SIZE - 160, 200),
        font_size=40 * text_scale,
        font_weight=600,
        line_height=1.2,
        align="center",
        color="#737373",
        highlight_style="text",
        lines=(TextLine("No template", (TextRun("No template"),)),),
    )
    return RenderModel(
        layout="headline_center",
        background=ResolvedBackground(color=DEFAULT_BACKGROUND),
        text_blocks=(block,),
        chrome=ResolvedChrome(),
        slide_index=slide_index,
        total_slides=total_slides,
        placeholder=True,
    )


def build_render_model(
    template: Optional[TemplateConfig],
    slide: SlideContent,
    brand_kit: BrandKit,
    slide_index: int,
    total_slides: int,
    overrides: Optional[SlideOverrides] = None,
    text_scale: float = 1.0,
    chrome_options: Optional[ChromeOptions] = None,
) -> RenderModel:
    """
    Resolve one slide into a RenderModel.

    Args:
        template: parsed template config; None renders the "no template" placeholder
        slide: text, type and canonical background (image URLs already resolved)
        brand_kit: project brand colors, logo and watermark text
        slide_index: 1-based position in the carousel
        total_slides: carousel length
        overrides: normalized, range-clamped slide overrides
        text_scale: font multiplier for taller frames (FrameMapping.text_scale)
        chrome_options: plan-dependent attribution settings
    """
    if template is None:
        return placeholder_model(slide_index, total_slides, text_scale)

    overrides = overrides or SlideOverrides()
    chrome_options = chrome_options or ChromeOptions()

    background = resolve_background(template, slide.background, brand_kit, slide.slide_type)
    overlay_text = slide.background.overlay.text_color
    text_color = overlay_text or contrasting_text_color(background.effective_color)

    blocks = []
    for zone in template.text_zones:
        if zone.id not in ZONE_IDS:
            continue
        if zone.id == "headline":
            text = slide.headline or ""
        else:
            if not slide.body or not slide.body.strip():
                continue
            text = slide.body
        blocks.append(_text_block(zone, text, overrides, text_scale, text_color))

    chrome = resolve_chrome(template, brand_kit, slide_index, total_slides, overrides, chrome_options, text_color)
    return RenderModel(
        layout=template.layout,
        background=background,
        text_blocks=tuple(blocks),
        chrome=chrome,
        slide_index=slide_index,
        total_slides=total_slides,
    )
