"""
Interactive preview surface.

`render_preview` maps a RenderModel onto a display box of any width as a
layered tree (design layer, overlay layer, text layer, chrome layer) in
display pixels. Positions come from `layout_slide`; the preview only
multiplies them by the display scale, so a 1080 px wide preview box has
exactly the export document's coordinates.

`PreviewSession` keeps the editor's override state and rebuilds the model
and tree from scratch on every change. `paint_preview` rasterizes a tree
with Pillow for thumbnails.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from PIL import Image, ImageDraw, ImageFilter, ImageFont, ImageOps

from slidecraft.renderer.colors import DARK_TEXT, hex_to_rgb, is_hex_color, parse_rgba
from slidecraft.renderer.geometry import FrameMapping, Rect, layout_slide
from slidecraft.renderer.gradient import GradientStop, alpha_at
from slidecraft.renderer.inline_format import TextRun
from slidecraft.renderer.multi_image import DASH_PATTERN, sample_path
from slidecraft.renderer.overrides import merge_overrides, resolve_slide_overrides
from slidecraft.renderer.render_model import (
    BLUR_RADIUS,
    BrandKit,
    ChromeOptions,
    RenderModel,
    SlideContent,
    build_render_model,
)
from slidecraft.renderer.template_schema import TemplateConfig

logger = logging.getLogger(__name__)

PLACEHOLDER_FILL = (38, 38, 38, 255)
POSITION_CENTERING = {
    "center": (0.5, 0.5),
    "top": (0.5, 0.0),
    "bottom": (0.5, 1.0),
    "left": (0.0, 0.5),
    "right": (1.0, 0.5),
    "top-left": (0.0, 0.0),
    "top-right": (1.0, 0.0),
    "bottom-left": (0.0, 1.0),
    "bottom-right": (1.0, 1.0),
}


# ============================================
# PREVIEW TREE
# ============================================

@dataclass(frozen=True)
class ImageNode:
    rect: Rect
    url: Optional[str]
    shape: str = "rect"
    radius: float = 0
    border_width: float = 0
    border_color: Optional[str] = None
    clip: Optional[Tuple[Tuple[float, float], ...]] = None
    fit: str = "cover"
    position: str = "center"
    blur: float = 0


@dataclass(frozen=True)
class StrokeNode:
    """A divider or seam: path in 0-100 units stretched over `rect`."""
    rect: Rect
    path: Tuple[tuple, ...]
    color: str
    width: float
    dash: Optional[Tuple[int, int]] = None


@dataclass(frozen=True)
class DesignLayer:
    rect: Rect
    color: str
    images: Tuple[ImageNode, ...] = ()
    strokes: Tuple[StrokeNode, ...] = ()


@dataclass(frozen=True)
class OverlayLayer:
    direction: str
    color: str
    strength: float
    stops: Tuple[GradientStop, ...]
    vignette: Optional[float] = None


@dataclass(frozen=True)
class TextNode:
    zone_id: str
    rect: Rect
    font_size: float
    font_weight: int
    line_height: float
    align: str
    color: str
    highlight_style: str
    lines: Tuple[Tuple[TextRun, ...], ...]


@dataclass(frozen=True)
class ChromeNode:
    kind: str
    text: Optional[str]
    logo_url: Optional[str]
    color: str
    font_size: float
    top: Optional[float] = None
    right: Optional[float] = None
    bottom: Optional[float] = None
    left: Optional[float] = None
    center: bool = False
    max_w: Optional[float] = None
    max_h: Optional[float] = None


@dataclass(frozen=True)
class PreviewTree:
    width: float
    height: float
    scale: float  # display px per frame px
    design: DesignLayer
    overlay: Optional[OverlayLayer]
    text: Tuple[TextNode, ...]
    chrome: Tuple[ChromeNode, ...]


def _scaled(value: Optional[float], factor: float) -> Optional[float]:
    return None if value is None else value * factor


def _design_layer(model: RenderModel, frame: FrameMapping, scale: float) -> DesignLayer:
    bg = model.background
    design_box = frame.design_to_frame(Rect(0, 0, 1080, 1080)).scaled(scale)
    if bg.image_layout is None:
        return DesignLayer(rect=design_box, color=bg.color)

    unit = frame.cover_scale * scale
    display = bg.display
    blur = BLUR_RADIUS * unit if bg.blur else 0

    images = []
    cells = bg.image_layout.cells
    if bg.image_layout.frame is not None:
        frame_cell = bg.image_layout.frame
        images.append(ImageNode(
            rect=frame.design_to_frame(frame_cell.rect).scaled(scale),
            url=None,
            shape=frame_cell.shape,
            radius=frame_cell.radius * unit,
            border_width=frame_cell.border_width * unit,
            border_color=frame_cell.border_color,
            clip=frame_cell.clip,
        ))
    for cell in cells:
        images.append(ImageNode(
            rect=frame.design_to_frame(cell.rect).scaled(scale),
            url=bg.cell_url(cell.image_index),
            shape=cell.shape,
            radius=cell.radius * unit,
            border_width=cell.border_width * unit,
            border_color=cell.border_color,
            clip=cell.clip,
            fit=display.fit if display else "cover",
            position=display.position if display else "center",
            blur=blur if cell.image_index == 0 else 0,
        ))

    strokes = []
    layout = bg.image_layout
    for divider in layout.dividers:
        rect = frame.design_to_frame(divider.rect).scaled(scale)
        if divider.style == "line" or not divider.path:
            strokes.append(StrokeNode(rect=rect, path=(), color=divider.color, width=0))
            continue
        thickness = rect.w if divider.vertical else rect.h
        strokes.append(StrokeNode(rect=rect, path=divider.path, color=divider.color,
                                  width=max(1.0, thickness * divider.stroke_units / 100), dash=divider.dash))
    if layout.seam is not None:
        rect = frame.design_to_frame(layout.seam.rect).scaled(scale)
        strokes.append(StrokeNode(rect=rect, path=layout.seam.path, color=layout.seam.color,
                                  width=max(1.0, rect.w * layout.seam.stroke_units / 100)))
    if layout.diagonal is not None:
        rect = frame.design_to_frame(layout.diagonal.rect).scaled(scale)
        strokes.append(StrokeNode(rect=rect, path=(("M", 100, 0), ("L", 0, 100)), color=layout.diagonal.color,
                                  width=2 * layout.diagonal.half_width * unit))

    return DesignLayer(rect=design_box, color=bg.color, images=tuple(images), strokes=tuple(strokes))


def render_preview(model: RenderModel, frame: FrameMapping, box_width: float,
                   mode: str = "full") -> PreviewTree:
    """
    Lay a render model out in a display box `box_width` pixels wide.

    The box height follows the frame aspect ratio. `mode` mirrors the
    export variants: "overlay" drops the design layer, "background"
    drops everything but it.
    """
    scale = box_width / frame.frame_w
    layout = layout_slide(model, frame)
    bg = model.background

    design = _design_layer(model, frame, scale)
    if mode == "overlay":
        design = DesignLayer(rect=design.rect, color="transparent")

    overlay = None
    if mode != "background" and bg.gradient_on and bg.gradient_stops:
        overlay = OverlayLayer(
            direction=bg.gradient_direction,
            color=bg.gradient_color,
            strength=bg.gradient_strength,
            stops=bg.gradient_stops,
            vignette=bg.vignette_strength,
        )

    text_nodes = ()
    chrome_nodes = ()
    if mode != "background":
        blocks = {block.zone_id: block for block in model.text_blocks}
        text_nodes = tuple(
            TextNode(
                zone_id=box.zone_id,
                rect=box.rect.scaled(scale),
                font_size=box.font_size * scale,
                font_weight=blocks[box.zone_id].font_weight,
                line_height=blocks[box.zone_id].line_height,
                align=blocks[box.zone_id].align,
                color=blocks[box.zone_id].color,
                highlight_style=blocks[box.zone_id].highlight_style,
                lines=tuple(line.runs for line in blocks[box.zone_id].lines),
            )
            for box in layout.text_boxes
        )
        chrome = model.chrome
        texts = {
            "counter": chrome.counter_text,
            "watermark": chrome.watermark_text,
            "made_with": chrome.made_with_text,
            "swipe": chrome.swipe_text,
        }
        chrome_nodes = tuple(
            ChromeNode(
                kind=kind,
                text=texts.get(kind),
                logo_url=chrome.watermark_logo_url if kind == "watermark" else None,
                color=chrome.color,
                font_size=box.font_size * scale,
                top=_scaled(box.top, scale),
                right=_scaled(box.right, scale),
                bottom=_scaled(box.bottom, scale),
                left=_scaled(box.left, scale),
                center=box.center,
                max_w=_scaled(box.max_w, scale),
                max_h=_scaled(box.max_h, scale),
            )
            for kind, box in layout.chrome_boxes.items()
        )

    return PreviewTree(
        width=box_width,
        height=frame.frame_h * scale,
        scale=scale,
        design=design,
        overlay=overlay,
        text=text_nodes,
        chrome=chrome_nodes,
    )


# ============================================
# EDITOR SESSION
# ============================================

@dataclass
class PreviewSession:
    """
    Live editor state for one slide.

    Every change recomputes the whole render model and tree; nothing is
    patched in place.
    """
    template: Optional[TemplateConfig]
    slide: SlideContent
    brand_kit: BrandKit = field(default_factory=BrandKit)
    slide_index: int = 1
    total_slides: int = 1
    template_defaults: Mapping = field(default_factory=dict)
    slide_meta: Mapping = field(default_factory=dict)
    ui_overrides: dict = field(default_factory=dict)
    size: str = "1080x1350"
    box_width: float = 540
    chrome_options: ChromeOptions = field(default_factory=ChromeOptions)

    @property
    def frame(self) -> FrameMapping:
        return FrameMapping.for_size(self.size)

    def model(self) -> RenderModel:
        overrides = resolve_slide_overrides(self.template_defaults, self.slide_meta, self.ui_overrides)
        return build_render_model(
            self.template,
            self.slide,
            self.brand_kit,
            self.slide_index,
            self.total_slides,
            overrides=overrides,
            text_scale=self.frame.text_scale,
            chrome_options=self.chrome_options,
        )

    def render(self) -> PreviewTree:
        return render_preview(self.model(), self.frame, self.box_width)

    def update(self, **changes) -> PreviewTree:
        """Merge editor changes into the UI override tier and re-render."""
        self.ui_overrides = merge_overrides(self.ui_overrides, changes)
        return self.render()

    def resize(self, size: Optional[str] = None, box_width: Optional[float] = None) -> PreviewTree:
        if size is not None:
            self.size = size
        if box_width is not None:
            self.box_width = box_width
        return self.render()


# ============================================
# PILLOW PAINTER
# ============================================

class FontBook:
    """Montserrat weights from a font directory, falling back to Pillow's default font."""

    FONT_FILES = {
        400: "Montserrat-Regular.ttf",
        500: "Montserrat-Medium.ttf",
        600: "Montserrat-SemiBold.ttf",
        700: "Montserrat-Bold.ttf",
        800: "Montserrat-ExtraBold.ttf",
        900: "Montserrat-Black.ttf",
    }

    def __init__(self, font_dir: Optional[str] = None):
        self.font_dir = Path(font_dir) if font_dir else None
        self._cache: Dict[Tuple[int, int], ImageFont.ImageFont] = {}

    def _path(self, weight: int) -> Optional[Path]:
        if self.font_dir is None:
            return None
        nearest = min(self.FONT_FILES, key=lambda w: abs(w - weight))
        path = self.font_dir / "Montserrat" / self.FONT_FILES[nearest]
        return path if path.exists() else None

    def get(self, weight: int, size: float):
        key = (int(weight), max(1, int(round(size))))
        if key not in self._cache:
            path = self._path(key[0])
            if path is not None:
                self._cache[key] = ImageFont.truetype(str(path), key[1])
            else:
                self._cache[key] = ImageFont.load_default(size=key[1])
        return self._cache[key]


def _rgba(color: Optional[str], alpha: int = 255) -> Tuple[int, int, int, int]:
    if color and is_hex_color(color):
        return (*hex_to_rgb(color), alpha)
    rgba = parse_rgba(color)
    if rgba is not None:
        r, g, b, a = rgba
        return (r, g, b, int(round(a * 255)))
    return (255, 255, 255, alpha)


def _box(rect: Rect) -> Tuple[int, int, int, int]:
    return (int(round(rect.x)), int(round(rect.y)), int(round(rect.right)), int(round(rect.bottom)))


def _shape_mask(size: Tuple[int, int], node: ImageNode) -> Image.Image:
    w, h = size
    mask = Image.new("L", size, 0)
    draw = ImageDraw.Draw(mask)
    if node.clip:
        draw.polygon([(x * w / 100, y * h / 100) for x, y in node.clip], fill=255)
    elif node.shape == "circle":
        draw.ellipse((0, 0, w - 1, h - 1), fill=255)
    elif node.shape == "pill":
        draw.rounded_rectangle((0, 0, w - 1, h - 1), radius=min(w, h) / 2, fill=255)
    elif node.radius > 0:
        draw.rounded_rectangle((0, 0, w - 1, h - 1), radius=node.radius, fill=255)
    else:
        draw.rectangle((0, 0, w, h), fill=255)
    return mask


def _fit_image(source: Image.Image, size: Tuple[int, int], node: ImageNode, fill) -> Image.Image:
    centering = POSITION_CENTERING.get(node.position, (0.5, 0.5))
    source = source.convert("RGBA")
    if node.fit == "contain":
        fitted = ImageOps.contain(source, size)
        canvas = Image.new("RGBA", size, fill)
        offset = (int((size[0] - fitted.width) * centering[0]), int((size[1] - fitted.height) * centering[1]))
        canvas.paste(fitted, offset, fitted)
        fitted = canvas
    else:
        fitted = ImageOps.fit(source, size, centering=centering)
    if node.blur:
        fitted = fitted.filter(ImageFilter.GaussianBlur(node.blur))
    return fitted


def _paint_image(canvas: Image.Image, node: ImageNode, images: Mapping[str, Image.Image], background):
    x0, y0, x1, y1 = _box(node.rect)
    size = (max(1, x1 - x0), max(1, y1 - y0))
    mask = _shape_mask(size, node)
    if node.url is None:
        tile = Image.new("RGBA", size, _rgba(node.border_color) if node.border_color else background)
    elif node.url in images:
        tile = _fit_image(images[node.url], size, node, background)
    else:
        tile = Image.new("RGBA", size, PLACEHOLDER_FILL)
    canvas.paste(tile, (x0, y0), mask)
    if node.border_width > 0 and node.border_color and node.url is not None:
        draw = ImageDraw.Draw(canvas)
        width = max(1, int(round(node.border_width)))
        outline = _rgba(node.border_color)
        if node.shape == "circle":
            draw.ellipse((x0, y0, x1 - 1, y1 - 1), outline=outline, width=width)
        elif node.clip:
            points = [(x0 + x * size[0] / 100, y0 + y * size[1] / 100) for x, y in node.clip]
            draw.line(points + points[:1], fill=outline, width=width)
        else:
            draw.rounded_rectangle((x0, y0, x1 - 1, y1 - 1), radius=node.radius, outline=outline, width=width)


def _dashed(draw: ImageDraw.ImageDraw, points, fill, width: int):
    on, off = DASH_PATTERN
    for (ax, ay), (bx, by) in zip(points, points[1:]):
        length = ((bx - ax) ** 2 + (by - ay) ** 2) ** 0.5
        if length == 0:
            continue
        pos = 0.0
        while pos < length:
            end = min(length, pos + on * width / 4)
            draw.line([(ax + (bx - ax) * pos / length, ay + (by - ay) * pos / length),
                       (ax + (bx - ax) * end / length, ay + (by - ay) * end / length)], fill=fill, width=width)
            pos = end + off * width / 4


def _paint_stroke(canvas: Image.Image, node: StrokeNode):
    draw = ImageDraw.Draw(canvas)
    fill = _rgba(node.color)
    if not node.path:
        draw.rectangle(_box(node.rect), fill=fill)
        return
    rect = node.rect
    points = [(rect.x + x * rect.w / 100, rect.y + y * rect.h / 100) for x, y in sample_path(node.path)]
    width = max(1, int(round(node.width)))
    if node.dash:
        _dashed(draw, points, fill, width)
    else:
        draw.line(points, fill=fill, width=width, joint="curve")


def _gradient_mask(size: Tuple[int, int], overlay: OverlayLayer) -> Image.Image:
    w, h = size
    vertical = overlay.direction in ("top", "bottom")
    steps = h if vertical else w
    values = []
    for i in range(steps):
        pos = 100 * (i + 0.5) / steps
        # The dark edge is 100%
        along = pos if overlay.direction in ("bottom", "right") else 100 - pos
        values.append(int(round(255 * overlay.strength * alpha_at(overlay.stops, along))))
    strip = Image.new("L", (1, steps) if vertical else (steps, 1))
    strip.putdata(values)
    return strip.resize(size)


def _vignette_mask(size: Tuple[int, int], strength: float) -> Image.Image:
    radial = Image.radial_gradient("L").resize(size)
    return radial.point(lambda v: 0 if v < 140 else int(round((v - 140) / 115 * 255 * strength)))


def _run_font(fonts: FontBook, node: TextNode, run: TextRun):
    weight = max(node.font_weight, 800) if run.kind == "bold" else node.font_weight
    return fonts.get(weight, node.font_size)


def _paint_text(canvas: Image.Image, node: TextNode, fonts: FontBook):
    draw = ImageDraw.Draw(canvas)
    step = node.font_size * node.line_height
    y = node.rect.y
    for runs in node.lines:
        widths = [draw.textlength(run.text, font=_run_font(fonts, node, run)) for run in runs]
        x = node.rect.x
        if node.align == "center":
            x += (node.rect.w - sum(widths)) / 2
        baseline_pad = (step - node.font_size) / 2
        for run, width in zip(runs, widths):
            font = _run_font(fonts, node, run)
            color = node.color
            if run.kind == "color" and node.highlight_style == "background":
                pad = node.font_size * 0.12
                draw.rounded_rectangle((x - pad, y, x + width + pad, y + step), radius=pad, fill=_rgba(run.color))
                color = DARK_TEXT
            elif run.kind == "color":
                color = run.color
            draw.text((x, y + baseline_pad), run.text, font=font, fill=_rgba(color))
            x += width
        y += step


def _paint_chrome(canvas: Image.Image, node: ChromeNode, images: Mapping[str, Image.Image], fonts: FontBook):
    draw = ImageDraw.Draw(canvas)
    if node.logo_url:
        logo = images.get(node.logo_url)
        if logo is None:
            return
        logo = logo.convert("RGBA")
        logo.thumbnail((int(node.max_w or logo.width), int(node.max_h or logo.height)))
        w, h = logo.size
        text_w = None
    else:
        font = fonts.get(600, node.font_size)
        text_w = draw.textlength(node.text or "", font=font)
        w, h = text_w, node.font_size

    cw, ch = canvas.size
    if node.center:
        x = (cw - w) / 2
    elif node.left is not None:
        x = node.left
    else:
        x = cw - (node.right or 0) - w
    if node.top is not None:
        y = node.top
    else:
        y = ch - (node.bottom or 0) - h

    if text_w is None:
        canvas.paste(logo, (int(round(x)), int(round(y))), logo)
    else:
        draw.text((x, y), node.text or "", font=fonts.get(600, node.font_size), fill=_rgba(node.color, 230))


def paint_preview(tree: PreviewTree, images: Optional[Mapping[str, Image.Image]] = None,
                  fonts: Optional[FontBook] = None) -> Image.Image:
    """
    Rasterize a preview tree into an RGBA image of the tree's display size.

    `images` maps URLs to already-decoded images; URLs that are missing
    (still loading, failed) paint as a flat placeholder.
    """
    images = images or {}
    fonts = fonts or FontBook()
    size = (max(1, int(round(tree.width))), max(1, int(round(tree.height))))

    transparent = tree.design.color == "transparent"
    background = (0, 0, 0, 0) if transparent else _rgba(tree.design.color)
    canvas = Image.new("RGBA", size, background)

    for node in tree.design.images:
        _paint_image(canvas, node, images, background)
    for stroke in tree.design.strokes:
        _paint_stroke(canvas, stroke)

    if tree.overlay is not None:
        color_layer = Image.new("RGBA", size, _rgba(tree.overlay.color))
        canvas = Image.alpha_composite(canvas, _with_alpha(color_layer, _gradient_mask(size, tree.overlay)))
        if tree.overlay.vignette:
            black = Image.new("RGBA", size, (0, 0, 0, 255))
            canvas = Image.alpha_composite(canvas, _with_alpha(black, _vignette_mask(size, tree.overlay.vignette)))

    for node in tree.text:
        _paint_text(canvas, node, fonts)
    for node in tree.chrome:
        _paint_chrome(canvas, node, images, fonts)

    logger.debug("Painted preview %sx%s (%d images, %d text blocks)", size[0], size[1],
                 len(tree.design.images), len(tree.text))
    return canvas


def _with_alpha(layer: Image.Image, mask: Image.Image) -> Image.Image:
    layer = layer.copy()
    layer.putalpha(mask)
    return layer
