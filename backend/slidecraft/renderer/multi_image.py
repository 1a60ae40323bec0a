"""
Image layout engine.

Arranges the background images of one slide in the 1080x1080 design space:

- single image, full bleed or inside a shaped frame
- 2-4 images side-by-side, stacked or in a 2x2 grid, with gap or divider
- zigzag / diagonal split for exactly two side-by-side images
- overlay circles: first image full bleed, 1-2 more as bordered circles
- hook slides: secondary image as a circle in the bottom-right corner

Output is plain geometry (rects, clip polygons, divider paths in a
normalized 0-100 space). Surfaces only translate it into paint calls.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from slidecraft.renderer.colors import is_css_color
from slidecraft.renderer.geometry import DESIGN_SIZE, Rect

FRAME_WIDTHS = {"none": 0, "thin": 2, "medium": 5, "thick": 10, "chunky": 16, "heavy": 20}

POSITION_TO_CSS = {
    "center": "center center",
    "top": "center top",
    "bottom": "center bottom",
    "left": "left center",
    "right": "right center",
    "top-left": "left top",
    "top-right": "right top",
    "bottom-left": "left bottom",
    "bottom-right": "right bottom",
}

FRAME_SHAPES = ("rect", "squircle", "circle", "pill", "diamond", "hexagon")
LAYOUTS = ("auto", "side-by-side", "stacked", "grid", "overlay-circles")
DIVIDER_STYLES = ("gap", "line", "zigzag", "diagonal", "wave", "dashed", "scalloped")
LEGACY_DIVIDERS = {"dotted": "dashed", "double": "scalloped", "triple": "scalloped"}

# Normalized (0-100) clip polygons
SHAPE_CLIPS = {
    "diamond": ((50, 0), (100, 50), (50, 100), (0, 50)),
    "hexagon": ((50, 0), (100, 25), (100, 75), (50, 100), (0, 75), (0, 25)),
}
ZIGZAG_LEFT = ((0, 0), (50, 0), (35, 25), (65, 50), (35, 75), (50, 100), (0, 100))
ZIGZAG_RIGHT = ((50, 0), (100, 0), (100, 100), (50, 100), (35, 75), (65, 50), (35, 25))
DIAGONAL_TOP = ((0, 0), (100, 0), (0, 100))
DIAGONAL_BOTTOM = ((100, 0), (100, 100), (0, 100))

# Divider stroke paths: ("M"|"L", x, y) or ("Q", cx, cy, x, y), normalized 0-100
DIVIDER_PATHS = {
    ("scalloped", True): (("M", 50, 0), ("Q", 10, 12.5, 50, 25), ("Q", 90, 37.5, 50, 50),
                          ("Q", 10, 62.5, 50, 75), ("Q", 90, 87.5, 50, 100)),
    ("scalloped", False): (("M", 0, 50), ("Q", 12.5, 90, 25, 50), ("Q", 37.5, 10, 50, 50),
                           ("Q", 62.5, 90, 75, 50), ("Q", 87.5, 10, 100, 50)),
    ("wave", True): (("M", 50, 0), ("Q", 90, 25, 50, 50), ("Q", 10, 75, 50, 100)),
    ("wave", False): (("M", 0, 50), ("Q", 25, 10, 50, 50), ("Q", 75, 90, 100, 50)),
    ("zigzag", True): (("M", 50, 0), ("L", 10, 25), ("L", 90, 50), ("L", 10, 75), ("L", 50, 100)),
    ("zigzag", False): (("M", 0, 50), ("L", 25, 10), ("L", 50, 90), ("L", 75, 10), ("L", 100, 50)),
    ("dashed", True): (("M", 50, 0), ("L", 50, 100)),
    ("dashed", False): (("M", 0, 50), ("L", 100, 50)),
}
ZIGZAG_SEAM = (("M", 50, 0), ("L", 35, 25), ("L", 65, 50), ("L", 35, 75), ("L", 50, 100))
DASH_PATTERN = (12, 8)

# Hook slide secondary image
HOOK_CIRCLE_SIZE = 200
HOOK_CIRCLE_BORDER = 14
HOOK_CIRCLE_INSET = 56
CIRCLE_BORDER_COLOR = "rgba(255,255,255,0.95)"

OVERLAY_CIRCLE_INSET = 56
OVERLAY_CIRCLE_PAIR_GAP = 24
FRAMED_INSET = 16


@dataclass(frozen=True)
class ImageDisplay:
    position: str = "center"
    fit: str = "cover"
    frame: str = "none"
    frame_radius: float = 0
    frame_color: str = "#ffffff"
    frame_shape: str = "squircle"
    layout: str = "auto"
    gap: float = 8
    divider_style: str = "wave"
    divider_color: str = "#ffffff"
    divider_width: float = 8
    circle_size: float = 280
    circle_border: float = 12
    circle_border_color: str = CIRCLE_BORDER_COLOR
    circle_x: float = 0
    circle_y: float = 0

    @property
    def frame_width(self) -> float:
        return FRAME_WIDTHS.get(self.frame, 0)

    @property
    def object_position(self) -> str:
        return POSITION_TO_CSS.get(self.position, "center center")

    @classmethod
    def from_options(cls, options, multi: bool, bordered: bool = False) -> "ImageDisplay":
        """Display options from stored `image_display` JSON, with per-mode defaults."""
        opts = dict(options or ())
        divider = opts.get("dividerStyle")
        divider = LEGACY_DIVIDERS.get(divider, divider)
        if divider not in DIVIDER_STYLES:
            divider = "wave" if multi else "gap"

        if multi:
            frame = opts.get("frame") or "none"
            radius_default = 0
            frame_color_default = "#ffffff"
        else:
            frame = opts.get("frame") or ("medium" if bordered else "none")
            radius_default = 24 if FRAME_WIDTHS.get(frame, 0) > 0 else 0
            frame_color_default = "rgba(255,255,255,0.9)"

        layout = opts.get("layout")
        fit = opts.get("fit")
        return cls(
            position=opts.get("position") if opts.get("position") in POSITION_TO_CSS else "center",
            fit=fit if fit in ("cover", "contain") else "cover",
            frame=frame if frame in FRAME_WIDTHS else "none",
            frame_radius=_num(opts.get("frameRadius"), radius_default),
            frame_color=_color(opts.get("frameColor"), frame_color_default),
            frame_shape=opts.get("frameShape") if opts.get("frameShape") in FRAME_SHAPES else "squircle",
            layout=layout if layout in LAYOUTS else "auto",
            gap=_num(opts.get("gap"), 8 if multi else 12),
            divider_style=divider,
            divider_color=_color(opts.get("dividerColor"), "#ffffff"),
            divider_width=_num(opts.get("dividerWidth"), 8 if multi else 4),
            circle_size=_num(opts.get("overlayCircleSize"), 280),
            circle_border=_num(opts.get("overlayCircleBorderWidth"), 12),
            circle_border_color=_color(opts.get("overlayCircleBorderColor"), CIRCLE_BORDER_COLOR),
            circle_x=_num(opts.get("overlayCircleX"), 0),
            circle_y=_num(opts.get("overlayCircleY"), 0),
        )


def _color(value, default: str) -> str:
    return value if is_css_color(value) else default


def _num(value, default: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class ImageCell:
    rect: Rect
    image_index: int
    shape: str = "rect"  # rect | squircle | circle | pill | diamond | hexagon
    radius: float = 0
    border_width: float = 0
    border_color: Optional[str] = None
    shadow: bool = False
    clip: Optional[Tuple[Tuple[float, float], ...]] = None  # percent of rect


@dataclass(frozen=True)
class DividerStroke:
    rect: Rect
    vertical: bool
    style: str
    color: str
    stroke_units: float
    path: Tuple[tuple, ...] = ()
    dash: Optional[Tuple[int, int]] = None
    linecap: str = "butt"


@dataclass(frozen=True)
class DiagonalSeam:
    rect: Rect
    color: str
    half_width: float


@dataclass(frozen=True)
class ImageLayout:
    family: str
    cells: Tuple[ImageCell, ...]
    dividers: Tuple[DividerStroke, ...] = ()
    container: Optional[Rect] = None
    frame: Optional[ImageCell] = None
    seam: Optional[DividerStroke] = None
    diagonal: Optional[DiagonalSeam] = None


def path_to_svg(path) -> str:
    """Normalized path commands -> SVG path data."""
    parts = []
    for cmd in path:
        parts.append(cmd[0] + " " + " ".join(_fmt(v) for v in cmd[1:]))
    return " ".join(parts)


def _fmt(value: float) -> str:
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return text or "0"


def sample_path(path, steps: int = 12) -> List[Tuple[float, float]]:
    """Points along a normalized path (quadratic curves flattened)."""
    points: List[Tuple[float, float]] = []
    cursor = (0.0, 0.0)
    for cmd in path:
        if cmd[0] in ("M", "L"):
            cursor = (float(cmd[1]), float(cmd[2]))
            points.append(cursor)
        elif cmd[0] == "Q":
            cx, cy, x, y = cmd[1:]
            x0, y0 = cursor
            for i in range(1, steps + 1):
                t = i / steps
                mt = 1 - t
                points.append((
                    mt * mt * x0 + 2 * mt * t * cx + t * t * x,
                    mt * mt * y0 + 2 * mt * t * cy + t * t * y,
                ))
            cursor = (float(x), float(y))
    return points


def resolve_family(count: int, layout: str) -> str:
    if layout == "overlay-circles" and count in (2, 3):
        return "overlay-circles"
    if layout in ("side-by-side", "stacked", "grid"):
        return layout
    return "grid" if count >= 4 else "side-by-side"


def _split(total: float, parts: int, gap: float) -> List[Tuple[float, float]]:
    """(offset, size) of `parts` equal cells across `total`; the last absorbs rounding."""
    size = math.floor((total - gap * (parts - 1)) / parts)
    out = []
    for i in range(parts):
        offset = i * (size + gap)
        out.append((offset, total - offset if i == parts - 1 else size))
    return out


def _cell_style(display: ImageDisplay) -> dict:
    shape = display.frame_shape
    clip = SHAPE_CLIPS.get(shape)
    return {
        "shape": shape,
        "radius": display.frame_radius,
        "border_width": display.frame_width,
        "border_color": display.frame_color if display.frame_width > 0 else None,
        "shadow": display.frame_width > 0,
        "clip": clip,
    }


def _stroke_units(display: ImageDisplay, segment_size: float) -> float:
    return min(25.0, max(8.0, 50 * max(2.0, display.divider_width) / max(1.0, segment_size)))


def _divider(rect: Rect, vertical: bool, display: ImageDisplay) -> DividerStroke:
    style = display.divider_style
    size = rect.w if vertical else rect.h
    return DividerStroke(
        rect=rect,
        vertical=vertical,
        style=style,
        color=display.divider_color,
        stroke_units=_stroke_units(display, size),
        path=DIVIDER_PATHS.get((style, vertical), ()),
        dash=DASH_PATTERN if style == "dashed" else None,
        linecap="round" if style == "scalloped" else ("butt" if style == "wave" else "square"),
    )


def hook_circle_cell(image_index: int) -> ImageCell:
    left = DESIGN_SIZE - HOOK_CIRCLE_INSET - HOOK_CIRCLE_SIZE
    return ImageCell(
        rect=Rect(left, left, HOOK_CIRCLE_SIZE, HOOK_CIRCLE_SIZE),
        image_index=image_index,
        shape="circle",
        border_width=HOOK_CIRCLE_BORDER,
        border_color=CIRCLE_BORDER_COLOR,
        shadow=True,
    )


def layout_single(display: ImageDisplay, with_hook_circle: bool = False) -> ImageLayout:
    if display.frame_width > 0:
        size = DESIGN_SIZE - 2 * FRAMED_INSET
        cell = ImageCell(Rect(FRAMED_INSET, FRAMED_INSET, size, size), 0, **_cell_style(display))
    else:
        cell = ImageCell(Rect(0, 0, DESIGN_SIZE, DESIGN_SIZE), 0)
    cells = (cell, hook_circle_cell(1)) if with_hook_circle else (cell,)
    return ImageLayout(family="single", cells=cells)


def _overlay_circles(count: int, display: ImageDisplay) -> ImageLayout:
    size = display.circle_size
    inset = OVERLAY_CIRCLE_INSET
    travel = DESIGN_SIZE - 2 * inset - size
    top = inset + (100 - display.circle_y) / 100 * travel
    if count == 2:
        positions = [(inset + (100 - display.circle_x) / 100 * travel, top)]
    else:
        gap = OVERLAY_CIRCLE_PAIR_GAP
        pair_travel = DESIGN_SIZE - 2 * inset - 2 * size - gap
        center_x = inset + size + gap / 2 + display.circle_x / 100 * pair_travel
        positions = [(center_x - size - gap / 2, top), (center_x + gap / 2, top)]

    cells = [ImageCell(Rect(0, 0, DESIGN_SIZE, DESIGN_SIZE), 0)]
    for i, (left, circle_top) in enumerate(positions, start=1):
        cells.append(ImageCell(
            rect=Rect(left, circle_top, size, size),
            image_index=i,
            shape="circle",
            border_width=display.circle_border,
            border_color=display.circle_border_color,
            shadow=True,
        ))
    return ImageLayout(family="overlay-circles", cells=tuple(cells))


def layout_images(count: int, display: ImageDisplay) -> ImageLayout:
    """Lay out `count` (2-4) images inside the design square."""
    if count <= 1:
        return layout_single(display)

    family = resolve_family(count, display.layout)
    if family == "overlay-circles":
        return _overlay_circles(count, display)

    pad = FRAMED_INSET if display.frame_width > 0 else display.gap
    inner = DESIGN_SIZE - 2 * pad
    container = Rect(pad, pad, inner, inner)
    style = _cell_style(display)

    creative = count == 2 and family == "side-by-side" and display.divider_style in ("zigzag", "diagonal")
    if creative:
        diagonal = display.divider_style == "diagonal"
        clips = (DIAGONAL_TOP, DIAGONAL_BOTTOM) if diagonal else (ZIGZAG_LEFT, ZIGZAG_RIGHT)
        # The frame wraps the whole split; each image is clipped inside it
        frame = ImageCell(container, -1, **style)
        cells = tuple(ImageCell(container, i, clip=clips[i]) for i in range(2))
        if diagonal:
            return ImageLayout(
                family="diagonal", cells=cells, container=container, frame=frame,
                diagonal=DiagonalSeam(container, display.divider_color, display.divider_width),
            )
        seam = DividerStroke(
            rect=container, vertical=True, style="zigzag", color=display.divider_color,
            stroke_units=max(0.8, display.divider_width / 12), path=ZIGZAG_SEAM, linecap="square",
        )
        return ImageLayout(family="zigzag", cells=cells, container=container, frame=frame, seam=seam)

    visible_dividers = display.divider_style != "gap"
    gap = 0 if visible_dividers else display.gap

    if family == "stacked":
        rows = [[i] for i in range(count)]
    elif family == "grid":
        rows = [list(range(i, min(i + 2, count))) for i in range(0, count, 2)]
    else:
        rows = [list(range(count))]

    cells: List[ImageCell] = []
    row_spans = _split(inner, len(rows), gap)
    for row, (row_off, row_h) in zip(rows, row_spans):
        for index, (col_off, col_w) in zip(row, _split(inner, len(row), gap)):
            cells.append(ImageCell(Rect(pad + col_off, pad + row_off, col_w, row_h), index, **style))

    dividers: List[DividerStroke] = []
    if visible_dividers:
        dw = display.divider_width
        if family == "stacked":
            for cell in cells[:-1]:
                dividers.append(_divider(Rect(pad, cell.rect.bottom + gap / 2 - dw / 2, inner, dw), False, display))
        elif family == "grid":
            first_row = cells[:len(rows[0])]
            # One full-height vertical line when every row shares the same column boundary
            same_boundary = all(len(r) == 2 for r in rows)
            v_height = inner if same_boundary else first_row[0].rect.h
            for cell in first_row[:-1]:
                dividers.append(_divider(
                    Rect(cell.rect.right + gap / 2 - dw / 2, pad, dw, v_height), True, display
                ))
            for row_off, row_h in row_spans[:-1]:
                dividers.append(_divider(Rect(pad, pad + row_off + row_h + gap / 2 - dw / 2, inner, dw),
                                         False, display))
        else:
            for cell in cells[:-1]:
                dividers.append(_divider(Rect(cell.rect.right + gap / 2 - dw / 2, pad, dw, inner), True, display))

    return ImageLayout(family=family, cells=tuple(cells), dividers=tuple(dividers), container=container)
