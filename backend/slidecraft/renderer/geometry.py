"""
Frame geometry shared by the preview and document surfaces.

Every slide is authored in a fixed 1080x1080 design space. Export frames
are 1080x1080, 1080x1350 or 1080x1920. The design is cover-scaled to the
frame height and cropped left/right; text zones are re-mapped into the
visible horizontal band so they are never cropped, and chrome is laid out
against the frame edges and scaled by the frame-height ratio.

Both surfaces take their pixel rectangles from `layout_slide`, so the two
can only disagree in how they paint, never in where things go.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

DESIGN_SIZE = 1080

EXPORT_SIZES = {
    "1080x1080": (1080, 1080),
    "1080x1350": (1080, 1350),
    "1080x1920": (1080, 1920),
}
DEFAULT_EXPORT_SIZE = "1080x1350"


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    w: float
    h: float

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    def scaled(self, factor: float) -> "Rect":
        return Rect(self.x * factor, self.y * factor, self.w * factor, self.h * factor)


@dataclass(frozen=True)
class FrameMapping:
    """How the 1080x1080 design space lands in a frame of frame_w x frame_h pixels."""
    frame_w: int
    frame_h: int

    @classmethod
    def for_size(cls, size: Optional[str]) -> "FrameMapping":
        w, h = EXPORT_SIZES.get(size or DEFAULT_EXPORT_SIZE, EXPORT_SIZES[DEFAULT_EXPORT_SIZE])
        return cls(w, h)

    @property
    def cover_scale(self) -> float:
        return max(self.frame_w, self.frame_h) / DESIGN_SIZE

    @property
    def offset_x(self) -> float:
        return (self.frame_w - DESIGN_SIZE * self.cover_scale) / 2

    @property
    def offset_y(self) -> float:
        return (self.frame_h - DESIGN_SIZE * self.cover_scale) / 2

    @property
    def visible_band(self) -> Tuple[float, float]:
        """Visible horizontal band of the design space as (left, width)."""
        scale = self.cover_scale
        return (-self.offset_x / scale, self.frame_w / scale)

    @property
    def text_scale(self) -> float:
        """Font shrink that keeps wrapped text inside a remapped zone."""
        return self.visible_band[1] / DESIGN_SIZE

    @property
    def chrome_scale(self) -> float:
        return self.frame_h / DESIGN_SIZE

    def design_to_frame(self, rect: Rect) -> Rect:
        """Design-space rect -> frame pixels under cover scaling (may be cropped)."""
        s = self.cover_scale
        return Rect(rect.x * s + self.offset_x, rect.y * s + self.offset_y, rect.w * s, rect.h * s)

    def remap_zone(self, rect: Rect) -> Rect:
        """Squeeze a zone's x/w into the visible band, leaving y/h alone (design space)."""
        left, width = self.visible_band
        ratio = width / DESIGN_SIZE
        return Rect(left + rect.x * ratio, rect.y, rect.w * ratio, rect.h)

    def zone_to_frame(self, rect: Rect) -> Rect:
        """
        Frame pixels of a text zone.

        Equal to design_to_frame(remap_zone(rect)), written out so the
        horizontal terms cancel exactly instead of through float rounding.
        """
        s = self.cover_scale
        kx = self.frame_w / DESIGN_SIZE
        return Rect(rect.x * kx, rect.y * s + self.offset_y, rect.w * kx, rect.h * s)


@dataclass(frozen=True)
class TextBox:
    """A text block placed in frame pixels."""
    zone_id: str
    rect: Rect
    font_size: float


@dataclass(frozen=True)
class ChromeBox:
    """
    A chrome element anchored to frame edges, in frame pixels.

    Unused anchors are None: a counter has top/right, a bottom-left watermark
    has bottom/left, a centered attribution has bottom and center=True.
    """
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
class SlideLayout:
    frame: FrameMapping
    design_box: Rect
    text_boxes: Tuple[TextBox, ...]
    chrome_boxes: Dict[str, ChromeBox]


def _scale_opt(value: Optional[float], factor: float) -> Optional[float]:
    return None if value is None else value * factor


def layout_chrome(chrome, frame: FrameMapping) -> Dict[str, ChromeBox]:
    """Chrome placements (design units, edge-anchored) -> frame pixels."""
    k = frame.chrome_scale
    boxes = {}
    for placement in chrome.placements():
        boxes[placement.kind] = ChromeBox(
            kind=placement.kind,
            top=_scale_opt(placement.top, k),
            right=_scale_opt(placement.right, k),
            bottom=_scale_opt(placement.bottom, k),
            left=_scale_opt(placement.left, k),
            center=placement.center,
            font_size=placement.font_size * k,
            max_w=_scale_opt(placement.max_w, k),
            max_h=_scale_opt(placement.max_h, k),
        )
    return boxes


def layout_slide(model, frame: FrameMapping) -> SlideLayout:
    """Frame-pixel placement of every text block and chrome element of a render model."""
    text_boxes = tuple(
        TextBox(
            zone_id=block.zone_id,
            rect=frame.zone_to_frame(block.rect),
            font_size=block.font_size * frame.cover_scale,
        )
        for block in model.text_blocks
    )
    design_box = frame.design_to_frame(Rect(0, 0, DESIGN_SIZE, DESIGN_SIZE))
    return SlideLayout(
        frame=frame,
        design_box=design_box,
        text_boxes=text_boxes,
        chrome_boxes=layout_chrome(model.chrome, frame),
    )
