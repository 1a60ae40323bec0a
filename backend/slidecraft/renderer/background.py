"""
Slide background descriptor.

Stored backgrounds come in several JSON shapes (color, one image, 2-4
images, a legacy flat list of URLs). `parse_background` sniffs the shape
once and returns one of the canonical variants below; nothing downstream
looks at the raw JSON again.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, Union

from slidecraft.renderer.colors import is_hex_color

MAX_MULTI_IMAGES = 4
MAX_VIDEO_BACKGROUNDS = 5


@dataclass(frozen=True)
class ImageSource:
    """Where a stock photo came from; drives CREDITS.txt."""
    provider: str
    id: str
    author: str = ""
    url: str = ""

    @property
    def key(self) -> str:
        return f"{self.provider}:{self.id}"


@dataclass(frozen=True)
class ImageSlot:
    url: Optional[str] = None
    storage_path: Optional[str] = None
    alternates: Tuple[str, ...] = ()
    source: Optional[ImageSource] = None

    @property
    def has_reference(self) -> bool:
        return bool(self.url or self.storage_path)


@dataclass(frozen=True)
class OverlaySettings:
    """Per-slide overlay choices; None means "use the template's value"."""
    gradient_on: Optional[bool] = None
    strength: Optional[float] = None
    color: Optional[str] = None
    text_color: Optional[str] = None
    direction: Optional[str] = None
    extent: Optional[float] = None
    solid_size: Optional[float] = None


@dataclass(frozen=True)
class ColorBackground:
    color: Optional[str] = None
    overlay: OverlaySettings = field(default_factory=OverlaySettings)


@dataclass(frozen=True)
class SingleImage:
    slot: ImageSlot
    secondary: Optional[ImageSlot] = None
    display: Tuple[Tuple[str, object], ...] = ()
    bordered: bool = False
    color: Optional[str] = None
    overlay: OverlaySettings = field(default_factory=OverlaySettings)


@dataclass(frozen=True)
class MultiImage:
    slots: Tuple[ImageSlot, ...]
    display: Tuple[Tuple[str, object], ...] = ()
    color: Optional[str] = None
    overlay: OverlaySettings = field(default_factory=OverlaySettings)


@dataclass(frozen=True)
class LegacyFlatList:
    """Bare JSON list of URLs or storage paths from early carousels."""
    items: Tuple[str, ...]


Background = Union[ColorBackground, SingleImage, MultiImage]


def _number(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_source(raw) -> Optional[ImageSource]:
    if not isinstance(raw, dict):
        return None
    provider = raw.get("provider")
    source_id = raw.get("id")
    if not provider or source_id is None:
        return None
    return ImageSource(str(provider), str(source_id), str(raw.get("author") or ""), str(raw.get("url") or ""))


def _parse_slot(raw) -> Optional[ImageSlot]:
    if isinstance(raw, str):
        return _slot_from_reference(raw)
    if not isinstance(raw, dict):
        return None
    alternates = tuple(a.strip() for a in raw.get("alternates") or [] if isinstance(a, str) and a.strip())
    slot = ImageSlot(
        url=raw.get("image_url") or None,
        storage_path=raw.get("storage_path") or None,
        alternates=alternates,
        source=_parse_source(raw.get("source")),
    )
    return slot if slot.has_reference else None


def _slot_from_reference(reference: str) -> Optional[ImageSlot]:
    reference = reference.strip()
    if not reference:
        return None
    if reference.lower().startswith(("http://", "https://", "data:")):
        return ImageSlot(url=reference)
    return ImageSlot(storage_path=reference)


def _bounded(value, high: float) -> Optional[float]:
    number = _number(value)
    if number is None:
        return None
    return max(0.0, min(high, number))


def _parse_overlay(raw: dict) -> OverlaySettings:
    overlay = raw.get("overlay") if isinstance(raw.get("overlay"), dict) else {}
    gradient_on = raw.get("gradientOn")
    if gradient_on is None:
        gradient_on = overlay.get("gradient")
    direction = overlay.get("direction")
    return OverlaySettings(
        gradient_on=gradient_on if isinstance(gradient_on, bool) else None,
        strength=_bounded(overlay.get("darken"), 1),
        color=overlay.get("color") if is_hex_color(overlay.get("color")) else None,
        text_color=overlay.get("textColor") if is_hex_color(overlay.get("textColor")) else None,
        direction=direction if direction in ("top", "bottom", "left", "right") else None,
        extent=_bounded(overlay.get("extent"), 100),
        solid_size=_bounded(overlay.get("solidSize"), 100),
    )


def _display(raw: dict) -> Tuple[Tuple[str, object], ...]:
    display = raw.get("image_display")
    if not isinstance(display, dict):
        return ()
    return tuple(sorted((k, v) for k, v in display.items() if v is not None))


def sniff_background(raw) -> Union[ColorBackground, SingleImage, MultiImage, LegacyFlatList]:
    """Classify a stored background JSON value without resolving legacy shapes."""
    if isinstance(raw, list):
        return LegacyFlatList(tuple(item for item in raw if isinstance(item, str) and item.strip()))
    if not isinstance(raw, dict):
        return ColorBackground()

    color = raw.get("color") if is_hex_color(raw.get("color")) else None
    overlay = _parse_overlay(raw)
    if raw.get("mode") != "image":
        return ColorBackground(color=color, overlay=overlay)

    slots = tuple(s for s in (_parse_slot(item) for item in raw.get("images") or []) if s is not None)
    if not slots:
        flat = _parse_slot(raw)
        slots = (flat,) if flat is not None else ()
    if not slots:
        return ColorBackground(color=color, overlay=overlay)

    if len(slots) == 1:
        secondary = None
        if raw.get("secondary_image_url") or raw.get("secondary_storage_path"):
            secondary = ImageSlot(
                url=raw.get("secondary_image_url") or None,
                storage_path=raw.get("secondary_storage_path") or None,
            )
        return SingleImage(
            slot=slots[0],
            secondary=secondary,
            display=_display(raw),
            bordered=bool(raw.get("bordered")),
            color=color,
            overlay=overlay,
        )
    return MultiImage(slots=slots[:MAX_MULTI_IMAGES], display=_display(raw), color=color, overlay=overlay)


def canonicalize(background) -> Background:
    if isinstance(background, LegacyFlatList):
        slots = tuple(s for s in (_slot_from_reference(item) for item in background.items) if s is not None)
        if not slots:
            return ColorBackground()
        if len(slots) == 1:
            return SingleImage(slot=slots[0])
        return MultiImage(slots=slots[:MAX_MULTI_IMAGES])
    return background


def parse_background(raw) -> Background:
    """Stored background JSON -> canonical ColorBackground | SingleImage | MultiImage."""
    return canonicalize(sniff_background(raw))


def with_slots(background: Background, slots, secondary: Optional[ImageSlot] = None) -> Background:
    """
    Rebuild an image background from a (possibly shorter) list of slots.

    Used after URL resolution drops images that failed: one remaining slot
    becomes a SingleImage, none falls back to the color background.
    """
    if isinstance(background, ColorBackground):
        return background
    slots = tuple(slots)
    if not slots:
        return ColorBackground(color=background.color, overlay=background.overlay)
    if len(slots) == 1:
        if isinstance(background, SingleImage):
            return replace(background, slot=slots[0], secondary=secondary)
        return SingleImage(slot=slots[0], display=background.display, color=background.color,
                           overlay=background.overlay)
    display = background.display
    return MultiImage(slots=slots[:MAX_MULTI_IMAGES], display=display, color=background.color,
                      overlay=background.overlay)


def image_slots(background: Background) -> Tuple[ImageSlot, ...]:
    if isinstance(background, SingleImage):
        return (background.slot,)
    if isinstance(background, MultiImage):
        return background.slots
    return ()


def image_urls(background: Background) -> Tuple[str, ...]:
    return tuple(slot.url for slot in image_slots(background) if slot.url)


def resolve_video_background_urls(background: Background) -> Tuple[str, ...]:
    """
    Background images a video cycles through for one slide.

    One slot: its image plus its http(s) alternates. Two or more slots: one
    image per slot. Capped at MAX_VIDEO_BACKGROUNDS.
    """
    slots = image_slots(background)
    urls = []
    if len(slots) == 1:
        slot = slots[0]
        if slot.url:
            urls.append(slot.url)
            for alt in slot.alternates:
                if len(urls) >= MAX_VIDEO_BACKGROUNDS:
                    break
                if alt.lower().startswith(("http://", "https://")):
                    urls.append(alt)
    else:
        for slot in slots:
            if len(urls) >= MAX_VIDEO_BACKGROUNDS:
                break
            if slot.url:
                urls.append(slot.url)
    return tuple(urls)


def image_sources(background: Background) -> Tuple[ImageSource, ...]:
    return tuple(slot.source for slot in image_slots(background) if slot.source is not None)
