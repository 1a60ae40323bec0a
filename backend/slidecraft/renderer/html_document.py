"""
Static slide document generator.

Turns a RenderModel into one self-contained HTML document sized exactly
to the export frame: every style inline or in the document's own <style>,
every piece of text escaped, images as <img> elements so the capture step
can wait for them to decode.

Modes:
    full        background, images, gradient, text, chrome
    overlay     transparent page with gradient, text and chrome only
    background  background and images only (video background layers)
"""

import html
from typing import List

from slidecraft.renderer.colors import DARK_TEXT
from slidecraft.renderer.geometry import ChromeBox, FrameMapping, Rect, TextBox, layout_slide
from slidecraft.renderer.gradient import css_linear_gradient, css_vignette
from slidecraft.renderer.inline_format import TextRun
from slidecraft.renderer.multi_image import ImageCell, ImageLayout, path_to_svg
from slidecraft.renderer.render_model import BLUR_RADIUS, RenderModel, TextBlock

MODES = ("full", "overlay", "background")
FONT_STACK = "'Montserrat', 'Inter', 'Helvetica Neue', Arial, sans-serif"


def css_px(value: float) -> str:
    """Pixel length as written into the document (4 decimals, trailing zeros stripped)."""
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    if text in ("", "-0"):
        text = "0"
    return f"{text}px"


def _rect_style(rect: Rect) -> str:
    return f"left:{css_px(rect.x)};top:{css_px(rect.y)};width:{css_px(rect.w)};height:{css_px(rect.h)}"


def _clip_path(points) -> str:
    return "polygon(" + ", ".join(f"{x}% {y}%" for x, y in points) + ")"


def _esc(value: str) -> str:
    return html.escape(value, quote=True)


# ============================================
# DESIGN LAYER
# ============================================

def _cell_html(cell: ImageCell, url, frame: FrameMapping, model: RenderModel) -> str:
    unit = frame.cover_scale
    styles = [_rect_style(frame.design_to_frame(cell.rect)), "position:absolute", "overflow:hidden"]
    if cell.clip:
        styles.append(f"clip-path:{_clip_path(cell.clip)}")
    elif cell.shape in ("circle", "pill"):
        styles.append("border-radius:9999px")
    elif cell.radius:
        styles.append(f"border-radius:{css_px(cell.radius * unit)}")
    if cell.border_width and cell.border_color:
        styles.append(f"border:{css_px(cell.border_width * unit)} solid {cell.border_color}")
    if cell.shadow:
        styles.append(f"box-shadow:0 {css_px(8 * unit)} {css_px(24 * unit)} rgba(0,0,0,0.35)")

    if url is None:
        if cell.border_color:
            styles.append(f"background:{cell.border_color}")
        return f'<div class="cell frame" style="{_esc(";".join(styles))}"></div>'

    display = model.background.display
    img_styles = [
        "width:100%",
        "height:100%",
        "display:block",
        f"object-fit:{display.fit if display else 'cover'}",
        f"object-position:{display.object_position if display else 'center center'}",
    ]
    if model.background.blur and cell.image_index == 0:
        img_styles.append(f"filter:blur({css_px(BLUR_RADIUS * unit)})")
    return (
        f'<div class="cell" style="{_esc(";".join(styles))}">'
        f'<img src="{_esc(url)}" alt="" style="{_esc(";".join(img_styles))}"></div>'
    )


def _svg_stroke(rect: Rect, path, color: str, width: float, dash=None, linecap: str = "butt") -> str:
    attrs = [
        f'd="{path_to_svg(path)}"',
        'fill="none"',
        f'stroke="{_esc(color)}"',
        f'stroke-width="{width:.4f}"',
        f'stroke-linecap="{linecap}"',
    ]
    if dash:
        attrs.append(f'stroke-dasharray="{dash[0]} {dash[1]}"')
    return (
        f'<svg class="divider" viewBox="0 0 100 100" preserveAspectRatio="none" '
        f'style="position:absolute;{_rect_style(rect)};overflow:visible">'
        f'<path {" ".join(attrs)}/></svg>'
    )


def _dividers_html(layout: ImageLayout, frame: FrameMapping) -> List[str]:
    parts = []
    for divider in layout.dividers:
        rect = frame.design_to_frame(divider.rect)
        if divider.style == "line" or not divider.path:
            parts.append(f'<div class="divider" style="position:absolute;{_rect_style(rect)};'
                         f'background:{_esc(divider.color)}"></div>')
            continue
        parts.append(_svg_stroke(rect, divider.path, divider.color, divider.stroke_units,
                                 divider.dash, divider.linecap))
    if layout.seam is not None:
        seam = layout.seam
        parts.append(_svg_stroke(frame.design_to_frame(seam.rect), seam.path, seam.color,
                                 seam.stroke_units, linecap=seam.linecap))
    if layout.diagonal is not None:
        diagonal = layout.diagonal
        rect = frame.design_to_frame(diagonal.rect)
        width = 2 * diagonal.half_width * frame.cover_scale
        parts.append(
            f'<svg class="divider" viewBox="0 0 {rect.w:.4f} {rect.h:.4f}" '
            f'style="position:absolute;{_rect_style(rect)}">'
            f'<line x1="{rect.w:.4f}" y1="0" x2="0" y2="{rect.h:.4f}" stroke="{_esc(diagonal.color)}" '
            f'stroke-width="{width:.4f}"/></svg>'
        )
    return parts


def _design_html(model: RenderModel, frame: FrameMapping) -> str:
    bg = model.background
    box = frame.design_to_frame(Rect(0, 0, 1080, 1080))
    parts = []
    layout = bg.image_layout
    if layout is not None:
        if layout.frame is not None:
            parts.append(_cell_html(layout.frame, None, frame, model))
        for cell in layout.cells:
            url = bg.cell_url(cell.image_index)
            if url:
                parts.append(_cell_html(cell, url, frame, model))
        parts.extend(_dividers_html(layout, frame))
    return (
        f'<div class="slide" data-design-box="{_esc(_rect_style(box))}" '
        f'style="position:absolute;inset:0;background:{bg.color}">{"".join(parts)}</div>'
    )


def _overlay_html(model: RenderModel) -> str:
    bg = model.background
    if not (bg.gradient_on and bg.gradient_stops):
        return ""
    css = css_linear_gradient(bg.gradient_direction, bg.gradient_color, bg.gradient_strength, bg.gradient_stops)
    parts = [f'<div class="gradient" style="position:absolute;inset:0;background:{css}"></div>']
    if bg.vignette_strength:
        parts.append(f'<div class="vignette" style="position:absolute;inset:0;'
                     f'background:{css_vignette(bg.vignette_strength)}"></div>')
    return "".join(parts)


# ============================================
# TEXT + CHROME LAYERS
# ============================================

def _run_html(run: TextRun, block: TextBlock) -> str:
    text = _esc(run.text)
    if run.kind == "bold":
        return f"<strong>{text}</strong>"
    if run.kind == "color":
        if block.highlight_style == "background":
            return (f'<span class="hl" style="background:{run.color};color:{DARK_TEXT};'
                    f'padding:0 0.12em;border-radius:0.12em">{text}</span>')
        return f'<span style="color:{run.color}">{text}</span>'
    return text


def _text_html(block: TextBlock, box: TextBox) -> str:
    lines = []
    for line in block.lines:
        content = "".join(_run_html(run, block) for run in line.runs)
        lines.append(f'<div class="line">{content or "&nbsp;"}</div>')
    style = ";".join([
        "position:absolute",
        _rect_style(box.rect),
        f"font-size:{css_px(box.font_size)}",
        f"font-weight:{block.font_weight}",
        f"line-height:{block.line_height}",
        f"text-align:{block.align}",
        f"color:{block.color}",
    ])
    return f'<div class="zone zone-{_esc(block.zone_id)}" style="{style}">{"".join(lines)}</div>'


def _chrome_style(box: ChromeBox, color: str) -> str:
    styles = ["position:absolute", f"font-size:{css_px(box.font_size)}", f"color:{color}"]
    if box.center:
        styles.extend(["left:0", "right:0", "text-align:center"])
    if box.left is not None:
        styles.append(f"left:{css_px(box.left)}")
    if box.right is not None:
        styles.append(f"right:{css_px(box.right)}")
    if box.top is not None:
        styles.append(f"top:{css_px(box.top)}")
    if box.bottom is not None:
        styles.append(f"bottom:{css_px(box.bottom)}")
    return ";".join(styles)


def _chrome_html(model: RenderModel, boxes) -> str:
    chrome = model.chrome
    texts = {
        "counter": chrome.counter_text,
        "made_with": chrome.made_with_text,
        "swipe": chrome.swipe_text,
        "watermark": chrome.watermark_text,
    }
    parts = []
    for kind, box in boxes.items():
        style = _chrome_style(box, chrome.color)
        if kind == "watermark" and chrome.watermark_logo_url:
            img_style = f"max-width:{css_px(box.max_w)};max-height:{css_px(box.max_h)};display:block"
            parts.append(f'<div class="chrome chrome-watermark" style="{style}">'
                         f'<img src="{_esc(chrome.watermark_logo_url)}" alt="" style="{img_style}"></div>')
            continue
        parts.append(f'<div class="chrome chrome-{kind.replace("_", "-")}" style="{style}">'
                     f'{_esc(texts.get(kind) or "")}</div>')
    return "".join(parts)


# ============================================
# DOCUMENT
# ============================================

def render_slide_document(model: RenderModel, frame: FrameMapping, mode: str = "full") -> str:
    """Self-contained HTML for one slide at the frame's exact pixel size."""
    if mode not in MODES:
        raise ValueError(f"Unknown render mode: {mode}")

    layout = layout_slide(model, frame)
    page_background = "transparent" if mode == "overlay" else model.background.color

    layers = []
    if mode != "overlay":
        layers.append(_design_html(model, frame))
    if mode != "background":
        layers.append(_overlay_html(model))
        blocks = {block.zone_id: block for block in model.text_blocks}
        layers.append('<div class="text-layer">' + "".join(
            _text_html(blocks[box.zone_id], box) for box in layout.text_boxes) + "</div>")
        layers.append('<div class="chrome-layer">' + _chrome_html(model, layout.chrome_boxes) + "</div>")

    w, h = css_px(frame.frame_w), css_px(frame.frame_h)
    return (
        "<!DOCTYPE html>\n"
        '<html><head><meta charset="utf-8">'
        f'<meta name="viewport" content="width={frame.frame_w},height={frame.frame_h}">'
        "<style>"
        "*{margin:0;padding:0;box-sizing:border-box}"
        f"html,body{{width:{w};height:{h};overflow:hidden;background:{page_background}}}"
        f".slide-wrap{{position:relative;width:{w};height:{h};overflow:hidden;font-family:{FONT_STACK};"
        "-webkit-font-smoothing:antialiased}"
        ".text-layer,.chrome-layer{position:absolute;inset:0}"
        ".line{white-space:pre;overflow:visible}"
        ".chrome{white-space:nowrap;font-weight:600;opacity:0.9}"
        "</style></head>"
        f'<body><div class="slide-wrap" data-mode="{mode}">{"".join(layers)}</div></body></html>'
    )
