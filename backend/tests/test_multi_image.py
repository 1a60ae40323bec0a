"""Tests for multi-image layouts."""

from itertools import combinations

import pytest

from slidecraft.renderer.geometry import DESIGN_SIZE
from slidecraft.renderer.multi_image import (
    ImageDisplay,
    layout_images,
    layout_single,
    resolve_family,
    sample_path,
)


def overlaps(a, b) -> bool:
    return a.x < b.right and b.x < a.right and a.y < b.bottom and b.y < a.bottom


def display(**options):
    return ImageDisplay.from_options(options, multi=True)


@pytest.mark.parametrize("count", [2, 3, 4])
@pytest.mark.parametrize("family", ["side-by-side", "stacked", "grid"])
def test_divider_layouts_tile_container_exactly(count, family) -> None:
    layout = layout_images(count, display(layout=family, dividerStyle="wave"))
    container = layout.container
    rects = [cell.rect for cell in layout.cells]

    assert sorted(cell.image_index for cell in layout.cells) == list(range(count))
    for a, b in combinations(rects, 2):
        assert not overlaps(a, b)
    for rect in rects:
        assert container.x <= rect.x and rect.right <= container.right
        assert container.y <= rect.y and rect.bottom <= container.bottom
    assert sum(r.w * r.h for r in rects) == container.w * container.h


@pytest.mark.parametrize("count", [2, 3, 4])
@pytest.mark.parametrize("family", ["side-by-side", "stacked", "grid"])
def test_gap_layouts_leave_exact_gaps(count, family) -> None:
    layout = layout_images(count, display(layout=family, dividerStyle="gap", gap=8))
    inner = layout.container.w
    rows = {}
    for cell in layout.cells:
        rows.setdefault(cell.rect.y, []).append(cell.rect)

    for row in rows.values():
        assert sum(r.w for r in row) + 8 * (len(row) - 1) == inner
    heights = [row[0].h for row in rows.values()]
    assert sum(heights) + 8 * (len(rows) - 1) == inner
    assert layout.dividers == ()


def test_container_inset_by_gap_without_frame() -> None:
    layout = layout_images(2, display(dividerStyle="gap", gap=8))
    assert layout.container.x == 8
    assert layout.container.w == DESIGN_SIZE - 16


def test_framed_layout_uses_fixed_inset() -> None:
    layout = layout_images(2, display(frame="thick"))
    assert layout.container.x == 16
    assert all(cell.border_width == 10 for cell in layout.cells)


def test_auto_family() -> None:
    assert resolve_family(2, "auto") == "side-by-side"
    assert resolve_family(3, "auto") == "side-by-side"
    assert resolve_family(4, "auto") == "grid"
    assert resolve_family(4, "overlay-circles") == "grid"


def test_side_by_side_dividers() -> None:
    layout = layout_images(3, display(layout="side-by-side", dividerStyle="wave"))
    assert len(layout.dividers) == 2
    assert all(d.vertical for d in layout.dividers)
    assert all(d.rect.h == layout.container.h for d in layout.dividers)


def test_full_grid_has_one_full_height_vertical_divider() -> None:
    layout = layout_images(4, display(layout="grid", dividerStyle="line"))
    vertical = [d for d in layout.dividers if d.vertical]
    horizontal = [d for d in layout.dividers if not d.vertical]
    assert len(vertical) == 1 and len(horizontal) == 1
    assert vertical[0].rect.h == layout.container.h


def test_three_image_grid_vertical_divider_stops_at_first_row() -> None:
    layout = layout_images(3, display(layout="grid", dividerStyle="line"))
    vertical = [d for d in layout.dividers if d.vertical]
    assert vertical[0].rect.h == layout.cells[0].rect.h
    # The single image on the second row spans the full width
    assert layout.cells[2].rect.w == layout.container.w


def test_dashed_dividers_carry_dash_pattern() -> None:
    layout = layout_images(2, display(dividerStyle="dashed"))
    assert layout.dividers[0].dash == (12, 8)


def test_two_image_zigzag_clips_both_halves() -> None:
    layout = layout_images(2, display(dividerStyle="zigzag"))
    assert layout.family == "zigzag"
    assert all(cell.rect == layout.container for cell in layout.cells)
    assert all(cell.clip for cell in layout.cells)
    assert layout.seam is not None


def test_two_image_diagonal() -> None:
    layout = layout_images(2, display(dividerStyle="diagonal"))
    assert layout.family == "diagonal"
    assert layout.diagonal is not None


def test_legacy_divider_names_map_to_current_styles() -> None:
    assert display(dividerStyle="dotted").divider_style == "dashed"
    assert display(dividerStyle="double").divider_style == "scalloped"


@pytest.mark.parametrize("count,circles", [(2, 1), (3, 2)])
def test_overlay_circles(count, circles) -> None:
    layout = layout_images(count, display(layout="overlay-circles"))
    assert layout.family == "overlay-circles"
    assert layout.cells[0].rect.w == DESIGN_SIZE
    round_cells = [cell for cell in layout.cells if cell.shape == "circle"]
    assert len(round_cells) == circles
    for cell in round_cells:
        assert 0 <= cell.rect.x and cell.rect.right <= DESIGN_SIZE


def test_single_image_full_bleed_or_framed() -> None:
    plain = layout_single(ImageDisplay.from_options({}, multi=False))
    assert plain.cells[0].rect.w == DESIGN_SIZE
    framed = layout_single(ImageDisplay.from_options({}, multi=False, bordered=True))
    assert framed.cells[0].rect.x == 16
    assert framed.cells[0].radius == 24


def test_sample_path_flattens_curves() -> None:
    points = sample_path((("M", 0, 0), ("Q", 50, 100, 100, 0)), steps=4)
    assert points[0] == (0.0, 0.0)
    assert points[-1] == (100.0, 0.0)
    assert len(points) == 5


def test_display_colors_must_be_hex_or_rgba() -> None:
    display = ImageDisplay.from_options({
        "dividerColor": "#ff0000",
        "frameColor": "rgba(10, 20, 30, 0.5)",
        "overlayCircleBorderColor": "#abc",
    }, multi=True)
    assert display.divider_color == "#ff0000"
    assert display.frame_color == "rgba(10, 20, 30, 0.5)"
    assert display.circle_border_color == "#abc"

    rejected = ImageDisplay.from_options({
        "dividerColor": 'red"><script>',
        "frameColor": "rgba(300,0,0,1)",
        "overlayCircleBorderColor": "url(https://evil.example.com/x)",
        "frameShape": 'squircle;background:url(x)',
    }, multi=True)
    default = ImageDisplay.from_options({}, multi=True)
    assert rejected.divider_color == default.divider_color
    assert rejected.frame_color == default.frame_color
    assert rejected.circle_border_color == default.circle_border_color
    assert rejected.frame_shape == "squircle"


def test_display_frame_shape_from_known_set() -> None:
    assert ImageDisplay.from_options({"frameShape": "hexagon"}, multi=False).frame_shape == "hexagon"
