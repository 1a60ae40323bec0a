"""Tests for frame geometry."""

import pytest

from slidecraft.renderer.geometry import FrameMapping, Rect


@pytest.mark.parametrize("size", ["1080x1080", "1080x1350", "1080x1920"])
def test_text_zones_stay_inside_visible_band(size) -> None:
    frame = FrameMapping.for_size(size)
    for zone in (Rect(0, 0, 1080, 100), Rect(100, 720, 300, 200), Rect(900, 40, 180, 50)):
        placed = frame.zone_to_frame(zone)
        assert placed.x >= 0
        assert placed.right <= frame.frame_w + 1e-9


def test_story_frame_keeps_zone_x_and_width() -> None:
    frame = FrameMapping.for_size("1080x1920")
    placed = frame.zone_to_frame(Rect(100, 720, 300, 200))
    assert placed.x == 100
    assert placed.w == 300
    assert placed.y == pytest.approx(720 * 1920 / 1080)
    assert placed.h == pytest.approx(200 * 1920 / 1080)


def test_zone_to_frame_matches_remap_then_cover() -> None:
    frame = FrameMapping.for_size("1080x1350")
    zone = Rect(80, 600, 920, 240)
    direct = frame.zone_to_frame(zone)
    composed = frame.design_to_frame(frame.remap_zone(zone))
    for a, b in zip((direct.x, direct.y, direct.w, direct.h), (composed.x, composed.y, composed.w, composed.h)):
        assert a == pytest.approx(b)


def test_story_frame_scales() -> None:
    frame = FrameMapping.for_size("1080x1920")
    assert frame.cover_scale == pytest.approx(1920 / 1080)
    assert frame.offset_x == pytest.approx(-420)
    left, width = frame.visible_band
    assert left == pytest.approx(236.25)
    assert width == pytest.approx(607.5)
    assert frame.text_scale == pytest.approx(0.5625)


def test_square_frame_is_identity() -> None:
    frame = FrameMapping.for_size("1080x1080")
    rect = Rect(10, 20, 30, 40)
    assert frame.design_to_frame(rect) == rect
    assert frame.zone_to_frame(rect) == rect
    assert frame.text_scale == 1


def test_unknown_size_falls_back_to_portrait() -> None:
    assert FrameMapping.for_size("999x999") == FrameMapping(1080, 1350)
    assert FrameMapping.for_size(None) == FrameMapping(1080, 1350)
