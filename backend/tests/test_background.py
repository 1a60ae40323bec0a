"""Tests for background descriptor parsing."""

from slidecraft.renderer.background import (
    ColorBackground,
    ImageSlot,
    LegacyFlatList,
    MultiImage,
    SingleImage,
    image_urls,
    parse_background,
    resolve_video_background_urls,
    sniff_background,
    with_slots,
)


def test_color_background() -> None:
    background = parse_background({"mode": "color", "color": "#112233"})
    assert background == ColorBackground(color="#112233")
    assert parse_background(None) == ColorBackground()
    assert parse_background({"color": "not-a-color"}).color is None


def test_single_image_from_flat_fields() -> None:
    background = parse_background({"mode": "image", "image_url": "https://x/a.jpg", "bordered": True})
    assert isinstance(background, SingleImage)
    assert background.slot.url == "https://x/a.jpg"
    assert background.bordered


def test_images_array_with_storage_paths() -> None:
    background = parse_background({"mode": "image", "images": [
        {"image_url": "https://x/a.jpg"},
        {"storage_path": "user/u/b.png"},
        {"nothing": True},
    ]})
    assert isinstance(background, MultiImage)
    assert len(background.slots) == 2
    assert background.slots[1].storage_path == "user/u/b.png"


def test_multi_image_capped_at_four() -> None:
    background = parse_background({"mode": "image", "images": [{"image_url": f"https://x/{i}"} for i in range(6)]})
    assert len(background.slots) == 4


def test_image_mode_without_images_falls_back_to_color() -> None:
    assert isinstance(parse_background({"mode": "image", "color": "#000"}), ColorBackground)


def test_legacy_flat_list() -> None:
    raw = ["https://x/a.jpg", "user/u/b.png", "  "]
    assert sniff_background(raw) == LegacyFlatList(("https://x/a.jpg", "user/u/b.png"))
    background = parse_background(raw)
    assert isinstance(background, MultiImage)
    assert background.slots[1] == ImageSlot(storage_path="user/u/b.png")
    assert isinstance(parse_background(["https://x/only.jpg"]), SingleImage)


def test_overlay_values_clamped() -> None:
    background = parse_background({"overlay": {"darken": 3, "extent": -5, "solidSize": 250,
                                               "direction": "diagonal"}, "gradientOn": True})
    overlay = background.overlay
    assert overlay.strength == 1
    assert overlay.extent == 0
    assert overlay.solid_size == 100
    assert overlay.direction is None
    assert overlay.gradient_on is True


def test_image_display_options_kept_sorted() -> None:
    background = parse_background({"mode": "image", "images": [{"image_url": "https://x/1"},
                                                               {"image_url": "https://x/2"}],
                                   "image_display": {"layout": "stacked", "gap": 4, "frame": None}})
    assert background.display == (("gap", 4), ("layout", "stacked"))


def test_video_background_urls_use_alternates_for_single_image() -> None:
    background = parse_background({"mode": "image", "images": [{
        "image_url": "https://x/a.jpg",
        "alternates": ["https://x/b.jpg", "ftp://x/c.jpg", "https://x/d.jpg", "https://x/e.jpg",
                       "https://x/f.jpg", "https://x/g.jpg"],
    }]})
    assert resolve_video_background_urls(background) == (
        "https://x/a.jpg", "https://x/b.jpg", "https://x/d.jpg", "https://x/e.jpg", "https://x/f.jpg",
    )


def test_video_background_urls_one_per_slot() -> None:
    background = parse_background({"mode": "image", "images": [{"image_url": f"https://x/{i}"} for i in range(3)]})
    assert resolve_video_background_urls(background) == ("https://x/0", "https://x/1", "https://x/2")
    assert resolve_video_background_urls(ColorBackground()) == ()


def test_with_slots_degrades_shape() -> None:
    multi = parse_background({"mode": "image", "color": "#111111",
                              "images": [{"image_url": "https://x/1"}, {"image_url": "https://x/2"}]})
    single = with_slots(multi, multi.slots[:1])
    assert isinstance(single, SingleImage)
    assert image_urls(single) == ("https://x/1",)
    empty = with_slots(multi, [])
    assert empty == ColorBackground(color="#111111", overlay=multi.overlay)
