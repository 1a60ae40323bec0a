"""Tests for the export orchestrator and its retry driver."""

import io
import zipfile

import pytest

from slidecraft.services.errors import (
    TRANSIENT_EXHAUSTED_MESSAGE,
    ConfigurationError,
    ExportError,
    NotFoundError,
    QuotaExceededError,
    TransientRenderError,
)
from slidecraft.services.export_orchestrator import (
    ExportOrchestrator,
    FatalFailure,
    Success,
    TransientFailure,
    drive_attempts,
    png_to_jpeg,
)
from slidecraft.services.storage import ExportPaths

from conftest import SurfaceFactory, png_bytes

UNSPLASH = {"provider": "unsplash", "id": "abc", "author": "Jane Doe", "url": "https://unsplash.com/photos/abc"}
PEXELS = {"provider": "pexels", "id": "42"}


def image_background(url, source=None):
    raw = {"mode": "image", "image_url": url}
    if source:
        raw["source"] = source
    return raw


@pytest.fixture
def carousel(store):
    """Three-slide carousel with captions, hashtags and two credited photos."""
    store.add_template("tpl-1")
    carousel = store.add_carousel(
        "car-1",
        default_template_id="tpl-1",
        caption_variants={"short": "Short one", "medium": "The medium caption"},
        hashtags=["growth", "#tips"],
    )
    store.add_slide("car-1", 1, "Hook slide", slide_type="hook",
                    background=image_background("https://img.example.com/1.jpg", UNSPLASH))
    store.add_slide("car-1", 2, "Point slide", body="With a body",
                    background=image_background("https://img.example.com/2.jpg", UNSPLASH))
    store.add_slide("car-1", 3, "Last slide", background=image_background("https://img.example.com/3.jpg", PEXELS))
    return carousel


def orchestrator(store, storage, factory, sleep, resolver):
    return ExportOrchestrator(store, storage, surface_factory=factory, sleep=sleep, resolver=resolver)


# ============================================
# RETRY DRIVER
# ============================================

@pytest.mark.asyncio
async def test_drive_attempts_retries_transient_then_succeeds(sleep) -> None:
    outcomes = iter([TransientFailure("a"), TransientFailure("b"), Success("done")])
    seen = []

    async def attempt(number):
        seen.append(number)
        return next(outcomes)

    outcome = await drive_attempts(attempt, 3, 2.0, sleep)
    assert outcome == Success("done")
    assert seen == [1, 2, 3]
    assert sleep.calls == [2.0, 2.0]


@pytest.mark.asyncio
async def test_drive_attempts_stops_on_fatal(sleep) -> None:
    error = ExportError("nope")
    seen = []

    async def attempt(number):
        seen.append(number)
        return FatalFailure(error)

    assert await drive_attempts(attempt, 3, 2.0, sleep) == FatalFailure(error)
    assert seen == [1]
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_drive_attempts_does_not_sleep_after_last_attempt(sleep) -> None:
    async def attempt(number):
        return TransientFailure(f"crash {number}")

    assert await drive_attempts(attempt, 3, 1.5, sleep) == TransientFailure("crash 3")
    assert sleep.calls == [1.5, 1.5]


# ============================================
# EXPORT FLOW
# ============================================

@pytest.mark.asyncio
async def test_export_writes_archive_and_artifacts(store, storage, surface_factory, sleep, resolver, carousel) -> None:
    result = await orchestrator(store, storage, surface_factory, sleep, resolver).export("car-1", "user-1")

    assert result.status == "ready"
    assert len(result.slide_urls) == 3
    assert "carousel.zip" in result.download_url
    assert store.exports[result.export_id].status == "ready"
    assert store.exports[result.export_id].slide_count == 3

    paths = ExportPaths("user-1", "car-1", result.export_id)
    archive = zipfile.ZipFile(io.BytesIO(await storage.download(paths.archive)))
    assert sorted(archive.namelist()) == ["01.png", "02.png", "03.png", "CREDITS.txt", "caption.txt"]
    assert archive.read("caption.txt").decode() == "The medium caption\n\n#growth #tips"
    assert archive.read("CREDITS.txt").decode() == (
        "Photo by Jane Doe on Unsplash (https://unsplash.com/photos/abc)\n"
        "Photo by Unknown on Pexels\n"
    )

    for index in (1, 2, 3):
        assert storage.exists(paths.slide(index, "png"))
        assert storage.exists(paths.overlay(index))
        assert storage.exists(paths.video_background(index, 1))


@pytest.mark.asyncio
async def test_export_captures_three_layers_per_image_slide(store, storage, surface_factory, sleep, resolver,
                                                             carousel) -> None:
    await orchestrator(store, storage, surface_factory, sleep, resolver).export("car-1", "user-1")

    assert surface_factory.calls == 1
    surface = surface_factory.surfaces[0]
    assert surface.closed
    assert len(surface.captures) == 9
    assert [c["transparent"] for c in surface.captures[:3]] == [False, True, False]
    assert 'data-mode="full"' in surface.captures[0]["html"]
    assert 'data-mode="overlay"' in surface.captures[1]["html"]
    assert 'data-mode="background"' in surface.captures[2]["html"]
    assert all(c["frame"].frame_h == 1350 for c in surface.captures)


@pytest.mark.asyncio
async def test_transient_crashes_restart_whole_batch(store, storage, crash_twice_factory, sleep, resolver,
                                                     carousel) -> None:
    result = await orchestrator(store, storage, crash_twice_factory, sleep, resolver).export("car-1", "user-1")

    assert result.status == "ready"
    assert crash_twice_factory.calls == 3
    assert sleep.calls == [2.0, 2.0]
    assert all(surface.closed for surface in crash_twice_factory.surfaces)
    # The successful attempt renders from slide 1
    assert 'data-mode="full"' in crash_twice_factory.surfaces[2].captures[0]["html"]
    assert "Hook slide" in crash_twice_factory.surfaces[2].captures[0]["html"]


@pytest.mark.asyncio
async def test_crash_signature_in_unexpected_error_is_transient(store, storage, sleep, resolver, carousel) -> None:
    factory = SurfaceFactory({1: RuntimeError("Target closed")})
    result = await orchestrator(store, storage, factory, sleep, resolver).export("car-1", "user-1")
    assert result.status == "ready"
    assert factory.calls == 2


@pytest.mark.asyncio
async def test_transient_crashes_exhaust_attempts(store, storage, sleep, resolver, carousel) -> None:
    crash = TransientRenderError("Browser has disconnected")
    factory = SurfaceFactory({1: crash, 2: crash, 3: crash})

    with pytest.raises(TransientRenderError) as excinfo:
        await orchestrator(store, storage, factory, sleep, resolver).export("car-1", "user-1")

    assert excinfo.value.message == TRANSIENT_EXHAUSTED_MESSAGE
    assert factory.calls == 3
    assert sleep.calls == [2.0, 2.0]
    export = next(iter(store.exports.values()))
    assert export.status == "failed"
    assert export.error_message == TRANSIENT_EXHAUSTED_MESSAGE


@pytest.mark.asyncio
async def test_fatal_error_fails_after_one_attempt(store, storage, sleep, resolver, carousel) -> None:
    factory = SurfaceFactory({1: RuntimeError("disk on fire")})

    with pytest.raises(ExportError) as excinfo:
        await orchestrator(store, storage, factory, sleep, resolver).export("car-1", "user-1")

    assert "disk on fire" in excinfo.value.message
    assert factory.calls == 1
    assert sleep.calls == []
    assert [status for _id, status in store.finish_calls] == ["failed"]


@pytest.mark.asyncio
async def test_quota_exceeded_creates_no_export(store, storage, surface_factory, sleep, resolver, carousel) -> None:
    store.exports_this_month = 5

    with pytest.raises(QuotaExceededError):
        await orchestrator(store, storage, surface_factory, sleep, resolver).export("car-1", "user-1")

    assert store.exports == {}
    assert surface_factory.calls == 0


@pytest.mark.asyncio
async def test_paid_plan_has_higher_quota(store, storage, surface_factory, sleep, resolver, carousel) -> None:
    store.exports_this_month = 5
    store.plans["user-1"] = "pro"
    result = await orchestrator(store, storage, surface_factory, sleep, resolver).export("car-1", "user-1")
    assert result.status == "ready"
    # Paid plans drop the attribution by default
    assert "chrome-made-with" not in surface_factory.surfaces[0].captures[0]["html"]


@pytest.mark.asyncio
async def test_unknown_carousel(store, storage, surface_factory, sleep, resolver, carousel) -> None:
    with pytest.raises(NotFoundError):
        await orchestrator(store, storage, surface_factory, sleep, resolver).export("car-1", "someone-else")
    assert store.exports == {}


@pytest.mark.asyncio
async def test_empty_carousel_fails_export(store, storage, surface_factory, sleep, resolver) -> None:
    store.add_template("tpl-1")
    store.add_carousel("car-2")

    with pytest.raises(ConfigurationError, match="No slides to export"):
        await orchestrator(store, storage, surface_factory, sleep, resolver).export("car-2", "user-1")

    assert next(iter(store.exports.values())).status == "failed"
    assert surface_factory.calls == 0


@pytest.mark.asyncio
async def test_missing_slide_template_is_not_retried(store, storage, surface_factory, sleep, resolver,
                                                     carousel) -> None:
    store.slides["car-1"][1].template_id = "deleted"

    with pytest.raises(ConfigurationError, match="Template not found for slide 2"):
        await orchestrator(store, storage, surface_factory, sleep, resolver).export("car-1", "user-1")
    assert surface_factory.calls == 0


@pytest.mark.asyncio
async def test_no_template_anywhere(store, storage, surface_factory, sleep, resolver) -> None:
    store.add_carousel("car-3")
    store.add_slide("car-3", 1)

    with pytest.raises(ConfigurationError, match="Slide 1 has no template"):
        await orchestrator(store, storage, surface_factory, sleep, resolver).export("car-3", "user-1")


@pytest.mark.asyncio
async def test_invalid_template_config(store, storage, surface_factory, sleep, resolver) -> None:
    store.add_template("broken", config={"layout": "nonsense"})
    store.add_carousel("car-4", default_template_id="broken")
    store.add_slide("car-4", 1)

    with pytest.raises(ConfigurationError, match="Invalid template config for slide 1"):
        await orchestrator(store, storage, surface_factory, sleep, resolver).export("car-4", "user-1")


@pytest.mark.asyncio
async def test_system_template_fallback(store, storage, surface_factory, sleep, resolver) -> None:
    store.add_template("system", user_id=None)
    store.add_carousel("car-5")
    store.add_slide("car-5", 1, "Plain slide")

    result = await orchestrator(store, storage, surface_factory, sleep, resolver).export("car-5", "user-1")
    assert result.status == "ready"
    # Color-only slides have no video background layer
    assert len(surface_factory.surfaces[0].captures) == 2


@pytest.mark.asyncio
async def test_jpeg_export(store, storage, surface_factory, sleep, resolver) -> None:
    store.add_template("tpl-1")
    store.add_carousel("car-6", export_format="jpeg", export_size="1080x1920")
    store.add_slide("car-6", 1)

    result = await orchestrator(store, storage, surface_factory, sleep, resolver).export("car-6", "user-1")

    paths = ExportPaths("user-1", "car-6", result.export_id)
    data = await storage.download(paths.slide(1, "jpg"))
    assert data[:2] == b"\xff\xd8"
    assert store.exports[result.export_id].format == "jpeg"
    assert surface_factory.surfaces[0].captures[0]["frame"].frame_h == 1920


def test_png_to_jpeg_flattens_onto_black() -> None:
    from PIL import Image

    jpeg = png_to_jpeg(png_bytes((4, 4), (255, 255, 255, 0)))
    with Image.open(io.BytesIO(jpeg)) as img:
        assert img.format == "JPEG"
        assert max(img.convert("RGB").getpixel((1, 1))) < 10


class ExplodingResolver:
    async def resolve_background(self, background):
        raise KeyError("image_url")

    async def resolve_alternate(self, url):
        return url


@pytest.mark.asyncio
async def test_unexpected_error_marks_export_failed(store, storage, surface_factory, sleep, carousel) -> None:
    with pytest.raises(ExportError, match="Export failed"):
        await orchestrator(store, storage, surface_factory, sleep, ExplodingResolver()).export("car-1", "user-1")

    export = next(iter(store.exports.values()))
    assert export.status == "failed"
    assert export.error_message.startswith("Export failed")
    assert store.finish_calls == [(export.id, "failed")]
    assert surface_factory.calls == 0


@pytest.mark.asyncio
async def test_single_slide_export(store, storage, surface_factory, sleep, resolver, carousel) -> None:
    download = await orchestrator(store, storage, surface_factory, sleep, resolver).export_slide(
        "car-1-s3", "user-1", "jpeg", "1080x1080"
    )
    assert download.content_type == "image/jpeg"
    assert download.filename == "slide-3.jpg"
    assert download.data[:2] == b"\xff\xd8"

    capture = surface_factory.surfaces[0].captures[0]
    assert capture["frame"].frame_h == 1080
    assert "3 / 3" in capture["html"]
    assert store.exports == {}
