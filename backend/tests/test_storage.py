"""Tests for local artifact storage and signed URLs."""

from urllib.parse import parse_qs, urlparse

import pytest

from slidecraft.services.errors import UploadError
from slidecraft.services.storage import ExportPaths, materialized_path


def test_export_paths() -> None:
    paths = ExportPaths("u1", "c1", "e1")
    assert paths.slide(3, "png") == "user/u1/exports/c1/e1/slides/03.png"
    assert paths.overlay(1) == "user/u1/exports/c1/e1/overlays/01.png"
    assert paths.video_background(2, 4) == "user/u1/exports/c1/e1/video-bg/02/04.png"
    assert paths.archive == "user/u1/exports/c1/e1/carousel.zip"
    assert materialized_path("u1", "x.jpg") == "user/u1/materialized/x.jpg"


@pytest.mark.asyncio
async def test_upload_and_download(storage) -> None:
    await storage.upload("user/u1/a/b.png", b"data", "image/png")
    assert storage.exists("user/u1/a/b.png")
    assert await storage.download("user/u1/a/b.png") == b"data"


@pytest.mark.asyncio
async def test_upload_outside_root_fails(storage) -> None:
    with pytest.raises(UploadError):
        await storage.upload("../../escape.txt", b"x")
    assert not storage.exists("../../escape.txt")


def test_signed_url_round_trip(storage) -> None:
    url = storage.sign("user/u1/file.png", 600, now=1000)
    parsed = urlparse(url)
    query = parse_qs(parsed.query)

    assert parsed.path == "/api/files/user/u1/file.png"
    assert query["expires"] == ["1600"]
    assert storage.verify("user/u1/file.png", 1600, query["sig"][0], now=1500)


def test_signature_rejects_tampering_and_expiry(storage) -> None:
    sig = parse_qs(urlparse(storage.sign("a.png", 60, now=0)).query)["sig"][0]
    assert not storage.verify("b.png", 60, sig, now=0)
    assert not storage.verify("a.png", 61, sig, now=0)
    assert not storage.verify("a.png", 60, sig, now=61)
    assert not storage.verify("a.png", 60, "", now=0)


def test_is_storage_url(storage) -> None:
    assert storage.is_storage_url(storage.sign("a.png", 60))
    assert not storage.is_storage_url("https://images.example.com/a.png")
