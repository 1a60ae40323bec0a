"""Tests for the export command-line client."""

import io
import zipfile

import pytest
import requests

import run_worker
from run_worker import ExportClient, main


class FakeResponse:
    def __init__(self, status_code=200, payload=None, content=b""):
        self.status_code = status_code
        self._payload = payload
        self._content = content

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def iter_content(self, chunk_size=1):
        yield self._content

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def archive_bytes() -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("01.png", b"png")
        zf.writestr("caption.txt", "hi")
    return buffer.getvalue()


@pytest.fixture
def fake_server(monkeypatch):
    """Patches the client's session to answer like a healthy server."""
    calls = []

    def get(self, url, **kwargs):
        calls.append(("GET", url))
        if url.endswith("/health"):
            return FakeResponse(payload={"status": "ok", "version": "1.0.0"})
        return FakeResponse(content=archive_bytes())

    def post(self, url, **kwargs):
        calls.append(("POST", url))
        return FakeResponse(payload={
            "exportId": "exp-1", "status": "ready",
            "downloadUrl": "http://server/api/files/a.zip?expires=1&sig=x", "slideUrls": ["u1"],
        })

    monkeypatch.setattr(requests.Session, "get", get)
    monkeypatch.setattr(requests.Session, "post", post)
    return calls


def test_client_sends_user_header() -> None:
    client = ExportClient("http://server/", "user-1")
    assert client.session.headers["X-User-Id"] == "user-1"
    assert client.api_base == "http://server/api"


def test_run_downloads_and_extracts(fake_server, tmp_path) -> None:
    target = ExportClient("http://server", "user-1").run("car-1", tmp_path, extract=True)

    assert target == tmp_path / "carousel-car-1"
    assert (target / "01.png").read_bytes() == b"png"
    assert (tmp_path / "carousel-car-1.zip").exists()
    assert ("POST", "http://server/api/export/car-1") in fake_server


def test_main_returns_nonzero_on_export_error(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(requests.Session, "get",
                        lambda self, url, **kw: FakeResponse(payload={"status": "ok", "version": "1"}))
    monkeypatch.setattr(requests.Session, "post",
                        lambda self, url, **kw: FakeResponse(429, payload={"error": "Monthly export limit reached"}))

    assert main(["http://server", "car-1", "-u", "user-1", "-o", str(tmp_path)]) == 1


def test_main_fails_when_server_unreachable(monkeypatch, tmp_path) -> None:
    def refuse(self, url, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests.Session, "get", refuse)
    assert main(["http://server", "car-1", "--user-id", "user-1", "-o", str(tmp_path)]) == 1


def test_main_requires_user_id(monkeypatch) -> None:
    monkeypatch.delenv("SLIDECRAFT_USER_ID", raising=False)
    with pytest.raises(SystemExit):
        main(["http://server", "car-1"])


def test_colored_formatter_wraps_level_name() -> None:
    import logging

    formatter = run_worker.ColoredFormatter("%(levelname)s %(message)s")
    record = logging.LogRecord("x", logging.ERROR, __file__, 1, "bad", None, None)
    assert formatter.format(record) == "\033[31mERROR\033[0m bad"
