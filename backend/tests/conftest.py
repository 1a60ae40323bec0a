"""Pytest configuration and fixtures."""

import io
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest
from PIL import Image

from slidecraft.design_templates import DEFAULT_TEMPLATE_CONFIG, get_default_template_config
from slidecraft.renderer.background import SingleImage, with_slots, image_slots
from slidecraft.renderer.template_schema import TemplateConfig
from slidecraft.services.errors import TransientRenderError
from slidecraft.services.storage import LocalStorage


def png_bytes(size=(8, 8), color=(200, 30, 30, 255)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, "PNG")
    return buffer.getvalue()


@pytest.fixture
def template_config() -> TemplateConfig:
    """The default template config."""
    return get_default_template_config()


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    """Local storage rooted in a temp dir."""
    return LocalStorage(str(tmp_path / "storage"), "http://testserver", "test-secret")


# ============================================
# FAKE STORE
# ============================================

class FakeStore:
    """In-memory stand-in for CarouselStore."""

    def __init__(self):
        self.carousels: Dict[str, SimpleNamespace] = {}
        self.projects: Dict[str, SimpleNamespace] = {}
        self.slides: Dict[str, List[SimpleNamespace]] = {}
        self.templates: Dict[str, SimpleNamespace] = {}
        self.exports: Dict[str, SimpleNamespace] = {}
        self.plans: Dict[str, str] = {}
        self.exports_this_month = 0
        self.finish_calls: List[tuple] = []

    def add_template(self, template_id: str, config=None, user_id: Optional[str] = "user-1",
                     default_meta=None) -> SimpleNamespace:
        template = SimpleNamespace(
            id=template_id,
            user_id=user_id,
            config=DEFAULT_TEMPLATE_CONFIG if config is None else config,
            default_meta=default_meta,
        )
        self.templates[template_id] = template
        return template

    def add_carousel(self, carousel_id: str = "car-1", user_id: str = "user-1", **fields) -> SimpleNamespace:
        values = dict(
            id=carousel_id,
            user_id=user_id,
            project_id=None,
            default_template_id=None,
            caption_variants=None,
            hashtags=None,
            export_format="png",
            export_size="1080x1350",
        )
        values.update(fields)
        carousel = SimpleNamespace(**values)
        self.carousels[carousel_id] = carousel
        self.slides.setdefault(carousel_id, [])
        return carousel

    def add_slide(self, carousel_id: str, index: int, headline: str = "Headline", **fields) -> SimpleNamespace:
        values = dict(
            id=f"{carousel_id}-s{index}",
            carousel_id=carousel_id,
            slide_index=index,
            slide_type="point",
            headline=headline,
            body=None,
            template_id=None,
            background=None,
            meta=None,
        )
        values.update(fields)
        slide = SimpleNamespace(**values)
        self.slides[carousel_id].append(slide)
        return slide

    async def get_carousel(self, carousel_id, user_id):
        carousel = self.carousels.get(carousel_id)
        return carousel if carousel and carousel.user_id == user_id else None

    async def get_project(self, project_id, user_id):
        project = self.projects.get(project_id) if project_id else None
        return project if project and project.user_id == user_id else None

    async def list_slides(self, carousel_id):
        return sorted(self.slides.get(carousel_id, []), key=lambda s: s.slide_index)

    async def get_slide(self, slide_id, user_id):
        for carousel_id, slides in self.slides.items():
            for slide in slides:
                if slide.id == slide_id and self.carousels[carousel_id].user_id == user_id:
                    return slide
        return None

    async def count_slides(self, carousel_id):
        return len(self.slides.get(carousel_id, []))

    async def get_template(self, template_id, user_id):
        template = self.templates.get(template_id)
        if template and template.user_id in (None, user_id):
            return template
        return None

    async def first_user_template(self, user_id):
        for template in self.templates.values():
            if template.user_id == user_id:
                return template
        return None

    async def first_system_template(self):
        for template in self.templates.values():
            if template.user_id is None:
                return template
        return None

    async def get_plan(self, user_id):
        return self.plans.get(user_id, "free")

    async def count_exports_since(self, user_id, since):
        return self.exports_this_month

    async def create_export(self, carousel_id, user_id, export_format):
        export = SimpleNamespace(
            id=f"exp-{len(self.exports) + 1}",
            carousel_id=carousel_id,
            user_id=user_id,
            status="pending",
            format=export_format,
            storage_path=None,
            error_message=None,
            slide_count=None,
            created_at=datetime.now(timezone.utc),
        )
        self.exports[export.id] = export
        return export

    async def finish_export(self, export_id, status, storage_path=None, error_message=None, slide_count=None):
        self.finish_calls.append((export_id, status))
        export = self.exports[export_id]
        export.status = status
        export.storage_path = storage_path
        export.error_message = error_message
        if slide_count is not None:
            export.slide_count = slide_count

    async def get_export(self, export_id, user_id):
        export = self.exports.get(export_id)
        return export if export and export.user_id == user_id else None


@pytest.fixture
def store() -> FakeStore:
    """Empty in-memory store."""
    return FakeStore()


# ============================================
# FAKE RENDERING SURFACE
# ============================================

class FakeSurface:
    def __init__(self, attempt: int, fail_with: Optional[Exception] = None):
        self.attempt = attempt
        self.fail_with = fail_with
        self.captures: List[dict] = []
        self.closed = False

    async def capture(self, html, frame, transparent=False):
        if self.fail_with is not None:
            raise self.fail_with
        self.captures.append({"html": html, "frame": frame, "transparent": transparent})
        return png_bytes((frame.frame_w // 100, frame.frame_h // 100))

    async def close(self):
        self.closed = True


class SurfaceFactory:
    """Records every surface it creates; `failures` maps attempt number -> exception."""

    def __init__(self, failures: Optional[Dict[int, Exception]] = None):
        self.failures = failures or {}
        self.surfaces: List[FakeSurface] = []

    async def __call__(self, attempt: int) -> FakeSurface:
        surface = FakeSurface(attempt, self.failures.get(attempt))
        self.surfaces.append(surface)
        return surface

    @property
    def calls(self) -> int:
        return len(self.surfaces)


@pytest.fixture
def surface_factory() -> SurfaceFactory:
    """Surface factory whose surfaces always succeed."""
    return SurfaceFactory()


@pytest.fixture
def crash_twice_factory() -> SurfaceFactory:
    """Surfaces that crash with a transient signature on attempts 1 and 2."""
    return SurfaceFactory({
        1: TransientRenderError("Target page, context or browser has been closed"),
        2: TransientRenderError("Protocol error (Page.captureScreenshot): Target closed"),
    })


class RecordingSleep:
    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


@pytest.fixture
def sleep() -> RecordingSleep:
    """Sleep replacement that records the pauses instead of waiting."""
    return RecordingSleep()


class PassThroughResolver:
    """Image resolver that keeps URLs as they are and drops storage-only slots."""

    async def resolve_background(self, background):
        slots = [slot for slot in image_slots(background) if slot.url]
        secondary = background.secondary if isinstance(background, SingleImage) else None
        return with_slots(background, slots, secondary)

    async def resolve_alternate(self, url):
        return url


@pytest.fixture
def resolver() -> PassThroughResolver:
    return PassThroughResolver()
