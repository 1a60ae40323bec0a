"""
Export orchestrator.

    pending -> (per slide: template -> background -> full / overlay / video
               background captures -> upload) -> archive -> ready | failed

Preconditions (carousel ownership, monthly quota, slides, templates) are
checked before any rendering. The slide loop runs inside a whole-batch
retry: each attempt gets a fresh rendering surface, transient crashes
restart from slide 1 after a fixed pause, anything else fails at once.
"""

import asyncio
import io
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Tuple, Union

from PIL import Image

from slidecraft.config import get_settings
from slidecraft.renderer.background import (
    SingleImage,
    image_sources,
    parse_background,
    resolve_video_background_urls,
)
from slidecraft.renderer.geometry import FrameMapping
from slidecraft.renderer.html_document import render_slide_document
from slidecraft.renderer.overrides import resolve_slide_overrides
from slidecraft.renderer.render_model import (
    BrandKit,
    ChromeOptions,
    RenderModel,
    SlideContent,
    build_render_model,
)
from slidecraft.renderer.template_schema import parse_template_config
from slidecraft.services.archive import build_archive, build_caption, build_credits
from slidecraft.services.browser import is_transient_error, launch_surface
from slidecraft.services.errors import (
    TRANSIENT_EXHAUSTED_MESSAGE,
    ConfigurationError,
    ExportError,
    NotFoundError,
    QuotaExceededError,
    TransientRenderError,
)
from slidecraft.services.materialize import ImageResolver
from slidecraft.services.quota import exports_remaining, get_plan_limits, is_paid_plan, month_start
from slidecraft.services.storage import ExportPaths, LocalStorage

logger = logging.getLogger(__name__)

EXPORT_FORMATS = {"png": ("png", "image/png"), "jpeg": ("jpg", "image/jpeg"), "jpg": ("jpg", "image/jpeg")}


# ============================================
# ATTEMPT OUTCOMES + RETRY DRIVER
# ============================================

@dataclass(frozen=True)
class Success:
    value: object


@dataclass(frozen=True)
class TransientFailure:
    reason: str


@dataclass(frozen=True)
class FatalFailure:
    error: ExportError


AttemptOutcome = Union[Success, TransientFailure, FatalFailure]


async def drive_attempts(
    attempt: Callable[[int], Awaitable[AttemptOutcome]],
    max_attempts: int,
    backoff: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> AttemptOutcome:
    """Run `attempt(1..max_attempts)` until it stops failing transiently."""
    outcome: AttemptOutcome = TransientFailure("no attempts made")
    for number in range(1, max_attempts + 1):
        outcome = await attempt(number)
        if not isinstance(outcome, TransientFailure):
            return outcome
        logger.warning("Export attempt %d/%d failed transiently: %s", number, max_attempts, outcome.reason)
        if number < max_attempts:
            await sleep(backoff)
    return outcome


# ============================================
# HELPERS
# ============================================

def png_to_jpeg(data: bytes, quality: int = 92) -> bytes:
    """Flatten a (possibly transparent) PNG onto black and encode as JPEG."""
    with Image.open(io.BytesIO(data)) as img:
        rgba = img.convert("RGBA")
    flat = Image.new("RGB", rgba.size, (0, 0, 0))
    flat.paste(rgba, mask=rgba.getchannel("A"))
    out = io.BytesIO()
    flat.save(out, "JPEG", quality=quality)
    return out.getvalue()


@dataclass
class PreparedSlide:
    index: int
    model: RenderModel
    video_background_urls: Tuple[str, ...] = ()
    sources: tuple = ()


@dataclass
class SlideDownload:
    data: bytes
    content_type: str
    filename: str


@dataclass
class ExportResult:
    export_id: str
    status: str
    download_url: str
    slide_urls: List[str] = field(default_factory=list)

    def to_json(self) -> dict:
        return {
            "exportId": self.export_id,
            "status": self.status,
            "downloadUrl": self.download_url,
            "slideUrls": self.slide_urls,
        }


class SlidePreparer:
    """Resolves stored slides into render models (templates, brand kit, images)."""

    def __init__(self, store, storage: LocalStorage, user_id: str, resolver: Optional[ImageResolver] = None):
        self.store = store
        self.storage = storage
        self.user_id = user_id
        self.resolver = resolver or ImageResolver(storage, user_id)
        self.settings = get_settings()
        self._fallback_loaded = False
        self._fallback = None

    async def brand_kit(self, carousel) -> BrandKit:
        project = await self.store.get_project(getattr(carousel, "project_id", None), self.user_id)
        raw = dict((project.brand_kit or {}) if project else {})
        if raw.get("logo_storage_path") and not raw.get("logo_url"):
            raw["logo_url"] = self.storage.sign(raw["logo_storage_path"], self.settings.signed_url_expires)
        return BrandKit.from_json(raw)

    async def _fallback_template(self, carousel):
        if not self._fallback_loaded:
            self._fallback_loaded = True
            if carousel.default_template_id:
                self._fallback = await self.store.get_template(carousel.default_template_id, self.user_id)
            if self._fallback is None:
                self._fallback = await self.store.first_user_template(self.user_id)
            if self._fallback is None:
                self._fallback = await self.store.first_system_template()
        return self._fallback

    async def template_for(self, slide, carousel, position: int):
        if slide.template_id:
            template = await self.store.get_template(slide.template_id, self.user_id)
            if template is None:
                raise ConfigurationError(f"Template not found for slide {position}")
        else:
            template = await self._fallback_template(carousel)
            if template is None:
                raise ConfigurationError(f"Slide {position} has no template")
        config = parse_template_config(template.config)
        if config is None:
            raise ConfigurationError(f"Invalid template config for slide {position}")
        return template, config

    async def prepare(self, slide, carousel, position: int, total: int, frame: FrameMapping,
                      brand_kit: BrandKit, chrome_options: ChromeOptions) -> PreparedSlide:
        template, config = await self.template_for(slide, carousel, position)
        overrides = resolve_slide_overrides(template.default_meta, slide.meta)
        background = await self.resolver.resolve_background(parse_background(slide.background))

        video_urls = list(resolve_video_background_urls(background))
        if isinstance(background, SingleImage) and len(video_urls) > 1:
            alternates = [await self.resolver.resolve_alternate(url) for url in video_urls[1:]]
            video_urls = video_urls[:1] + [url for url in alternates if url]

        model = build_render_model(
            config,
            SlideContent(
                headline=slide.headline or "",
                body=slide.body,
                slide_type=slide.slide_type or "point",
                background=background,
            ),
            brand_kit,
            position,
            total,
            overrides=overrides,
            text_scale=frame.text_scale,
            chrome_options=chrome_options,
        )
        return PreparedSlide(position, model, tuple(video_urls), image_sources(background))


# ============================================
# ORCHESTRATOR
# ============================================

class ExportOrchestrator:
    def __init__(self, store, storage: LocalStorage, surface_factory=launch_surface,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 resolver: Optional[ImageResolver] = None):
        self.store = store
        self.storage = storage
        self.surface_factory = surface_factory
        self.sleep = sleep
        self.resolver = resolver
        self.settings = get_settings()

    async def _check_quota(self, user_id: str) -> str:
        plan = await self.store.get_plan(user_id)
        limit = get_plan_limits(plan)["exportsPerMonth"]
        used = await self.store.count_exports_since(user_id, month_start())
        if exports_remaining(plan, used) == 0:
            raise QuotaExceededError(
                f"Monthly export limit reached ({limit} exports on the {plan} plan)"
            )
        return plan

    async def export(self, carousel_id: str, user_id: str) -> ExportResult:
        carousel = await self.store.get_carousel(carousel_id, user_id)
        if carousel is None:
            raise NotFoundError("Carousel not found")
        plan = await self._check_quota(user_id)

        ext, content_type = EXPORT_FORMATS.get(carousel.export_format or "png", EXPORT_FORMATS["png"])
        export = await self.store.create_export(carousel_id, user_id, "jpeg" if ext == "jpg" else "png")
        paths = ExportPaths(user_id, carousel_id, export.id)
        logger.info("Export %s started for carousel %s", export.id, carousel_id)

        try:
            prepared = await self._prepare(carousel, user_id, plan)
            frame = FrameMapping.for_size(carousel.export_size)
            logger.info("Export %s: %d slides at %dx%d", export.id, len(prepared), frame.frame_w, frame.frame_h)

            async def attempt(number: int) -> AttemptOutcome:
                return await self._attempt(number, prepared, frame, paths, ext, content_type)

            outcome = await drive_attempts(attempt, self.settings.export_max_attempts,
                                           self.settings.export_retry_backoff, self.sleep)
            if isinstance(outcome, TransientFailure):
                raise TransientRenderError(TRANSIENT_EXHAUSTED_MESSAGE)
            if isinstance(outcome, FatalFailure):
                raise outcome.error

            slide_files = outcome.value
            archive = build_archive(
                [(index, ext, data) for index, _path, data in slide_files],
                caption=build_caption(carousel.caption_variants, carousel.hashtags),
                credits=build_credits(source for slide in prepared for source in slide.sources),
            )
            await self.storage.upload(paths.archive, archive, "application/zip")
            logger.info("Export %s: archive uploaded (%d bytes)", export.id, len(archive))
        except ExportError as e:
            logger.error("Export %s failed: %s", export.id, e.message)
            await self.store.finish_export(export.id, "failed", error_message=e.message)
            raise
        except Exception as e:
            logger.exception("Export %s failed unexpectedly", export.id)
            error = ExportError(f"Export failed: {e}")
            await self.store.finish_export(export.id, "failed", error_message=error.message)
            raise error from e

        await self.store.finish_export(export.id, "ready", storage_path=paths.archive, slide_count=len(prepared))
        logger.info("Export %s ready", export.id)
        expires = self.settings.signed_url_expires
        return ExportResult(
            export_id=export.id,
            status="ready",
            download_url=self.storage.sign(paths.archive, expires),
            slide_urls=[self.storage.sign(path, expires) for _index, path, _data in slide_files],
        )

    async def export_slide(self, slide_id: str, user_id: str, export_format: str = "png",
                           size: Optional[str] = None) -> SlideDownload:
        """Render one stored slide for direct download. No export record, no quota."""
        slide = await self.store.get_slide(slide_id, user_id)
        if slide is None:
            raise NotFoundError("Slide not found")
        carousel = await self.store.get_carousel(slide.carousel_id, user_id)
        if carousel is None:
            raise NotFoundError("Carousel not found")

        ext, content_type = EXPORT_FORMATS.get(export_format, EXPORT_FORMATS["png"])
        frame = FrameMapping.for_size(size or carousel.export_size)
        plan = await self.store.get_plan(user_id)
        preparer = SlidePreparer(self.store, self.storage, user_id, self.resolver)
        prepared = await preparer.prepare(
            slide, carousel, slide.slide_index, await self.store.count_slides(carousel.id), frame,
            await preparer.brand_kit(carousel),
            ChromeOptions(paid_plan=is_paid_plan(plan), made_with_text=self.settings.made_with_text),
        )

        surface = await self.surface_factory(1)
        try:
            data = await surface.capture(render_slide_document(prepared.model, frame, "full"), frame)
        except ExportError:
            raise
        except Exception as e:
            if is_transient_error(e):
                raise TransientRenderError(str(e)) from e
            logger.exception("Unexpected error rendering slide %s", slide_id)
            raise ExportError(f"Rendering failed: {e}") from e
        finally:
            await surface.close()

        if ext == "jpg":
            data = png_to_jpeg(data)
        logger.info("Slide %s rendered at %dx%d as %s", slide_id, frame.frame_w, frame.frame_h, ext)
        return SlideDownload(data, content_type, f"slide-{slide.slide_index}.{ext}")

    async def _prepare(self, carousel, user_id: str, plan: str) -> List[PreparedSlide]:
        slides = await self.store.list_slides(carousel.id)
        if not slides:
            raise ConfigurationError("No slides to export")

        preparer = SlidePreparer(self.store, self.storage, user_id, self.resolver)
        brand_kit = await preparer.brand_kit(carousel)
        chrome_options = ChromeOptions(paid_plan=is_paid_plan(plan), made_with_text=self.settings.made_with_text)
        frame = FrameMapping.for_size(carousel.export_size)
        total = len(slides)
        return [
            await preparer.prepare(slide, carousel, position, total, frame, brand_kit, chrome_options)
            for position, slide in enumerate(slides, start=1)
        ]

    async def _attempt(self, number: int, prepared: List[PreparedSlide], frame: FrameMapping,
                       paths: ExportPaths, ext: str, content_type: str) -> AttemptOutcome:
        logger.info("Export attempt %d started", number)
        try:
            surface = await self.surface_factory(number)
        except TransientRenderError as e:
            return TransientFailure(e.message)
        except ExportError as e:
            return FatalFailure(e)

        try:
            files = []
            for slide in prepared:
                full = await surface.capture(render_slide_document(slide.model, frame, "full"), frame)
                if ext == "jpg":
                    full = png_to_jpeg(full)
                path = paths.slide(slide.index, ext)
                await self.storage.upload(path, full, content_type)
                files.append((slide.index, path, full))

                overlay = await surface.capture(render_slide_document(slide.model, frame, "overlay"), frame,
                                                transparent=True)
                await self.storage.upload(paths.overlay(slide.index), overlay, "image/png")

                for variant, url in enumerate(slide.video_background_urls, start=1):
                    layer = await surface.capture(
                        render_slide_document(slide.model.background_only(url), frame, "background"), frame
                    )
                    await self.storage.upload(paths.video_background(slide.index, variant), layer, "image/png")
            return Success(files)
        except TransientRenderError as e:
            return TransientFailure(e.message)
        except ExportError as e:
            return FatalFailure(e)
        except Exception as e:
            if is_transient_error(e):
                return TransientFailure(str(e))
            logger.exception("Unexpected error during export attempt %d", number)
            return FatalFailure(ExportError(f"Export failed: {e}"))
        finally:
            await surface.close()
