"""
API routes for the carousel render/export service.
"""

import dataclasses
import io
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, RedirectResponse, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from slidecraft.config import get_settings
from slidecraft.database import get_db
from slidecraft.design_templates import (
    apply_overlay_preset,
    get_layout_preset,
    list_highlight_colors,
    list_layouts,
    list_overlay_presets,
)
from slidecraft.renderer.background import parse_background
from slidecraft.renderer.geometry import EXPORT_SIZES, FrameMapping
from slidecraft.renderer.html_document import MODES, render_slide_document
from slidecraft.renderer.preview import PreviewSession, paint_preview
from slidecraft.renderer.render_model import BrandKit, ChromeOptions, SlideContent
from slidecraft.renderer.template_schema import parse_template_config
from slidecraft.services.errors import ExportError
from slidecraft.services.export_orchestrator import ExportOrchestrator, SlidePreparer
from slidecraft.services.quota import exports_remaining, get_plan_limits, is_paid_plan, month_start
from slidecraft.services.storage import ExportPaths, LocalStorage, get_storage
from slidecraft.services.store import CarouselStore

logger = logging.getLogger(__name__)

router = APIRouter()


# Dependencies

async def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


async def get_store(db: AsyncSession = Depends(get_db)) -> CarouselStore:
    return CarouselStore(db)


def get_storage_dep() -> LocalStorage:
    return get_storage()


def get_orchestrator(
    store: CarouselStore = Depends(get_store),
    storage: LocalStorage = Depends(get_storage_dep),
) -> ExportOrchestrator:
    return ExportOrchestrator(store, storage)


def _error(e: ExportError) -> JSONResponse:
    return JSONResponse({"error": e.message}, status_code=e.status_code)


# Request/Response Models

class PreviewSlide(BaseModel):
    headline: str = ""
    body: Optional[str] = None
    slideType: str = "point"
    background: Optional[dict] = None
    overlayPreset: Optional[str] = None


class PreviewRequest(BaseModel):
    template: Optional[dict] = None
    layout: Optional[str] = None
    slide: PreviewSlide = PreviewSlide()
    brandKit: Optional[dict] = None
    slideIndex: int = Field(default=1, ge=1)
    totalSlides: int = Field(default=1, ge=1)
    templateDefaults: Optional[dict] = None
    slideMeta: Optional[dict] = None
    uiOverrides: Optional[dict] = None
    size: str = "1080x1350"
    boxWidth: float = Field(default=540, gt=0, le=2160)
    paidPlan: bool = False


class ExportStatusResponse(BaseModel):
    exportId: str
    status: str
    format: str
    downloadUrl: Optional[str] = None
    error: Optional[str] = None


# ============================================
# EXPORT
# ============================================

@router.post("/export/{carousel_id}")
async def start_export(
    carousel_id: str,
    user_id: str = Depends(get_user_id),
    orchestrator: ExportOrchestrator = Depends(get_orchestrator),
):
    """Render every slide, bundle the archive and return signed URLs."""
    try:
        result = await orchestrator.export(carousel_id, user_id)
    except ExportError as e:
        return _error(e)
    return result.to_json()


@router.get("/export/slide/{slide_id}")
async def export_single_slide(
    slide_id: str,
    format: str = Query(default="png"),
    size: Optional[str] = Query(default=None),
    user_id: str = Depends(get_user_id),
    orchestrator: ExportOrchestrator = Depends(get_orchestrator),
):
    """Download one slide as PNG or JPEG; the fallback when a full export keeps crashing."""
    if format not in ("png", "jpeg"):
        raise HTTPException(status_code=400, detail=f"Unknown format: {format}")
    if size is not None and size not in EXPORT_SIZES:
        raise HTTPException(status_code=400, detail=f"Unknown size: {size}")
    try:
        download = await orchestrator.export_slide(slide_id, user_id, format, size)
    except ExportError as e:
        return _error(e)
    return Response(
        content=download.data,
        media_type=download.content_type,
        headers={"Content-Disposition": f'attachment; filename="{download.filename}"'},
    )


async def _ready_export(store: CarouselStore, export_id: str, user_id: str):
    export = await store.get_export(export_id, user_id)
    if export is None:
        raise HTTPException(status_code=404, detail="Export not found")
    if export.status != "ready":
        raise HTTPException(status_code=409, detail=f"Export is {export.status}")
    return export


@router.get("/export/{export_id}", response_model=ExportStatusResponse)
async def get_export_status(
    export_id: str,
    user_id: str = Depends(get_user_id),
    store: CarouselStore = Depends(get_store),
    storage: LocalStorage = Depends(get_storage_dep),
):
    export = await store.get_export(export_id, user_id)
    if export is None:
        raise HTTPException(status_code=404, detail="Export not found")
    download_url = None
    if export.status == "ready" and export.storage_path:
        download_url = storage.sign(export.storage_path, get_settings().signed_url_expires)
    return ExportStatusResponse(
        exportId=export.id,
        status=export.status,
        format=export.format,
        downloadUrl=download_url,
        error=export.error_message,
    )


@router.get("/export/{export_id}/slides")
async def get_export_slide_urls(
    export_id: str,
    user_id: str = Depends(get_user_id),
    store: CarouselStore = Depends(get_store),
    storage: LocalStorage = Depends(get_storage_dep),
):
    export = await _ready_export(store, export_id, user_id)
    paths = ExportPaths(user_id, export.carousel_id, export.id)
    ext = "jpg" if export.format == "jpeg" else "png"
    expires = get_settings().signed_url_expires
    return {"slideUrls": [storage.sign(paths.slide(i, ext), expires) for i in range(1, (export.slide_count or 0) + 1)]}


@router.get("/export/{export_id}/video-layers")
async def get_video_layers(
    export_id: str,
    user_id: str = Depends(get_user_id),
    store: CarouselStore = Depends(get_store),
    storage: LocalStorage = Depends(get_storage_dep),
):
    """Overlay layer plus background layers per slide, for video assembly."""
    export = await _ready_export(store, export_id, user_id)
    paths = ExportPaths(user_id, export.carousel_id, export.id)
    expires = get_settings().signed_url_expires
    slides = []
    for index in range(1, (export.slide_count or 0) + 1):
        backgrounds = []
        variant = 1
        while storage.exists(paths.video_background(index, variant)):
            backgrounds.append(storage.sign(paths.video_background(index, variant), expires))
            variant += 1
        slides.append({
            "index": index,
            "overlayUrl": storage.sign(paths.overlay(index), expires),
            "backgroundUrls": backgrounds,
        })
    return {"exportId": export.id, "slides": slides}


@router.get("/export/{export_id}/video-bg/{slide_index}/{variant}")
async def redirect_video_background(
    export_id: str,
    slide_index: int,
    variant: int,
    user_id: str = Depends(get_user_id),
    store: CarouselStore = Depends(get_store),
    storage: LocalStorage = Depends(get_storage_dep),
):
    export = await _ready_export(store, export_id, user_id)
    path = ExportPaths(user_id, export.carousel_id, export.id).video_background(slide_index, variant)
    if not storage.exists(path):
        raise HTTPException(status_code=404, detail="Video background not found")
    return RedirectResponse(storage.sign(path, get_settings().signed_url_expires), status_code=302)


# ============================================
# RENDER + PREVIEW
# ============================================

@router.get("/render/slide/{slide_id}", response_class=HTMLResponse)
async def render_stored_slide(
    slide_id: str,
    size: Optional[str] = Query(default=None),
    mode: str = Query(default="full"),
    user_id: str = Depends(get_user_id),
    store: CarouselStore = Depends(get_store),
    storage: LocalStorage = Depends(get_storage_dep),
):
    """Static document of one stored slide, exactly as the export captures it."""
    if mode not in MODES:
        raise HTTPException(status_code=400, detail=f"Unknown mode: {mode}")
    if size is not None and size not in EXPORT_SIZES:
        raise HTTPException(status_code=400, detail=f"Unknown size: {size}")

    slide = await store.get_slide(slide_id, user_id)
    if slide is None:
        raise HTTPException(status_code=404, detail="Slide not found")
    carousel = await store.get_carousel(slide.carousel_id, user_id)
    if carousel is None:
        raise HTTPException(status_code=404, detail="Carousel not found")

    frame = FrameMapping.for_size(size or carousel.export_size)
    preparer = SlidePreparer(store, storage, user_id)
    plan = await store.get_plan(user_id)
    try:
        prepared = await preparer.prepare(
            slide, carousel, slide.slide_index, await store.count_slides(carousel.id), frame,
            await preparer.brand_kit(carousel),
            ChromeOptions(paid_plan=is_paid_plan(plan), made_with_text=get_settings().made_with_text),
        )
    except ExportError as e:
        return _error(e)
    return HTMLResponse(render_slide_document(prepared.model, frame, mode))


def _preview_template(request: PreviewRequest):
    if request.template:
        return parse_template_config(request.template)
    if request.layout:
        try:
            return get_layout_preset(request.layout)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    return None


def _preview_background(slide: PreviewSlide):
    """Slide background with an overlay preset applied on top of its own overlay fields."""
    raw = slide.background
    if slide.overlayPreset:
        raw = dict(raw or {})
        overlay = raw.get("overlay") if isinstance(raw.get("overlay"), dict) else {}
        raw["overlay"] = {**overlay, **apply_overlay_preset(slide.overlayPreset)}
    return parse_background(raw)


@router.post("/preview")
async def preview_slide(request: PreviewRequest, format: str = Query(default="json")):
    """Preview tree for editor state; `?format=png` paints a thumbnail instead."""
    if request.size not in EXPORT_SIZES:
        raise HTTPException(status_code=400, detail=f"Unknown size: {request.size}")

    session = PreviewSession(
        template=_preview_template(request),
        slide=SlideContent(
            headline=request.slide.headline,
            body=request.slide.body,
            slide_type=request.slide.slideType,
            background=_preview_background(request.slide),
        ),
        brand_kit=BrandKit.from_json(request.brandKit),
        slide_index=request.slideIndex,
        total_slides=request.totalSlides,
        template_defaults=request.templateDefaults or {},
        slide_meta=request.slideMeta or {},
        ui_overrides=request.uiOverrides or {},
        size=request.size,
        box_width=request.boxWidth,
        chrome_options=ChromeOptions(paid_plan=request.paidPlan, made_with_text=get_settings().made_with_text),
    )
    tree = session.render()
    if format == "png":
        image = paint_preview(tree)
        buffer = io.BytesIO()
        image.save(buffer, "PNG")
        return Response(content=buffer.getvalue(), media_type="image/png")
    return dataclasses.asdict(tree)


# ============================================
# PRESETS
# ============================================

@router.get("/presets/layouts")
async def get_layout_presets():
    return list_layouts()


@router.get("/presets/overlays")
async def get_overlay_presets():
    return list_overlay_presets()


@router.get("/presets/highlight-colors")
async def get_highlight_colors():
    return list_highlight_colors()


# ============================================
# USAGE
# ============================================

@router.get("/usage")
async def get_usage(
    user_id: str = Depends(get_user_id),
    store: CarouselStore = Depends(get_store),
):
    """Plan and exports left this calendar month."""
    plan = await store.get_plan(user_id)
    used = await store.count_exports_since(user_id, month_start())
    return {
        "plan": plan,
        "paid": is_paid_plan(plan),
        "exportsPerMonth": get_plan_limits(plan)["exportsPerMonth"],
        "used": used,
        "remaining": exports_remaining(plan, used),
    }


# ============================================
# FILES
# ============================================

@router.get("/files/{path:path}")
async def get_file(
    path: str,
    expires: int = Query(...),
    sig: str = Query(...),
    storage: LocalStorage = Depends(get_storage_dep),
):
    """Serve a stored artifact behind a signed URL."""
    if not storage.verify(path, expires, sig):
        raise HTTPException(status_code=403, detail="Invalid or expired signature")
    try:
        local = storage.local_path(path)
    except ValueError:
        raise HTTPException(status_code=404, detail="File not found")
    if not local.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(str(local))
