"""
Persistence access for the export path, with row ownership checks.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from slidecraft.models import Carousel, Export, Profile, Project, Slide, Template

logger = logging.getLogger(__name__)


class CarouselStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_carousel(self, carousel_id: str, user_id: str) -> Optional[Carousel]:
        result = await self.db.execute(
            select(Carousel).where(Carousel.id == carousel_id, Carousel.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_project(self, project_id: Optional[str], user_id: str) -> Optional[Project]:
        if not project_id:
            return None
        result = await self.db.execute(
            select(Project).where(Project.id == project_id, Project.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_slides(self, carousel_id: str) -> List[Slide]:
        result = await self.db.execute(
            select(Slide).where(Slide.carousel_id == carousel_id).order_by(Slide.slide_index)
        )
        return list(result.scalars().all())

    async def get_slide(self, slide_id: str, user_id: str) -> Optional[Slide]:
        result = await self.db.execute(
            select(Slide).join(Carousel, Carousel.id == Slide.carousel_id)
            .where(Slide.id == slide_id, Carousel.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def count_slides(self, carousel_id: str) -> int:
        result = await self.db.execute(select(func.count(Slide.id)).where(Slide.carousel_id == carousel_id))
        return result.scalar_one()

    # ============================================
    # TEMPLATES
    # ============================================

    async def get_template(self, template_id: str, user_id: str) -> Optional[Template]:
        """A template the user owns or a system template."""
        result = await self.db.execute(
            select(Template).where(
                Template.id == template_id,
                or_(Template.user_id == user_id, Template.user_id.is_(None)),
            )
        )
        return result.scalar_one_or_none()

    async def first_user_template(self, user_id: str) -> Optional[Template]:
        result = await self.db.execute(
            select(Template).where(Template.user_id == user_id).order_by(Template.created_at, Template.id).limit(1)
        )
        return result.scalar_one_or_none()

    async def first_system_template(self) -> Optional[Template]:
        result = await self.db.execute(
            select(Template).where(Template.user_id.is_(None)).order_by(Template.created_at, Template.id).limit(1)
        )
        return result.scalar_one_or_none()

    # ============================================
    # PLAN + EXPORTS
    # ============================================

    async def get_plan(self, user_id: str) -> str:
        result = await self.db.execute(select(Profile.plan).where(Profile.user_id == user_id))
        return result.scalar_one_or_none() or "free"

    async def count_exports_since(self, user_id: str, since: datetime) -> int:
        result = await self.db.execute(
            select(func.count(Export.id)).where(Export.user_id == user_id, Export.created_at >= since)
        )
        return result.scalar_one()

    async def create_export(self, carousel_id: str, user_id: str, export_format: str) -> Export:
        export = Export(carousel_id=carousel_id, user_id=user_id, status="pending", format=export_format)
        self.db.add(export)
        await self.db.commit()
        await self.db.refresh(export)
        return export

    async def finish_export(self, export_id: str, status: str, storage_path: Optional[str] = None,
                            error_message: Optional[str] = None, slide_count: Optional[int] = None):
        export = await self.db.get(Export, export_id)
        if export is None:
            logger.error("Export %s vanished before it could be marked %s", export_id, status)
            return
        export.status = status
        export.storage_path = storage_path
        export.error_message = error_message
        if slide_count is not None:
            export.slide_count = slide_count
        await self.db.commit()

    async def get_export(self, export_id: str, user_id: str) -> Optional[Export]:
        result = await self.db.execute(select(Export).where(Export.id == export_id, Export.user_id == user_id))
        return result.scalar_one_or_none()
