import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from slidecraft.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Profile(Base):
    """Account plan; drives export quota and attribution."""
    __tablename__ = "profiles"

    user_id = Column(String(64), primary_key=True)
    plan = Column(String(20), default="free")  # free, pro, tester
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String(200), nullable=False, default="Untitled")
    # primary_color, secondary_color, logo_url | logo_storage_path, watermark_text
    brand_kit = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Template(Base):
    """Layout skin. user_id NULL = system template shared by everyone."""
    __tablename__ = "templates"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    category = Column(String(50), default="generic")
    config = Column(JSON, nullable=False)
    # Lowest override tier (same keys as Slide.meta)
    default_meta = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Carousel(Base):
    __tablename__ = "carousels"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=True)
    title = Column(String(300), nullable=True)
    default_template_id = Column(String(36), nullable=True)
    caption_variants = Column(JSON, nullable=True)  # short / medium / spicy
    hashtags = Column(JSON, nullable=True)
    export_format = Column(String(10), default="png")  # png, jpeg
    export_size = Column(String(20), default="1080x1350")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Slide(Base):
    __tablename__ = "slides"

    id = Column(String(36), primary_key=True, default=_uuid)
    carousel_id = Column(String(36), ForeignKey("carousels.id"), nullable=False, index=True)
    slide_index = Column(Integer, nullable=False)  # 1-based
    slide_type = Column(String(20), default="point")  # hook, point, cta, ...
    headline = Column(Text, nullable=False, default="")
    body = Column(Text, nullable=True)
    template_id = Column(String(36), nullable=True)
    background = Column(JSON, nullable=True)
    meta = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Export(Base):
    __tablename__ = "exports"

    id = Column(String(36), primary_key=True, default=_uuid)
    carousel_id = Column(String(36), ForeignKey("carousels.id"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    status = Column(String(20), default="pending")  # pending, ready, failed
    format = Column(String(10), default="png")
    storage_path = Column(String(500), nullable=True)
    slide_count = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
