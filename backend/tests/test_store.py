"""Tests for the SQLAlchemy-backed store (SQLite via aiosqlite)."""

from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from slidecraft.database import Base
from slidecraft.models import Carousel, Export, Profile, Project, Slide, Template
from slidecraft.services.store import CarouselStore


@pytest_asyncio.fixture
async def db(tmp_path):
    """Fresh SQLite database with all tables."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def seeded(db):
    db.add_all([
        Profile(user_id="user-1", plan="pro"),
        Project(id="proj-1", user_id="user-1", brand_kit={"primary_color": "#123456"}),
        Template(id="sys-1", user_id=None, name="System", config={"layout": "headline_bottom"}),
        Template(id="own-1", user_id="user-1", name="Mine", config={}),
        Template(id="other-1", user_id="user-2", name="Theirs", config={}),
        Carousel(id="car-1", user_id="user-1", project_id="proj-1"),
        Slide(id="s2", carousel_id="car-1", slide_index=2, headline="Two"),
        Slide(id="s1", carousel_id="car-1", slide_index=1, headline="One"),
    ])
    await db.commit()
    return CarouselStore(db)


@pytest.mark.asyncio
async def test_carousel_ownership(seeded) -> None:
    assert (await seeded.get_carousel("car-1", "user-1")).id == "car-1"
    assert await seeded.get_carousel("car-1", "user-2") is None
    assert (await seeded.get_project("proj-1", "user-1")).brand_kit == {"primary_color": "#123456"}
    assert await seeded.get_project(None, "user-1") is None


@pytest.mark.asyncio
async def test_slides_in_index_order(seeded) -> None:
    assert [s.id for s in await seeded.list_slides("car-1")] == ["s1", "s2"]
    assert await seeded.count_slides("car-1") == 2
    assert (await seeded.get_slide("s2", "user-1")).headline == "Two"
    assert await seeded.get_slide("s2", "user-2") is None


@pytest.mark.asyncio
async def test_template_visibility(seeded) -> None:
    assert (await seeded.get_template("sys-1", "user-1")).name == "System"
    assert (await seeded.get_template("own-1", "user-1")).name == "Mine"
    assert await seeded.get_template("other-1", "user-1") is None
    assert (await seeded.first_user_template("user-1")).id == "own-1"
    assert (await seeded.first_system_template()).id == "sys-1"


@pytest.mark.asyncio
async def test_plan_defaults_to_free(seeded) -> None:
    assert await seeded.get_plan("user-1") == "pro"
    assert await seeded.get_plan("nobody") == "free"


@pytest.mark.asyncio
async def test_export_lifecycle(seeded, db) -> None:
    export = await seeded.create_export("car-1", "user-1", "png")
    assert export.status == "pending"
    assert await seeded.count_exports_since("user-1", datetime(2000, 1, 1)) == 1
    assert await seeded.count_exports_since("user-1", datetime(2100, 1, 1)) == 0

    await seeded.finish_export(export.id, "ready", storage_path="user/user-1/x.zip", slide_count=2)
    stored = await seeded.get_export(export.id, "user-1")
    assert stored.status == "ready"
    assert stored.slide_count == 2
    assert stored.storage_path == "user/user-1/x.zip"
    assert await seeded.get_export(export.id, "user-2") is None

    await seeded.finish_export(export.id, "failed", error_message="boom")
    await db.refresh(stored)
    assert stored.status == "failed"
    assert stored.error_message == "boom"
    assert stored.slide_count == 2


@pytest.mark.asyncio
async def test_finish_unknown_export_is_ignored(seeded) -> None:
    await seeded.finish_export("missing", "failed", error_message="x")
    assert await seeded.get_export("missing", "user-1") is None
    assert await seeded.db.get(Export, "missing") is None
