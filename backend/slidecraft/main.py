"""FastAPI app: render, preview and export API."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from slidecraft import __version__
from slidecraft.config import get_settings
from slidecraft.routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    logger.info("Starting SlideCraft %s", __version__)

    from slidecraft.database import dispose_db, init_db
    if get_settings().database_url:
        try:
            await init_db()
            logger.info("Database initialized")
        except Exception:
            logger.exception("Database initialization failed")
    else:
        logger.warning("DATABASE_URL is not set; persistence endpoints will fail")

    yield

    logger.info("Shutting down...")
    await dispose_db()


app = FastAPI(title="SlideCraft", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check
@app.get("/health")
def health():
    return {"status": "ok", "version": __version__}


app.include_router(router, prefix="/api")
