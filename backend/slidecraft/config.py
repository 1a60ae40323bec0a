from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database (async SQLAlchemy URL, e.g. postgresql+asyncpg://...)
    database_url: str = ""  # Set via DATABASE_URL env var

    # Artifact storage
    storage_root: str = "storage"
    public_base_url: str = "http://localhost:8000"
    signing_secret: str = "change-me"  # Set via SIGNING_SECRET env var
    signed_url_expires: int = 600  # archive + slide download links
    image_url_expires: int = 300  # stored background images during export

    # External image materialization
    materialize_timeout: float = 25.0
    materialize_max_bytes: int = 10 * 1024 * 1024

    # Export orchestration
    export_max_attempts: int = 3
    export_retry_backoff: float = 2.0
    render_settle_ms: int = 50
    render_content_timeout_ms: int = 25000
    render_selector_timeout_ms: int = 30000

    # Chrome
    made_with_text: str = "Made with SlideCraft"

    # Assets
    font_path: str = "assets/fonts"

    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
