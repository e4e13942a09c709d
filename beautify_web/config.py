"""Configuration settings for Beautify Web."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Base paths
    base_dir: Path = Path(__file__).parent.parent
    storage_dir: Path = base_dir / "storage"

    # Storage subdirectories
    @property
    def results_dir(self) -> Path:
        return self.storage_dir / "results"

    @property
    def database_path(self) -> Path:
        return self.storage_dir / "beautify_web.db"

    @property
    def database_url(self) -> str:
        return f"sqlite+aiosqlite:///{self.database_path}"

    # API settings
    api_v1_prefix: str = "/api/v1"

    # CORS settings
    cors_origins: list[str] = ["*"]

    # Image generation provider
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-3-pro-image-preview"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gateway_timeout_seconds: float = 120.0

    # Job processing
    task_delay_seconds: float = 1.0
    cost_per_task: float = 0.24  # max estimate per generated image (4K)
    max_batch_items: int = 100
    max_deck_slides: int = 200
    default_slide_width: float = 10.0  # inches, 16:9
    default_slide_height: float = 5.625
    reconcile_on_startup: bool = False

    log_level: str = "INFO"

    def ensure_directories(self) -> None:
        """Create storage directories if they don't exist."""
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.results_dir.mkdir(parents=True, exist_ok=True)

    class Config:
        env_prefix = "BEAUTIFY_WEB_"


settings = Settings()
