# services/api/settings.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field
from typing import List
from pathlib import Path

class Settings(BaseSettings):
    # Storage settings
    # sqlite (default) or postgres; db_url must match the backend
    storage_backend: str = "sqlite"
    db_url: str = "sqlite:///data/vault.db"

    # Uploaded version content lives here (content_ref is a file name inside it)
    uploads_dir: str = "data/uploads"
    max_upload_mb: int = Field(default=50, gt=0, description="Largest accepted upload, in MB")

    # How many times an upload is retried when a concurrent upload took
    # the same version number. 1 = no retry.
    version_conflict_retries: int = Field(default=3, ge=1, le=10)

    # CORS settings
    allowed_origins: str = "http://localhost:3000,http://localhost:3001,http://localhost:8000"

    log_level: str = "INFO"

    model_config = ConfigDict(
        # Always load .env from the same folder as this settings.py
        env_file=str(Path(__file__).resolve().parent / ".env"),
        extra="ignore",
    )

    def get_origins_list(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


_settings_instance = None

def get_settings() -> Settings:
    """Singleton pattern for settings."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
