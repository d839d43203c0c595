"""Application configuration settings."""
import os
import json
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "Block Away Level Engine"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS settings - as comma-separated string or JSON array
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Game rules
    mistake_limit: int = 3  # Square game; hex games never count mistakes

    # Generator limits
    generator_max_cells: int = 400
    generator_attempt_multiplier: int = 3

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("mistake_limit", "generator_max_cells", "generator_attempt_multiplier")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    def get_cors_origins(self) -> List[str]:
        """Parse CORS origins from string (comma-separated or JSON)."""
        if not self.cors_origins:
            return ["http://localhost:5173"]

        # Try JSON parse first
        try:
            origins = json.loads(self.cors_origins)
            if isinstance(origins, list):
                return origins
        except json.JSONDecodeError:
            pass

        # Fall back to comma-separated
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# Don't use lru_cache in production to allow env var updates
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get settings instance (cached in production for performance)."""
    global _settings
    if _settings is None or os.getenv("DEBUG", "false").lower() == "true":
        _settings = Settings()
    return _settings
