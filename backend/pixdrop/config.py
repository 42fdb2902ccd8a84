"""
Pixdrop Backend — Application Configuration
============================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading, validated once at startup.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Read by main.py (logging, lifespan, server bind) and dependencies.py
       (which hands the values to the services by constructor injection).
When:  Loaded once at module import time.

The shared secret:
    BACKEND_API_KEY guards uploads and deletions. It defaults to an empty
    string. An empty secret denies every request unless ALLOW_EMPTY_API_KEY
    is set, in which case an empty supplied key is accepted.
"""

from typing import List

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes are grouped by concern for readability.
    """

    # ── Authorization ─────────────────────────────────────────────────────
    backend_api_key: str = Field(
        default="",
        description="Shared secret required in the path of upload and delete requests",
    )

    # What: Restores "empty secret accepts empty key" when the secret is unset
    # Default False: an unset secret locks uploads and deletions
    allow_empty_api_key: bool = Field(default=False)

    # ── Storage ───────────────────────────────────────────────────────────
    # What: Parent of the image/ and delete_token/ directories
    # Delete-token links are relative, so the whole directory can be moved as a unit
    data_root: str = Field(default="./data")

    # ── Image Normalization ───────────────────────────────────────────────
    # HD bounds: landscape images fit 1280x720, portrait and square fit 720x1280
    max_long_side: int = Field(default=1280, ge=16, le=8192)
    max_short_side: int = Field(default=720, ge=16, le=8192)

    # Pillow's JPEG encoder default; values above 95 only grow the file
    jpeg_quality: int = Field(default=75, ge=1, le=95)

    # What: Ceiling on the decoded (not base64) upload size in bytes
    # Default: 20MB = 20 * 1024 * 1024
    max_upload_bytes: int = Field(default=20_971_520, ge=1_024, le=209_715_200)

    # What: Decompression bomb guard, checked from the header before decoding
    # Capped below Pillow's own bomb threshold (89M), which would warn first
    max_image_pixels: int = Field(default=50_000_000, ge=1_000_000, le=89_000_000)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Format: Comma-separated URLs, or "*" for any origin
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=5800, ge=1, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("max_short_side")
    @classmethod
    def validate_short_side(cls, v: int, info: ValidationInfo) -> int:
        """The short bound may not exceed the long bound."""
        long_side = info.data.get("max_long_side")
        if long_side is not None and v > long_side:
            raise ValueError(
                f"max_short_side ({v}) must not exceed max_long_side ({long_side})"
            )
        return v

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # BACKEND_API_KEY and backend_api_key both work
    }


# Singleton instance, imported by main.py and dependencies.py
settings = Settings()
