"""
Configuration management using pydantic-settings.

Loads settings from environment variables and .env files.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # OCR Configuration
    ocr_engine: str = Field(
        default="tesseract",
        description="OCR engine to use for documents (tesseract or none)",
    )
    ocr_language: str = Field(
        default="eng",
        description="Tesseract language code used when no hint is given",
    )
    ocr_timeout_seconds: float = Field(
        default=30.0,
        description="Wall-clock budget for OCR of a single document",
    )
    preprocess_images: bool = Field(
        default=True,
        description="Grayscale/sharpen/binarize document images before OCR",
    )

    # PDF Configuration
    max_pdf_pages: int = Field(
        default=5,
        description="Maximum number of PDF pages to read or rasterize",
    )
    pdf_render_dpi: int = Field(
        default=200,
        description="DPI used when rasterizing scanned PDF pages for OCR",
    )

    # Image Forensics Configuration
    image_check_timeout_seconds: float = Field(
        default=10.0,
        description="Wall-clock budget for each image sub-check (metadata, quality, ...)",
    )
    hash_registry_path: Optional[str] = Field(
        default=None,
        description="SQLite file for perceptual hashes. Unset keeps hashes in memory only.",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level for CLI and demo")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to avoid re-reading environment on every call.
    """
    return Settings()


# Convenience access
settings = get_settings()
