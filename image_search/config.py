from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

MAX_SEARCH_RESULTS = 10
JPEG_QUALITY = 85

DEFAULT_MAX_CONCURRENCY = 3
DEFAULT_SMALL_DIMENSION = 1024
DEFAULT_THUMBNAIL_DIMENSION = 256
DEFAULT_OUTPUT_DIR = "processed-images"
DEFAULT_UNSPLASH_BASE_URL = "https://api.unsplash.com/"


def _positive_or(value: float | int | None, default):
    if value is None or value <= 0:
        return default
    return value


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@dataclass
class UnsplashSettings:
    api_key: str = ""
    base_url: str = DEFAULT_UNSPLASH_BASE_URL
    timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "UnsplashSettings":
        return cls(
            api_key=(os.getenv("UNSPLASH_ACCESS_KEY") or "").strip(),
            base_url=os.getenv("UNSPLASH_BASE_URL") or DEFAULT_UNSPLASH_BASE_URL,
        )


@dataclass
class ProcessingSettings:
    # Any value <= 0 falls back to its default (see __post_init__).
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    small_dimension: int = DEFAULT_SMALL_DIMENSION
    thumbnail_dimension: int = DEFAULT_THUMBNAIL_DIMENSION
    download_timeout_seconds: float = 120.0

    def __post_init__(self) -> None:
        self.output_dir = Path(self.output_dir or DEFAULT_OUTPUT_DIR)
        self.max_concurrency = int(_positive_or(self.max_concurrency, DEFAULT_MAX_CONCURRENCY))
        self.small_dimension = int(_positive_or(self.small_dimension, DEFAULT_SMALL_DIMENSION))
        self.thumbnail_dimension = int(_positive_or(self.thumbnail_dimension, DEFAULT_THUMBNAIL_DIMENSION))
        self.download_timeout_seconds = float(_positive_or(self.download_timeout_seconds, 120.0))

    @classmethod
    def from_env(cls) -> "ProcessingSettings":
        return cls(
            output_dir=Path(os.getenv("IMAGE_OUTPUT_DIR") or DEFAULT_OUTPUT_DIR),
            max_concurrency=_env_int("IMAGE_MAX_CONCURRENCY") or 0,
            small_dimension=_env_int("IMAGE_SMALL_DIMENSION") or 0,
            thumbnail_dimension=_env_int("IMAGE_THUMBNAIL_DIMENSION") or 0,
        )
