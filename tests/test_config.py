from pathlib import Path

import pytest

from image_search.config import ProcessingSettings, UnsplashSettings


def test_defaults():
    settings = ProcessingSettings()
    assert settings.max_concurrency == 3
    assert settings.small_dimension == 1024
    assert settings.thumbnail_dimension == 256
    assert settings.output_dir == Path("processed-images")


@pytest.mark.parametrize("value", [0, -1])
def test_non_positive_values_fall_back_to_defaults(value):
    settings = ProcessingSettings(max_concurrency=value, small_dimension=value, thumbnail_dimension=value)
    assert (settings.max_concurrency, settings.small_dimension, settings.thumbnail_dimension) == (3, 1024, 256)


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("IMAGE_OUTPUT_DIR", str(tmp_path))
    monkeypatch.setenv("IMAGE_MAX_CONCURRENCY", "5")
    monkeypatch.setenv("IMAGE_SMALL_DIMENSION", "800")
    monkeypatch.setenv("IMAGE_THUMBNAIL_DIMENSION", "not-a-number")

    settings = ProcessingSettings.from_env()

    assert settings.output_dir == tmp_path
    assert settings.max_concurrency == 5
    assert settings.small_dimension == 800
    assert settings.thumbnail_dimension == 256


def test_unsplash_from_env(monkeypatch):
    monkeypatch.setenv("UNSPLASH_ACCESS_KEY", "  abc  ")
    monkeypatch.delenv("UNSPLASH_BASE_URL", raising=False)

    settings = UnsplashSettings.from_env()

    assert settings.api_key == "abc"
    assert settings.base_url == "https://api.unsplash.com/"
