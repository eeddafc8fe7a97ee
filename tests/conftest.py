# tests/conftest.py
import asyncio
from io import BytesIO

import httpx
import pytest
from PIL import Image

from image_search.models import Candidate


def _image_bytes(width: int = 64, height: int = 48, fmt: str = "JPEG", mode: str = "RGB") -> bytes:
    color = (200, 30, 30, 255)[: len(mode)] if mode in ("RGB", "RGBA") else 128
    buffer = BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


class MemoryStorage:
    """In-memory StorageSink double; names in ``fail_on`` raise ``error``."""

    def __init__(self, fail_on=(), error: Exception | None = None):
        self.saved: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_on = set(fail_on)
        self.error = error or OSError("Disk full")

    async def save(self, stream, logical_name: str) -> str:
        await asyncio.sleep(0)
        if logical_name in self.fail_on:
            raise self.error
        self.saved[logical_name] = stream.read()
        return f"/images/{logical_name}.jpg"

    async def delete(self, logical_name: str) -> None:
        self.deleted.append(logical_name)
        self.saved.pop(logical_name, None)


@pytest.fixture
def make_image():
    return _image_bytes


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def storage_factory():
    return MemoryStorage


@pytest.fixture
def make_candidates():
    def _make(count: int) -> list[Candidate]:
        return [
            Candidate(
                id=f"photo{i}",
                source_url=f"https://images.test/photo{i}.jpg",
                alt_text=f"alt {i}",
                description=f"description {i}",
            )
            for i in range(count)
        ]

    return _make


@pytest.fixture
def mock_client():
    def _make(handler, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler), **kwargs)

    return _make
