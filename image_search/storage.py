from __future__ import annotations

import asyncio
import logging
import os
import uuid
from pathlib import Path
from typing import BinaryIO, Protocol

from image_search.errors import InvalidNameError, StorageError

LOGGER = logging.getLogger(__name__)


class StorageSink(Protocol):
    """Durable store for encoded derivatives.

    Implementations must be safe to call concurrently from every in-flight
    pipeline task.
    """

    async def save(self, stream: BinaryIO, logical_name: str) -> str:
        ...

    async def delete(self, logical_name: str) -> None:
        ...


def validate_logical_name(logical_name: str) -> str:
    base = Path(logical_name).name if logical_name else ""
    if not base.strip() or base != logical_name or base in {".", ".."}:
        raise InvalidNameError(f"Invalid file name: {logical_name!r}")
    return base


class FileStorage:
    def __init__(self, output_dir: Path, *, public_prefix: str = "/images", suffix: str = ".jpg") -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.public_prefix = public_prefix.rstrip("/")
        self.suffix = suffix

    def path_for(self, logical_name: str) -> Path:
        return self.output_dir / f"{validate_logical_name(logical_name)}{self.suffix}"

    async def save(self, stream: BinaryIO, logical_name: str) -> str:
        path = self.path_for(logical_name)
        data = stream.read()
        try:
            await asyncio.to_thread(_write_atomic, path, data)
        except OSError as exc:
            LOGGER.error("Failed to save image %s: %s", path.name, exc)
            raise StorageError(f"Failed to save {path.name}: {exc}") from exc

        LOGGER.info("Saved image to %s", path)
        return f"{self.public_prefix}/{path.name}"

    async def delete(self, logical_name: str) -> None:
        path = self.path_for(logical_name)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {path.name}: {exc}") from exc


def _write_atomic(path: Path, data: bytes) -> None:
    # Unique temp name per write; os.replace makes concurrent writers last-wins.
    tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)
