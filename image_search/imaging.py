from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageOps

from image_search.config import JPEG_QUALITY
from image_search.errors import ImageDecodeError

SMALL_TAG = "small"
THUMB_TAG = "thumb"


@dataclass(frozen=True, slots=True)
class Derivative:
    tag: str
    data: bytes
    width: int
    height: int


def decode_image(data: bytes) -> Image.Image:
    """Fully decode ``data`` so corrupt payloads fail here rather than on resize."""
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except Exception as exc:  # noqa: BLE001
        raise ImageDecodeError(f"{type(exc).__name__}: {exc}") from exc
    return img


def encode_derivative(img: Image.Image, tag: str, max_dimension: int, *, quality: int = JPEG_QUALITY) -> Derivative:
    buffer = BytesIO()
    try:
        # thumbnail() keeps the aspect ratio and never enlarges the image.
        resized = ImageOps.exif_transpose(img)
        resized.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
        if resized.mode not in ("RGB", "L"):
            resized = resized.convert("RGB")
        resized.save(buffer, format="JPEG", quality=quality)
    except Exception as exc:  # noqa: BLE001
        raise ImageDecodeError(f"JPEG encode failed for {tag}: {exc}") from exc
    return Derivative(tag=tag, data=buffer.getvalue(), width=resized.width, height=resized.height)


def render_derivatives(data: bytes, sizes: dict[str, int]) -> list[Derivative]:
    """Decode ``data`` once and produce one JPEG per ``{tag: max_dimension}``."""
    with decode_image(data) as img:
        return [encode_derivative(img, tag, max_dimension) for tag, max_dimension in sizes.items()]
