"""Provider base types."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError

from ..models.registry import FLASH_IMAGE_MODEL, PRO_IMAGE_MODEL
from ..prompts import MODE_ANIMATE, MODE_CREATE, MODE_EDIT, MODES


ASPECT_RATIOS = ("1:1", "3:4", "4:3", "9:16", "16:9")
IMAGE_MODELS = (FLASH_IMAGE_MODEL, PRO_IMAGE_MODEL)
QUALITY_TIERS = ("1K", "2K", "4K")

KIND_IMAGE = "image"
KIND_VIDEO = "video"

_PIL_FORMAT_MIME = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
}


@dataclass(frozen=True)
class GenerationConfig:
    aspect_ratio: str = "1:1"
    model: str = FLASH_IMAGE_MODEL
    quality: str = "1K"

    def __post_init__(self) -> None:
        if self.aspect_ratio not in ASPECT_RATIOS:
            raise ValueError(f"Unsupported aspect ratio: {self.aspect_ratio!r}")
        if self.model not in IMAGE_MODELS:
            raise ValueError(f"Unsupported image model: {self.model!r}")
        if self.quality not in QUALITY_TIERS:
            raise ValueError(f"Unsupported quality tier: {self.quality!r}")


@dataclass(frozen=True)
class ImageInput:
    data: bytes
    mime_type: str = "image/png"

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str | None = None) -> "ImageInput":
        if not data:
            raise ValueError("Image input is empty.")
        return cls(data=bytes(data), mime_type=mime_type or sniff_image_mime(data))

    @classmethod
    def from_path(cls, path: str | Path) -> "ImageInput":
        return cls.from_bytes(Path(path).expanduser().read_bytes())

    @classmethod
    def from_data_uri(cls, value: str) -> "ImageInput":
        text = str(value or "").strip()
        header, sep, payload = text.partition(",")
        if not sep:
            # Bare base64 without a data: header.
            header, payload = "", text
        mime_type = None
        if header.startswith("data:"):
            mime_type = header[5:].split(";", 1)[0] or None
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("Image data URI is not valid base64.") from exc
        return cls.from_bytes(data, mime_type)

    @classmethod
    def coerce(cls, value: Any) -> "ImageInput":
        if isinstance(value, ImageInput):
            return value
        if isinstance(value, (bytes, bytearray)):
            return cls.from_bytes(bytes(value))
        if isinstance(value, Path):
            return cls.from_path(value)
        if isinstance(value, str):
            if value.startswith("data:"):
                return cls.from_data_uri(value)
            path = Path(value).expanduser()
            if path.is_file():
                return cls.from_path(path)
            return cls.from_data_uri(value)
        raise TypeError(f"Unsupported image input type: {type(value).__name__}")


def sniff_image_mime(data: bytes) -> str:
    try:
        with Image.open(BytesIO(data)) as image:
            fmt = image.format or ""
    except (UnidentifiedImageError, OSError):
        return "image/png"
    return _PIL_FORMAT_MIME.get(fmt.upper(), "image/png")


@dataclass(frozen=True)
class GenerationRequest:
    mode: str
    prompt_text: str
    config: GenerationConfig = field(default_factory=GenerationConfig)
    reference_image: ImageInput | None = None
    canvas_image: ImageInput | None = None

    def __post_init__(self) -> None:
        if self.mode not in MODES:
            raise ValueError(f"Unknown generation mode: {self.mode!r}")
        if self.mode in {MODE_EDIT, MODE_ANIMATE} and self.canvas_image is None:
            raise ValueError(f"{self.mode} requests need a canvas image.")
        if self.mode == MODE_CREATE and self.canvas_image is not None:
            raise ValueError("create requests do not take a canvas image.")


@dataclass(frozen=True)
class GenerationResult:
    artifact_ref: str
    kind: str
    mode: str
    model: str
    prompt: str


@dataclass(frozen=True)
class VideoOperation:
    """Snapshot of a video job. Each poll yields a new snapshot."""

    name: str | None
    done: bool
    video_uri: str | None = None
    error: str | None = None
    handle: Any = field(default=None, repr=False, compare=False)
