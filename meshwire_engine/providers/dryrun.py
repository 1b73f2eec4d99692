"""Dry-run stand-in for the Gemini client (offline)."""

from __future__ import annotations

import math
import uuid
from io import BytesIO
from types import SimpleNamespace
from typing import Any

from google.genai import types
from PIL import Image, ImageDraw

from ..artifacts import BlobStore

DRYRUN_URI_PREFIX = "dryrun://videos/"

_PALETTE = ((0, 255, 255), (255, 0, 255), (255, 255, 0))
_CUBE_VERTICES = [(x, y, z) for x in (-1, 1) for y in (-1, 1) for z in (-1, 1)]
_CUBE_EDGES = [
    (a, b)
    for a in range(8)
    for b in range(a + 1, 8)
    if sum(1 for i in range(3) if _CUBE_VERTICES[a][i] != _CUBE_VERTICES[b][i]) == 1
]
_RATIO_SIZES = {
    "1:1": (512, 512),
    "3:4": (384, 512),
    "4:3": (512, 384),
    "9:16": (288, 512),
    "16:9": (512, 288),
}


def render_wireframe(aspect_ratio: str | None = None, angle: float = 0.6) -> Image.Image:
    width, height = _RATIO_SIZES.get(aspect_ratio or "", (512, 512))
    image = Image.new("RGB", (width, height), (0, 0, 0))
    draw = ImageDraw.Draw(image)
    scale = min(width, height) * 0.25
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    projected: list[tuple[float, float]] = []
    for x, y, z in _CUBE_VERTICES:
        rx = x * cos_a + z * sin_a
        rz = -x * sin_a + z * cos_a
        ry = y * math.cos(0.45) - rz * math.sin(0.45)
        projected.append((width / 2 + rx * scale, height / 2 + ry * scale))
    for idx, (a, b) in enumerate(_CUBE_EDGES):
        draw.line([projected[a], projected[b]], fill=_PALETTE[idx % len(_PALETTE)], width=2)
    return image


def render_png(aspect_ratio: str | None = None) -> bytes:
    buffer = BytesIO()
    render_wireframe(aspect_ratio).save(buffer, format="PNG")
    return buffer.getvalue()


def render_orbit_gif(frames: int = 24) -> bytes:
    images = [render_wireframe("16:9", angle=2 * math.pi * idx / frames) for idx in range(frames)]
    buffer = BytesIO()
    images[0].save(buffer, format="GIF", save_all=True, append_images=images[1:], duration=80, loop=0)
    return buffer.getvalue()


async def materialize_dryrun_video(download_uri: str, credential: str, blobs: BlobStore) -> str:
    if not download_uri.startswith(DRYRUN_URI_PREFIX):
        raise ValueError(f"Not a dry-run video URI: {download_uri}")
    return blobs.put(render_orbit_gif(), "image/gif")


class _DryRunModels:
    def __init__(self, owner: "DryRunClient") -> None:
        self._owner = owner

    async def generate_content(self, *, model: str, contents: Any, config: Any = None) -> types.GenerateContentResponse:
        self._owner.calls.append({"method": "generate_content", "model": model})
        image_config = getattr(config, "image_config", None)
        png = render_png(getattr(image_config, "aspect_ratio", None))
        return types.GenerateContentResponse(
            candidates=[
                types.Candidate(
                    content=types.Content(
                        role="model",
                        parts=[types.Part(inline_data=types.Blob(data=png, mime_type="image/png"))],
                    )
                )
            ]
        )

    async def generate_videos(self, *, model: str, prompt: str, image: Any = None, config: Any = None) -> types.GenerateVideosOperation:
        self._owner.calls.append({"method": "generate_videos", "model": model})
        name = f"dryrun/operations/{uuid.uuid4().hex[:12]}"
        self._owner.pending[name] = self._owner.polls_until_done
        return self._owner.operation(name)


class _DryRunOperations:
    def __init__(self, owner: "DryRunClient") -> None:
        self._owner = owner

    async def get(self, operation: Any) -> types.GenerateVideosOperation:
        name = str(getattr(operation, "name", ""))
        self._owner.calls.append({"method": "operations.get", "name": name})
        remaining = self._owner.pending.get(name, 0)
        self._owner.pending[name] = max(0, remaining - 1)
        return self._owner.operation(name)


class DryRunClient:
    """Offline client exposing the ``aio`` surface the media client uses."""

    def __init__(self, api_key: str = "", polls_until_done: int = 1) -> None:
        self.api_key = api_key
        self.polls_until_done = max(0, int(polls_until_done))
        self.pending: dict[str, int] = {}
        self.calls: list[dict[str, Any]] = []
        self.aio = SimpleNamespace(models=_DryRunModels(self), operations=_DryRunOperations(self))

    def operation(self, name: str) -> types.GenerateVideosOperation:
        if self.pending.get(name, 0) > 0:
            return types.GenerateVideosOperation(name=name, done=False)
        video_id = name.rsplit("/", 1)[-1]
        return types.GenerateVideosOperation(
            name=name,
            done=True,
            response=types.GenerateVideosResponse(
                generated_videos=[types.GeneratedVideo(video=types.Video(uri=f"{DRYRUN_URI_PREFIX}{video_id}"))]
            ),
        )
