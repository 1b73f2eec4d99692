"""Gemini image and Veo video requests."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Sequence

from google import genai
from google.genai import types

from ..artifacts import materialize_image
from ..auth import resolve_api_key
from ..errors import MeshwireError, NoCandidatesError, NoImageDataError, UpstreamError
from ..models.registry import VIDEO_MODEL, ModelRegistry
from ..prompts import MODE_ANIMATE, MODE_CREATE, MODE_EDIT, compose_prompt
from ..utils import sanitize_payload
from .base import GenerationConfig, ImageInput, VideoOperation

logger = logging.getLogger(__name__)

VIDEO_RESOLUTION = "720p"
VIDEO_ASPECT_RATIOS = ("16:9", "9:16")
DEFAULT_VIDEO_ASPECT_RATIO = "16:9"

ClientFactory = Callable[[str], Any]


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class InlineDataPart:
    data: bytes
    mime_type: str | None = None


ResponsePart = TextPart | InlineDataPart


def default_client_factory(api_key: str) -> genai.Client:
    return genai.Client(api_key=api_key)


def normalize_video_aspect_ratio(value: str | None) -> str:
    if value in VIDEO_ASPECT_RATIOS:
        return str(value)
    return DEFAULT_VIDEO_ASPECT_RATIO


def build_image_request(
    *,
    prompt: str,
    config: GenerationConfig,
    images: Sequence[ImageInput] = (),
    registry: ModelRegistry | None = None,
) -> dict[str, Any]:
    registry = registry or ModelRegistry()
    parts: list[dict[str, Any]] = [
        {"inline_data": {"data": image.data, "mime_type": image.mime_type}} for image in images
    ]
    parts.append({"text": prompt})
    image_config: dict[str, Any] = {"aspect_ratio": config.aspect_ratio}
    if registry.supports_image_size(config.model):
        image_config["image_size"] = config.quality
    return {
        "model": config.model,
        "parts": parts,
        "config": {"image_config": image_config},
    }


def build_video_request(*, image: ImageInput, aspect_ratio: str | None) -> dict[str, Any]:
    return {
        "model": VIDEO_MODEL,
        "prompt": compose_prompt(MODE_ANIMATE),
        "image": {"image_bytes": image.data, "mime_type": image.mime_type},
        "config": {
            "number_of_videos": 1,
            "resolution": VIDEO_RESOLUTION,
            "aspect_ratio": normalize_video_aspect_ratio(aspect_ratio),
        },
    }


def decode_candidates(response: Any) -> list[list[ResponsePart]]:
    candidates = getattr(response, "candidates", None) or []
    decoded: list[list[ResponsePart]] = []
    for candidate in candidates:
        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or []
        decoded.append([part for part in (_decode_part(raw) for raw in parts) if part is not None])
    return decoded


def _decode_part(raw: Any) -> ResponsePart | None:
    inline = getattr(raw, "inline_data", None)
    data = getattr(inline, "data", None) if inline is not None else None
    if data:
        if isinstance(data, str):
            data = base64.b64decode(data)
        return InlineDataPart(data=bytes(data), mime_type=getattr(inline, "mime_type", None))
    text = getattr(raw, "text", None)
    if text is not None:
        return TextPart(text=str(text))
    return None


def select_image_part(candidates: Sequence[Sequence[ResponsePart]]) -> InlineDataPart:
    if not candidates:
        raise NoCandidatesError("No candidates generated.")
    for part in candidates[0]:
        if isinstance(part, InlineDataPart) and (part.mime_type or "image/").startswith("image/"):
            return part
    raise NoImageDataError("No image data returned in parts.")


def snapshot_operation(operation: Any) -> VideoOperation:
    response = getattr(operation, "response", None) or getattr(operation, "result", None)
    videos = getattr(response, "generated_videos", None) or []
    video_uri = None
    if videos:
        video = getattr(videos[0], "video", None)
        video_uri = getattr(video, "uri", None) or None
    error = getattr(operation, "error", None)
    if isinstance(error, Mapping):
        error = error.get("message") or str(dict(error))
    return VideoOperation(
        name=getattr(operation, "name", None),
        done=bool(getattr(operation, "done", False)),
        video_uri=video_uri,
        error=str(error) if error else None,
        handle=operation,
    )


def _to_content(parts: Sequence[Mapping[str, Any]]) -> types.Content:
    converted: list[types.Part] = []
    for part in parts:
        inline = part.get("inline_data")
        if inline:
            converted.append(
                types.Part(inline_data=types.Blob(data=inline["data"], mime_type=inline["mime_type"]))
            )
        else:
            converted.append(types.Part(text=part["text"]))
    return types.Content(role="user", parts=converted)


class GeminiMediaClient:
    def __init__(
        self,
        client_factory: ClientFactory | None = None,
        registry: ModelRegistry | None = None,
    ) -> None:
        self._client_factory = client_factory or default_client_factory
        self.registry = registry or ModelRegistry()

    async def create_image(
        self,
        prompt: str,
        config: GenerationConfig,
        reference_image: ImageInput | None = None,
    ) -> str:
        images = [reference_image] if reference_image is not None else []
        composed = compose_prompt(MODE_CREATE, prompt, has_reference_image=bool(images))
        payload = build_image_request(prompt=composed, config=config, images=images, registry=self.registry)
        return await self._send_image_request("create_image", payload)

    async def edit_image(self, base_image: ImageInput, instruction: str, config: GenerationConfig) -> str:
        composed = compose_prompt(MODE_EDIT, instruction)
        payload = build_image_request(prompt=composed, config=config, images=[base_image], registry=self.registry)
        return await self._send_image_request("edit_image", payload)

    async def create_video_job(self, base_image: ImageInput, aspect_ratio: str | None) -> VideoOperation:
        payload = build_video_request(image=base_image, aspect_ratio=aspect_ratio)
        logger.debug("create_video_job request: %s", sanitize_payload(payload))

        async def call(client: Any) -> Any:
            return await client.aio.models.generate_videos(
                model=payload["model"],
                prompt=payload["prompt"],
                image=types.Image(**payload["image"]),
                config=types.GenerateVideosConfig(**payload["config"]),
            )

        operation = await self._call("create_video_job", call)
        return snapshot_operation(operation)

    async def refresh_operation(self, operation: VideoOperation) -> VideoOperation:
        async def call(client: Any) -> Any:
            return await client.aio.operations.get(operation.handle)

        refreshed = await self._call("refresh_operation", call)
        return snapshot_operation(refreshed)

    async def _send_image_request(self, operation: str, payload: Mapping[str, Any]) -> str:
        logger.debug("%s request: %s", operation, sanitize_payload(payload))

        async def call(client: Any) -> Any:
            return await client.aio.models.generate_content(
                model=payload["model"],
                contents=_to_content(payload["parts"]),
                config=types.GenerateContentConfig(
                    image_config=types.ImageConfig(**payload["config"]["image_config"]),
                ),
            )

        response = await self._call(operation, call)
        part = select_image_part(decode_candidates(response))
        return materialize_image(base64.b64encode(part.data))

    async def _call(self, operation: str, call: Callable[[Any], Awaitable[Any]]) -> Any:
        try:
            client = self._client_factory(resolve_api_key())
            return await call(client)
        except MeshwireError:
            raise
        except Exception as exc:
            error = UpstreamError.from_exception(exc, operation=operation)
            logger.error("%s failed (code=%s status=%s): %s", operation, error.code, error.status, error.message)
            raise error from exc
