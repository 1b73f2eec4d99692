"""Wireframe studio orchestration."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Any, Awaitable, Callable

from .artifacts import BlobStore, VideoMaterializer, decode_data_uri, materialize_video
from .auth import AuthorizationGate, resolve_api_key
from .errors import UpstreamError
from .history import ENTRY_EDIT, ENTRY_GENERATION, HistoryEntry, HistoryStore
from .models.registry import VIDEO_MODEL
from .prompts import MODE_ANIMATE, MODE_CREATE, MODE_EDIT
from .providers import build_media_client
from .providers.base import (
    KIND_IMAGE,
    KIND_VIDEO,
    GenerationConfig,
    GenerationRequest,
    GenerationResult,
    ImageInput,
)
from .providers.gemini import GeminiMediaClient
from .providers.veo import DEFAULT_MAX_WAIT_S, DEFAULT_POLL_INTERVAL_S, OperationPoller
from .runs.events import EventWriter

logger = logging.getLogger(__name__)


class WireframeStudio:
    def __init__(
        self,
        run_dir: Path,
        *,
        events_path: Path | None = None,
        media_client: GeminiMediaClient | None = None,
        video_materializer: VideoMaterializer | None = None,
        gate: AuthorizationGate | None = None,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        max_wait_s: float | None = DEFAULT_MAX_WAIT_S,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.run_dir = run_dir
        self.run_dir.mkdir(parents=True, exist_ok=True)
        self.run_id = run_dir.name or str(uuid.uuid4())
        self.events = EventWriter(events_path or run_dir / "events.jsonl", self.run_id)
        self.history = HistoryStore.load(run_dir / "history.json")
        self.blobs = BlobStore(run_dir / "blobs")
        if media_client is None:
            media_client, default_materializer = build_media_client()
            video_materializer = video_materializer or default_materializer
        self.media = media_client
        self.materialize_video = video_materializer or materialize_video
        self.gate = gate or AuthorizationGate(None, media_client.registry)
        self.poll_interval_s = poll_interval_s
        self.max_wait_s = max_wait_s
        self._sleep = sleep
        self._clock = clock

    async def run_request(
        self,
        request: GenerationRequest,
        cancel_event: asyncio.Event | None = None,
    ) -> GenerationResult:
        model = VIDEO_MODEL if request.mode == MODE_ANIMATE else request.config.model
        self.events.emit("generation_started", mode=request.mode, model=model, prompt=request.prompt_text)
        started_at = time.monotonic()
        try:
            # Free models pass straight through the gate.
            await self.gate.ensure_authorized(model)
            if request.mode == MODE_CREATE:
                ref = await self.media.create_image(request.prompt_text, request.config, request.reference_image)
            elif request.mode == MODE_EDIT:
                ref = await self.media.edit_image(request.canvas_image, request.prompt_text, request.config)
            else:
                ref = await self._animate(request, cancel_event)
        except Exception as exc:
            self.events.emit(
                "generation_failed",
                mode=request.mode,
                model=model,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            if isinstance(exc, UpstreamError) and exc.is_credential_error:
                logger.warning("Credential rejected by %s; requesting a new key.", model)
                await self.gate.reauthorize()
            raise
        kind = KIND_VIDEO if request.mode == MODE_ANIMATE else KIND_IMAGE
        logger.info("%s via %s finished in %.1fs", request.mode, model, time.monotonic() - started_at)
        return GenerationResult(
            artifact_ref=ref,
            kind=kind,
            mode=request.mode,
            model=model,
            prompt=request.prompt_text,
        )

    async def _animate(self, request: GenerationRequest, cancel_event: asyncio.Event | None) -> str:
        operation = await self.media.create_video_job(request.canvas_image, request.config.aspect_ratio)
        self.events.emit("video_job_created", operation=operation.name, done=operation.done)

        def on_poll(attempt: int, elapsed: float) -> None:
            self.events.emit("video_poll", operation=operation.name, attempt=attempt, elapsed_s=round(elapsed, 3))

        poller = OperationPoller(
            self.media.refresh_operation,
            interval_s=self.poll_interval_s,
            max_wait_s=self.max_wait_s,
            sleep=self._sleep,
            clock=self._clock,
            on_poll=on_poll,
        )
        uri = await poller.wait(operation, cancel_event)
        ref = await self.materialize_video(uri, resolve_api_key(), self.blobs)
        self.events.emit("video_ready", operation=operation.name, video_ref=ref)
        return ref

    async def generate(
        self,
        prompt: str,
        config: GenerationConfig | None = None,
        reference_image: Any = None,
    ) -> HistoryEntry:
        text = _require_text(prompt, "prompt")
        config = config or GenerationConfig()
        reference = ImageInput.coerce(reference_image) if reference_image is not None else None
        request = GenerationRequest(MODE_CREATE, text, config, reference_image=reference)
        result = await self.run_request(request)
        return self._record(result, ENTRY_GENERATION)

    async def edit(self, source: Any, instruction: str, config: GenerationConfig | None = None) -> HistoryEntry:
        text = _require_text(instruction, "instruction")
        canvas = self._resolve_image(source)
        request = GenerationRequest(MODE_EDIT, text, config or GenerationConfig(), canvas_image=canvas)
        result = await self.run_request(request)
        return self._record(result, ENTRY_EDIT)

    async def animate(
        self,
        entry_id: str,
        config: GenerationConfig | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> HistoryEntry:
        entry = self._require_entry(entry_id)
        canvas = ImageInput.from_data_uri(entry.url)
        request = GenerationRequest(MODE_ANIMATE, entry.prompt, config or GenerationConfig(), canvas_image=canvas)
        result = await self.run_request(request, cancel_event)
        previous = entry.video_url
        updated = self.history.attach_video(entry.id, result.artifact_ref)
        if previous and previous != result.artifact_ref:
            self.blobs.release(previous)
        self.events.emit("artifact_created", entry_id=entry.id, kind=KIND_VIDEO, ref=result.artifact_ref)
        return updated

    def download(self, entry_id: str, dest_dir: Path, prefer_video: bool = True) -> Path:
        entry = self._require_entry(entry_id)
        dest_dir.mkdir(parents=True, exist_ok=True)
        if prefer_video and entry.video_url:
            blob_path = self.blobs.path_for(entry.video_url)
            if blob_path is None:
                raise FileNotFoundError(f"Video for {entry.id} is no longer available.")
            target = dest_dir / f"wireframe-{entry.id}{blob_path.suffix}"
            target.write_bytes(blob_path.read_bytes())
            return target
        _, data = decode_data_uri(entry.url)
        target = dest_dir / f"wireframe-{entry.id}.png"
        target.write_bytes(data)
        return target

    def delete(self, entry_id: str) -> bool:
        removed = self.history.delete(entry_id, release=self.blobs.release)
        if removed:
            self.events.emit("history_deleted", entry_id=entry_id)
        return removed

    def _record(self, result: GenerationResult, entry_type: str) -> HistoryEntry:
        entry = self.history.add(result.artifact_ref, result.prompt, entry_type, result.model)
        self.events.emit("artifact_created", entry_id=entry.id, kind=result.kind, model=result.model)
        return entry

    def _resolve_image(self, source: Any) -> ImageInput:
        if isinstance(source, HistoryEntry):
            return ImageInput.from_data_uri(source.url)
        if isinstance(source, str):
            entry = self.history.get(source)
            if entry is not None:
                return ImageInput.from_data_uri(entry.url)
            if not source.startswith("data:") and not Path(source).expanduser().is_file():
                raise KeyError(f"No history entry or image file named {source}")
        return ImageInput.coerce(source)

    def _require_entry(self, entry_id: str) -> HistoryEntry:
        entry = self.history.get(entry_id)
        if entry is None:
            raise KeyError(f"No history entry with id {entry_id}")
        return entry


def _require_text(value: str, label: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValueError(f"{label} must not be blank.")
    return text
