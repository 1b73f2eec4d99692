from __future__ import annotations

import asyncio
from io import BytesIO

import pytest
from PIL import Image

from meshwire_engine.artifacts import BlobStore
from meshwire_engine.providers.dryrun import (
    DRYRUN_URI_PREFIX,
    DryRunClient,
    materialize_dryrun_video,
    render_png,
    render_wireframe,
)
from meshwire_engine.providers.gemini import snapshot_operation


@pytest.mark.parametrize(
    ("ratio", "size"),
    [("1:1", (512, 512)), ("16:9", (512, 288)), ("9:16", (288, 512)), ("bad", (512, 512))],
)
def test_render_sizes_follow_aspect_ratio(ratio: str, size: tuple[int, int]) -> None:
    assert render_wireframe(ratio).size == size


def test_render_png_draws_palette_on_black() -> None:
    image = Image.open(BytesIO(render_png("1:1"))).convert("RGB")
    colors = {color for _, color in image.getcolors(maxcolors=100_000)}
    assert (0, 0, 0) in colors
    assert (0, 255, 255) in colors


def test_video_operation_finishes_after_scripted_polls() -> None:
    client = DryRunClient(polls_until_done=2)

    async def run():
        operation = await client.aio.models.generate_videos(model="veo", prompt="orbit")
        states = [operation.done]
        for _ in range(2):
            operation = await client.aio.operations.get(operation)
            states.append(operation.done)
        return states, operation

    states, final = asyncio.run(run())

    assert states == [False, False, True]
    snapshot = snapshot_operation(final)
    assert snapshot.video_uri.startswith(DRYRUN_URI_PREFIX)
    assert [call["method"] for call in client.calls] == ["generate_videos", "operations.get", "operations.get"]


def test_dryrun_video_materializes_gif(tmp_path) -> None:
    blobs = BlobStore(tmp_path)
    ref = asyncio.run(materialize_dryrun_video(f"{DRYRUN_URI_PREFIX}abc", "", blobs))
    assert blobs.read(ref).startswith(b"GIF")


def test_dryrun_materializer_rejects_remote_uris(tmp_path) -> None:
    with pytest.raises(ValueError):
        asyncio.run(materialize_dryrun_video("https://host/video", "", BlobStore(tmp_path)))
