"""Media client wiring."""

from __future__ import annotations

from .dryrun import DryRunClient, materialize_dryrun_video
from .gemini import ClientFactory, GeminiMediaClient, default_client_factory
from ..artifacts import VideoMaterializer, materialize_video


def build_media_client(dry_run: bool = False, polls_until_done: int = 1) -> tuple[GeminiMediaClient, VideoMaterializer]:
    """Return the media client and the matching video materializer."""
    if dry_run:
        client = DryRunClient(polls_until_done=polls_until_done)
        factory: ClientFactory = lambda api_key: client
        return GeminiMediaClient(client_factory=factory), materialize_dryrun_video
    return GeminiMediaClient(client_factory=default_client_factory), materialize_video
