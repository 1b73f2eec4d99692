"""meshwire CLI entrypoints."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Coroutine, Sequence

from .auth import AuthorizationGate, PromptCredentialHost
from .cli_progress import LOADING_MESSAGES, VIDEO_MESSAGE, ProgressTicker
from .engine import WireframeStudio
from .errors import UpstreamError
from .providers import build_media_client
from .providers.base import ASPECT_RATIOS, IMAGE_MODELS, QUALITY_TIERS, GenerationConfig
from .providers.veo import DEFAULT_MAX_WAIT_S, DEFAULT_POLL_INTERVAL_S
from .utils import getenv_flag, getenv_float, load_dotenv

DEFAULT_RUN_DIR = "meshwire-run"


def _max_wait(value: str) -> float | None:
    lowered = value.strip().lower()
    if lowered in {"none", "unbounded", "inf"}:
        return None
    seconds = float(lowered)
    if seconds <= 0:
        raise argparse.ArgumentTypeError("--max-wait must be positive or 'none'.")
    return seconds


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--out", default=DEFAULT_RUN_DIR, help="Run directory (history, events, blobs)")
    common.add_argument("--events", help="Path to events.jsonl")
    common.add_argument("--dry-run", dest="dry_run", action="store_true", default=getenv_flag("MESHWIRE_DRYRUN"))
    common.add_argument("--verbose", "-v", action="store_true")

    config = argparse.ArgumentParser(add_help=False)
    config.add_argument("--aspect-ratio", dest="aspect_ratio", choices=ASPECT_RATIOS, default="1:1")
    config.add_argument("--model", choices=IMAGE_MODELS, default=IMAGE_MODELS[0])
    config.add_argument("--quality", choices=QUALITY_TIERS, default="1K")

    parser = argparse.ArgumentParser(prog="meshwire", description="CAD wireframe generator")
    sub = parser.add_subparsers(dest="command")

    generate = sub.add_parser("generate", parents=[common, config], help="Generate a wireframe from text")
    generate.add_argument("prompt", help="Object specification")
    generate.add_argument("--reference", help="Reference image used as a silhouette hint")

    edit = sub.add_parser("edit", parents=[common, config], help="Modify an archived or local image")
    edit.add_argument("source", help="History id or image path")
    edit.add_argument("instruction", help="Modification to apply")

    animate = sub.add_parser("animate", parents=[common, config], help="Render a rotating video of an entry")
    animate.add_argument("entry_id")
    animate.add_argument(
        "--poll-interval",
        dest="poll_interval",
        type=float,
        default=getenv_float("MESHWIRE_POLL_INTERVAL", DEFAULT_POLL_INTERVAL_S),
    )
    animate.add_argument(
        "--max-wait",
        dest="max_wait",
        type=_max_wait,
        default=getenv_float("MESHWIRE_MAX_WAIT", DEFAULT_MAX_WAIT_S),
        help="Seconds to wait for the video job, or 'none' to wait indefinitely",
    )

    sub.add_parser("history", parents=[common], help="List archived schematics")

    download = sub.add_parser("download", parents=[common], help="Save an entry to disk")
    download.add_argument("entry_id")
    download.add_argument("--dest", default=".", help="Destination directory")
    download.add_argument("--image", action="store_true", help="Save the still image even if a video exists")

    delete = sub.add_parser("delete", parents=[common], help="Delete an entry from the archive")
    delete.add_argument("entry_id")
    delete.add_argument("--yes", action="store_true", help="Skip confirmation")

    return parser


def _build_studio(args: argparse.Namespace) -> WireframeStudio:
    media, materializer = build_media_client(dry_run=args.dry_run)
    gate = AuthorizationGate(None if args.dry_run else PromptCredentialHost(), media.registry)
    run_dir = Path(args.out)
    return WireframeStudio(
        run_dir,
        events_path=Path(args.events) if args.events else None,
        media_client=media,
        video_materializer=materializer,
        gate=gate,
        poll_interval_s=getattr(args, "poll_interval", None) or DEFAULT_POLL_INTERVAL_S,
        max_wait_s=getattr(args, "max_wait", DEFAULT_MAX_WAIT_S),
    )


def _config_from_args(args: argparse.Namespace) -> GenerationConfig:
    return GenerationConfig(aspect_ratio=args.aspect_ratio, model=args.model, quality=args.quality)


def _report_failure(label: str, exc: Exception) -> int:
    if isinstance(exc, UpstreamError) and exc.is_credential_error:
        print("API key error. Re-select a key with billing enabled and try again.")
    else:
        print(f"{label} failed: {exc}")
    return 1


def _run_with_progress(coro: Coroutine[Any, Any, Any], messages: Sequence[str]) -> Any:
    ticker = ProgressTicker(messages)
    ticker.start_ticking()
    try:
        result = asyncio.run(coro)
    except BaseException:
        ticker.stop(done=False)
        raise
    ticker.stop(done=True)
    return result


def _handle_generate(args: argparse.Namespace) -> int:
    studio = _build_studio(args)
    try:
        entry = _run_with_progress(
            studio.generate(args.prompt, _config_from_args(args), reference_image=args.reference),
            LOADING_MESSAGES,
        )
    except Exception as exc:
        return _report_failure("Generation", exc)
    print(f"Saved {entry.id}: {entry.prompt}")
    return 0


def _handle_edit(args: argparse.Namespace) -> int:
    studio = _build_studio(args)
    try:
        entry = _run_with_progress(
            studio.edit(args.source, args.instruction, _config_from_args(args)),
            LOADING_MESSAGES,
        )
    except Exception as exc:
        return _report_failure("Edit", exc)
    print(f"Saved {entry.id}: {entry.prompt}")
    return 0


def _handle_animate(args: argparse.Namespace) -> int:
    studio = _build_studio(args)
    try:
        entry = _run_with_progress(
            studio.animate(args.entry_id, _config_from_args(args)),
            (VIDEO_MESSAGE,),
        )
    except Exception as exc:
        return _report_failure("3D Rotation", exc)
    print(f"Video attached to {entry.id}: {entry.video_url}")
    return 0


def _handle_history(args: argparse.Namespace) -> int:
    studio = _build_studio(args)
    entries = studio.history.list()
    if not entries:
        print("Archive is empty.")
        return 0
    for entry in entries:
        stamp = datetime.fromtimestamp(entry.timestamp / 1000).strftime("%Y-%m-%d %H:%M")
        video = " [video]" if entry.video_url else ""
        print(f"{entry.id}  {stamp}  {entry.type:<10}  {entry.prompt[:60]}{video}")
    return 0


def _handle_download(args: argparse.Namespace) -> int:
    studio = _build_studio(args)
    try:
        path = studio.download(args.entry_id, Path(args.dest), prefer_video=not args.image)
    except (KeyError, FileNotFoundError, ValueError) as exc:
        print(f"Download failed: {exc}")
        return 1
    print(f"Saved to {path}")
    return 0


def _handle_delete(args: argparse.Namespace) -> int:
    if not args.yes:
        answer = input("Delete this schematic from local archive? [y/N] ").strip().lower()
        if answer not in {"y", "yes"}:
            return 0
    studio = _build_studio(args)
    if not studio.delete(args.entry_id):
        print(f"No history entry with id {args.entry_id}")
        return 1
    print(f"Deleted {args.entry_id}")
    return 0


_HANDLERS = {
    "generate": _handle_generate,
    "edit": _handle_edit,
    "animate": _handle_animate,
    "history": _handle_history,
    "download": _handle_download,
    "delete": _handle_delete,
}


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)
    handler = _HANDLERS.get(args.command)
    if handler is None:
        parser.print_help()
        raise SystemExit(1)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    raise SystemExit(handler(args))


if __name__ == "__main__":
    main()
