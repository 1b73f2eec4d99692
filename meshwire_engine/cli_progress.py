"""CLI progress helpers."""

from __future__ import annotations

import shutil
import sys
import threading
import time
from typing import Sequence, TextIO

_BOLD = "\x1b[1m"
_GREY = "\x1b[38;2;150;157;165m"
_RESET = "\x1b[0m"

LOADING_MESSAGES = (
    "Initializing geometry kernels...",
    "Calculating vertex projections...",
    "Synthesizing mesh topography...",
    "Rasterizing vector layers...",
    "Optimizing wireframe paths...",
    "Compiling technical schematics...",
    "Executing boolean operations...",
    "Rendering blueprint components...",
)
VIDEO_MESSAGE = "SYNTHESIZING 3D MOTION (Estimated: 2-3 mins)"


def progress_line(label: str, start: float | None = None, done: bool = False) -> tuple[str, float]:
    now = time.monotonic()
    origin = now if start is None else start
    elapsed = max(0, int(now - origin))
    minutes, seconds = divmod(elapsed, 60)
    suffix = "done" if done else "ctrl-c to abort"
    return f"• {label} ({minutes}m {seconds:02d}s • {suffix})", origin


class ProgressTicker:
    """Single-line progress indicator.

    On a TTY the line is rewritten in place and cycles through ``messages``; on
    other streams one start line and one done line are written.
    """

    def __init__(
        self,
        messages: Sequence[str] = LOADING_MESSAGES,
        stream: TextIO | None = None,
        interval_s: float = 1.0,
        rotate_every: int = 2,
    ) -> None:
        self.messages = tuple(messages) or ("Working...",)
        self.stream = stream or sys.stdout
        self.interval_s = max(0.01, interval_s)
        self.rotate_every = max(1, rotate_every)
        self.start: float | None = None
        self._index = 0
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._enabled = bool(getattr(self.stream, "isatty", lambda: False)())

    @property
    def label(self) -> str:
        return self.messages[self._index % len(self.messages)]

    def start_ticking(self) -> None:
        line, self.start = progress_line(self.label, self.start)
        if not self._enabled:
            self.stream.write(f"{line}\n")
            self.stream.flush()
            return
        self._write_line(f"{_BOLD}{line}{_RESET}")
        self._thread.start()

    def stop(self, done: bool = True, done_label: str = "Finished in") -> None:
        if self._thread.is_alive():
            self._stop.set()
            self._thread.join()
        if not done:
            if self._enabled:
                self.stream.write("\n")
                self.stream.flush()
            return
        elapsed = max(0, int(time.monotonic() - (self.start or time.monotonic())))
        minutes, seconds = divmod(elapsed, 60)
        duration = f"{minutes}m {seconds:02d}s" if minutes else f"{seconds}s"
        width = shutil.get_terminal_size(fallback=(100, 20)).columns
        styled = f"{_GREY}{_separator_line(f'{done_label} {duration}', width)}{_RESET}"
        if self._enabled:
            self.stream.write(f"\r{styled}\033[K\n")
        else:
            self.stream.write(f"{styled}\n")
        self.stream.flush()

    def _run(self) -> None:
        ticks = 0
        while not self._stop.wait(self.interval_s):
            ticks += 1
            if ticks % self.rotate_every == 0:
                self._index += 1
            line, _ = progress_line(self.label, self.start)
            self._write_line(f"{_BOLD}{line}{_RESET}")

    def _write_line(self, line: str) -> None:
        self.stream.write("\r")
        self.stream.write(line)
        self.stream.write("\033[K")
        self.stream.flush()


def _separator_line(label: str, width: int) -> str:
    content = f" {label} "
    if width <= len(content) + 2:
        return content.strip()
    remaining = width - len(content)
    left = remaining // 2
    return f"{'─' * left}{content}{'─' * (remaining - left)}"
