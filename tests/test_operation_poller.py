from __future__ import annotations

import asyncio

import pytest

from meshwire_engine.errors import (
    NoUriReturnedError,
    OperationCancelledError,
    PollTimeoutError,
    UpstreamError,
)
from meshwire_engine.providers.base import VideoOperation
from meshwire_engine.providers.veo import OperationPoller, resolve_video_uri

VIDEO_URI = "https://host/video?token=abc"


class SimulatedClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedRefresh:
    def __init__(self, clock: SimulatedClock, pending_polls: int, final: VideoOperation) -> None:
        self.clock = clock
        self.pending_polls = pending_polls
        self.final = final
        self.fetch_times: list[float] = []
        self.seen: list[VideoOperation] = []

    async def __call__(self, operation: VideoOperation) -> VideoOperation:
        self.seen.append(operation)
        self.fetch_times.append(self.clock.now)
        if len(self.fetch_times) < self.pending_polls:
            return VideoOperation(name=operation.name, done=False)
        return self.final


@pytest.mark.parametrize("polls", [1, 3, 7])
def test_poller_refetches_exactly_n_times_at_ten_second_spacing(polls: int) -> None:
    clock = SimulatedClock()
    final = VideoOperation(name="op-1", done=True, video_uri=VIDEO_URI)
    refresh = ScriptedRefresh(clock, polls, final)
    poller = OperationPoller(refresh, sleep=clock.sleep, clock=clock)

    uri = asyncio.run(poller.wait(VideoOperation(name="op-1", done=False)))

    assert uri == VIDEO_URI
    assert len(refresh.fetch_times) == polls
    assert refresh.fetch_times[0] >= 10.0
    gaps = [b - a for a, b in zip(refresh.fetch_times, refresh.fetch_times[1:])]
    assert all(gap >= 10.0 for gap in gaps)
    assert clock.sleeps == [10.0] * polls


def test_poller_uses_latest_snapshot_for_each_refresh() -> None:
    clock = SimulatedClock()
    final = VideoOperation(name="op-1", done=True, video_uri=VIDEO_URI)
    refresh = ScriptedRefresh(clock, 3, final)
    initial = VideoOperation(name="op-1", done=False)
    poller = OperationPoller(refresh, sleep=clock.sleep, clock=clock)

    asyncio.run(poller.wait(initial))

    assert refresh.seen[0] is initial
    assert refresh.seen[1] is not initial
    assert initial.done is False


def test_already_done_operation_resolves_without_polling() -> None:
    clock = SimulatedClock()
    refresh = ScriptedRefresh(clock, 0, VideoOperation(name="x", done=True))
    poller = OperationPoller(refresh, sleep=clock.sleep, clock=clock)

    uri = asyncio.run(poller.wait(VideoOperation(name="op", done=True, video_uri=VIDEO_URI)))

    assert uri == VIDEO_URI
    assert refresh.fetch_times == []
    assert clock.sleeps == []


def test_completed_operation_without_uri_fails() -> None:
    with pytest.raises(NoUriReturnedError):
        resolve_video_uri(VideoOperation(name="op", done=True))


def test_completed_operation_with_error_is_upstream_error() -> None:
    with pytest.raises(UpstreamError) as excinfo:
        resolve_video_uri(VideoOperation(name="op", done=True, error="quota exceeded"))
    assert excinfo.value.message == "quota exceeded"


def test_poller_times_out_when_max_wait_exceeded() -> None:
    clock = SimulatedClock()
    refresh = ScriptedRefresh(clock, 10_000, VideoOperation(name="op", done=True, video_uri=VIDEO_URI))
    poller = OperationPoller(refresh, sleep=clock.sleep, clock=clock, max_wait_s=35.0)

    with pytest.raises(PollTimeoutError):
        asyncio.run(poller.wait(VideoOperation(name="op", done=False)))

    assert len(refresh.fetch_times) == 4


def test_unbounded_poller_keeps_waiting() -> None:
    clock = SimulatedClock()
    refresh = ScriptedRefresh(clock, 200, VideoOperation(name="op", done=True, video_uri=VIDEO_URI))
    poller = OperationPoller(refresh, sleep=clock.sleep, clock=clock, max_wait_s=None)

    assert asyncio.run(poller.wait(VideoOperation(name="op", done=False))) == VIDEO_URI
    assert clock.now == 2000.0


def test_cancel_event_stops_polling() -> None:
    clock = SimulatedClock()
    cancel = asyncio.Event()
    polls: list[int] = []

    def on_poll(attempt: int, elapsed: float) -> None:
        polls.append(attempt)
        if attempt == 2:
            cancel.set()

    refresh = ScriptedRefresh(clock, 10, VideoOperation(name="op", done=True, video_uri=VIDEO_URI))
    poller = OperationPoller(refresh, sleep=clock.sleep, clock=clock, on_poll=on_poll)

    with pytest.raises(OperationCancelledError):
        asyncio.run(poller.wait(VideoOperation(name="op", done=False), cancel_event=cancel))

    assert polls == [1, 2]


def test_concurrent_polls_interleave() -> None:
    order: list[str] = []

    def make_refresh(label: str, pending: int):
        count = {"n": 0}

        async def refresh(operation: VideoOperation) -> VideoOperation:
            count["n"] += 1
            order.append(label)
            if count["n"] < pending:
                return VideoOperation(name=label, done=False)
            return VideoOperation(name=label, done=True, video_uri=f"https://host/{label}")

        return refresh

    async def fast_sleep(_: float) -> None:
        await asyncio.sleep(0)

    async def run_both() -> list[str]:
        a = OperationPoller(make_refresh("a", 3), sleep=fast_sleep)
        b = OperationPoller(make_refresh("b", 3), sleep=fast_sleep)
        return await asyncio.gather(
            a.wait(VideoOperation(name="a", done=False)),
            b.wait(VideoOperation(name="b", done=False)),
        )

    assert asyncio.run(run_both()) == ["https://host/a", "https://host/b"]
    assert order[:2] == ["a", "b"]


def test_interval_must_be_positive() -> None:
    async def refresh(operation: VideoOperation) -> VideoOperation:
        return operation

    with pytest.raises(ValueError):
        OperationPoller(refresh, interval_s=0)
