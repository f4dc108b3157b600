"""Frame scheduling: request a callback for the next refresh, or cancel it."""

from __future__ import annotations

from collections import deque
from itertools import count
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable


class FrameScheduler(Protocol):
    """Host-provided per-refresh scheduling primitive."""

    def request_frame(self, callback: Callable[[], None]) -> int:
        ...

    def cancel_frame(self, handle: int) -> None:
        ...


class StepScheduler:
    """Scheduler that runs frames when the host asks for them.

    Used by headless hosts (tests, scripts, the Streamlit browser) where no
    display refresh drives the loop. Callbacks requested while a frame runs
    are deferred to the next step.
    """

    def __init__(self) -> None:
        self._queue: deque[tuple[int, Callable[[], None]]] = deque()
        self._cancelled: set[int] = set()
        self._handles = count(1)
        self.frames_run = 0

    def request_frame(self, callback: Callable[[], None]) -> int:
        handle = next(self._handles)
        self._queue.append((handle, callback))
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._cancelled.add(handle)

    @property
    def pending(self) -> int:
        return sum(1 for handle, _ in self._queue if handle not in self._cancelled)

    def step(self) -> int:
        """Run every callback queued before this call.

        Returns:
            Number of callbacks run
        """
        batch = list(self._queue)
        self._queue.clear()
        ran = 0
        for handle, callback in batch:
            if handle in self._cancelled:
                self._cancelled.discard(handle)
                continue
            callback()
            ran += 1
        self.frames_run += ran
        return ran

    def run_until_idle(self, max_frames: int = 2000) -> int:
        """Step until nothing is scheduled or ``max_frames`` steps have run.

        Returns:
            Number of steps run
        """
        steps = 0
        while self.pending and steps < max_frames:
            self.step()
            steps += 1
        return steps

    def __repr__(self) -> str:
        return f"StepScheduler(pending={self.pending}, frames_run={self.frames_run})"
