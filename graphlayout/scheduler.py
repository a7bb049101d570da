# scheduler.py
"""
Step scheduling for iterative layouts.

The physics layout never loops on the caller's stack: it hands one step at a
time to a `Scheduler` and reschedules itself until it converges. Which
scheduler (and whether a message channel to a host thread exists) is decided
by the `ExecutionEnvironment` the layout is built with, never by probing
globals inside the engine.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
import itertools
import logging

from PyQt5.QtCore import QTimer

logger = logging.getLogger(__name__)

Callback = Callable[[], None]
MessageChannel = Callable[[Dict[str, Any]], None]


class Scheduler(ABC):
    @abstractmethod
    def schedule(self, callback: Callback) -> Any:
        """Queue `callback` to run once, as soon as the host gets control back."""

    @abstractmethod
    def cancel(self, handle: Any) -> None:
        """Drop a queued callback. Unknown or already-run handles are ignored."""


class ManualScheduler(Scheduler):
    """Queue that only runs when pumped. Drives layouts synchronously (tests, scripts)."""

    def __init__(self):
        self._queue: Dict[int, Callback] = {}
        self._ids = itertools.count(1)

    def schedule(self, callback: Callback) -> int:
        handle = next(self._ids)
        self._queue[handle] = callback
        return handle

    def cancel(self, handle: Any) -> None:
        self._queue.pop(handle, None)

    def pending(self) -> int:
        return len(self._queue)

    def run_pending(self) -> int:
        """Run the callbacks queued before this call; returns how many ran."""
        batch = list(self._queue.keys())
        ran = 0
        for handle in batch:
            cb = self._queue.pop(handle, None)
            if cb is None:
                continue  # cancelled by an earlier callback in this batch
            cb()
            ran += 1
        return ran

    def run_until_idle(self, max_turns: int = 100000) -> int:
        turns = 0
        while self._queue and turns < max_turns:
            self.run_pending()
            turns += 1
        return turns


class QtScheduler(Scheduler):
    """Zero-delay single-shot QTimers on the Qt event loop of the calling thread."""

    def __init__(self):
        # Timers must stay referenced until they fire
        self._timers = set()

    def schedule(self, callback: Callback) -> QTimer:
        timer = QTimer()
        timer.setSingleShot(True)

        def fire():
            self._timers.discard(timer)
            callback()

        timer.timeout.connect(fire)
        self._timers.add(timer)
        timer.start(0)
        return timer

    def cancel(self, handle: Any) -> None:
        if handle in self._timers:
            handle.stop()
            self._timers.discard(handle)

    def pending(self) -> int:
        return len(self._timers)


@dataclass
class ExecutionEnvironment:
    """
    What the host offers a layout: a scheduler for incremental stepping and/or
    a message channel when the layout runs inside an isolated worker.
    """
    scheduler: Optional[Scheduler] = None
    channel: Optional[MessageChannel] = None

    @property
    def in_worker(self) -> bool:
        return self.channel is not None

    @property
    def can_schedule(self) -> bool:
        return self.scheduler is not None

    def post_message(self, message: Dict[str, Any]) -> None:
        if self.channel is None:
            logger.warning("post_message called outside a worker; message of type %r dropped",
                           message.get("type"))
            return
        self.channel(message)

    @classmethod
    def default(cls) -> "ExecutionEnvironment":
        return cls(scheduler=QtScheduler())

    @classmethod
    def manual(cls) -> "ExecutionEnvironment":
        return cls(scheduler=ManualScheduler())

    @classmethod
    def worker(cls, channel: MessageChannel) -> "ExecutionEnvironment":
        return cls(scheduler=None, channel=channel)
