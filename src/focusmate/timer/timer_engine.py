# src/focusmate/timer/timer_engine.py

from __future__ import annotations

"""
Task timer engine.

Owns at most one task and its per-step stopwatches.

States:
    absent --start_task--> active --complete_task--> completed
                             |                          |
                             +-------stop_task----------+--> absent

A completed task stays readable (current(), progress()) until the next
start_task() or stop_task(). Every public method returns a frozen TaskTimer
snapshot, or None when there is no task / the step index is out of range.

Time accounting is tick driven: each tick adds TICK_INTERVAL_MS to the task's
session clock, and the same amount to the running step if there is one.
"""

import logging
from collections.abc import Callable, Sequence

from ..core.clock import now_ms
from ..core.errors import AlreadyActiveError
from ..core.ports import Clock, Ticker
from .ticker import AsyncioTicker
from .timer_models import TaskTimer, _StepState, _TaskState

logger = logging.getLogger(__name__)

TICK_INTERVAL_MS = 1000
DEFAULT_STEP_MINUTES = 5

TickerFactory = Callable[[], Ticker]
TickObserver = Callable[[TaskTimer], object]


def format_elapsed(ms: int) -> str:
    """Render milliseconds as "45s", "3m 12s" or "1h 2m 0s"."""
    total_seconds = max(0, int(ms)) // 1000
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)

    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


class TimerEngine:
    def __init__(
        self,
        *,
        ticker_factory: TickerFactory = AsyncioTicker,
        clock: Clock = now_ms,
        tick_interval_ms: int = TICK_INTERVAL_MS,
    ) -> None:
        self._ticker_factory = ticker_factory
        self._clock = clock
        self._tick_ms = int(tick_interval_ms)

        self._task: _TaskState | None = None
        self._active_index = -1
        self._ticker: Ticker | None = None
        self._on_tick: TickObserver | None = None

    # ---- introspection ----

    @property
    def has_active_task(self) -> bool:
        return self._task is not None and self._task.running

    @property
    def ticker_running(self) -> bool:
        return self._ticker is not None and self._ticker.running

    def current(self) -> TaskTimer | None:
        return self._task.freeze() if self._task is not None else None

    def progress(self) -> float:
        """Completed steps / total steps, in [0, 1]."""
        task = self._task
        if task is None or not task.steps:
            return 0.0
        done = sum(1 for s in task.steps if s.completed)
        return done / len(task.steps)

    format_elapsed = staticmethod(format_elapsed)

    def on_tick(self, callback: TickObserver | None) -> None:
        """Register (or clear, with None) the observer called with a snapshot after every tick."""
        self._on_tick = callback

    # ---- ticker ----

    def _start_ticker(self) -> None:
        """Start the tick source; on failure the task runs without one and tick() stays manual."""
        if self._ticker is not None:
            return
        try:
            ticker = self._ticker_factory()
            ticker.start(self.tick)
        except Exception:
            logger.exception("Tick source failed to start; timer runs without automatic ticks")
            return
        self._ticker = ticker

    def _stop_ticker(self) -> None:
        if self._ticker is None:
            return
        self._ticker.stop()
        self._ticker = None

    def tick(self) -> TaskTimer | None:
        """Advance the clocks by one tick interval. Called by the tick source."""
        task = self._task
        if task is None or not task.running:
            return None

        task.total_elapsed_ms += self._tick_ms

        if 0 <= self._active_index < len(task.steps):
            step = task.steps[self._active_index]
            if step.running:
                step.elapsed_ms += self._tick_ms

        snapshot = task.freeze()
        if self._on_tick is not None:
            try:
                self._on_tick(snapshot)
            except Exception:
                logger.exception("on_tick observer failed")
        return snapshot

    # ---- lifecycle ----

    def start_task(
        self,
        label: str,
        step_descriptions: Sequence[str],
        step_minutes: Sequence[int | None] = (),
    ) -> TaskTimer:
        if self._task is not None and self._task.running:
            raise AlreadyActiveError(self._task.task_label)

        steps: list[_StepState] = []
        for idx, desc in enumerate(step_descriptions):
            est = step_minutes[idx] if idx < len(step_minutes) else None
            if est is None:
                est = DEFAULT_STEP_MINUTES
            steps.append(_StepState(description=str(desc), estimated_minutes=max(0, int(est))))

        # A completed task left as history is replaced here.
        self._stop_ticker()
        self._active_index = -1
        self._task = _TaskState(
            task_label=label,
            steps=steps,
            total_estimated_minutes=sum(s.estimated_minutes for s in steps),
            started_at_ms=self._clock(),
        )
        self._start_ticker()

        logger.info(
            "Task started label=%r steps=%d estimated=%dmin",
            label,
            len(steps),
            self._task.total_estimated_minutes,
        )
        return self._task.freeze()

    def _step(self, index: int, *, active_only: bool) -> _StepState | None:
        task = self._task
        if task is None or (active_only and not task.running):
            return None
        if not 0 <= index < len(task.steps):
            return None
        return task.steps[index]

    def toggle_step(self, index: int) -> TaskTimer | None:
        step = self._step(index, active_only=True)
        if step is None:
            return None
        assert self._task is not None

        if step.running:
            step.running = False
            if self._active_index == index:
                self._active_index = -1
        else:
            for other in self._task.steps:
                other.running = False
            step.running = True
            self._active_index = index

        logger.debug("Step %d %s", index, "started" if step.running else "paused")
        return self._task.freeze()

    def complete_step(self, index: int) -> TaskTimer | None:
        step = self._step(index, active_only=False)
        if step is None:
            return None
        assert self._task is not None

        if step.running:
            step.running = False
            if self._active_index == index:
                self._active_index = -1

        step.completed = True
        logger.debug("Step %d completed: %r", index, step.description)

        # Post-condition: finishing the last open step finishes the task.
        if self._task.running and all(s.completed for s in self._task.steps):
            logger.info("All steps completed; completing task")
            completed = self.complete_task()
            assert completed is not None
            return completed

        return self._task.freeze()

    def uncomplete_step(self, index: int) -> TaskTimer | None:
        """
        Clear a step's completed flag.

        The step's stopwatch is not restarted, and a task that was already
        completed stays completed.
        """
        step = self._step(index, active_only=False)
        if step is None:
            return None
        assert self._task is not None

        step.completed = False
        logger.debug("Step %d marked not completed", index)
        return self._task.freeze()

    def complete_task(self) -> TaskTimer | None:
        task = self._task
        if task is None:
            return None
        if not task.running:
            return task.freeze()

        self._stop_ticker()
        for step in task.steps:
            step.running = False
            step.completed = True
        self._active_index = -1

        task.running = False
        task.completed_at_ms = self._clock()

        logger.info(
            "Task completed label=%r elapsed=%s",
            task.task_label,
            format_elapsed(task.total_elapsed_ms),
        )
        return task.freeze()

    def stop_task(self) -> TaskTimer | None:
        """Discard the task and return its last state. Safe to call at any time."""
        task = self._task
        if task is None:
            return None

        self._stop_ticker()
        for step in task.steps:
            step.running = False
        task.running = False

        self._task = None
        self._active_index = -1

        logger.info("Task stopped label=%r elapsed=%s", task.task_label, format_elapsed(task.total_elapsed_ms))
        return task.freeze()

    def reset(self) -> None:
        self.stop_task()
        self._on_tick = None
