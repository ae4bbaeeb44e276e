# src/focusmate/timer/timer_models.py

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class StepTimer:
    """Snapshot of one step of the active task."""

    description: str
    estimated_minutes: int
    elapsed_ms: int = 0
    running: bool = False
    completed: bool = False


@dataclass(frozen=True, slots=True)
class TaskTimer:
    """
    Snapshot of the active (or just completed) task.

    Values handed out by the engine are frozen and share nothing with its
    internal state, so callers may keep them around freely.
    """

    task_label: str
    steps: tuple[StepTimer, ...]
    total_elapsed_ms: int
    total_estimated_minutes: int
    started_at_ms: int
    running: bool
    completed_at_ms: int | None = None

    @property
    def completed_steps(self) -> int:
        return sum(1 for s in self.steps if s.completed)

    @property
    def is_completed(self) -> bool:
        return self.completed_at_ms is not None

    @property
    def running_index(self) -> int | None:
        for idx, step in enumerate(self.steps):
            if step.running:
                return idx
        return None


@dataclass(slots=True)
class _StepState:
    description: str
    estimated_minutes: int
    elapsed_ms: int = 0
    running: bool = False
    completed: bool = False

    def freeze(self) -> StepTimer:
        return StepTimer(
            description=self.description,
            estimated_minutes=self.estimated_minutes,
            elapsed_ms=self.elapsed_ms,
            running=self.running,
            completed=self.completed,
        )


@dataclass(slots=True)
class _TaskState:
    task_label: str
    steps: list[_StepState]
    total_estimated_minutes: int
    started_at_ms: int
    total_elapsed_ms: int = 0
    running: bool = True
    completed_at_ms: int | None = None

    def freeze(self) -> TaskTimer:
        return TaskTimer(
            task_label=self.task_label,
            steps=tuple(s.freeze() for s in self.steps),
            total_elapsed_ms=self.total_elapsed_ms,
            total_estimated_minutes=self.total_estimated_minutes,
            started_at_ms=self.started_at_ms,
            running=self.running,
            completed_at_ms=self.completed_at_ms,
        )
