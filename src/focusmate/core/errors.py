# src/focusmate/core/errors.py

from __future__ import annotations


class FocusmateError(RuntimeError):
    """Base class for errors raised by the local state engine."""


class AlreadyActiveError(FocusmateError):
    """start_task() was called while another task is still running."""

    def __init__(self, task_label: str) -> None:
        super().__init__(
            f"A task is already in progress ({task_label!r}). Call stop_task() or complete_task() first."
        )
        self.task_label = task_label


class StorageError(FocusmateError):
    """The durable key/value medium failed to read or write."""


class StorageQuotaExceeded(StorageError):
    """A write did not fit into the medium's size quota."""

    def __init__(self, key: str, size: int, quota: int) -> None:
        super().__init__(f"Quota exceeded writing {key!r}: {size} bytes, quota {quota} bytes")
        self.key = key
        self.size = size
        self.quota = quota


class TemplateNotFoundError(FocusmateError):
    """A template operation addressed an id that is neither preloaded nor custom."""

    def __init__(self, template_id: str) -> None:
        super().__init__(f"Template not found: {template_id}")
        self.template_id = template_id
