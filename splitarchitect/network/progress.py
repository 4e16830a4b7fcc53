"""
Progress reporting and cooperative cancellation.

Long running algorithms take a progress listener and call
``check_for_cancel()`` in every loop that may run for a while. A listener
cancels a computation by raising :class:`CancelledError` from that call.
"""

import logging
from typing import Callable, Optional

from typing_extensions import Protocol

from rich.progress import Progress, TaskID

from splitarchitect.exceptions import CancelledError

logger = logging.getLogger(__name__)


class ProgressListener(Protocol):
    def set_tasks(self, task: str, subtask: str) -> None: ...

    def set_maximum(self, maximum: int) -> None: ...

    def set_progress(self, value: int) -> None: ...

    def increment_progress(self) -> None: ...

    def check_for_cancel(self) -> None: ...

    def report_task_completed(self) -> None: ...

    def close(self) -> None: ...


class SilentProgress:
    """Listener that records progress but never cancels."""

    def __init__(self) -> None:
        self.task = ""
        self.subtask = ""
        self.maximum = 0
        self.value = 0
        self.completed = False

    def set_tasks(self, task: str, subtask: str) -> None:
        self.task, self.subtask = task, subtask
        logger.debug("%s: %s", task, subtask)

    def set_maximum(self, maximum: int) -> None:
        self.maximum = maximum

    def set_progress(self, value: int) -> None:
        self.value = max(value, 0)

    def increment_progress(self) -> None:
        self.value += 1

    def check_for_cancel(self) -> None:
        pass

    def report_task_completed(self) -> None:
        self.completed = True

    def close(self) -> None:
        pass


class CancellableProgress(SilentProgress):
    """
    Listener that can be cancelled, either by calling :meth:`cancel` or through
    a ``should_cancel`` callback polled on every check.
    """

    def __init__(self, should_cancel: Optional[Callable[[], bool]] = None) -> None:
        super().__init__()
        self._cancelled = False
        self._should_cancel = should_cancel
        self.checks = 0

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def check_for_cancel(self) -> None:
        self.checks += 1
        if not self._cancelled and self._should_cancel is not None:
            self._cancelled = bool(self._should_cancel())
        if self._cancelled:
            raise CancelledError(f"{self.task or 'computation'} cancelled")


class RichProgress(SilentProgress):
    """Listener that draws a rich progress bar, used by the command line."""

    def __init__(self, progress: Optional[Progress] = None) -> None:
        super().__init__()
        self._progress = progress or Progress(transient=True)
        self._task_id: Optional[TaskID] = None
        self._progress.start()

    def set_tasks(self, task: str, subtask: str) -> None:
        super().set_tasks(task, subtask)
        description = f"{task}: {subtask}" if subtask else task
        if self._task_id is None:
            self._task_id = self._progress.add_task(description, total=None)
        else:
            self._progress.update(self._task_id, description=description)

    def set_maximum(self, maximum: int) -> None:
        super().set_maximum(maximum)
        if self._task_id is not None:
            self._progress.update(self._task_id, total=maximum)

    def set_progress(self, value: int) -> None:
        super().set_progress(value)
        if self._task_id is not None:
            self._progress.update(self._task_id, completed=self.value)

    def increment_progress(self) -> None:
        super().increment_progress()
        if self._task_id is not None:
            self._progress.advance(self._task_id)

    def close(self) -> None:
        self._progress.stop()
