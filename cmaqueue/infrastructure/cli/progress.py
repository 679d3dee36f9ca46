"""Progress reporters for queue jobs.

RichProgressReporter draws one transient bar per job in the format
``<label> [bar] current/total (percent)``. NullProgressReporter is used when
progress output is disabled. Neither ever waits or touches the operations
being reported on.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TaskID, TaskProgressColumn, TextColumn

from cmaqueue.domain.interfaces.progress import ProgressReporter
from cmaqueue.domain.models.queue import ProgressState

logger = logging.getLogger(__name__)


@dataclass
class ProgressHandle:
    label: str
    state: ProgressState
    progress: Optional[Progress] = None
    task_id: Optional[TaskID] = None


class RichProgressReporter(ProgressReporter):
    """Renders queue progress with a rich progress bar."""

    def __init__(self, console: Optional[Console] = None, transient: bool = True):
        self.console = console
        self.transient = transient

    def _build_progress(self) -> Progress:
        return Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TaskProgressColumn(text_format="([progress.percentage]{task.percentage:>3.0f}%)"),
            console=self.console,
            transient=self.transient,
        )

    def create(self, total: int, label: str) -> ProgressHandle:
        progress = self._build_progress()
        task_id = progress.add_task(label, total=total)
        progress.start()
        return ProgressHandle(label=label, state=ProgressState(total=total), progress=progress, task_id=task_id)

    def tick(self, handle: ProgressHandle) -> None:
        handle.state.advance()
        if handle.progress is not None and handle.task_id is not None:
            handle.progress.advance(handle.task_id, 1)

    def finish(self, handle: ProgressHandle) -> None:
        if handle.progress is not None:
            handle.progress.stop()
        logger.debug(f"{handle.label}: progress finished at {handle.state}")


class NullProgressReporter(ProgressReporter):
    """Counts ticks without drawing anything."""

    def create(self, total: int, label: str) -> ProgressHandle:
        return ProgressHandle(label=label, state=ProgressState(total=total))

    def tick(self, handle: ProgressHandle) -> None:
        handle.state.advance()

    def finish(self, handle: ProgressHandle) -> None:
        logger.debug(f"{handle.label}: {handle.state} item(s) settled")
