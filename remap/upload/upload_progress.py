"""
Progress aggregation for an upload run.

The step count is fixed when the run starts: one step per media file
plus the final pin creation. Steps may complete in any order; each step
is counted once and the reported percentage never goes down.
"""

import math
from typing import Callable, Optional, Set

from ..config.logger_module import log_debug, log_warning
from .upload_models import UploadProgress


FINAL_STEP_ID = "create-pin"
PREPARING_LABEL = "Preparing..."
FINAL_STEP_LABEL = "Pin created successfully"


def progress_percentage(completed_steps: int, total_steps: int) -> int:
    """
    Percentage of a run, rounded half up.

    Stays at 99 or below until every step is complete, so 100 means the
    pin exists.
    """
    if total_steps <= 0:
        return 0
    percentage = int(math.floor(100 * completed_steps / total_steps + 0.5))
    if completed_steps < total_steps:
        percentage = min(percentage, 99)
    return percentage


class ProgressTracker:
    """Counts completed steps and emits UploadProgress snapshots."""

    def __init__(self,
                 total_steps: int,
                 on_progress: Callable[[UploadProgress], None] = None):
        if total_steps < 1:
            raise ValueError(f"total_steps must be at least 1, got {total_steps}")

        self.total_steps = total_steps
        self.on_progress = on_progress
        self._completed: Set[str] = set()
        self._last_percentage = 0
        self.latest: Optional[UploadProgress] = None

    @property
    def completed_steps(self) -> int:
        return len(self._completed)

    def start(self) -> UploadProgress:
        """Emit the initial 0% snapshot."""
        return self._emit(PREPARING_LABEL, 0)

    def complete(self, step_id: str, label: str) -> Optional[UploadProgress]:
        """
        Mark one step done and emit a snapshot.

        Returns:
            The new snapshot, or None if the step was already counted
        """
        if step_id in self._completed:
            log_warning(f"Upload step '{step_id}' already counted, ignoring")
            return None
        if step_id != FINAL_STEP_ID and len(self._completed) >= self.total_steps - 1:
            log_warning(f"Unexpected upload step '{step_id}', ignoring")
            return None

        self._completed.add(step_id)
        percentage = max(
            self._last_percentage,
            progress_percentage(self.completed_steps, self.total_steps),
        )
        return self._emit(label, percentage)

    def complete_final(self) -> Optional[UploadProgress]:
        return self.complete(FINAL_STEP_ID, FINAL_STEP_LABEL)

    def _emit(self, label: str, percentage: int) -> UploadProgress:
        self._last_percentage = percentage
        self.latest = UploadProgress(
            total_steps=self.total_steps,
            completed_steps=self.completed_steps,
            current_label=label,
            percentage=percentage,
        )
        log_debug(
            f"Upload progress {self.completed_steps}/{self.total_steps} "
            f"({percentage}%): {label}"
        )
        if self.on_progress is not None:
            self.on_progress(self.latest)
        return self.latest
