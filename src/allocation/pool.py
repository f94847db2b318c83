"""
The pool of unassigned tasks.

The pool owns every live task. Scoring works on a snapshot taken under
the pool lock; the lock is then released while candidates are scored and
re-acquired only for the final removal. `remove_best` re-checks pool
membership, so two requests racing on the same snapshot can never be
handed the same task.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable

from src.allocation.errors import DuplicateIdError, EmptyPoolError, NoEligibleTaskError
from src.allocation.tasks import ScoredTask, Task, selection_key

logger = logging.getLogger(__name__)


class TaskPool:
    """Thread-safe set of pending tasks keyed by task id."""

    def __init__(self, tasks: Iterable[Task] = ()) -> None:
        self._tasks: dict[str, Task] = {}
        self._lock = threading.Lock()
        self.extend(tasks)

    def insert(self, task: Task) -> None:
        """Add a task.

        Raises:
            DuplicateIdError: If a task with the same id is already pooled.
        """
        with self._lock:
            if task.task_id in self._tasks:
                raise DuplicateIdError(task.task_id)
            self._tasks[task.task_id] = task
        logger.debug("Inserted %s task %s", task.kind, task.task_id)

    def extend(self, tasks: Iterable[Task]) -> None:
        for task in tasks:
            self.insert(task)

    def snapshot(self) -> tuple[Task, ...]:
        """All pooled tasks at call time, in id order."""
        with self._lock:
            return tuple(self._tasks[k] for k in sorted(self._tasks))

    def remove_best(
        self,
        candidates: Iterable[ScoredTask],
        key: Callable[[ScoredTask], object] = selection_key,
    ) -> Task:
        """Atomically remove and return the best still-pooled valid candidate.

        Args:
            candidates: Scored entries, typically from a snapshot of this pool.
            key: Sort key whose minimum is the winner.

        Returns:
            The pooled task instance; the caller now owns it exclusively.

        Raises:
            EmptyPoolError: The pool holds no tasks.
            NoEligibleTaskError: No candidate is both valid and still pooled.
        """
        with self._lock:
            if not self._tasks:
                raise EmptyPoolError("No tasks in the pool")
            eligible = [c for c in candidates if c.valid and c.task_id in self._tasks]
            if not eligible:
                raise NoEligibleTaskError(
                    f"None of the {len(self._tasks)} pooled tasks is currently eligible"
                )
            winner = min(eligible, key=key)
            return self._tasks.pop(winner.task_id)

    def get(self, task_id: str) -> Task | None:
        with self._lock:
            return self._tasks.get(task_id)

    def __contains__(self, task_id: object) -> bool:
        with self._lock:
            return task_id in self._tasks

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    @property
    def size(self) -> int:
        return len(self)

    def counts_by_kind(self) -> dict[str, int]:
        """Diagnostics: number of pooled tasks per variant."""
        counts: dict[str, int] = {}
        for task in self.snapshot():
            counts[task.kind] = counts.get(task.kind, 0) + 1
        return counts
