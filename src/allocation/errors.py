"""Allocation error taxonomy.

`NoTaskAvailable` and its subclasses are normal outcomes reported back to
the requesting robot. `DuplicateIdError` is only expected while the pool
is being populated; at startup it is fatal.
"""

from __future__ import annotations


class AllocationError(Exception):
    """Base class for task pool and allocation errors."""


class DuplicateIdError(AllocationError):
    """A task with the same identifier is already pooled."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id!r} is already in the pool")
        self.task_id = task_id


class NoTaskAvailable(AllocationError):
    """No task can be handed to the requesting robot."""


class EmptyPoolError(NoTaskAvailable):
    """The pool holds no tasks at all."""


class NoEligibleTaskError(NoTaskAvailable):
    """The pool holds tasks, but none scored valid for this request."""
