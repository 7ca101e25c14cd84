"""Task store interface used by the AI services.

The store checks ownership and persists task fields and usage records.
Each call is an independent write; nothing here spans a transaction.
"""

import copy
import logging
import threading
from typing import Any, Optional, Protocol
from uuid import uuid4

from app.models.task import ContentType, Task, UsageRecord
from app.utils.errors import StorageError

logger = logging.getLogger(__name__)

# Task fields the AI services are allowed to patch
PATCHABLE_FIELDS = frozenset(
    {"ai_support_status", "ai_support_content", "ai_support_generated_at", "memo"}
)


class TaskStore(Protocol):
    """Persistence operations the AI services depend on."""

    def get_task(self, task_id: str, requester_id: str) -> Optional[Task]:
        """Return the task if it exists and belongs to ``requester_id``."""
        ...

    def patch_task(self, task_id: str, fields: dict[str, Any]) -> None:
        """Update the given task fields."""
        ...

    def append_usage_record(self, record: UsageRecord) -> str:
        """Store a usage record and return its id."""
        ...

    def list_usage_records(
        self,
        task_id: str,
        content_type: Optional[ContentType] = None,
    ) -> list[UsageRecord]:
        """Usage records for a task, newest first."""
        ...

    def delete_usage_records(self, task_id: str) -> int:
        """Delete every usage record of a task, returning how many."""
        ...


def validate_patch(fields: dict[str, Any]) -> None:
    unknown = set(fields) - PATCHABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot patch task fields: {', '.join(sorted(unknown))}")


class InMemoryTaskStore:
    """Process-local TaskStore for development and tests."""

    def __init__(self, tasks: Optional[list[Task]] = None):
        self._tasks: dict[str, Task] = {t.id: t for t in tasks or []}
        self._records: list[UsageRecord] = []
        self._lock = threading.Lock()

    def add_task(self, task: Task) -> Task:
        with self._lock:
            self._tasks[task.id] = task
        return task

    def get_task(self, task_id: str, requester_id: str) -> Optional[Task]:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.user_id != requester_id:
                return None
            return copy.copy(task)

    def peek(self, task_id: str) -> Optional[Task]:
        """Read a task without an ownership check."""
        with self._lock:
            return self._tasks.get(task_id)

    def patch_task(self, task_id: str, fields: dict[str, Any]) -> None:
        validate_patch(fields)
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise StorageError(f"Task not found: {task_id}")
            for name, value in fields.items():
                setattr(task, name, value)

    def append_usage_record(self, record: UsageRecord) -> str:
        with self._lock:
            record.id = record.id or str(uuid4())
            self._records.append(record)
            return record.id

    def list_usage_records(
        self,
        task_id: str,
        content_type: Optional[ContentType] = None,
    ) -> list[UsageRecord]:
        with self._lock:
            records = [
                r
                for r in self._records
                if r.task_id == task_id
                and (content_type is None or r.content_type == content_type)
            ]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def delete_usage_records(self, task_id: str) -> int:
        with self._lock:
            before = len(self._records)
            self._records = [r for r in self._records if r.task_id != task_id]
            return before - len(self._records)

    def delete_task(self, task_id: str) -> None:
        """Remove a task and cascade to its usage records."""
        self.delete_usage_records(task_id)
        with self._lock:
            self._tasks.pop(task_id, None)
