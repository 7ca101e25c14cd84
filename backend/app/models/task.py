"""Task and AI usage records as seen by the AI services.

The task store owns these records; the services only read tasks and
write the AI support fields and usage log.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class AISupportStatus(Enum):
    """Progress of AI support generation for a task. None means unset."""

    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"


class ContentType(Enum):
    """Kind of AI content logged against a task."""

    DECOMPOSITION = "decomposition"
    RESEARCH = "research"
    SUGGESTION = "suggestion"


@dataclass
class Task:
    """The task fields the AI services depend on."""

    id: str
    user_id: str
    title: str
    priority: str = "medium"
    description: Optional[str] = None
    category: Optional[str] = None
    deadline: Optional[datetime] = None
    memo: Optional[str] = None
    ai_support_status: Optional[AISupportStatus] = None
    ai_support_content: Optional[str] = None
    ai_support_generated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Task":
        """Build a Task from a database row."""
        status = row.get("ai_support_status")
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            title=row["title"],
            priority=row.get("priority") or "medium",
            description=row.get("description"),
            category=row.get("category"),
            deadline=_parse_timestamp(row.get("deadline")),
            memo=row.get("memo"),
            ai_support_status=AISupportStatus(status) if status else None,
            ai_support_content=row.get("ai_support_content"),
            ai_support_generated_at=_parse_timestamp(row.get("ai_support_generated_at")),
        )


@dataclass
class UsageRecord:
    """Append-only log entry for one AI invocation."""

    task_id: str
    content_type: ContentType
    content: str
    model_id: str
    token_count: int
    cost_usd: float
    provider: Optional[str] = None
    fallback: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: Optional[str] = None

    @property
    def metadata(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model_id,
            "tokens": self.token_count,
            "cost": self.cost_usd,
            "fallback": self.fallback,
        }

    def to_row(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "type": self.content_type.value,
            "content": self.content,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "UsageRecord":
        metadata = row.get("metadata") or {}
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            task_id=str(row["task_id"]),
            content_type=ContentType(row["type"]),
            content=row["content"],
            provider=metadata.get("provider"),
            model_id=metadata.get("model", "unknown"),
            token_count=int(metadata.get("tokens", 0)),
            cost_usd=float(metadata.get("cost", 0.0)),
            fallback=bool(metadata.get("fallback", False)),
            created_at=_parse_timestamp(row.get("created_at")) or datetime.now(timezone.utc),
        )


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept ISO strings, epoch milliseconds or datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
