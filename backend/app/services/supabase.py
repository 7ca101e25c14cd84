"""Supabase client wrapper and Supabase-backed task store."""

import logging
import time
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from supabase import Client, create_client
from supabase.lib.client_options import SyncClientOptions

from app.config import get_settings
from app.models.task import ContentType, Task, UsageRecord
from app.services.task_store import validate_patch
from app.utils.errors import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TASKS_TABLE = "tasks"
AI_CONTENTS_TABLE = "ai_contents"

# Store client instance for potential refresh
_supabase_client: Client | None = None


def _create_supabase_client() -> Client:
    """Create a new Supabase client with custom timeout settings."""
    settings = get_settings()
    if not settings.supabase_configured:
        raise StorageError("Supabase is not configured (SUPABASE_URL, SUPABASE_SERVICE_KEY)")
    options = SyncClientOptions(postgrest_client_timeout=60)
    return create_client(
        settings.supabase_url,
        settings.supabase_service_key,
        options=options,
    )


def get_supabase_client() -> Client:
    """Get Supabase client instance, creating new one if needed."""
    global _supabase_client
    if _supabase_client is None:
        _supabase_client = _create_supabase_client()
    return _supabase_client


def refresh_supabase_client() -> Client:
    """Force refresh the Supabase client connection."""
    global _supabase_client
    _supabase_client = _create_supabase_client()
    logger.info("Supabase client connection refreshed")
    return _supabase_client


def with_retry(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    retry_on: tuple = (Exception,),
) -> Callable:
    """
    Decorator to retry a function with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay between retries in seconds
        backoff_factor: Multiplier for delay after each retry
        retry_on: Tuple of exception types to retry on
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            last_exception = None
            delay = initial_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except retry_on as e:
                    last_exception = e
                    if attempt < max_retries:
                        error_str = str(e).lower()
                        if "ssl" in error_str or "connection" in error_str or "eof" in error_str:
                            logger.warning(f"Connection error on attempt {attempt + 1}, refreshing client...")
                            refresh_supabase_client()

                        logger.warning(
                            f"Attempt {attempt + 1}/{max_retries + 1} failed: {e}. "
                            f"Retrying in {delay:.1f}s..."
                        )
                        time.sleep(delay)
                        delay *= backoff_factor
                    else:
                        logger.error(f"All {max_retries + 1} attempts failed: {e}")

            raise StorageError(str(last_exception)) from last_exception
        return wrapper
    return decorator


def _to_column(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class SupabaseTaskStore:
    """TaskStore backed by the ``tasks`` and ``ai_contents`` tables."""

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        return self._client or get_supabase_client()

    @with_retry()
    def get_task(self, task_id: str, requester_id: str) -> Optional[Task]:
        result = self.client.table(TASKS_TABLE).select("*").eq(
            "id", task_id
        ).eq("user_id", requester_id).execute()

        if not result.data:
            return None
        return Task.from_row(result.data[0])

    def patch_task(self, task_id: str, fields: dict[str, Any]) -> None:
        validate_patch(fields)
        row = {name: _to_column(value) for name, value in fields.items()}
        row["updated_at"] = datetime.now(timezone.utc).isoformat()
        self._update_task(task_id, row)

    @with_retry()
    def _update_task(self, task_id: str, row: dict[str, Any]) -> None:
        self.client.table(TASKS_TABLE).update(row).eq("id", task_id).execute()

    # Inserts are not idempotent, so a failed insert is never repeated
    @with_retry(max_retries=0)
    def append_usage_record(self, record: UsageRecord) -> str:
        result = self.client.table(AI_CONTENTS_TABLE).insert(record.to_row()).execute()
        record.id = str(result.data[0]["id"]) if result.data else None
        return record.id or ""

    @with_retry()
    def list_usage_records(
        self,
        task_id: str,
        content_type: Optional[ContentType] = None,
    ) -> list[UsageRecord]:
        query = self.client.table(AI_CONTENTS_TABLE).select("*").eq("task_id", task_id)
        if content_type is not None:
            query = query.eq("type", content_type.value)
        result = query.order("created_at", desc=True).execute()
        return [UsageRecord.from_row(row) for row in result.data or []]

    @with_retry()
    def delete_usage_records(self, task_id: str) -> int:
        result = self.client.table(AI_CONTENTS_TABLE).delete().eq("task_id", task_id).execute()
        return len(result.data or [])

