"""AI assistance routes: task support, decomposition, research."""

import asyncio
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Query, Request

from app.api.deps import CurrentUser, Gateway, Store, limiter
from app.config import get_settings
from app.models.schemas import (
    AIContentListResponse,
    AIContentResponse,
    DecomposeRequest,
    DecomposeResponse,
    ResearchRequest,
    ResearchResponse,
    TaskSupportResponse,
    UsageMetadata,
)
from app.models.task import ContentType
from app.services.research_agent import ResearchAgent
from app.services.task_decomposer import TaskDecomposer
from app.services.task_store import TaskStore
from app.services.task_support import TaskSupportOrchestrator
from app.utils.errors import TaskNotFoundError, not_found

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)


async def _require_task(store: TaskStore, task_id: str, user_id: str) -> None:
    if await asyncio.to_thread(store.get_task, task_id, user_id) is None:
        raise not_found("Task")


@router.post("/tasks/{task_id}/support", response_model=TaskSupportResponse)
@limiter.limit(settings.ai_route_rate_limit)
async def request_task_support(
    request: Request,
    task_id: str,
    current_user: CurrentUser,
    gateway: Gateway,
    store: Store,
):
    """Generate AI support content for a task and store it on the task."""
    orchestrator = TaskSupportOrchestrator(store, gateway)
    try:
        result = await orchestrator.request_task_support(task_id, current_user.id)
    except TaskNotFoundError:
        raise not_found("Task")

    if not result.success:
        logger.warning(f"[SUPPORT] Task {task_id} | ended in error: {result.error}")

    return TaskSupportResponse(
        success=result.success,
        content=result.content,
        error=result.error,
        fallback=result.fallback,
    )


@router.post("/ai/decompose", response_model=DecomposeResponse)
@limiter.limit(settings.ai_route_rate_limit)
async def decompose_task(
    request: Request,
    body: DecomposeRequest,
    current_user: CurrentUser,
    gateway: Gateway,
    store: Store,
):
    """Split a task into ordered subtasks."""
    if body.task_id:
        await _require_task(store, body.task_id, current_user.id)

    decomposer = TaskDecomposer(gateway, store)
    result = await decomposer.decompose(
        body.title,
        body.description,
        skills=body.skills,
        task_id=body.task_id,
    )
    return DecomposeResponse(
        subtasks=result.subtasks,
        metadata=UsageMetadata(**result.metadata),
    )


@router.post("/ai/research", response_model=ResearchResponse)
@limiter.limit(settings.ai_route_rate_limit)
async def research_topic(
    request: Request,
    body: ResearchRequest,
    current_user: CurrentUser,
    gateway: Gateway,
    store: Store,
):
    """Research a topic and log the summary against the task."""
    await _require_task(store, body.task_id, current_user.id)

    agent = ResearchAgent(gateway, store)
    result = await agent.research(body.topic, body.task_id, depth=body.depth)
    return ResearchResponse(
        topic=result.topic,
        summary=result.summary,
        key_points=result.key_points,
        sources=result.sources,
        metadata=UsageMetadata(**result.metadata),
    )


@router.get("/tasks/{task_id}/ai-contents", response_model=AIContentListResponse)
async def list_ai_contents(
    task_id: str,
    current_user: CurrentUser,
    store: Store,
    content_type: Optional[Literal["decomposition", "research", "suggestion"]] = Query(
        default=None, alias="type"
    ),
):
    """List AI usage records of a task, newest first."""
    await _require_task(store, task_id, current_user.id)

    records = await asyncio.to_thread(
        store.list_usage_records,
        task_id,
        ContentType(content_type) if content_type else None,
    )
    contents = [
        AIContentResponse(
            id=record.id,
            task_id=record.task_id,
            type=record.content_type.value,
            content=record.content,
            metadata=UsageMetadata(**record.metadata),
            created_at=record.created_at,
        )
        for record in records
    ]
    return AIContentListResponse(contents=contents, total=len(contents))
