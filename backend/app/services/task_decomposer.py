"""Task decomposition into ordered, estimated subtasks.

The model is asked for a strict JSON document; whatever comes back is
parsed leniently, and anything unusable degrades to a single subtask that
wraps the original task.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import ValidationError

from app.llm import CompletionGateway
from app.llm.token_counter import estimate_tokens
from app.models.llm_outputs import DecomposedSubtask, DecompositionOutput
from app.models.task import ContentType, UsageRecord
from app.services.task_store import TaskStore
from app.utils.errors import ProviderFailure
from app.utils.json_extract import extract_json_object

logger = logging.getLogger(__name__)

MAX_SUBTASKS = 10
DEFAULT_ESTIMATED_MINUTES = 30
FALLBACK_ESTIMATED_MINUTES = 60

DECOMPOSITION_SYSTEM_PROMPT = (
    "You are a task decomposition expert. Break the given task down into "
    "small, executable steps."
)

DECOMPOSITION_PROMPT = """Break the following task down into small, executable steps:

Title: {title}
Description: {description}
User skills: {skills}

Requirements:
- Each subtask must be specific and actionable
- Order the subtasks logically
- Include an estimated time in minutes
- Use at most {max_subtasks} subtasks

Respond in the following JSON format:
{{
  "subtasks": [
    {{
      "title": "Subtask title",
      "description": "Detailed description",
      "estimatedTime": 30,
      "order": 1,
      "dependencies": []
    }}
  ]
}}"""


@dataclass
class DecompositionResult:
    """Subtasks plus the usage metadata of the call that produced them."""

    subtasks: list[DecomposedSubtask]
    model: str
    provider: Optional[str] = None
    tokens: int = 0
    cost: float = 0.0
    fallback: bool = False
    metadata: dict[str, Any] = field(init=False)

    def __post_init__(self) -> None:
        self.metadata = {
            "provider": self.provider,
            "model": self.model,
            "tokens": self.tokens,
            "cost": self.cost,
            "fallback": self.fallback,
        }


def build_decomposition_prompt(
    title: str,
    description: str,
    skills: Optional[list[str]] = None,
) -> str:
    return DECOMPOSITION_PROMPT.format(
        title=title,
        description=description or "No description provided",
        skills=", ".join(skills) if skills else "General skill level",
        max_subtasks=MAX_SUBTASKS,
    )


def fallback_subtasks() -> list[DecomposedSubtask]:
    """A single subtask telling the user to run the original task as-is."""
    return [
        DecomposedSubtask(
            title="Execute the task",
            description=(
                "AI decomposition failed, so carry out the original task as it is."
            ),
            estimated_time=FALLBACK_ESTIMATED_MINUTES,
            order=1,
            dependencies=[],
        )
    ]


def _as_number(value: Any, default: int) -> int:
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return number or default


def parse_decomposition(content: str) -> list[DecomposedSubtask]:
    """Parse model output into subtasks, falling back on any problem."""
    document = extract_json_object(content)
    if document is None:
        logger.warning("[DECOMPOSE] No JSON object found in model output, using fallback")
        return fallback_subtasks()

    raw_subtasks = document.get("subtasks")
    if not isinstance(raw_subtasks, list):
        logger.warning("[DECOMPOSE] 'subtasks' is not a list, using fallback")
        return fallback_subtasks()

    items = [item for item in raw_subtasks if isinstance(item, dict)]
    normalized = [
        {
            "title": item.get("title") or f"Subtask {index + 1}",
            "description": item.get("description") or "",
            "estimatedTime": _as_number(
                item.get("estimatedTime"), DEFAULT_ESTIMATED_MINUTES
            ),
            "order": _as_number(item.get("order"), index + 1),
            "dependencies": item.get("dependencies"),
        }
        for index, item in enumerate(items[:MAX_SUBTASKS])
    ]

    try:
        return DecompositionOutput(subtasks=normalized).subtasks
    except ValidationError as e:
        logger.warning(f"[DECOMPOSE] Subtasks failed validation, using fallback: {e}")
        return fallback_subtasks()


class TaskDecomposer:
    """Asks the gateway to split a task into subtasks."""

    def __init__(self, gateway: CompletionGateway, store: Optional[TaskStore] = None):
        self.gateway = gateway
        self.store = store

    async def decompose(
        self,
        title: str,
        description: str,
        skills: Optional[list[str]] = None,
        task_id: Optional[str] = None,
    ) -> DecompositionResult:
        """Decompose a task. Never raises for AI failures.

        Args:
            title: Task title
            description: Task description
            skills: Optional user skills to tailor the steps
            task_id: When given, a usage record is logged against this task

        Returns:
            DecompositionResult with at least one subtask
        """
        prompt = build_decomposition_prompt(title, description, skills)

        try:
            completion = await self.gateway.complete_prompt(
                prompt, system_prompt=DECOMPOSITION_SYSTEM_PROMPT
            )
        except ProviderFailure as e:
            logger.warning(f"[DECOMPOSE] Completion failed ({e.kind.value}): {e.message}")
            result = DecompositionResult(
                subtasks=fallback_subtasks(),
                model=self.gateway.model_id,
                provider=self.gateway.provider_name,
                tokens=estimate_tokens(prompt),
                cost=0.0,
                fallback=True,
            )
        else:
            result = DecompositionResult(
                subtasks=parse_decomposition(completion.content),
                model=completion.model_id,
                provider=completion.provider,
                tokens=completion.token_count or 0,
                cost=completion.cost_estimate_usd or 0.0,
            )

        logger.info(
            f"[DECOMPOSE] {len(result.subtasks)} subtasks | title={title} | "
            f"fallback={result.fallback}"
        )

        if task_id and self.store is not None:
            await asyncio.to_thread(
                self.store.append_usage_record,
                UsageRecord(
                    task_id=task_id,
                    content_type=ContentType.DECOMPOSITION,
                    content=DecompositionOutput(subtasks=result.subtasks).model_dump_json(
                        by_alias=True
                    ),
                    provider=result.provider,
                    model_id=result.model,
                    token_count=result.tokens,
                    cost_usd=result.cost,
                    fallback=result.fallback,
                ),
            )

        return result
