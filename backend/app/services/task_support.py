"""AI task support generation tied to the task's persisted status.

Flow per request:
1. Mark the task ``generating`` so observers see work in progress
2. Build a support prompt from the task fields
3. Ask the gateway; on any AI failure use a static fallback document
4. Save content, memo and ``completed`` status, then log usage
5. If anything else fails, mark the task ``error`` and report it

Concurrent requests for the same task are not serialized; the last writer's
status and content win.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from app.llm import CompletionGateway
from app.llm.token_counter import estimate_tokens
from app.models.task import AISupportStatus, ContentType, Task, UsageRecord
from app.services.task_store import TaskStore
from app.utils.errors import ProviderFailure, TaskNotFoundError

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No description provided"
NO_CATEGORY = "No category"
FALLBACK_NOTE = "*Note: This is a fallback response because the AI service was not available.*"

SUPPORT_PROMPT = """You are an excellent task support AI assistant.
For the following task, please collect useful information to help the user accomplish the task,
create an execution plan, and summarize the support content in markdown format.

Task Information:
- Title: {title}
- Description: {description}
- Category: {category}
- Priority: {priority}
{deadline_line}
Please provide comprehensive support from the following perspectives:

1. **Background and Purpose Analysis**
   - Why this task is important
   - Expected outcomes

2. **Execution Plan Development**
   - Specific steps
   - Recommended order
   - Estimated time for each step

3. **Related Information and Resources**
   - Useful information sources
   - Required tools or services
   - Learning resources (if applicable)

4. **Implementation Notes**
   - Common pitfalls
   - Tips for success

5. **Next Actions**
   - First thing to focus on
   - Checkpoints

Please output in markdown format with a readable and well-structured layout.
"""

FALLBACK_TEMPLATE = """# Task Support: {title}

## Background and Purpose Analysis
This task is set as "{title}" with the following description:
{description}

## Execution Plan Development
1. **Information Gathering**: Collect information and resources related to the task
2. **Planning**: Break down into specific steps
3. **Execution**: Proceed step by step according to the plan
4. **Verification**: Confirm completion of each step

## Related Information and Resources
- Category: {category}
- Priority: {priority}
{deadline_line}
## Implementation Notes
- Since the priority is {priority}, please allocate resources appropriately
- If there's a deadline, plan with sufficient buffer time

## Next Actions
We recommend starting with information gathering and then creating a specific plan.

{note}
"""


@dataclass
class TaskSupportResult:
    """Outcome returned to the caller instead of raising."""

    success: bool
    content: Optional[str] = None
    error: Optional[str] = None
    fallback: bool = False


def _deadline_line(task: Task) -> str:
    if task.deadline is None:
        return ""
    return f"- Deadline: {task.deadline.strftime('%m/%d/%Y')}\n"


def build_support_prompt(task: Task) -> str:
    return SUPPORT_PROMPT.format(
        title=task.title,
        description=task.description or NO_DESCRIPTION,
        category=task.category or NO_CATEGORY,
        priority=task.priority,
        deadline_line=_deadline_line(task),
    )


def build_fallback_content(task: Task) -> str:
    """Static markdown support plan built from the task's own fields."""
    return FALLBACK_TEMPLATE.format(
        title=task.title,
        description=task.description or NO_DESCRIPTION,
        category=task.category or NO_CATEGORY,
        priority=task.priority,
        deadline_line=_deadline_line(task),
        note=FALLBACK_NOTE,
    )


class TaskSupportOrchestrator:
    """Generates AI support content for a task and records the outcome."""

    def __init__(
        self,
        store: TaskStore,
        gateway: CompletionGateway,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.gateway = gateway
        self._clock = clock

    async def request_task_support(
        self, task_id: str, requester_id: str
    ) -> TaskSupportResult:
        """Generate support content for a task owned by ``requester_id``.

        Raises:
            TaskNotFoundError: If the task is missing or owned by someone else
        """
        task = await asyncio.to_thread(self.store.get_task, task_id, requester_id)
        if task is None:
            raise TaskNotFoundError(f"Task not found: {task_id}")

        try:
            await asyncio.to_thread(
                self.store.patch_task,
                task_id,
                {"ai_support_status": AISupportStatus.GENERATING},
            )
            logger.info(f"[SUPPORT] Task {task_id} | generating")

            prompt = build_support_prompt(task)
            content, usage = await self._generate(task, prompt)

            await asyncio.to_thread(
                self.store.patch_task,
                task_id,
                {
                    "ai_support_status": AISupportStatus.COMPLETED,
                    "ai_support_content": content,
                    "ai_support_generated_at": self._clock(),
                },
            )
            await asyncio.to_thread(self.store.patch_task, task_id, {"memo": content})
            await asyncio.to_thread(self.store.append_usage_record, usage)

            logger.info(
                f"[SUPPORT] Task {task_id} | completed | fallback={usage.fallback} | "
                f"tokens={usage.token_count} | cost=${usage.cost_usd:.4f}"
            )
            return TaskSupportResult(success=True, content=content, fallback=usage.fallback)

        except Exception as e:
            logger.error(f"[SUPPORT] Task {task_id} | failed: {e}", exc_info=True)
            await asyncio.to_thread(
                self.store.patch_task, task_id, {"ai_support_status": AISupportStatus.ERROR}
            )
            return TaskSupportResult(
                success=False,
                error=str(e) or "An error occurred while executing task support",
            )

    async def _generate(self, task: Task, prompt: str) -> tuple[str, UsageRecord]:
        """Ask the gateway, degrading to the fallback document on AI failure."""
        try:
            completion = await self.gateway.complete_prompt(prompt)
        except Exception as e:
            reason = e.kind.value if isinstance(e, ProviderFailure) else type(e).__name__
            logger.warning(
                f"[SUPPORT] Task {task.id} | AI unavailable ({reason}), using fallback: {e}"
            )
            content = build_fallback_content(task)
            return content, UsageRecord(
                task_id=task.id,
                content_type=ContentType.SUGGESTION,
                content=content,
                provider=self.gateway.provider_name,
                model_id=self.gateway.model_id,
                token_count=estimate_tokens(prompt) + estimate_tokens(content),
                cost_usd=0.0,
                fallback=True,
                created_at=self._clock(),
            )

        return completion.content, UsageRecord(
            task_id=task.id,
            content_type=ContentType.SUGGESTION,
            content=completion.content,
            provider=completion.provider,
            model_id=completion.model_id,
            token_count=completion.token_count or 0,
            cost_usd=completion.cost_estimate_usd or 0.0,
            created_at=self._clock(),
        )
