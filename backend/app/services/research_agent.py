"""Topic research summaries for a task."""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from pydantic import ValidationError

from app.llm import CompletionGateway
from app.llm.token_counter import estimate_tokens
from app.models.llm_outputs import ResearchOutput, ResearchSource
from app.models.task import ContentType, UsageRecord
from app.services.task_store import TaskStore
from app.utils.errors import ProviderFailure
from app.utils.json_extract import extract_json_object

logger = logging.getLogger(__name__)

ResearchDepth = Literal["basic", "detailed"]

RESEARCH_TEMPERATURE = 0.3
MAX_TOKENS_BY_DEPTH = {"basic": 1000, "detailed": 2000}

RESEARCH_SYSTEM_PROMPT = (
    "You are a research assistant. Provide accurate, practical information "
    "and cite reliable sources where possible."
)

RESEARCH_PROMPT = """Research the following topic and provide {detail} information:

Topic: {topic}

Respond in the following JSON format:
{{
  "summary": "A practical summary of the topic",
  "keyPoints": ["Key point 1", "Key point 2"],
  "practicalTips": ["Tip 1", "Tip 2"],
  "sources": [
    {{"title": "Source title", "url": "https://example.com", "snippet": "Relevant excerpt"}}
  ]
}}"""


@dataclass
class ResearchResult:
    topic: str
    summary: str
    key_points: list[str]
    sources: list[ResearchSource]
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


def build_research_prompt(topic: str, depth: ResearchDepth = "basic") -> str:
    return RESEARCH_PROMPT.format(
        topic=topic,
        detail="detailed, in-depth" if depth == "detailed" else "concise, essential",
    )


def fallback_research(topic: str) -> ResearchOutput:
    """Deterministic summary used when the model output is unusable."""
    return ResearchOutput(
        summary=(
            f"Research on '{topic}' could not be generated automatically. "
            f"Start by reviewing official documentation and trusted guides about {topic}."
        ),
        key_points=[f"Define what you need to know about {topic}"],
        practical_tips=["Compare at least two independent sources"],
        sources=[],
    )


def parse_research(content: str, topic: str) -> ResearchOutput:
    """Parse model output into a research summary, falling back on any problem."""
    document = extract_json_object(content)
    if document is None:
        logger.warning("[RESEARCH] No JSON object found in model output, using fallback")
        return fallback_research(topic)

    try:
        return ResearchOutput.model_validate(document)
    except ValidationError as e:
        logger.warning(f"[RESEARCH] Output failed validation, using fallback: {e}")
        return fallback_research(topic)


class ResearchAgent:
    """Asks the gateway for a research summary and logs it against the task."""

    def __init__(self, gateway: CompletionGateway, store: TaskStore):
        self.gateway = gateway
        self.store = store

    async def research(
        self,
        topic: str,
        task_id: str,
        depth: ResearchDepth = "basic",
    ) -> ResearchResult:
        """Research a topic. Never raises for AI failures."""
        prompt = build_research_prompt(topic, depth)

        try:
            completion = await self.gateway.complete_prompt(
                prompt,
                system_prompt=RESEARCH_SYSTEM_PROMPT,
                temperature=RESEARCH_TEMPERATURE,
                max_tokens=MAX_TOKENS_BY_DEPTH[depth],
            )
        except ProviderFailure as e:
            logger.warning(f"[RESEARCH] Completion failed ({e.kind.value}): {e.message}")
            output = fallback_research(topic)
            result = ResearchResult(
                topic=topic,
                summary=output.summary,
                key_points=output.key_points,
                sources=output.sources,
                model=self.gateway.model_id,
                provider=self.gateway.provider_name,
                tokens=estimate_tokens(prompt),
                cost=0.0,
                fallback=True,
            )
        else:
            output = parse_research(completion.content, topic)
            result = ResearchResult(
                topic=topic,
                summary=output.summary,
                key_points=output.key_points,
                sources=output.sources,
                model=completion.model_id,
                provider=completion.provider,
                tokens=completion.token_count or 0,
                cost=completion.cost_estimate_usd or 0.0,
            )

        await asyncio.to_thread(
            self.store.append_usage_record,
            UsageRecord(
                task_id=task_id,
                content_type=ContentType.RESEARCH,
                content=json.dumps(
                    {
                        "topic": topic,
                        "summary": result.summary,
                        "keyPoints": result.key_points,
                        "sources": [source.model_dump() for source in result.sources],
                        "searchDepth": depth,
                    }
                ),
                provider=result.provider,
                model_id=result.model,
                token_count=result.tokens,
                cost_usd=result.cost,
                fallback=result.fallback,
            ),
        )

        logger.info(
            f"[RESEARCH] topic={topic} | depth={depth} | sources={len(result.sources)} | "
            f"fallback={result.fallback}"
        )
        return result
