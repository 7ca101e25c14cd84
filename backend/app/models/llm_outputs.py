"""Pydantic models for structured LLM outputs with validation.

The model is asked for JSON, but adherence is unreliable, so these models
coerce loose values and reject output that cannot be used.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DecomposedSubtask(BaseModel):
    """One step of a decomposed task."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., description="Short actionable title")
    description: str = Field(default="", description="What to do in this step")
    estimated_time: int = Field(
        default=30,
        alias="estimatedTime",
        description="Estimated minutes",
    )
    order: int = Field(default=1, description="Position in the execution order")
    dependencies: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Subtask title cannot be empty")
        return v.strip()

    @field_validator("dependencies", mode="before")
    @classmethod
    def coerce_dependencies(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(item) for item in v]


class DecompositionOutput(BaseModel):
    """The ``{"subtasks": [...]}`` document requested from the model."""

    subtasks: list[DecomposedSubtask] = Field(..., min_length=1, max_length=10)


class ResearchSource(BaseModel):
    """A reference cited by a research summary."""

    title: str
    url: str = ""
    snippet: str = ""


class ResearchOutput(BaseModel):
    """The research summary document requested from the model."""

    model_config = ConfigDict(populate_by_name=True)

    summary: str = Field(..., description="Practical summary of the topic")
    key_points: list[str] = Field(default_factory=list, alias="keyPoints")
    practical_tips: list[str] = Field(default_factory=list, alias="practicalTips")
    sources: list[ResearchSource] = Field(default_factory=list)

    @field_validator("summary")
    @classmethod
    def summary_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Research summary cannot be empty")
        return v.strip()

    @field_validator("key_points", "practical_tips", mode="before")
    @classmethod
    def coerce_string_list(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(item) for item in v if item]

    @field_validator("sources", mode="before")
    @classmethod
    def coerce_sources(cls, v: Any) -> list[Any]:
        """Accept bare URLs as well as source objects."""
        if not isinstance(v, list):
            return []
        sources = []
        for item in v:
            if isinstance(item, str) and item:
                sources.append({"title": item, "url": item})
            elif isinstance(item, dict) and item.get("title"):
                sources.append(item)
        return sources
