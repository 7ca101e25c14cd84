"""Pydantic schemas for request/response validation."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.models.llm_outputs import DecomposedSubtask, ResearchSource


# ============================================
# Shared Schemas
# ============================================


class UsageMetadata(BaseModel):
    """How an AI result was produced."""

    provider: str | None = None
    model: str
    tokens: int = 0
    cost: float = 0.0
    fallback: bool = False


# ============================================
# Task Support Schemas
# ============================================


class TaskSupportResponse(BaseModel):
    """Outcome of a task support request."""

    success: bool
    content: str | None = None
    error: str | None = None
    fallback: bool = False


# ============================================
# Decomposition Schemas
# ============================================


class DecomposeRequest(BaseModel):
    """Request to split a task into subtasks."""

    title: str = Field(min_length=1, max_length=500)
    description: str = Field(default="", max_length=5000)
    skills: list[str] | None = None
    task_id: str | None = None


class DecomposeResponse(BaseModel):
    """Decomposed subtasks with usage metadata."""

    subtasks: list[DecomposedSubtask]
    metadata: UsageMetadata


# ============================================
# Research Schemas
# ============================================


class ResearchRequest(BaseModel):
    """Request to research a topic for a task."""

    topic: str = Field(min_length=1, max_length=500)
    task_id: str
    depth: Literal["basic", "detailed"] = "basic"


class ResearchResponse(BaseModel):
    """Research summary with usage metadata."""

    topic: str
    summary: str
    key_points: list[str] = []
    sources: list[ResearchSource]
    metadata: UsageMetadata


# ============================================
# AI Content Schemas
# ============================================


class AIContentResponse(BaseModel):
    """One usage record logged against a task."""

    id: str | None = None
    task_id: str
    type: Literal["decomposition", "research", "suggestion"]
    content: str
    metadata: UsageMetadata
    created_at: datetime


class AIContentListResponse(BaseModel):
    """Usage records of a task, newest first."""

    contents: list[AIContentResponse]
    total: int


# ============================================
# Health Schemas
# ============================================


class HealthResponse(BaseModel):
    """Service health and active AI provider."""

    status: str
    version: str
    provider: str
    model: str
    provider_available: bool
