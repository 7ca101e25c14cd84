"""Dependency injection for API routes."""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import get_settings
from app.llm import CompletionGateway
from app.services.supabase import SupabaseTaskStore, get_supabase_client
from app.services.task_store import InMemoryTaskStore, TaskStore
from app.utils.errors import unauthorized

logger = logging.getLogger(__name__)
security = HTTPBearer()

# In-memory limiter store, fine for a single instance
limiter = Limiter(key_func=get_remote_address)


@dataclass
class AuthenticatedUser:
    """User resolved from a Supabase access token."""

    id: str
    email: str | None = None


def get_gateway(request: Request) -> CompletionGateway:
    """The process-wide gateway created in the app lifespan."""
    return request.app.state.gateway


@lru_cache
def get_task_store() -> TaskStore:
    """Supabase-backed store when configured, otherwise an in-memory one."""
    if get_settings().supabase_configured:
        return SupabaseTaskStore()
    logger.warning("Supabase is not configured, using in-memory task store")
    return InMemoryTaskStore()


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> AuthenticatedUser:
    """
    Verify Supabase JWT and return the current user.

    Raises HTTPException if the token is invalid or auth is not configured.
    """
    if not get_settings().supabase_configured:
        raise unauthorized("Authentication backend is not configured")

    token = credentials.credentials
    supabase = get_supabase_client()

    try:
        user_response = supabase.auth.get_user(token)

        if not user_response or not user_response.user:
            raise unauthorized("Invalid authentication token")

        return AuthenticatedUser(
            id=user_response.user.id,
            email=user_response.user.email,
        )

    except HTTPException:
        raise
    except Exception as e:
        raise unauthorized(f"Could not validate credentials: {str(e)}")


# Type aliases for dependency injection
CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
Gateway = Annotated[CompletionGateway, Depends(get_gateway)]
Store = Annotated[TaskStore, Depends(get_task_store)]
