from __future__ import annotations

from fastapi import Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from forum_api.core.cache import QueryCache, get_query_cache
from forum_api.core.settings import AppSettings, get_app_settings
from forum_api.db.models import Forum
from forum_api.db.session import get_async_session
from forum_api.repositories.forum import ForumRepository
from forum_api.services.forum import ForumService


# PUBLIC_INTERFACE
def get_cache() -> QueryCache:
    """Return the process-wide query cache."""
    return get_query_cache()


# PUBLIC_INTERFACE
def get_forum_repository(
    session: AsyncSession = Depends(get_async_session),
    settings: AppSettings = Depends(get_app_settings),
    cache: QueryCache = Depends(get_cache),
) -> ForumRepository:
    """Build a ForumRepository bound to the request session."""
    return ForumRepository(session, settings=settings, cache=cache)


# PUBLIC_INTERFACE
def get_forum_service(
    session: AsyncSession = Depends(get_async_session),
    settings: AppSettings = Depends(get_app_settings),
    cache: QueryCache = Depends(get_cache),
) -> ForumService:
    """Build a ForumService bound to the request session."""
    return ForumService(session, settings=settings, cache=cache)


# PUBLIC_INTERFACE
async def get_forum_or_404(
    forum_id: int = Path(..., ge=1, description="Forum id"),
    repo: ForumRepository = Depends(get_forum_repository),
) -> Forum:
    """
    Load the forum named in the path.

    Raises:
        HTTPException: 404 Not Found if no such forum exists.
    """
    forum = await repo.get(forum_id)
    if forum is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Forum not found")
    return forum
