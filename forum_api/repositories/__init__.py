"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for the board. They never commit;
the AsyncSession they are given is owned by the caller (a service or a
request-scoped dependency).
"""
from .base import BaseRepository, EntityRepository, PaginatedResult
from .forum import ForumRepository

__all__ = ["BaseRepository", "EntityRepository", "PaginatedResult", "ForumRepository"]
