from __future__ import annotations

from typing import Any, Generic, Iterable, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Executable, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class PaginatedResult(BaseModel, Generic[T]):
    """One page of results together with the total number of matches."""
    results: list[T] = Field(default_factory=list)
    total: int = 0

    model_config = ConfigDict(arbitrary_types_allowed=True)


class BaseRepository:
    """
    Base class for repositories providing common helpers.

    Note:
      Repositories never commit. The caller owns the unit of work and decides
      when the session's transaction ends.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return scalars."""
        result = await self.execute(statement, params)
        return result.scalars()

    async def scalar_one_or_none(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return a single scalar or None."""
        result = await self.execute(statement, params)
        return result.scalar_one_or_none()

    async def count_of(self, statement: Executable) -> int:
        """Execute a count(...) statement and return it as int."""
        result = await self.execute(statement)
        return int(result.scalar_one() or 0)

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def add_all(self, entities: Iterable[Any]) -> None:
        """Add multiple entities to session."""
        self.session.add_all(list(entities))


class EntityRepository(BaseRepository, Generic[T]):
    """Generic CRUD over a single mapped class."""

    model: Type[T]

    def __init__(self, session: AsyncSession, model: Optional[Type[T]] = None) -> None:
        super().__init__(session)
        if model is not None:
            self.model = model

    async def get(self, entity_id: int) -> Optional[T]:
        return await self.session.get(self.model, entity_id)

    async def get_many(self, ids: Sequence[int]) -> list[T]:
        """Load entities by id, keeping the order of ``ids``; unknown ids are skipped."""
        if not ids:
            return []
        stmt = select(self.model).where(self.model.id.in_(list(ids)))  # type: ignore[attr-defined]
        by_id = {e.id: e for e in await self.scalars(stmt)}  # type: ignore[attr-defined]
        return [by_id[i] for i in ids if i in by_id]

    async def add(self, entity: T) -> None:
        """Add a single entity to the session and flush so it gets its id."""
        self.session.add(entity)
        await self.session.flush()

    async def update(self, entity: T) -> T:
        merged = await self.session.merge(entity)
        await self.session.flush()
        return merged

    async def remove(self, entity: T) -> None:
        await self.session.delete(entity)
        await self.session.flush()

    async def count(self) -> int:
        return await self.count_of(select(func.count()).select_from(self.model))
