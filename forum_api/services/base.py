from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession


class BaseService:
    """
    Base class for services. Holds the session shared by the repositories a
    service drives, and owns its transaction: repositories flush, services commit.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
