from typing import Any, ClassVar, Optional, Type

from sqlalchemy.ext.asyncio import AsyncSession

from salesops.models.base import Base


class BaseRepository:
    """Holds the request's ``AsyncSession``.

    Repositories built from the same session share one unit of work, so
    a service can write through several of them and commit once.
    Subclasses that insert rows set ``model``.
    """

    model: ClassVar[Optional[Type[Base]]] = None

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def _insert(self, **kwargs: Any) -> Any:
        """Add a ``model`` row and flush so database defaults are populated."""
        instance = self.model(**kwargs)
        self._db.add(instance)
        await self._db.flush()
        return instance

    async def flush(self) -> None:
        await self._db.flush()

    async def commit(self) -> None:
        await self._db.commit()

    async def rollback(self) -> None:
        await self._db.rollback()
