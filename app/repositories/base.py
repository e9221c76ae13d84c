"""
Base repository for SQLAlchemy models.

Subclasses set `model`, and `owner_column` when customers may only see their
own rows. Agents and admins see everything.
"""
from typing import Generic, List, Optional, TypeVar
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Base, User, UserRole
from app.domain.exceptions import ConflictError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class SQLAlchemyRepository(Generic[ModelT]):
    """Shared lookups and persistence for one table"""

    model: type = None
    owner_column: Optional[str] = None
    conflict_message: str = "Record already exists"

    def __init__(self, db_session: AsyncSession):
        self._db = db_session

    async def get_by_id(self, record_id: str) -> Optional[ModelT]:
        result = await self._db.execute(
            select(self.model).where(self.model.id == record_id)
        )
        return result.scalar_one_or_none()

    async def add(self, record: ModelT) -> ModelT:
        """
        Add and flush a new record so generated values are available.

        Raises:
            ConflictError: If a unique constraint is violated
        """
        self._db.add(record)
        try:
            await self._db.flush()
        except IntegrityError as e:
            await self._db.rollback()
            logger.warning(f"{self.model.__name__} insert rejected: {e.orig}")
            raise ConflictError(self.conflict_message) from e
        return record

    async def save(self, record: ModelT) -> ModelT:
        """Flush changes to an already loaded record"""
        await self._db.flush()
        return record

    def _visible_to(self, statement, user: User):
        if self.owner_column and user.role == UserRole.CUSTOMER:
            statement = statement.where(getattr(self.model, self.owner_column) == user.id)
        return statement

    async def get_visible_to(self, record_id: str, user: User) -> Optional[ModelT]:
        """Get a record if the user may see it, None otherwise"""
        statement = self._visible_to(
            select(self.model).where(self.model.id == record_id), user
        )
        result = await self._db.execute(statement)
        return result.scalar_one_or_none()

    async def list_visible_to(self, user: User, *criteria, limit: int = 100, offset: int = 0) -> List[ModelT]:
        """Records the user may see, newest first"""
        statement = self._visible_to(select(self.model), user)
        if criteria:
            statement = statement.where(*criteria)
        statement = statement.order_by(self.model.created_at.desc()).limit(limit).offset(offset)
        result = await self._db.execute(statement)
        return list(result.scalars().all())
