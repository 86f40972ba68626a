"""Base repositories with common CRUD operations.

Provides a generic repository pattern for SQLAlchemy models with async
support, and a tenant-scoped variant that confines every query to one
organization.

Repositories only flush. Committing is left to the caller so that a
service can make several changes in one transaction.

Usage:
    from guild.db.repositories.base import TenantRepository

    class UserRepository(TenantRepository[User, UUID]):
        pass

    repo = UserRepository(db_session, organization_id)
    user = await repo.get(user_id)
"""

from collections.abc import Sequence
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from guild.core.exceptions import NotFoundError
from guild.db.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)
PKType = TypeVar("PKType", bound=UUID | int | str)


class BaseRepository(Generic[ModelType, PKType]):
    """Generic repository for SQLAlchemy models.

    Type Parameters:
        ModelType: The SQLAlchemy model class
        PKType: The type of the primary key (UUID, int, or str)

    Attributes:
        model: The model class
        resource_name: Name used in NotFoundError messages
        db: The database session
    """

    model: type[ModelType]
    resource_name: str = "record"

    def __init__(self, db: AsyncSession):
        """Initialize repository with database session.

        Args:
            db: Async SQLAlchemy session
        """
        self.db = db

    def __init_subclass__(cls, **kwargs):
        """Extract model type from generic parameter."""
        super().__init_subclass__(**kwargs)
        for base in getattr(cls, "__orig_bases__", []):
            args = getattr(base, "__args__", None)
            if args and len(args) >= 1:
                first_arg = args[0]
                # Skip TypeVars
                if isinstance(first_arg, type) and issubclass(first_arg, Base):
                    cls.model = first_arg
                    break

    def _select(self) -> Select:
        """Base SELECT for this repository; tenant repositories add a filter."""
        return select(self.model)

    async def get(self, pk: PKType) -> ModelType | None:
        """Get a single record by primary key.

        Args:
            pk: Primary key value

        Returns:
            Model instance or None if not found
        """
        stmt = self._select().where(self._get_pk_column() == pk)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_raise(self, pk: PKType) -> ModelType:
        """Get a single record by primary key or raise.

        Raises:
            NotFoundError: If record not found
        """
        result = await self.get(pk)
        if result is None:
            raise NotFoundError(self.resource_name, pk)
        return result

    async def get_many(self, pks: Sequence[PKType]) -> list[ModelType]:
        """Get multiple records by primary keys.

        Returns:
            List of found models (may be fewer than requested if some not found)
        """
        if not pks:
            return []

        stmt = self._select().where(self._get_pk_column().in_(pks))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create(self, obj: ModelType) -> ModelType:
        """Add a new record and flush it so generated keys are populated."""
        self.db.add(obj)
        await self.db.flush()
        return obj

    async def update(self, obj: ModelType, updates: dict[str, Any]) -> ModelType:
        """Apply a dictionary of field values to a record and flush.

        All fields land in a single UPDATE statement.
        """
        for field, value in updates.items():
            if hasattr(obj, field):
                setattr(obj, field, value)
        await self.db.flush()
        return obj

    async def _insert_ignoring_conflicts(
        self, values: dict[str, Any], index_elements: list[str]
    ) -> None:
        """INSERT a row, doing nothing if it collides with a unique constraint.

        Relies on the datastore's ON CONFLICT so concurrent inserts of the
        same key cannot both succeed or both fail.
        """
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = postgresql.insert(self.model).values(**values)
        elif dialect == "sqlite":
            stmt = sqlite.insert(self.model).values(**values)
        else:
            raise NotImplementedError(f"Upsert not supported for dialect {dialect}")
        await self.db.execute(stmt.on_conflict_do_nothing(index_elements=index_elements))

    def _get_pk_column(self):
        """Get the primary key column for this model.

        Raises:
            ValueError: If no primary key found
        """
        pk_cols = self.model.__mapper__.primary_key
        if not pk_cols:
            raise ValueError(f"No primary key found for {self.model.__name__}")
        return pk_cols[0]


class TenantRepository(BaseRepository[ModelType, PKType]):
    """Repository whose queries are confined to one organization.

    Attributes:
        organization_id: The organization every query is filtered by
    """

    def __init__(self, db: AsyncSession, organization_id: UUID):
        super().__init__(db)
        self.organization_id = organization_id

    def _select(self) -> Select:
        return select(self.model).where(self.model.organization_id == self.organization_id)

    async def create(self, obj: ModelType) -> ModelType:
        """Add a record, stamping it with this repository's organization."""
        obj.organization_id = self.organization_id
        return await super().create(obj)
