"""GenerationRecord repository.

Provides data access methods for GenerationRecord entities with owner scoping.
"""

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from imagegen.models.generation_record import GenerationRecord


class GenerationRecordRepository:
    """Repository for GenerationRecord entities.

    Rows belonging to an authenticated principal are always addressed by
    (id, user_id). Anonymous rows have user_id NULL and are addressed by id
    alone, which only the service-scoped writer does.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add(self, record: GenerationRecord) -> GenerationRecord:
        """Persist new generation record to database.

        Args:
            record: GenerationRecord entity to persist

        Returns:
            Persisted record with generated ID
        """
        self.session.add(record)
        await self.session.flush()
        return record

    async def get_by_id(self, record_id: UUID) -> GenerationRecord | None:
        """Retrieve record by UUID regardless of owner."""
        result = await self.session.execute(
            select(GenerationRecord).where(GenerationRecord.id == record_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def get_for_owner(self, record_id: UUID, user_id: str) -> GenerationRecord | None:
        """Retrieve record by UUID only if it belongs to the given owner.

        Args:
            record_id: Record's unique identifier
            user_id: Principal id the record must belong to

        Returns:
            GenerationRecord if found and owned by user_id, None otherwise
        """
        result = await self.session.execute(
            select(GenerationRecord).where(
                GenerationRecord.id == record_id,  # type: ignore[arg-type]
                GenerationRecord.user_id == user_id,  # type: ignore[arg-type]
            )
        )
        return result.scalar_one_or_none()

    async def get_anonymous(self, record_id: UUID) -> GenerationRecord | None:
        """Retrieve record by UUID only if it has no owner."""
        result = await self.session.execute(
            select(GenerationRecord).where(
                GenerationRecord.id == record_id,  # type: ignore[arg-type]
                GenerationRecord.user_id.is_(None),  # type: ignore[union-attr]
            )
        )
        return result.scalar_one_or_none()

    async def list_by_owner(self, user_id: str) -> list[GenerationRecord]:
        """Retrieve all records of an owner, newest first.

        Args:
            user_id: Principal id

        Returns:
            List of records ordered by creation time (newest first)
        """
        result = await self.session.execute(
            select(GenerationRecord)
            .where(GenerationRecord.user_id == user_id)  # type: ignore[arg-type]
            .order_by(GenerationRecord.created_at.desc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def delete_for_owner(self, record_id: UUID, user_id: str) -> bool:
        """Delete a record if it belongs to the given owner.

        Returns:
            True if a row was deleted, False if nothing matched
        """
        result = await self.session.execute(
            delete(GenerationRecord).where(
                GenerationRecord.id == record_id,  # type: ignore[arg-type]
                GenerationRecord.user_id == user_id,  # type: ignore[arg-type]
            )
        )
        return result.rowcount > 0  # type: ignore[attr-defined]
