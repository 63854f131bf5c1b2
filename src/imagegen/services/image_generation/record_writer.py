"""Generation record writers.

A RecordWriter is chosen once per request:

- OwnerScopedRecordWriter: authenticated caller, rows owned by the principal
  and always addressed by (id, user_id).
- ServiceScopedRecordWriter: anonymous caller, rows with no owner written
  through the elevated service credential.
- NullRecordWriter: anonymous caller and no service credential configured;
  nothing is recorded.

JobMirror wraps a writer so that every write is best-effort: failures are
logged and never reach the generation flow.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Sequence
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from imagegen.models.generation_record import (
    GenerationKind,
    GenerationRecord,
    InvalidStateTransition,
)
from imagegen.services.exceptions import PersistenceError
from imagegen.uow import UnitOfWork

logger = structlog.get_logger(__name__)

UowFactory = Callable[[], Awaitable[UnitOfWork]]


def serialize_diagnostic(detail: Any) -> str:
    """Render a failure diagnostic for the record's error column."""
    if isinstance(detail, str):
        return detail
    return json.dumps(detail, default=str, ensure_ascii=False)


class RecordWriter(ABC):
    """Capability to create and advance generation records."""

    owner: Optional[str] = None

    @abstractmethod
    async def create(
        self,
        kind: GenerationKind,
        prompt: str,
        input_images: Sequence[str],
        metadata: Optional[dict] = None,
    ) -> Optional[UUID]:
        """Create a queued record and return its id (None when nothing was recorded)."""

    @abstractmethod
    async def mark_processing(self, record_id: UUID, provider_job_id: str) -> None: ...

    @abstractmethod
    async def mark_succeeded(self, record_id: UUID, output_image_url: str) -> None: ...

    @abstractmethod
    async def mark_failed(self, record_id: UUID, error: str) -> None: ...


class NullRecordWriter(RecordWriter):
    """Writer used when the caller's generation cannot be recorded."""

    async def create(self, kind, prompt, input_images, metadata=None) -> Optional[UUID]:
        return None

    async def mark_processing(self, record_id, provider_job_id) -> None:
        return None

    async def mark_succeeded(self, record_id, output_image_url) -> None:
        return None

    async def mark_failed(self, record_id, error) -> None:
        return None


class _UnitOfWorkRecordWriter(RecordWriter):
    """Shared persistence logic; subclasses decide how rows are scoped."""

    def __init__(self, uow_factory: UowFactory):
        self.uow_factory = uow_factory

    @abstractmethod
    async def _load(self, uow: UnitOfWork, record_id: UUID) -> GenerationRecord | None: ...

    async def create(
        self,
        kind: GenerationKind,
        prompt: str,
        input_images: Sequence[str],
        metadata: Optional[dict] = None,
    ) -> Optional[UUID]:
        record = GenerationRecord(
            user_id=self.owner,
            kind=kind,
            prompt=prompt,
            input_images=list(input_images),
            request_metadata=metadata,
        )
        try:
            async with await self.uow_factory() as uow:
                await uow.generation_records.add(record)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create generation record: {e}") from e
        return record.id

    async def _transition(self, record_id: UUID, apply: Callable[[GenerationRecord], None]) -> None:
        try:
            async with await self.uow_factory() as uow:
                record = await self._load(uow, record_id)
                if record is None:
                    raise PersistenceError(
                        f"Generation record {record_id} not found for owner {self.owner!r}"
                    )
                apply(record)
                uow.session.add(record)
        except (SQLAlchemyError, InvalidStateTransition, ValueError) as e:
            raise PersistenceError(f"Failed to update generation record {record_id}: {e}") from e

    async def mark_processing(self, record_id: UUID, provider_job_id: str) -> None:
        await self._transition(record_id, lambda record: record.mark_processing(provider_job_id))

    async def mark_succeeded(self, record_id: UUID, output_image_url: str) -> None:
        await self._transition(record_id, lambda record: record.mark_succeeded(output_image_url))

    async def mark_failed(self, record_id: UUID, error: str) -> None:
        await self._transition(record_id, lambda record: record.mark_failed(error))


class OwnerScopedRecordWriter(_UnitOfWorkRecordWriter):
    """Writes records owned by an authenticated principal."""

    def __init__(self, uow_factory: UowFactory, owner: str):
        super().__init__(uow_factory)
        if not owner:
            raise ValueError("owner is required for owner-scoped records")
        self.owner = owner

    async def _load(self, uow: UnitOfWork, record_id: UUID) -> GenerationRecord | None:
        return await uow.generation_records.get_for_owner(record_id, self.owner)  # type: ignore[arg-type]


class ServiceScopedRecordWriter(_UnitOfWorkRecordWriter):
    """Writes anonymous records through the elevated service credential."""

    owner = None

    async def _load(self, uow: UnitOfWork, record_id: UUID) -> GenerationRecord | None:
        return await uow.generation_records.get_anonymous(record_id)


def select_record_writer(
    principal: Optional[str],
    uow_factory: Optional[UowFactory],
    service_uow_factory: Optional[UowFactory],
) -> RecordWriter:
    """Pick the writer for a request.

    Args:
        principal: Authenticated principal id, or None for anonymous callers
        uow_factory: Request-credential UnitOfWork factory
        service_uow_factory: Elevated-credential UnitOfWork factory, if configured

    Returns:
        RecordWriter matching the caller
    """
    if principal:
        if uow_factory is None:
            return NullRecordWriter()
        return OwnerScopedRecordWriter(uow_factory, principal)
    if service_uow_factory is not None:
        return ServiceScopedRecordWriter(service_uow_factory)
    return NullRecordWriter()


class JobMirror:
    """Best-effort mirror of one job's lifecycle into its record.

    Every method swallows its own errors (logged as
    ``generation.record.write_failed``). Once creation has failed there is no
    record id and later transitions are skipped.
    """

    def __init__(self, writer: RecordWriter):
        self.writer = writer
        self.record_id: Optional[UUID] = None

    async def queued(
        self,
        kind: GenerationKind,
        prompt: str,
        input_images: Sequence[str],
        metadata: Optional[dict] = None,
    ) -> Optional[UUID]:
        try:
            self.record_id = await self.writer.create(kind, prompt, input_images, metadata)
        except Exception as e:
            logger.warning(
                "generation.record.write_failed",
                transition="queued",
                error=str(e),
                error_type=type(e).__name__,
            )
            self.record_id = None
        return self.record_id

    async def processing(self, provider_job_id: str) -> None:
        await self._write("processing", self.writer.mark_processing, provider_job_id)

    async def succeeded(self, output_image_url: str) -> None:
        await self._write("succeeded", self.writer.mark_succeeded, output_image_url)

    async def failed(self, detail: Any) -> None:
        await self._write("failed", self.writer.mark_failed, serialize_diagnostic(detail))

    async def _write(self, transition: str, method: Callable[..., Awaitable[None]], value) -> None:
        if self.record_id is None:
            return
        try:
            await method(self.record_id, value)
        except Exception as e:
            logger.warning(
                "generation.record.write_failed",
                transition=transition,
                record_id=str(self.record_id),
                error=str(e),
                error_type=type(e).__name__,
            )
