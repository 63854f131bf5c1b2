"""Record writer tests.

Tests focus on persistence scoping:
- Owner-scoped rows carry the principal and are only addressed with it
- Anonymous rows go through the service writer with no owner
- Writer selection per caller
- JobMirror never lets a write failure escape
"""

from uuid import uuid4

import pytest

from imagegen.models.generation_record import GenerationKind, GenerationStatus
from imagegen.services.exceptions import PersistenceError
from imagegen.services.image_generation.record_writer import (
    JobMirror,
    NullRecordWriter,
    OwnerScopedRecordWriter,
    ServiceScopedRecordWriter,
    select_record_writer,
    serialize_diagnostic,
)


async def _load(uow_factory, record_id):
    async with await uow_factory() as uow:
        return await uow.generation_records.get_by_id(record_id)


@pytest.mark.asyncio
async def test_owner_scoped_lifecycle(uow_factory):
    writer = OwnerScopedRecordWriter(uow_factory, "alice")

    record_id = await writer.create(
        GenerationKind.IMAGE_TO_IMAGE, "make it winter", ["https://cdn/in.png"], {"model": "m"}
    )
    await writer.mark_processing(record_id, "job-42")
    await writer.mark_succeeded(record_id, "https://cdn/out.png")

    record = await _load(uow_factory, record_id)
    assert record.user_id == "alice"
    assert record.kind == GenerationKind.IMAGE_TO_IMAGE
    assert record.input_images == ["https://cdn/in.png"]
    assert record.request_metadata == {"model": "m"}
    assert record.provider_job_id == "job-42"
    assert record.status == GenerationStatus.SUCCEEDED
    assert record.output_image_url == "https://cdn/out.png"


@pytest.mark.asyncio
async def test_owner_scoped_writer_cannot_touch_other_owners_rows(uow_factory):
    record_id = await OwnerScopedRecordWriter(uow_factory, "alice").create(
        GenerationKind.TEXT_TO_IMAGE, "a cat", []
    )

    with pytest.raises(PersistenceError, match="not found"):
        await OwnerScopedRecordWriter(uow_factory, "bob").mark_processing(record_id, "job-1")

    record = await _load(uow_factory, record_id)
    assert record.status == GenerationStatus.QUEUED


@pytest.mark.asyncio
async def test_owner_scoped_writer_requires_owner(uow_factory):
    with pytest.raises(ValueError):
        OwnerScopedRecordWriter(uow_factory, "")


@pytest.mark.asyncio
async def test_service_writer_records_anonymous_rows(uow_factory):
    writer = ServiceScopedRecordWriter(uow_factory)

    record_id = await writer.create(GenerationKind.TEXT_TO_IMAGE, "a cat", [])
    await writer.mark_failed(record_id, "no job id returned")

    record = await _load(uow_factory, record_id)
    assert record.user_id is None
    assert record.status == GenerationStatus.FAILED
    assert record.error == "no job id returned"


@pytest.mark.asyncio
async def test_service_writer_cannot_touch_owned_rows(uow_factory):
    record_id = await OwnerScopedRecordWriter(uow_factory, "alice").create(
        GenerationKind.TEXT_TO_IMAGE, "a cat", []
    )

    with pytest.raises(PersistenceError):
        await ServiceScopedRecordWriter(uow_factory).mark_failed(record_id, "boom")


@pytest.mark.asyncio
async def test_invalid_transition_surfaces_as_persistence_error(uow_factory):
    writer = OwnerScopedRecordWriter(uow_factory, "alice")
    record_id = await writer.create(GenerationKind.TEXT_TO_IMAGE, "a cat", [])

    with pytest.raises(PersistenceError):
        await writer.mark_succeeded(record_id, "https://cdn/out.png")


@pytest.mark.asyncio
async def test_null_writer_records_nothing():
    writer = NullRecordWriter()

    assert await writer.create(GenerationKind.TEXT_TO_IMAGE, "a cat", []) is None


def test_select_record_writer():
    uow_factory = object()
    service_factory = object()

    owner_writer = select_record_writer("alice", uow_factory, service_factory)
    assert isinstance(owner_writer, OwnerScopedRecordWriter)
    assert owner_writer.owner == "alice"

    anonymous_writer = select_record_writer(None, uow_factory, service_factory)
    assert isinstance(anonymous_writer, ServiceScopedRecordWriter)
    assert anonymous_writer.uow_factory is service_factory
    assert anonymous_writer.owner is None

    assert isinstance(select_record_writer(None, uow_factory, None), NullRecordWriter)
    assert isinstance(select_record_writer("alice", None, None), NullRecordWriter)


@pytest.mark.asyncio
async def test_mirror_swallows_creation_failure():
    class FailingWriter(NullRecordWriter):
        def __init__(self):
            self.transitions = []

        async def create(self, kind, prompt, input_images, metadata=None):
            raise PersistenceError("database unavailable")

        async def mark_processing(self, record_id, provider_job_id):
            self.transitions.append("processing")

    writer = FailingWriter()
    mirror = JobMirror(writer)

    assert await mirror.queued(GenerationKind.TEXT_TO_IMAGE, "a cat", []) is None
    await mirror.processing("job-1")

    assert writer.transitions == []


@pytest.mark.asyncio
async def test_mirror_swallows_transition_failure(uow_factory):
    mirror = JobMirror(OwnerScopedRecordWriter(uow_factory, "alice"))
    mirror.record_id = uuid4()  # row that does not exist

    await mirror.processing("job-1")
    await mirror.succeeded("https://cdn/out.png")
    await mirror.failed({"error": "boom"})


@pytest.mark.asyncio
async def test_mirror_serializes_failure_detail(uow_factory):
    mirror = JobMirror(OwnerScopedRecordWriter(uow_factory, "alice"))
    record_id = await mirror.queued(GenerationKind.TEXT_TO_IMAGE, "a cat", [])

    await mirror.failed({"error": "Image URL not found", "detail": {"attempts": 3}})

    record = await _load(uow_factory, record_id)
    assert record.status == GenerationStatus.FAILED
    assert record.error == serialize_diagnostic(
        {"error": "Image URL not found", "detail": {"attempts": 3}}
    )
    assert "Image URL not found" in record.error


def test_serialize_diagnostic_keeps_strings():
    assert serialize_diagnostic("plain") == "plain"
    assert serialize_diagnostic({"a": 1}) == '{"a": 1}'
