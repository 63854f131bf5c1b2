"""Integration tests for generation history endpoints.

- GET /api/generation-records - List the caller's records
- DELETE /api/generation-records/{record_id} - Delete one of the caller's records
"""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from imagegen.app import create_app
from imagegen.core.config import Settings
from imagegen.models.generation_record import GenerationKind, GenerationRecord


@pytest_asyncio.fixture
async def test_client(uow_factory):
    app = create_app(Settings(DATABASE_URL="sqlite+aiosqlite://", APP_ENV="test"))
    app.state.uow_factory = uow_factory
    app.state.service_uow_factory = None
    app.state.provider_client = None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def _add(uow_factory, **kwargs) -> GenerationRecord:
    record = GenerationRecord(kind=GenerationKind.TEXT_TO_IMAGE, prompt="a cat", **kwargs)
    async with await uow_factory() as uow:
        await uow.generation_records.add(record)
    return record


@pytest.mark.asyncio
class TestListRecords:
    async def test_anonymous_caller_is_rejected(self, test_client):
        response = await test_client.get("/api/generation-records")

        assert response.status_code == 401

    async def test_lists_only_callers_records_newest_first(self, test_client, uow_factory):
        now = datetime.utcnow()
        older = await _add(uow_factory, user_id="alice", created_at=now - timedelta(minutes=5))
        newer = GenerationRecord(
            user_id="alice",
            kind=GenerationKind.IMAGE_TO_IMAGE,
            prompt="make it winter",
            input_images=["https://cdn/in.png"],
            request_metadata={"model": "nano-banana-fast"},
            created_at=now,
        )
        newer.mark_processing("job-1")
        newer.mark_succeeded("https://cdn/out.png")
        async with await uow_factory() as uow:
            await uow.generation_records.add(newer)
        await _add(uow_factory, user_id="bob")
        await _add(uow_factory)

        response = await test_client.get(
            "/api/generation-records", headers={"X-User-Id": "alice"}
        )

        assert response.status_code == 200
        data = response.json()
        assert [item["id"] for item in data] == [str(newer.id), str(older.id)]
        assert data[0]["type"] == "img2img"
        assert data[0]["status"] == "succeeded"
        assert data[0]["output_image_url"] == "https://cdn/out.png"
        assert data[0]["input_images"] == ["https://cdn/in.png"]
        assert data[0]["metadata"] == {"model": "nano-banana-fast"}
        assert data[1]["type"] == "txt2img"
        assert data[1]["status"] == "queued"
        assert data[1]["output_image_url"] is None


@pytest.mark.asyncio
class TestDeleteRecord:
    async def test_anonymous_caller_is_rejected(self, test_client):
        response = await test_client.delete(f"/api/generation-records/{uuid4()}")

        assert response.status_code == 401

    async def test_owner_deletes_record(self, test_client, uow_factory):
        record = await _add(uow_factory, user_id="alice")

        response = await test_client.delete(
            f"/api/generation-records/{record.id}", headers={"X-User-Id": "alice"}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        async with await uow_factory() as uow:
            assert await uow.generation_records.get_by_id(record.id) is None

    async def test_other_owner_gets_404_and_record_survives(self, test_client, uow_factory):
        record = await _add(uow_factory, user_id="alice")

        response = await test_client.delete(
            f"/api/generation-records/{record.id}", headers={"X-User-Id": "bob"}
        )

        assert response.status_code == 404
        async with await uow_factory() as uow:
            assert await uow.generation_records.get_by_id(record.id) is not None

    async def test_invalid_id_is_rejected(self, test_client):
        response = await test_client.delete(
            "/api/generation-records/not-a-uuid", headers={"X-User-Id": "alice"}
        )

        assert response.status_code == 422
