"""Generation history API endpoints.

- GET /api/generation-records - List the caller's generation records, newest first
- DELETE /api/generation-records/{record_id} - Delete one of the caller's records

Both require an authenticated principal; anonymous records are never listed.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from imagegen.api.dependencies import get_principal, get_uow_factory
from imagegen.models.generation_record import GenerationRecord

logger = structlog.get_logger()
router = APIRouter(prefix="/api/generation-records", tags=["generation-records"])


class GenerationRecordDTO(BaseModel):
    """Data Transfer Object for generation records in API responses."""

    id: UUID
    type: str = Field(..., description="txt2img or img2img")
    prompt: str
    input_images: list[str] = Field(default_factory=list)
    output_image_url: Optional[str] = Field(
        default=None, description="Generated image URL (null unless succeeded)"
    )
    status: str = Field(..., description="queued, processing, succeeded or failed")
    error: Optional[str] = Field(default=None, description="Diagnostic (null unless failed)")
    metadata: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: GenerationRecord) -> "GenerationRecordDTO":
        return cls(
            id=record.id,
            type=record.kind.value,
            prompt=record.prompt,
            input_images=list(record.input_images or []),
            output_image_url=record.output_image_url,
            status=record.status.value,
            error=record.error,
            metadata=record.request_metadata,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class DeleteRecordResponse(BaseModel):
    success: bool


def _require_principal(principal: Optional[str]) -> str:
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return principal


@router.get("", response_model=list[GenerationRecordDTO])
async def list_generation_records(
    principal: Optional[str] = Depends(get_principal),
    uow_factory=Depends(get_uow_factory),
) -> list[GenerationRecordDTO]:
    """List the caller's generation records, newest first.

    Returns:
        200: Array of generation records
        401: Caller is anonymous
    """
    user_id = _require_principal(principal)

    async with await uow_factory() as uow:
        records = await uow.generation_records.list_by_owner(user_id)

    logger.debug("generation_records.listed", count=len(records))
    return [GenerationRecordDTO.from_record(record) for record in records]


@router.delete("/{record_id}", response_model=DeleteRecordResponse)
async def delete_generation_record(
    record_id: UUID,
    principal: Optional[str] = Depends(get_principal),
    uow_factory=Depends(get_uow_factory),
) -> DeleteRecordResponse:
    """Delete one of the caller's generation records.

    Returns:
        200: {"success": true}
        401: Caller is anonymous
        404: Record does not exist or belongs to someone else
    """
    user_id = _require_principal(principal)

    async with await uow_factory() as uow:
        deleted = await uow.generation_records.delete_for_owner(record_id, user_id)

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Generation record not found"
        )

    logger.info("generation_record.deleted", record_id=str(record_id))
    return DeleteRecordResponse(success=True)
