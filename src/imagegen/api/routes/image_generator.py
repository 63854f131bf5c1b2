"""Image generation API endpoints.

- POST /api/image-generator/generate - Text-to-image generation
- POST /api/image-generator/img2img - Image-to-image generation

Both block until the provider job reaches a terminal state. If the client
disconnects first, the job is cancelled so no further provider calls are made.
"""

import asyncio
from typing import Awaitable, Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, ConfigDict, Field

from imagegen.api.dependencies import get_orchestrator, get_principal
from imagegen.models.generation_record import GenerationKind
from imagegen.services.exceptions import GenerationCancelled
from imagegen.services.image_generation.orchestrator import (
    GenerationOrchestrator,
    GenerationRequest,
    GenerationResult,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/api/image-generator", tags=["image-generator"])

DISCONNECT_CHECK_SECONDS = 1.0


# Request/Response Models


class TextToImageRequest(BaseModel):
    """Request model for text-to-image generation."""

    prompt: Optional[str] = Field(default=None, description="Text prompt")


class ImageToImageRequest(BaseModel):
    """Request model for image-to-image generation.

    ``urls`` takes precedence over the single ``url`` field.
    """

    model_config = ConfigDict(populate_by_name=True)

    prompt: Optional[str] = Field(default=None, description="Text prompt")
    url: Optional[str] = Field(default=None, description="Single source image URL")
    urls: Optional[list[str]] = Field(default=None, description="Source image URLs")
    web_hook: Optional[str] = Field(
        default=None, alias="webHook", description="Provider progress callback URL"
    )
    shut_progress: Optional[bool] = Field(
        default=None, alias="shutProgress", description="Suppress provider progress events"
    )

    def input_urls(self) -> list[str]:
        if self.urls is not None:
            return list(self.urls)
        if self.url:
            return [self.url]
        return []


class GenerationResponse(BaseModel):
    """Response model for a completed generation."""

    success: bool = Field(default=True)
    image: str = Field(..., description="Generated image URL")
    record_id: Optional[UUID] = Field(
        default=None, description="Generation record id (null if the job was not recorded)"
    )


# Helpers


async def _cancel_on_disconnect(request: Request, task: asyncio.Task) -> None:
    while not task.done():
        await asyncio.sleep(DISCONNECT_CHECK_SECONDS)
        if await request.is_disconnected():
            logger.info("generation.client_disconnected", path=request.url.path)
            task.cancel()
            return


async def run_until_disconnect(
    request: Request, job: Awaitable[GenerationResult]
) -> GenerationResult:
    """Await a generation job, cancelling it if the client goes away.

    Raises:
        GenerationCancelled: The job was cancelled because the client disconnected
    """
    task = asyncio.ensure_future(job)
    watcher = asyncio.create_task(_cancel_on_disconnect(request, task))
    try:
        return await task
    except asyncio.CancelledError:
        # Watcher finished normally only if it cancelled the job itself
        if watcher.done() and not watcher.cancelled():
            raise GenerationCancelled("Client disconnected")
        raise
    finally:
        watcher.cancel()


def _to_response(result: GenerationResult) -> GenerationResponse:
    return GenerationResponse(image=result.output_image_url, record_id=result.record_id)


# API Endpoints


@router.post("/generate", response_model=GenerationResponse, status_code=status.HTTP_200_OK)
async def generate_image(
    body: TextToImageRequest,
    request: Request,
    principal: Optional[str] = Depends(get_principal),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> GenerationResponse:
    """Generate an image from a text prompt.

    Returns:
        200: {"success": true, "image": url, "record_id": id|null}
        400: {"error": ...} for a missing prompt
        500: {"error", "category", "detail"} for provider failures
    """
    generation_request = GenerationRequest(
        kind=GenerationKind.TEXT_TO_IMAGE,
        prompt=body.prompt or "",
        principal=principal,
    )
    result = await run_until_disconnect(
        request, orchestrator.submit_and_await(generation_request)
    )
    return _to_response(result)


@router.post("/img2img", response_model=GenerationResponse, status_code=status.HTTP_200_OK)
async def generate_image_from_images(
    body: ImageToImageRequest,
    request: Request,
    principal: Optional[str] = Depends(get_principal),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> GenerationResponse:
    """Generate an image from a prompt and one or more source images.

    Returns:
        200: {"success": true, "image": url, "record_id": id|null}
        400: {"error": ...} for a missing prompt or missing image URL
        500: {"error", "category", "detail"} for provider failures
    """
    generation_request = GenerationRequest(
        kind=GenerationKind.IMAGE_TO_IMAGE,
        prompt=body.prompt or "",
        input_images=body.input_urls(),
        web_hook=body.web_hook,
        shut_progress=body.shut_progress,
        principal=principal,
    )
    result = await run_until_disconnect(
        request, orchestrator.submit_and_await(generation_request)
    )
    return _to_response(result)
