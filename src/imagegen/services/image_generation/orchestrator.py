"""Generation job orchestrator.

Drives one generation job from submission to a terminal outcome:

1. Validate the request (no network or persistence activity on failure)
2. Create the record as queued (best-effort)
3. Submit to the provider and resolve the job id
4. Mark the record processing (best-effort)
5. Poll the result endpoint until succeeded, failed, or the attempt budget runs out
6. Mark the record succeeded or failed (best-effort)

Persistence never decides the outcome: every record write goes through
JobMirror, which logs and swallows its own failures.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

import structlog

from imagegen.models.generation_record import GenerationKind
from imagegen.services.exceptions import GenerationError, PollTimeout, ProviderJobFailed
from imagegen.services.image_generation.prompt_validator import (
    validate_input_images,
    validate_prompt,
)
from imagegen.services.image_generation.provider_client import NanoBananaClient, parse_result
from imagegen.services.image_generation.record_writer import JobMirror, RecordWriter

logger = structlog.get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 2000
DEFAULT_POLL_INTERVAL_SECONDS = 1.5


@dataclass
class GenerationRequest:
    """A text-to-image or image-to-image request."""

    kind: GenerationKind
    prompt: str
    input_images: list[str] = field(default_factory=list)
    web_hook: Optional[str] = None
    shut_progress: Optional[bool] = None
    principal: Optional[str] = None  # None = anonymous


@dataclass
class GenerationResult:
    """Successful outcome of a generation job."""

    output_image_url: str
    provider_job_id: str
    record_id: Optional[UUID] = None


class GenerationOrchestrator:
    """Submits a job to the provider and waits for its outcome.

    Holds no per-job state, so one instance may serve concurrent calls.
    """

    def __init__(
        self,
        client: NanoBananaClient,
        record_writer: RecordWriter,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize orchestrator.

        Args:
            client: Provider client
            record_writer: Writer matching the caller (see select_record_writer)
            max_attempts: Maximum number of result polls before PollTimeout
            poll_interval: Seconds to wait between polls
            sleep: Awaitable delay, replaceable in tests
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.client = client
        self.record_writer = record_writer
        self.max_attempts = max_attempts
        self.poll_interval = poll_interval
        self._sleep = sleep

    async def submit_and_await(self, request: GenerationRequest) -> GenerationResult:
        """Run a generation job to completion.

        Args:
            request: Generation request

        Returns:
            GenerationResult with the output image URL

        Raises:
            GenerationValidationError: Invalid request (nothing was sent or recorded)
            SubmissionFailed: Provider rejected the job or returned no job id
            ProviderResponseInvalid: Result endpoint returned non-JSON
            ProviderJobFailed: Provider reported the job as failed
            PollTimeout: Attempt budget exhausted
            ProviderTransportError: HTTP call failed at the transport layer
        """
        prompt = validate_prompt(request.prompt)
        input_images = validate_input_images(request.kind, request.input_images)

        log = logger.bind(kind=request.kind.value, authenticated=request.principal is not None)

        mirror = JobMirror(self.record_writer)
        record_id = await mirror.queued(
            request.kind,
            prompt,
            input_images,
            metadata={
                "model": self.client.model,
                "web_hook": request.web_hook,
                "shut_progress": request.shut_progress,
            },
        )
        if record_id is not None:
            log = log.bind(record_id=str(record_id))

        try:
            payload = self.client.build_submission(
                prompt,
                urls=input_images,
                web_hook=request.web_hook,
                shut_progress=request.shut_progress,
            )
            provider_job_id = await self.client.submit(payload)
            log = log.bind(provider_job_id=provider_job_id)
            log.info("generation.submitted")

            await mirror.processing(provider_job_id)

            output_image_url = await self._await_result(provider_job_id, log)

        except GenerationError as e:
            log.error("generation.failed", category=e.category, error_message=e.message)
            await mirror.failed(e.diagnostic())
            raise

        except asyncio.CancelledError:
            log.warning("generation.cancelled")
            await mirror.failed({"error": "cancelled"})
            raise

        except Exception as e:
            log.exception("generation.failed_unexpectedly", error_type=type(e).__name__)
            await mirror.failed({"error": str(e), "type": type(e).__name__})
            raise

        await mirror.succeeded(output_image_url)
        log.info("generation.succeeded", output_image_url=output_image_url)

        return GenerationResult(
            output_image_url=output_image_url,
            provider_job_id=provider_job_id,
            record_id=record_id,
        )

    async def _await_result(self, provider_job_id: str, log) -> str:
        """Poll the result endpoint until a terminal state or the attempt budget runs out."""
        snapshot = None

        for attempt in range(1, self.max_attempts + 1):
            payload = await self.client.fetch_result(provider_job_id)
            snapshot = parse_result(payload)

            if snapshot.succeeded:
                log.info("generation.poll.completed", attempts=attempt)
                return snapshot.output_url  # type: ignore[return-value]

            if snapshot.failed:
                raise ProviderJobFailed("Image generation failed", detail=payload)

            if snapshot.status == "succeeded":
                # Tolerated: keep polling until a usable URL shows up
                log.warning("generation.poll.succeeded_without_url", attempt=attempt)
            else:
                log.debug("generation.poll.pending", attempt=attempt, status=snapshot.status)

            if attempt < self.max_attempts:
                await self._sleep(self.poll_interval)

        raise PollTimeout(
            "Image URL not found",
            detail={
                "status": snapshot.status if snapshot else None,
                "results": snapshot.results if snapshot else None,
                "attempts": self.max_attempts,
            },
        )
