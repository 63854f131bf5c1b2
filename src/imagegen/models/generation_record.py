"""GenerationRecord entity - Mirror of a provider image-generation job."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class GenerationKind(str, Enum):
    """Kind of generation requested by the caller."""

    TEXT_TO_IMAGE = "txt2img"
    IMAGE_TO_IMAGE = "img2img"


class GenerationStatus(str, Enum):
    """Generation record lifecycle status."""

    QUEUED = "queued"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATUSES = (GenerationStatus.SUCCEEDED, GenerationStatus.FAILED)


class InvalidStateTransition(Exception):
    """Raised when attempting an invalid generation record state transition."""

    pass


class GenerationRecord(SQLModel, table=True):
    """GenerationRecord tracks one generation job from submission to outcome.

    Lifecycle: queued -> processing -> succeeded | failed, with queued -> failed
    when the provider never returned a job id.
    """

    __tablename__ = "generation_records"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: Optional[str] = Field(default=None, max_length=255, index=True)  # None = anonymous
    kind: GenerationKind = Field(index=True)
    prompt: str
    input_images: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    provider_job_id: Optional[str] = Field(default=None, max_length=255)
    status: GenerationStatus = Field(default=GenerationStatus.QUEUED, index=True)
    output_image_url: Optional[str] = Field(default=None)
    error: Optional[str] = Field(default=None)
    request_metadata: Optional[dict] = Field(default=None, sa_column=Column("metadata", JSON))
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def mark_processing(self, provider_job_id: str) -> None:
        """Transition from queued to processing.

        Args:
            provider_job_id: Job id issued by the provider

        Raises:
            InvalidStateTransition: If current status is not queued
            ValueError: If provider_job_id is empty
        """
        if self.status != GenerationStatus.QUEUED:
            raise InvalidStateTransition(
                f"Cannot mark processing from {self.status.value}. Record must be in queued state."
            )
        if not provider_job_id:
            raise ValueError("provider_job_id is required")
        self.provider_job_id = provider_job_id
        self.status = GenerationStatus.PROCESSING
        self.updated_at = datetime.utcnow()

    def mark_succeeded(self, output_image_url: str) -> None:
        """Transition from processing to succeeded.

        Args:
            output_image_url: URL of the generated image

        Raises:
            InvalidStateTransition: If current status is not processing
            ValueError: If output_image_url is empty
        """
        if self.status != GenerationStatus.PROCESSING:
            raise InvalidStateTransition(
                f"Cannot mark succeeded from {self.status.value}. "
                "Record must be in processing state."
            )
        if not output_image_url:
            raise ValueError("output_image_url is required")
        self.output_image_url = output_image_url
        self.error = None
        self.status = GenerationStatus.SUCCEEDED
        self.updated_at = datetime.utcnow()

    def mark_failed(self, error: str) -> None:
        """Transition from any non-terminal state to failed.

        Args:
            error: Human-readable or serialized diagnostic

        Raises:
            InvalidStateTransition: If current status is already terminal
        """
        if self.is_terminal:
            raise InvalidStateTransition(
                f"Cannot mark failed from terminal state {self.status.value}."
            )
        self.error = error
        self.output_image_url = None
        self.status = GenerationStatus.FAILED
        self.updated_at = datetime.utcnow()
