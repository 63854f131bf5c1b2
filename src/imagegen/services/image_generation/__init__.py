"""Image generation job workflow: provider client, record mirroring, orchestration."""

from imagegen.services.image_generation.orchestrator import (
    GenerationOrchestrator,
    GenerationRequest,
    GenerationResult,
)
from imagegen.services.image_generation.provider_client import NanoBananaClient
from imagegen.services.image_generation.record_writer import (
    JobMirror,
    NullRecordWriter,
    OwnerScopedRecordWriter,
    RecordWriter,
    ServiceScopedRecordWriter,
    select_record_writer,
)

__all__ = [
    "GenerationOrchestrator",
    "GenerationRequest",
    "GenerationResult",
    "NanoBananaClient",
    "JobMirror",
    "RecordWriter",
    "NullRecordWriter",
    "OwnerScopedRecordWriter",
    "ServiceScopedRecordWriter",
    "select_record_writer",
]
