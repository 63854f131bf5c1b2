"""Service error hierarchy for image generation.

This module defines the exception hierarchy for service-level errors:
- ServiceError: Base for all service errors
- GenerationError: Failures of a generation job, surfaced to the caller
- PersistenceError: Record store failures, never surfaced to the caller
"""

from typing import Any


class ServiceError(Exception):
    """Base exception for all service errors."""

    pass


class GenerationError(ServiceError):
    """Base exception for generation job failures.

    Attributes:
        category: Stable machine-readable failure category
        detail: Diagnostic payload (raw provider body, last observed status, ...)
    """

    category: str = "generation_error"

    def __init__(self, message: str, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def diagnostic(self) -> Any:
        """Diagnostic written to the generation record on failure."""
        if self.detail is None:
            return {"error": self.message}
        return {"error": self.message, "detail": self.detail}


class GenerationValidationError(GenerationError):
    """Missing prompt, or missing input image for image-to-image."""

    category = "validation"


class ProviderNotConfiguredError(GenerationError):
    """Provider API base or key is not configured."""

    category = "provider_not_configured"


class SubmissionFailed(GenerationError):
    """Provider rejected the job or returned no extractable job id."""

    category = "submission_failed"


class ProviderResponseInvalid(GenerationError):
    """Result endpoint body was not parseable JSON."""

    category = "provider_response_invalid"


class ProviderJobFailed(GenerationError):
    """Provider reported terminal failure for the job."""

    category = "provider_job_failed"


class PollTimeout(GenerationError):
    """Attempt budget exhausted without a terminal outcome."""

    category = "poll_timeout"


class ProviderTransportError(GenerationError):
    """Underlying HTTP call failed (connection error, protocol timeout)."""

    category = "transport_error"


class GenerationCancelled(GenerationError):
    """Caller went away before the job reached a terminal state."""

    category = "cancelled"


class PersistenceError(ServiceError):
    """Generation record could not be written or read."""

    pass
