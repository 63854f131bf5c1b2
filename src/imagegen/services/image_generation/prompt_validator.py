"""Request validation for image generation.

Validates prompts and input images before anything is sent to the provider
or written to the record store.
"""

from typing import Sequence

from imagegen.models.generation_record import GenerationKind
from imagegen.services.exceptions import GenerationValidationError

PROMPT_MAX_LENGTH = 4000


def validate_prompt(prompt: str) -> str:
    """Validate prompt text for image generation.

    Args:
        prompt: Text prompt from the caller

    Returns:
        Validated prompt (unchanged if valid)

    Raises:
        GenerationValidationError: If prompt is empty, blank, or exceeds PROMPT_MAX_LENGTH
    """
    if not prompt or not isinstance(prompt, str) or not prompt.strip():
        raise GenerationValidationError("Prompt is required")

    if len(prompt) > PROMPT_MAX_LENGTH:
        raise GenerationValidationError(
            f"Prompt exceeds maximum length of {PROMPT_MAX_LENGTH} characters (got {len(prompt)})"
        )

    return prompt


def validate_input_images(kind: GenerationKind, input_images: Sequence[str]) -> list[str]:
    """Validate source images against the generation kind.

    Raises:
        GenerationValidationError: image-to-image without images, text-to-image
            with images, or an entry that is not a non-empty string
    """
    images = list(input_images or [])

    if kind == GenerationKind.IMAGE_TO_IMAGE and not images:
        raise GenerationValidationError("Image URL is required for image-to-image")

    if kind == GenerationKind.TEXT_TO_IMAGE and images:
        raise GenerationValidationError("Text-to-image does not accept input images")

    for url in images:
        if not isinstance(url, str) or not url.strip():
            raise GenerationValidationError("Input image URLs must be non-empty strings")

    return images
