"""Conversion of generation errors to JSON responses."""

import structlog
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from imagegen.services.exceptions import GenerationError

logger = structlog.get_logger()

# Client closed request (nginx convention); nobody reads the body anyway
HTTP_499_CLIENT_CLOSED_REQUEST = 499

STATUS_BY_CATEGORY = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "cancelled": HTTP_499_CLIENT_CLOSED_REQUEST,
}


async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
    """Render a GenerationError as ``{"error", "category", "detail"?}``.

    Validation errors map to 400, cancellations to 499, everything else to 500.
    """
    status_code = STATUS_BY_CATEGORY.get(exc.category, status.HTTP_500_INTERNAL_SERVER_ERROR)

    content = {"error": exc.message, "category": exc.category}
    if exc.detail is not None:
        content["detail"] = exc.detail

    if status_code >= 500:
        logger.error(
            "api.generation_error",
            path=request.url.path,
            category=exc.category,
            error_message=exc.message,
        )

    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))
