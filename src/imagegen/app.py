"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI, Response, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from imagegen.api.errors import generation_error_handler
from imagegen.api.routes import generation_records, image_generator
from imagegen.core.config import Settings, configure_logging
from imagegen.core.database import setup_db_session
from imagegen.services.exceptions import GenerationError
from imagegen.services.image_generation.provider_client import NanoBananaClient
from imagegen.uow import create_uow_factory

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Handles startup and shutdown tasks:
    - Startup: Configure logging, create session factories, open the provider HTTP client
    - Shutdown: Close the provider HTTP client
    """
    settings: Settings = app.state.settings

    configure_logging(settings)

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    app.state.session_factory = session_factory
    app.state.uow_factory = create_uow_factory(session_factory)

    # Anonymous generations are only recorded when the elevated credential is configured
    if settings.service_database_url:
        service_session_factory = setup_db_session(
            settings.service_database_url, settings.db_pool_size
        )
        app.state.service_uow_factory = create_uow_factory(service_session_factory)
    else:
        app.state.service_uow_factory = None
        logger.warning("startup.anonymous_recording_disabled", reason="no_service_database_url")

    http_client = httpx.AsyncClient(timeout=settings.provider_timeout_seconds)
    if settings.provider_configured:
        app.state.provider_client = NanoBananaClient(
            api_base=settings.nano_banana_api_base,
            api_key=settings.nano_banana_api_key,
            model=settings.nano_banana_model,
            http_client=http_client,
        )
    else:
        app.state.provider_client = None
        logger.warning("startup.provider_not_configured")

    logger.info("application.startup", db_url=settings.database_url.split("@")[-1])

    yield

    logger.info("application.shutdown")
    await http_client.aclose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        settings: Application settings (loaded from environment when omitted)

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or Settings()  # type: ignore[call-arg]

    app = FastAPI(
        title="imagegen API",
        description="AI image generation backed by the nano-banana draw API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(GenerationError, generation_error_handler)  # type: ignore[arg-type]

    app.include_router(image_generator.router)
    app.include_router(generation_records.router)

    @app.get("/health")
    async def health_check(response: Response):
        """Health check endpoint with database connectivity test.

        Returns:
            200: {"status": "healthy"} if database connection succeeds
            503: {"status": "unhealthy", "error": {...}} if database connection fails
        """
        try:
            async with app.state.session_factory() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

            logger.debug("health_check.success")
            return {"status": "healthy"}

        except Exception as e:
            logger.error(
                "health_check.failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return {
                "status": "unhealthy",
                "error": {
                    "type": type(e).__name__,
                    "message": str(e),
                },
            }

    return app


# Create app instance for uvicorn
app = create_app()
