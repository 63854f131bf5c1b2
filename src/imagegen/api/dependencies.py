"""FastAPI dependencies for request context and common operations.

This module provides reusable FastAPI dependencies for:
- Settings and Unit of Work factories stored on app.state
- The caller's principal, forwarded by the upstream auth gateway
- A generation orchestrator wired for the current caller
"""

from typing import Annotated, Callable, Optional

from fastapi import Depends, Header, Request

from imagegen.core.config import Settings
from imagegen.services.exceptions import ProviderNotConfiguredError
from imagegen.services.image_generation.orchestrator import GenerationOrchestrator
from imagegen.services.image_generation.provider_client import NanoBananaClient
from imagegen.services.image_generation.record_writer import select_record_writer
from imagegen.uow import UnitOfWork


def get_settings(request: Request) -> Settings:
    """Get application settings instance created with the app."""
    return request.app.state.settings


def get_principal(x_user_id: Annotated[str | None, Header()] = None) -> Optional[str]:
    """Get the authenticated principal id, if any.

    Authentication happens upstream; the gateway forwards the verified user id
    in the X-User-Id header. A missing or blank header means anonymous.
    """
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


def get_uow_factory(request: Request) -> Callable[[], UnitOfWork]:
    """Get request-credential UnitOfWork factory from app state.

    Example:
        >>> @router.get("/endpoint")
        >>> async def endpoint(uow_factory=Depends(get_uow_factory)):
        ...     async with await uow_factory() as uow:
        ...         await uow.generation_records.list_by_owner(user_id)
    """
    return request.app.state.uow_factory


def get_service_uow_factory(request: Request) -> Callable[[], UnitOfWork] | None:
    """Get elevated-credential UnitOfWork factory, or None when not configured."""
    return getattr(request.app.state, "service_uow_factory", None)


def get_provider_client(request: Request) -> NanoBananaClient:
    """Get provider client from app state.

    Raises:
        ProviderNotConfiguredError: NANO_BANANA_API_BASE or NANO_BANANA_API_KEY is unset
    """
    client = getattr(request.app.state, "provider_client", None)
    if client is None:
        raise ProviderNotConfiguredError("Missing NANO_BANANA configuration on server")
    return client


def get_orchestrator(
    principal: Optional[str] = Depends(get_principal),
    settings: Settings = Depends(get_settings),
    client: NanoBananaClient = Depends(get_provider_client),
    uow_factory=Depends(get_uow_factory),
    service_uow_factory=Depends(get_service_uow_factory),
) -> GenerationOrchestrator:
    """Build an orchestrator whose record writer matches the caller."""
    return GenerationOrchestrator(
        client=client,
        record_writer=select_record_writer(principal, uow_factory, service_uow_factory),
        max_attempts=settings.generation_poll_max_attempts,
        poll_interval=settings.generation_poll_interval_seconds,
    )
