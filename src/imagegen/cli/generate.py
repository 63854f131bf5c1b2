"""CLI command for running a single generation job from the terminal.

Usage:
    python -m imagegen.cli.generate --prompt TEXT [OPTIONS]

Examples:
    # Text-to-image
    python -m imagegen.cli.generate --prompt "a red fox in snow"

    # Image-to-image with two source images
    python -m imagegen.cli.generate --prompt "make it winter" \\
        --image https://cdn.example.com/a.png --image https://cdn.example.com/b.png

    # Record the job under a user instead of anonymously
    python -m imagegen.cli.generate --prompt "a red fox" --user-id 7d4c...

    # Do not write a generation record at all
    python -m imagegen.cli.generate --prompt "a red fox" --no-record
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace
from typing import Optional

import httpx
import structlog

from imagegen.core.config import Settings, configure_logging
from imagegen.core.database import setup_db_session
from imagegen.models.generation_record import GenerationKind
from imagegen.services.exceptions import GenerationError
from imagegen.services.image_generation.orchestrator import (
    GenerationOrchestrator,
    GenerationRequest,
)
from imagegen.services.image_generation.provider_client import NanoBananaClient
from imagegen.services.image_generation.record_writer import (
    NullRecordWriter,
    RecordWriter,
    select_record_writer,
)
from imagegen.uow import create_uow_factory

logger = structlog.get_logger()


def parse_args(argv: Optional[list[str]] = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(
        description="Run one image generation job and print the output URL",
        epilog="Submits to the nano-banana draw API and polls until the job finishes",
    )

    parser.add_argument("--prompt", required=True, help="Text prompt")

    parser.add_argument(
        "--image",
        action="append",
        default=[],
        dest="images",
        help="Source image URL (repeatable); switches to image-to-image",
    )

    parser.add_argument("--user-id", help="Record the job under this principal")

    parser.add_argument(
        "--no-record",
        action="store_true",
        help="Do not write a generation record",
    )

    parser.add_argument(
        "--max-attempts",
        type=int,
        help="Override GENERATION_POLL_MAX_ATTEMPTS",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args(argv)


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """One client per run so every poll reuses the same connection pool."""
    return httpx.AsyncClient(timeout=settings.provider_timeout_seconds)


def build_record_writer(args: Namespace, settings: Settings) -> RecordWriter:
    if args.no_record:
        return NullRecordWriter()

    uow_factory = create_uow_factory(setup_db_session(settings.database_url, pool_size=2))
    service_uow_factory = None
    if settings.service_database_url:
        service_uow_factory = create_uow_factory(
            setup_db_session(settings.service_database_url, pool_size=2)
        )
    return select_record_writer(args.user_id, uow_factory, service_uow_factory)


async def async_main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (success), 1 (generation failed), 130 (interrupted)
    """
    args = parse_args(argv)

    settings = Settings()  # type: ignore[call-arg]
    if args.verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)

    kind = GenerationKind.IMAGE_TO_IMAGE if args.images else GenerationKind.TEXT_TO_IMAGE

    try:
        async with build_http_client(settings) as http_client:
            client = NanoBananaClient(
                api_base=settings.nano_banana_api_base,
                api_key=settings.nano_banana_api_key,
                model=settings.nano_banana_model,
                http_client=http_client,
            )
            orchestrator = GenerationOrchestrator(
                client=client,
                record_writer=build_record_writer(args, settings),
                max_attempts=args.max_attempts or settings.generation_poll_max_attempts,
                poll_interval=settings.generation_poll_interval_seconds,
            )

            result = await orchestrator.submit_and_await(
                GenerationRequest(
                    kind=kind,
                    prompt=args.prompt,
                    input_images=args.images,
                    principal=args.user_id,
                )
            )

    except GenerationError as e:
        logger.error("cli.generation_failed", category=e.category, error=e.message)
        print(f"\nError ({e.category}): {e.message}", file=sys.stderr)
        if e.detail is not None:
            print(f"Detail: {e.detail}", file=sys.stderr)
        return 1

    except asyncio.CancelledError:
        # Ctrl-C under asyncio.run cancels this task
        logger.info("cli.interrupted")
        print("\nGeneration interrupted by user", file=sys.stderr)
        return 130

    print(result.output_image_url)
    if result.record_id is not None:
        print(f"record_id={result.record_id}", file=sys.stderr)
    return 0


def main() -> None:
    """Synchronous entry point for CLI."""
    try:
        exit_code = asyncio.run(async_main())
    except KeyboardInterrupt:
        print("\nGeneration interrupted by user", file=sys.stderr)
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
