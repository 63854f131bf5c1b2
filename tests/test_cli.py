"""Command-line runner tests.

Tests cover:
- A job runs end to end over one shared HTTP client, closed afterwards
- Exit codes for success, generation failure and interruption
"""

import asyncio

import httpx
import pytest
from conftest import API_BASE, API_KEY, processing, succeeded

from imagegen.cli import generate
from imagegen.services.image_generation.orchestrator import GenerationOrchestrator


@pytest.fixture
def built_clients(monkeypatch, provider):
    """Route the CLI's HTTP client to the scripted provider and keep every client built."""
    clients: list[httpx.AsyncClient] = []

    def build_http_client(settings):
        client = httpx.AsyncClient(transport=httpx.MockTransport(provider.handler))
        clients.append(client)
        return client

    monkeypatch.setenv("NANO_BANANA_API_BASE", API_BASE)
    monkeypatch.setenv("NANO_BANANA_API_KEY", API_KEY)
    monkeypatch.setenv("GENERATION_POLL_INTERVAL_SECONDS", "0")
    monkeypatch.setattr(generate, "build_http_client", build_http_client)
    monkeypatch.setattr(generate, "configure_logging", lambda settings: None)
    return clients


@pytest.mark.asyncio
async def test_successful_job_prints_url_and_reuses_one_client(built_clients, provider, capsys):
    provider.results = [processing(), processing(), succeeded("https://cdn/out.png")]

    exit_code = await generate.async_main(["--prompt", "a red fox in snow", "--no-record"])

    assert exit_code == 0
    assert provider.poll_calls == 3
    assert len(built_clients) == 1
    assert built_clients[0].is_closed
    assert capsys.readouterr().out.strip().splitlines()[-1] == "https://cdn/out.png"


@pytest.mark.asyncio
async def test_image_flag_switches_to_image_to_image(built_clients, provider):
    provider.results = [succeeded("https://cdn/out.png")]

    exit_code = await generate.async_main(
        ["--prompt", "make it winter", "--image", "https://cdn/in.png", "--no-record"]
    )

    assert exit_code == 0
    assert provider.submit_bodies[0]["urls"] == ["https://cdn/in.png"]


@pytest.mark.asyncio
async def test_failed_job_exits_with_1(built_clients, provider):
    provider.results = [{"data": {"status": "failed"}}]

    exit_code = await generate.async_main(["--prompt", "a red fox in snow", "--no-record"])

    assert exit_code == 1
    assert built_clients[0].is_closed


@pytest.mark.asyncio
async def test_cancelled_run_exits_with_130(built_clients, monkeypatch):
    async def cancelled(self, request):
        raise asyncio.CancelledError()

    monkeypatch.setattr(GenerationOrchestrator, "submit_and_await", cancelled)

    exit_code = await generate.async_main(["--prompt", "a red fox in snow", "--no-record"])

    assert exit_code == 130
    assert built_clients[0].is_closed


def test_keyboard_interrupt_in_main_exits_with_130(monkeypatch):
    async def interrupted(argv=None):
        raise KeyboardInterrupt

    monkeypatch.setattr(generate, "async_main", interrupted)

    with pytest.raises(SystemExit) as exc_info:
        generate.main()

    assert exc_info.value.code == 130
