"""Nano Banana draw API client with error classification."""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import httpx

from imagegen.services.exceptions import (
    ProviderNotConfiguredError,
    ProviderResponseInvalid,
    ProviderTransportError,
    SubmissionFailed,
)
from imagegen.services.image_generation.job_id import (
    extract_job_id_from_body,
    extract_job_id_from_stream,
)

NO_JOB_ID_MESSAGE = "no job id returned"


@dataclass
class ResultSnapshot:
    """One observation of the result endpoint."""

    status: Optional[str]
    results: Any
    output_url: Optional[str]

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded" and self.output_url is not None

    @property
    def failed(self) -> bool:
        return self.status == "failed"


def parse_result(payload: Any) -> ResultSnapshot:
    """Read status and first result URL from a result endpoint body.

    Missing or oddly-typed fields never raise; they simply produce a snapshot
    that is neither succeeded nor failed.

    Args:
        payload: Parsed JSON body ``{"data": {"status": ..., "results": [{"url": ...}]}}``

    Returns:
        ResultSnapshot with output_url set only when results[0].url is a non-empty string
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        return ResultSnapshot(status=None, results=None, output_url=None)

    status = data.get("status")
    if not isinstance(status, str):
        status = None
    results = data.get("results")

    output_url = None
    if isinstance(results, list) and results and isinstance(results[0], dict):
        url = results[0].get("url")
        if isinstance(url, str) and url.strip():
            output_url = url

    return ResultSnapshot(status=status, results=results, output_url=output_url)


def _is_json_response(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "").lower()
    return "json" in content_type and "event-stream" not in content_type


class NanoBananaClient:
    """Client for the nano-banana asynchronous draw API.

    Submission goes to ``/v1/draw/nano-banana`` and polling to ``/v1/draw/result``.
    A shared ``httpx.AsyncClient`` may be injected (the application does this so
    connections are pooled); otherwise one is created per call.
    """

    SUBMIT_PATH = "/v1/draw/nano-banana"
    RESULT_PATH = "/v1/draw/result"

    def __init__(
        self,
        api_base: str,
        api_key: str,
        model: str = "nano-banana-fast",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ):
        """Initialize provider client.

        Args:
            api_base: Provider base URL (from NANO_BANANA_API_BASE env var)
            api_key: Provider API key (from NANO_BANANA_API_KEY env var)
            model: Model identifier sent with every submission
            http_client: Optional shared HTTP client (not closed by this class)
            timeout: Per-request timeout when no shared client is given

        Raises:
            ProviderNotConfiguredError: If api_base or api_key is empty
        """
        if not api_base or not api_key:
            raise ProviderNotConfiguredError("Missing NANO_BANANA configuration on server")

        self.base_url = api_base.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.headers = {"Authorization": f"Bearer {api_key}"}
        self._http_client = http_client

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    def build_submission(
        self,
        prompt: str,
        urls: Optional[list[str]] = None,
        web_hook: Optional[str] = None,
        shut_progress: Optional[bool] = None,
    ) -> dict[str, Any]:
        """Build the submission body; optional fields are omitted when not supplied."""
        payload: dict[str, Any] = {"model": self.model, "prompt": prompt}
        if urls:
            payload["urls"] = list(urls)
        if web_hook:
            payload["webHook"] = web_hook
        if shut_progress is not None:
            payload["shutProgress"] = shut_progress
        return payload

    async def submit(self, payload: dict[str, Any]) -> str:
        """Submit a generation job and return the provider job id.

        JSON responses are read in full and must carry ``code == 0`` and
        ``data.id``. Any other response is treated as an event stream: it is
        decoded incrementally and closed as soon as the first id frame arrives.
        If it ends without any id frame, the whole text is tried as a buffered
        JSON body, whatever its content type said.

        Args:
            payload: Submission body (see build_submission)

        Returns:
            Provider job id

        Raises:
            SubmissionFailed: Non-2xx status, unparseable JSON, or no job id
            ProviderTransportError: Connection failure or timeout
        """
        url = f"{self.base_url}{self.SUBMIT_PATH}"
        try:
            async with self._client() as client:
                async with client.stream("POST", url, headers=self.headers, json=payload) as response:
                    if response.is_error:
                        await response.aread()
                        raise SubmissionFailed(
                            f"Submission rejected with status {response.status_code}",
                            detail={"status_code": response.status_code, "body": response.text},
                        )

                    if _is_json_response(response):
                        await response.aread()
                        try:
                            body = response.json()
                        except ValueError:
                            raise SubmissionFailed(
                                "Submission response is not valid JSON", detail=response.text
                            )
                        job_id = extract_job_id_from_body(body)
                        if not job_id:
                            raise SubmissionFailed(NO_JOB_ID_MESSAGE, detail=body)
                        return job_id

                    # Leaving the block closes the stream, so nothing past the id frame is read
                    job_id = await extract_job_id_from_stream(response.aiter_text())

        except httpx.TimeoutException as e:
            raise ProviderTransportError(f"Submission timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderTransportError(f"Submission network error: {e}") from e

        if not job_id:
            raise SubmissionFailed(NO_JOB_ID_MESSAGE)
        return job_id

    async def fetch_result(self, job_id: str) -> Any:
        """Fetch the current state of a job from the result endpoint.

        The HTTP status code is not interpreted; the body decides.

        Args:
            job_id: Provider job id

        Returns:
            Parsed JSON body

        Raises:
            ProviderResponseInvalid: Body is not valid JSON (raw body attached)
            ProviderTransportError: Connection failure or timeout
        """
        url = f"{self.base_url}{self.RESULT_PATH}"
        try:
            async with self._client() as client:
                response = await client.post(url, headers=self.headers, json={"id": job_id})
        except httpx.TimeoutException as e:
            raise ProviderTransportError(f"Result request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderTransportError(f"Result request network error: {e}") from e

        try:
            return response.json()
        except ValueError:
            raise ProviderResponseInvalid("Invalid JSON from result endpoint", detail=response.text)
