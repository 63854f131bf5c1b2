"""Job id extraction from provider submission responses.

The submission endpoint answers in one of two shapes:

- Buffered JSON: ``{"code": 0, "data": {"id": "<job id>"}}``. Any other code,
  or a missing ``data.id``, means the submission failed.
- Streamed body: text chunks carrying ``data: {...}`` frames. The first frame
  whose object has an ``id`` wins; the caller stops reading right after it.
"""

import json
import re
from typing import Any, AsyncIterable

import structlog

logger = structlog.get_logger(__name__)

FRAME_PATTERN = re.compile(r"data:\s*(\{.*\})")


def _coerce_job_id(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def extract_job_id_from_body(body: Any) -> str | None:
    """Extract the job id from a buffered JSON submission response.

    Args:
        body: Parsed JSON body

    Returns:
        Job id, or None if the code is not 0 or data.id is missing
    """
    if not isinstance(body, dict):
        return None

    code = body.get("code")
    if isinstance(code, bool) or code != 0:
        return None

    data = body.get("data")
    if not isinstance(data, dict):
        return None

    return _coerce_job_id(data.get("id"))


def extract_job_id_from_text(text: str) -> str | None:
    """Extract the job id from a whole body that may be buffered JSON."""
    try:
        body = json.loads(text)
    except ValueError:
        return None
    return extract_job_id_from_body(body)


def extract_job_id_from_frame(line: str) -> str | None:
    """Extract the job id from a single ``data: {...}`` line, if it carries one."""
    match = FRAME_PATTERN.search(line)
    if not match:
        return None

    try:
        frame = json.loads(match.group(1))
    except ValueError:
        logger.debug("provider.stream.frame_unparseable", frame=match.group(1)[:200])
        return None

    if not isinstance(frame, dict):
        return None
    return _coerce_job_id(frame.get("id"))


class JobIdScanner:
    """Incremental scanner over decoded stream text.

    Frames may be split across chunks, so text is buffered up to the last
    newline. A pending tail is also tried once it parses as a complete frame,
    which covers providers that do not terminate the id frame with a newline.

    The full text is kept until an id is found: a buffered JSON body served
    without a JSON content type has no frames, and finish() reads it as one.
    """

    def __init__(self) -> None:
        self._pending = ""
        self._text: list[str] = []
        self.job_id: str | None = None

    def feed(self, text: str) -> str | None:
        """Consume a chunk of decoded text.

        Returns:
            The job id as soon as one has been seen, None otherwise
        """
        if self.job_id is not None:
            return self.job_id

        self._text.append(text)
        self._pending += text
        *lines, self._pending = self._pending.split("\n")

        for line in lines:
            job_id = extract_job_id_from_frame(line)
            if job_id:
                return self._found(job_id)

        job_id = extract_job_id_from_frame(self._pending)
        if job_id:
            return self._found(job_id)
        return None

    def _found(self, job_id: str) -> str:
        self.job_id = job_id
        self._pending = ""
        self._text = []
        return job_id

    def finish(self) -> str | None:
        """Flush whatever is left once the stream has ended.

        Falls back to reading the whole text as a buffered JSON body.
        """
        if self.job_id is None and self._pending:
            self.job_id = extract_job_id_from_frame(self._pending)
        if self.job_id is None:
            self.job_id = extract_job_id_from_text("".join(self._text))
        self._pending = ""
        self._text = []
        return self.job_id


async def extract_job_id_from_stream(chunks: AsyncIterable[str]) -> str | None:
    """Scan decoded stream chunks and return the first job id found.

    Returns as soon as an id is found without consuming the rest of the
    iterable. The caller owns the underlying response and closes it.

    Args:
        chunks: Decoded text chunks (e.g. ``httpx.Response.aiter_text()``)

    Returns:
        Job id, or None if the stream ended without one
    """
    scanner = JobIdScanner()
    async for chunk in chunks:
        job_id = scanner.feed(chunk)
        if job_id:
            return job_id
    return scanner.finish()
