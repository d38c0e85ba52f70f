"""CloudConvert-based document converter.

Uses the CloudConvert v2 job API (import/upload -> convert -> export/url)
to turn a bound Word document into the target format.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from docfill.interfaces.converter import (
    MODE_REMOTE,
    BaseConverter,
    ConversionStrategyFailed,
    ConvertedArtifact,
    media_type_for,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.cloudconvert.com/v2"

_STATUS_HINTS = {
    401: "invalid API key",
    402: "conversion credits exhausted",
    422: "input or plan restriction",
    429: "rate limited",
}


class CloudConvertConverter(BaseConverter):
    """Remote conversion strategy backed by the CloudConvert job API.

    Polls the job at a fixed interval for a bounded number of attempts and
    wraps the whole exchange in a wall-clock timeout. Any HTTP error,
    non-success status, job error or timeout is a strategy failure.

    Attributes:
        api_key: CloudConvert API key; empty disables the strategy.
        output_format: Target format requested from the convert task.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        output_format: str = "pdf",
        input_format: str = "docx",
        poll_interval: float = 1.5,
        max_attempts: int = 30,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the CloudConvert converter.

        Args:
            api_key: Your CloudConvert API key.
            base_url: API root, without a trailing slash.
            output_format: Format to convert to.
            input_format: Format of the uploaded document.
            poll_interval: Seconds between job status polls.
            max_attempts: Maximum number of polls before giving up.
            timeout: Wall-clock ceiling for the whole strategy, in seconds.
            client: Optional shared httpx client (not closed by this class).
        """
        self._api_key = api_key or ""
        self._base_url = base_url.rstrip("/")
        self._output_format = output_format
        self._input_format = input_format
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._timeout = timeout
        self._client = client

    @property
    def name(self) -> str:
        return MODE_REMOTE

    @property
    def available(self) -> bool:
        return bool(self._api_key.strip())

    async def convert(
        self,
        document: bytes,
        *,
        filename: str,
        correlation_id: str,
    ) -> ConvertedArtifact:
        """Convert a document through a CloudConvert job.

        Args:
            document: Bound document bytes.
            filename: Filename sent with the upload.
            correlation_id: Invocation token for log lines.

        Returns:
            The converted artifact.

        Raises:
            ConversionStrategyFailed: On any failure, including timeout.
        """
        if not self.available:
            raise ConversionStrategyFailed(self.name, "no CloudConvert API key configured")

        logger.info(f"[{correlation_id}] Starting CloudConvert job for {filename}")

        try:
            async with asyncio.timeout(self._timeout):
                content = await self._run_job(document, filename, correlation_id)

        except ConversionStrategyFailed:
            raise
        except TimeoutError as e:
            raise ConversionStrategyFailed(
                self.name, f"timed out after {self._timeout:g}s"
            ) from e
        except httpx.HTTPError as e:
            raise ConversionStrategyFailed(self.name, f"HTTP error: {e}") from e
        except (ValueError, KeyError, TypeError, IndexError) as e:
            raise ConversionStrategyFailed(self.name, f"unexpected response: {e}") from e

        logger.info(f"[{correlation_id}] CloudConvert produced {len(content)} bytes")
        return ConvertedArtifact(content=content, format=self._output_format)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=httpx.Timeout(30.0)) as client:
            yield client

    @property
    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    def _job_payload(self) -> dict[str, Any]:
        return {
            "tasks": {
                "import": {"operation": "import/upload"},
                "convert": {
                    "operation": "convert",
                    "input": "import",
                    "input_format": self._input_format,
                    "output_format": self._output_format,
                },
                "export": {"operation": "export/url", "input": "convert"},
            }
        }

    def _check(self, response: httpx.Response, step: str) -> None:
        if response.status_code < 400:
            return
        hint = _STATUS_HINTS.get(response.status_code, "")
        body = response.text[:300]
        raise ConversionStrategyFailed(
            self.name,
            f"{step} failed ({response.status_code}{', ' + hint if hint else ''}): {body}",
            status_code=response.status_code,
        )

    async def _run_job(self, document: bytes, filename: str, correlation_id: str) -> bytes:
        async with self._session() as client:
            # Create job
            response = await client.post(
                f"{self._base_url}/jobs",
                json=self._job_payload(),
                headers=self._auth_headers,
            )
            self._check(response, "job creation")
            job = response.json().get("data") or {}
            job_id = job.get("id")
            if not job_id:
                raise ConversionStrategyFailed(self.name, "job creation returned no job id")

            form = self._upload_form(job)
            logger.debug(f"[{correlation_id}] CloudConvert job {job_id} created")

            # Upload the document to the import task's form target
            response = await client.post(
                form["url"],
                data=form.get("parameters") or {},
                files={"file": (filename, document, media_type_for(self._input_format))},
            )
            self._check(response, "upload")

            finished = await self._wait_for_job(client, job_id, correlation_id)
            file_url = self._export_url(finished)

            response = await client.get(file_url)
            self._check(response, "download")
            if not response.content:
                raise ConversionStrategyFailed(self.name, "downloaded file is empty")
            return response.content

    def _upload_form(self, job: dict[str, Any]) -> dict[str, Any]:
        for task in job.get("tasks") or []:
            if task.get("name") == "import":
                form = (task.get("result") or {}).get("form") or {}
                if form.get("url"):
                    return form
        raise ConversionStrategyFailed(self.name, "job has no upload form")

    async def _wait_for_job(
        self, client: httpx.AsyncClient, job_id: str, correlation_id: str
    ) -> dict[str, Any]:
        for attempt in range(1, self._max_attempts + 1):
            await asyncio.sleep(self._poll_interval)

            response = await client.get(
                f"{self._base_url}/jobs/{job_id}",
                headers=self._auth_headers,
            )
            self._check(response, "status poll")
            data = response.json().get("data") or {}
            status = data.get("status")

            if status == "finished":
                logger.debug(f"[{correlation_id}] Job {job_id} finished after {attempt} poll(s)")
                return data
            if status == "error":
                raise ConversionStrategyFailed(
                    self.name, f"job {job_id} reported an error: {self._task_errors(data)}"
                )

        raise ConversionStrategyFailed(
            self.name, f"job {job_id} not finished after {self._max_attempts} polls"
        )

    @staticmethod
    def _task_errors(job: dict[str, Any]) -> str:
        messages = [
            f"{t.get('name')}: {t.get('message') or t.get('code')}"
            for t in job.get("tasks") or []
            if t.get("status") == "error"
        ]
        return "; ".join(messages) or "no task detail"

    def _export_url(self, job: dict[str, Any]) -> str:
        for task in job.get("tasks") or []:
            is_export = task.get("name") == "export" or task.get("operation") == "export/url"
            if is_export and task.get("status", "finished") == "finished":
                files = (task.get("result") or {}).get("files") or []
                if files and files[0].get("url"):
                    return files[0]["url"]
        raise ConversionStrategyFailed(self.name, "finished job has no export file url")
