"""Complete an upload and wait for the server-side indexing job."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from ..errors import HttpError, JobFailureError, check_http_response
from ..models import CompletionResult, JobState, JobStatus, PermissionSpec, UploadSession
from ..protocols import ITransport
from ..utils import events
from ..utils.events import EventEmitter
from ..utils.polling import PollOutcome, poll_until
from ..utils.urls import job_status_url, resolve_url

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_INDEX_WAIT = 600


def _job_id(response) -> Optional[Any]:
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    return payload.get("job_id")


def _classify(status: JobStatus) -> PollOutcome:
    if status.state is JobState.SUCCESS:
        return PollOutcome.SUCCESS
    if status.state is JobState.FAILURE:
        return PollOutcome.FAILURE
    return PollOutcome.PENDING


class CompleteUploadUseCase:
    """Send permissions to the completion endpoint, then poll the indexing job."""

    def __init__(
        self,
        transport: ITransport,
        base_url: str,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        emitter: Optional[EventEmitter] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._transport = transport
        self._base_url = base_url
        self._poll_interval = poll_interval
        self._emitter = emitter
        self._sleep = sleep
        self._clock = clock

    async def execute(
        self,
        session: UploadSession,
        permissions: Optional[PermissionSpec] = None,
        index_wait: float = DEFAULT_INDEX_WAIT,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> CompletionResult:
        """
        Complete the upload.

        Args:
            session: Session returned by the upload start request
            permissions: Permissions for a new project (default: public)
            index_wait: Seconds to wait for indexing before returning
            cancel_event: Stops waiting for indexing when set

        Returns:
            CompletionResult; indexed is False if the job was still pending

        Raises:
            HttpError: Completion or a status query failed
            JobFailureError: The server reported that indexing failed
        """
        permissions = permissions or PermissionSpec()
        url = resolve_url(self._base_url, session.completion_url)

        response = await self._transport.put(url, json=permissions.to_payload())
        check_http_response(response, "failed to complete the project upload")

        job_id = _job_id(response)
        if job_id is None:
            raise HttpError(
                "failed to complete the project upload", response.status_code, response.text
            )
        status_url = job_status_url(self._base_url, job_id)
        logger.info("Upload completed, waiting for indexing job %s", job_id)

        async def _poll() -> JobStatus:
            res = await self._transport.get(status_url)
            check_http_response(res, f"failed to query status for job {job_id}")
            status = JobStatus.from_payload(str(job_id), res.json())
            if self._emitter:
                await self._emitter.emit(events.POLL, status)
            return status

        result = await poll_until(
            _poll,
            _classify,
            interval=self._poll_interval,
            timeout=index_wait,
            cancel_event=cancel_event,
            sleep=self._sleep,
            clock=self._clock,
        )

        if result.outcome is PollOutcome.FAILURE:
            raise JobFailureError(str(job_id), status_url)

        indexed = result.outcome is PollOutcome.SUCCESS
        if indexed:
            logger.info("Indexing job %s succeeded after %d polls", job_id, result.attempts)
        else:
            logger.warning(
                "Indexing job %s still pending after %ss (%s)",
                job_id,
                index_wait,
                result.outcome.value,
            )
        return CompletionResult(indexed=indexed, job_id=job_id)
