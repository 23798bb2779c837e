"""Orchestrator - coordinates the upload protocol phases."""
import asyncio
import logging
from typing import Any, Mapping, Optional

from .errors import UploaderError
from .models import CompletionResult, DedupSpec, PermissionSpec, UploadOptions, UploadSession
from .protocols import ITransport
from .services.transport import HTTPTransport, TransportConfig
from .use_cases import (
    AbortUploadUseCase,
    CompleteUploadUseCase,
    InitiateUploadUseCase,
    TransferFilesUseCase,
)
from .use_cases.complete import DEFAULT_INDEX_WAIT, DEFAULT_POLL_INTERVAL
from .utils import events
from .utils.events import EventEmitter
from .utils.urls import create_upload_start_url

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Runs uploads against an artifact store using injected use cases.

    Usage:
        async with UploadOrchestrator(base_url) as uploader:
            result = await uploader.upload_version(
                "my-project", "v1", checksums, contents
            )

        # Step by step
        async with UploadOrchestrator(base_url, transport=my_transport) as uploader:
            session = await uploader.start_upload("my-project", "v1", checksums)
            try:
                await uploader.upload_files(session, contents)
            except UploaderError:
                await uploader.abort_upload(session)
                raise
            result = await uploader.complete_upload(session)
    """

    def __init__(
        self,
        base_url: str,
        transport: Optional[ITransport] = None,
        transport_config: Optional[TransportConfig] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        emitter: Optional[EventEmitter] = None,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            base_url: Base URL of the REST API
            transport: Pre-built transport; the orchestrator does not close it
            transport_config: Configuration for the default HTTPTransport
            poll_interval: Seconds between indexing job status queries
            emitter: Event emitter receiving progress events
        """
        self._base_url = base_url.rstrip("/")
        self._external_transport = transport
        self._transport_config = transport_config or TransportConfig()
        self._poll_interval = poll_interval
        self.events = emitter or EventEmitter()

        # Initialized in __aenter__
        self._transport: Optional[ITransport] = None
        self._owned_transport: Optional[HTTPTransport] = None
        self._initiate: Optional[InitiateUploadUseCase] = None
        self._transfer: Optional[TransferFilesUseCase] = None
        self._complete: Optional[CompleteUploadUseCase] = None
        self._abort: Optional[AbortUploadUseCase] = None

    async def __aenter__(self):
        if self._external_transport is not None:
            self._transport = self._external_transport
        else:
            self._owned_transport = HTTPTransport(self._transport_config)
            await self._owned_transport.__aenter__()
            self._transport = self._owned_transport

        self._initiate = InitiateUploadUseCase(self._transport)
        self._transfer = TransferFilesUseCase(self._transport, self._base_url, self.events)
        self._complete = CompleteUploadUseCase(
            self._transport,
            self._base_url,
            poll_interval=self._poll_interval,
            emitter=self.events,
        )
        self._abort = AbortUploadUseCase(self._transport, self._base_url)
        return self

    async def __aexit__(self, *args):
        if self._owned_transport:
            await self._owned_transport.__aexit__(*args)
            self._owned_transport = None

    def _require_started(self) -> None:
        if self._transport is None:
            raise RuntimeError("UploadOrchestrator not initialized. Use 'async with' context.")

    async def start_upload(
        self,
        project: str,
        version: str,
        checksums: Mapping[str, str],
        dedup: Optional[DedupSpec] = None,
        options: Optional[UploadOptions] = None,
    ) -> UploadSession:
        """Start the upload of a new project version."""
        self._require_started()
        start_url = create_upload_start_url(self._base_url, project, version)
        session = await self._initiate.execute(start_url, checksums, dedup, options)
        await self.events.emit(events.INITIATED, session)
        return session

    async def upload_files(self, session: UploadSession, contents: Mapping[str, Any]) -> None:
        """Create links and upload file contents for a session."""
        self._require_started()
        await self._transfer.execute(session, contents)

    async def complete_upload(
        self,
        session: UploadSession,
        permissions: Optional[PermissionSpec] = None,
        index_wait: float = DEFAULT_INDEX_WAIT,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> CompletionResult:
        """Complete the upload and wait (bounded) for indexing."""
        self._require_started()
        result = await self._complete.execute(session, permissions, index_wait, cancel_event)
        await self.events.emit(events.COMPLETED, result)
        return result

    async def abort_upload(self, session: UploadSession) -> None:
        """Abort an in-flight upload."""
        self._require_started()
        await self._abort.execute(session)
        await self.events.emit(events.ABORTED, session)

    async def upload_version(
        self,
        project: str,
        version: str,
        checksums: Mapping[str, str],
        contents: Mapping[str, Any],
        dedup: Optional[DedupSpec] = None,
        options: Optional[UploadOptions] = None,
        permissions: Optional[PermissionSpec] = None,
        index_wait: float = DEFAULT_INDEX_WAIT,
        abort_on_error: bool = False,
    ) -> CompletionResult:
        """
        Run the whole upload: start, transfer, complete.

        Args:
            project: Project name
            version: Version to be uploaded
            checksums: Relative path -> MD5 of files to upload fresh
            contents: Relative path -> content for every presigned file
            dedup: Files to deduplicate by checksum or by link
            options: Upload start options
            permissions: Permissions for a new project
            index_wait: Seconds to wait for indexing
            abort_on_error: Abort the upload if a transfer fails

        Returns:
            CompletionResult
        """
        session = await self.start_upload(project, version, checksums, dedup, options)
        try:
            await self.upload_files(session, contents)
        except UploaderError as exc:
            if not abort_on_error:
                raise
            logger.warning("Upload of %s/%s failed, aborting: %s", project, version, exc)
            try:
                await self.abort_upload(session)
            except UploaderError as abort_exc:
                logger.error("Abort of %s/%s failed: %s", project, version, abort_exc)
            raise

        return await self.complete_upload(session, permissions, index_wait)
