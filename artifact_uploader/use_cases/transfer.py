"""Transfer file contents and create dedup links for an upload session."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping, Optional, Sequence

import httpx

from ..errors import HttpError, ValidationError, check_http_response
from ..models import LinkTransfer, PresignedTransfer, UploadSession
from ..protocols import ITransport
from ..utils import events
from ..utils.events import EventEmitter
from ..utils.urls import resolve_url

logger = logging.getLogger(__name__)

_NETWORK_ERRORS = (httpx.HTTPError, HttpError, OSError)


def _raise_first_failure(results: Sequence[Any], paths: Sequence[str], context: str) -> None:
    """
    Inspect gathered results in index order and raise on the first failure.

    Every request has finished by the time this runs, so the reported
    failure does not depend on completion order. Only network and I/O
    errors become HttpError; anything else propagates unchanged.
    """
    for path, result in zip(paths, results):
        message = f"{context} for path '{path}'"
        if isinstance(result, _NETWORK_ERRORS):
            raise HttpError(message, body=str(result)) from result
        if isinstance(result, BaseException):
            raise result
        check_http_response(result, message)


class TransferFilesUseCase:
    """
    Create links, then upload presigned contents.

    Both phases issue every request concurrently and wait for all of them.
    Nothing is retried or rolled back: on failure some files may already be
    stored, and the caller decides whether to abort the upload.
    """

    def __init__(
        self,
        transport: ITransport,
        base_url: str,
        emitter: Optional[EventEmitter] = None,
    ):
        self._transport = transport
        self._base_url = base_url
        self._emitter = emitter

    async def execute(self, session: UploadSession, contents: Mapping[str, Any]) -> None:
        """
        Run both transfer phases.

        Args:
            session: Session returned by the upload start request
            contents: Relative path -> file content (bytes, str or Path)

        Raises:
            ValidationError: A presigned path has no entry in contents
            HttpError: A link or content transfer failed
        """
        await self.create_links(session.links)
        await self.upload_contents(session.presigned_urls, contents)

    async def _emit(self, name: str, *args) -> None:
        if self._emitter:
            await self._emitter.emit(name, *args)

    async def create_links(self, links: Sequence[LinkTransfer]) -> None:
        if not links:
            return

        async def _link(link: LinkTransfer):
            response = await self._transport.put(resolve_url(self._base_url, link.url))
            await self._emit(events.LINK_CREATED, link.path, response.status_code)
            return response

        results = await asyncio.gather(*(_link(x) for x in links), return_exceptions=True)
        _raise_first_failure(results, [x.path for x in links], "failed to create links")
        logger.info("Created %d links", len(links))
        await self._emit(events.LINKS_CREATED, len(links))

    async def upload_contents(
        self,
        transfers: Sequence[PresignedTransfer],
        contents: Mapping[str, Any],
    ) -> None:
        missing: List[str] = [x.path for x in transfers if x.path not in contents]
        if missing:
            raise ValidationError(f"failed to find path '{missing[0]}' in contents")
        if not transfers:
            return

        async def _upload(transfer: PresignedTransfer):
            response = await self._transport.presigned_put(
                transfer.path, transfer.url, transfer.md5sum, contents[transfer.path]
            )
            await self._emit(events.FILE_UPLOADED, transfer.path, response.status_code)
            return response

        results = await asyncio.gather(*(_upload(x) for x in transfers), return_exceptions=True)
        _raise_first_failure(
            results,
            [x.path for x in transfers],
            "failed to upload to presigned URL",
        )
        logger.info("Uploaded %d files", len(transfers))
        await self._emit(events.FILES_UPLOADED, len(transfers))
