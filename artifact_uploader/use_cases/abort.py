"""Abort an in-flight upload."""
import logging

from ..errors import check_http_response
from ..models import UploadSession
from ..protocols import ITransport
from ..utils.urls import resolve_url

logger = logging.getLogger(__name__)


class AbortUploadUseCase:
    """
    Tell the server to cancel the upload.

    Transfers already issued are not interrupted; the session is finished
    either way once this succeeds.
    """

    def __init__(self, transport: ITransport, base_url: str):
        self._transport = transport
        self._base_url = base_url

    async def execute(self, session: UploadSession) -> None:
        response = await self._transport.put(resolve_url(self._base_url, session.abort_url))
        check_http_response(response, "failed to abort the project upload")
        logger.info("Upload aborted")
