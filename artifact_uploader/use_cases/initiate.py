"""Start a versioned upload: build the file list and submit it."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..errors import ValidationError, check_http_response
from ..models import (
    CheckStrategy,
    DedupSpec,
    FileDescriptor,
    UploadOptions,
    UploadSession,
    is_metadata_path,
)
from ..protocols import ITransport

logger = logging.getLogger(__name__)

UPLOAD_MODE = "s3-presigned-url"


def _check_dedup_path(path: str, seen: set) -> None:
    if path in seen:
        raise ValidationError(f"multiple occurrences of path '{path}'")
    if is_metadata_path(path):
        raise ValidationError(f"cannot deduplicate JSON file '{path}'")


def build_file_descriptors(
    checksums: Mapping[str, str],
    dedup: Optional[DedupSpec] = None,
    options: Optional[UploadOptions] = None,
) -> List[FileDescriptor]:
    """
    Describe every file of the new version for the upload start request.

    Args:
        checksums: Relative path -> MD5 checksum of files to upload fresh
        dedup: Files to deduplicate by checksum or by link
        options: Upload options (auto-dedup, checksum field, API version)

    Returns:
        Descriptors in order: fresh files, MD5-deduplicated, linked

    Raises:
        ValidationError: A dedup path repeats an earlier path or is a JSON file
    """
    dedup = dedup or DedupSpec()
    options = options or UploadOptions()

    descriptors: List[FileDescriptor] = []
    seen = set()

    for path, md5sum in checksums.items():
        if options.api_version == 1:
            descriptors.append(FileDescriptor(path, CheckStrategy.SIMPLE, bare=True))
        elif options.auto_dedup_md5 and not is_metadata_path(path):
            descriptors.append(FileDescriptor(
                path, CheckStrategy.MD5, {"md5sum": md5sum, "field": options.md5_field}
            ))
        else:
            descriptors.append(FileDescriptor(path, CheckStrategy.SIMPLE, {"md5sum": md5sum}))
        seen.add(path)

    for path, md5sum in dedup.md5_paths.items():
        _check_dedup_path(path, seen)
        descriptors.append(FileDescriptor(
            path, CheckStrategy.MD5, {"md5sum": md5sum, "field": options.md5_field}
        ))
        seen.add(path)

    # Linked paths are checked against earlier entries only
    for path, target in dedup.link_paths.items():
        _check_dedup_path(path, seen)
        descriptors.append(FileDescriptor(path, CheckStrategy.LINK, {"artifactdb_id": target}))

    return descriptors


def build_start_request(
    descriptors: List[FileDescriptor],
    options: Optional[UploadOptions] = None,
) -> Dict[str, Any]:
    """Assemble the JSON body of the upload start request."""
    options = options or UploadOptions()
    request: Dict[str, Any] = {
        "filenames": [d.to_payload() for d in descriptors],
        "mode": UPLOAD_MODE,
    }
    if options.expires is not None:
        # Same window for finishing the upload and for keeping its content
        request["expires_in"] = f"in {options.expires} days"
        request["completed_by"] = request["expires_in"]
    return request


class InitiateUploadUseCase:
    """Submit the upload start request and return the session descriptor."""

    def __init__(self, transport: ITransport):
        self._transport = transport

    async def execute(
        self,
        start_url: str,
        checksums: Mapping[str, str],
        dedup: Optional[DedupSpec] = None,
        options: Optional[UploadOptions] = None,
    ) -> UploadSession:
        descriptors = build_file_descriptors(checksums, dedup, options)
        request = build_start_request(descriptors, options)

        logger.info("Starting upload of %d files at %s", len(descriptors), start_url)
        response = await self._transport.post(start_url, json=request)
        check_http_response(response, "failed to start a project upload")

        session = UploadSession.from_payload(response.json())
        logger.debug(
            "Upload session: %d presigned URLs, %d links",
            len(session.presigned_urls),
            len(session.links),
        )
        return session
