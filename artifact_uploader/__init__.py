"""
artifact_uploader - upload orchestration for a content-addressed artifact store.

An upload runs in phases that share a single UploadSession:

- start: describe every file (fresh, MD5-deduplicated or linked)
- transfer: create links, then send contents to presigned URLs
- complete: set permissions and wait for the indexing job
- abort: cancel the upload instead of completing it

Usage:
    from artifact_uploader import UploadOrchestrator, DedupSpec

    async with UploadOrchestrator(api_url) as uploader:
        result = await uploader.upload_version(
            "my-project",
            "v1",
            checksums={"data.csv": "9e107d9d372bb6826bd81d3542a419d6"},
            contents={"data.csv": b"..."},
            dedup=DedupSpec(link_paths={"old.csv": "my-project:old.csv@v0"}),
        )
        if not result.indexed:
            print("indexing still in progress:", result.job_id)
"""
from .orchestrator import UploadOrchestrator
from .errors import HttpError, JobFailureError, UploaderError, ValidationError
from .models import (
    CheckStrategy,
    CompletionResult,
    DedupSpec,
    FileDescriptor,
    JobState,
    JobStatus,
    PermissionSpec,
    UploadOptions,
    UploadSession,
    Visibility,
)
from .protocols import ITransport
from .services import HTTPTransport, TransportConfig
from .use_cases import (
    AbortUploadUseCase,
    CompleteUploadUseCase,
    InitiateUploadUseCase,
    TransferFilesUseCase,
)
from .utils.polling import PollOutcome, PollResult, poll_until
from .utils.urls import create_upload_start_url

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadOrchestrator",
    # Use cases
    "InitiateUploadUseCase",
    "TransferFilesUseCase",
    "CompleteUploadUseCase",
    "AbortUploadUseCase",
    "create_upload_start_url",
    # Models
    "CheckStrategy",
    "CompletionResult",
    "DedupSpec",
    "FileDescriptor",
    "JobState",
    "JobStatus",
    "PermissionSpec",
    "UploadOptions",
    "UploadSession",
    "Visibility",
    # Transport
    "ITransport",
    "HTTPTransport",
    "TransportConfig",
    # Polling
    "PollOutcome",
    "PollResult",
    "poll_until",
    # Errors
    "UploaderError",
    "ValidationError",
    "HttpError",
    "JobFailureError",
]
