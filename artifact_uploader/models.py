"""
Models for artifact_uploader.

Immutable dataclasses describing upload requests, server sessions and jobs.
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple, List, Union
from enum import Enum

from .errors import ValidationError

METADATA_EXTENSION = ".json"


def is_metadata_path(path: str) -> bool:
    """Metadata documents are always uploaded fresh, never deduplicated."""
    return path.endswith(METADATA_EXTENSION)


class CheckStrategy(Enum):
    """How the server decides whether a file's content must be uploaded."""
    SIMPLE = "simple"
    MD5 = "md5"
    LINK = "link"


@dataclass(frozen=True)
class FileDescriptor:
    """One entry of the `filenames` list sent when starting an upload."""
    path: str
    check: CheckStrategy
    value: Dict[str, str] = field(default_factory=dict)
    # API version 1 only understands bare paths for fresh files
    bare: bool = False

    def to_payload(self) -> Union[str, Dict[str, Any]]:
        if self.bare:
            return self.path
        return {
            "filename": self.path,
            "check": self.check.value,
            "value": dict(self.value),
        }


@dataclass(frozen=True)
class DedupSpec:
    """Files whose content does not need to be uploaded again."""
    md5_paths: Dict[str, str] = field(default_factory=dict)
    link_paths: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class UploadOptions:
    """Immutable configuration for starting an upload."""
    auto_dedup_md5: bool = True
    md5_field: str = "md5sum"
    expires: Optional[int] = None  # days; None means permanent
    api_version: int = 2


@dataclass(frozen=True)
class PresignedTransfer:
    """Presigned storage URL for a file whose content must be sent."""
    path: str
    url: str
    md5sum: Optional[str] = None  # base64, absent in the legacy API


@dataclass(frozen=True)
class LinkTransfer:
    """Endpoint that links a path to an existing artifact."""
    path: str
    url: str


def _parse_presigned(raw: Any) -> Tuple[PresignedTransfer, ...]:
    if raw is None:
        return ()
    if isinstance(raw, dict):
        # Legacy API: {path: presigned_url}, no checksum
        return tuple(PresignedTransfer(path=k, url=v) for k, v in raw.items())
    return tuple(
        PresignedTransfer(path=x["filename"], url=x["url"], md5sum=x.get("md5sum"))
        for x in raw
    )


def _parse_links(raw: Any) -> Tuple[LinkTransfer, ...]:
    if raw is None:
        return ()
    if isinstance(raw, dict):
        # Legacy API: {path: full_url}
        return tuple(LinkTransfer(path=k, url=v) for k, v in raw.items())
    return tuple(LinkTransfer(path=x["filename"], url=x["url"]) for x in raw)


@dataclass(frozen=True)
class UploadSession:
    """
    Server response to an upload start request.

    Both wire shapes (lists of objects and legacy keyed maps) are resolved
    into ordered tuples here, so nothing downstream needs to know which API
    produced the session.
    """
    presigned_urls: Tuple[PresignedTransfer, ...]
    links: Tuple[LinkTransfer, ...]
    completion_url: str
    abort_url: str
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "UploadSession":
        for key in ("completion_url", "abort_url"):
            if not payload.get(key):
                raise ValidationError(f"upload session is missing '{key}'")
        return cls(
            presigned_urls=_parse_presigned(payload.get("presigned_urls")),
            links=_parse_links(payload.get("links")),
            completion_url=payload["completion_url"],
            abort_url=payload["abort_url"],
            raw=payload,
        )


class JobState(Enum):
    """Indexing job state."""
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"

    @classmethod
    def parse(cls, value: Any) -> "JobState":
        try:
            return cls(value)
        except ValueError:
            # STARTED, RETRY, ... are all still in progress
            return cls.PENDING


@dataclass(frozen=True)
class JobStatus:
    job_id: str
    state: JobState
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_payload(cls, job_id: str, payload: Dict[str, Any]) -> "JobStatus":
        return cls(job_id=job_id, state=JobState.parse(payload.get("status")), raw=payload)


class Visibility(Enum):
    PUBLIC = "public"
    VIEWERS = "viewers"


@dataclass(frozen=True)
class PermissionSpec:
    """
    Permissions sent when completing an upload.

    Only applied by the server to new projects without any prior version.
    """
    visibility: Visibility = Visibility.PUBLIC
    owners: Optional[List[str]] = None
    viewers: Optional[List[str]] = None

    @classmethod
    def from_flags(
        cls,
        is_public: bool = True,
        owners: Optional[List[str]] = None,
        viewers: Optional[List[str]] = None,
    ) -> "PermissionSpec":
        visibility = Visibility.PUBLIC if is_public else Visibility.VIEWERS
        return cls(visibility=visibility, owners=owners, viewers=viewers)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"read_access": self.visibility.value}
        if self.owners is not None:
            payload["owners"] = list(self.owners)
        if self.viewers is not None:
            payload["viewers"] = list(self.viewers)
        return payload


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of completing an upload."""
    indexed: bool
    job_id: Any

    @property
    def pending(self) -> bool:
        """Indexing may still finish server-side after the wait budget."""
        return not self.indexed
