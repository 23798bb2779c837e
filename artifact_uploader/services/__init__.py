"""Services for artifact_uploader."""
from .transport import HTTPTransport, TransportConfig, content_type_for
from .checksums import collect_files, compute_checksums, md5_file

__all__ = [
    "HTTPTransport",
    "TransportConfig",
    "content_type_for",
    "collect_files",
    "compute_checksums",
    "md5_file",
]
