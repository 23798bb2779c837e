"""URL helpers shared by the use cases."""
from urllib.parse import quote

# Same unreserved set as encodeURIComponent
_SAFE = "!~*'()"


def resolve_url(base_url: str, url: str) -> str:
    """
    Resolve a URL returned by the server against the API base.

    Older API versions return full URLs, newer ones only the path component.
    """
    if url.startswith("http"):
        return url
    return base_url + url


def create_upload_start_url(base_url: str, project: str, version: str) -> str:
    """
    Build the upload start endpoint for a project version.

    Args:
        base_url: Base URL of the REST API
        project: Project name
        version: Version to be uploaded

    Returns:
        Full URL of the upload start endpoint
    """
    return (
        f"{base_url}/projects/{quote(project, safe=_SAFE)}"
        f"/version/{quote(version, safe=_SAFE)}/upload"
    )


def job_status_url(base_url: str, job_id) -> str:
    return f"{base_url}/jobs/{job_id}"
