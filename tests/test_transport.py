"""Tests for the httpx transport adapter."""
import json

import httpx
import pytest

from artifact_uploader.errors import HttpError
from artifact_uploader.protocols import ITransport
from artifact_uploader.services.transport import HTTPTransport, TransportConfig, content_type_for


class Recorder:
    def __init__(self):
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(200, json={"ok": True})


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def config(recorder):
    return TransportConfig(
        default_headers={"Authorization": "Bearer secret"},
        http_transport=httpx.MockTransport(recorder),
    )


def test_content_type_for():
    assert content_type_for("meta/file.json") == "application/json"
    assert content_type_for("data.csv") == "application/octet-stream"


def test_implements_protocol():
    assert isinstance(HTTPTransport(), ITransport)


@pytest.mark.asyncio
async def test_api_requests_carry_default_headers(config, recorder):
    async with HTTPTransport(config) as transport:
        await transport.post("http://api/upload", json={"mode": "x"})
        await transport.put("http://api/complete", json={"read_access": "public"})
        await transport.put("http://api/link/a")
        await transport.get("http://api/jobs/1")

    assert [r.method for r in recorder.requests] == ["POST", "PUT", "PUT", "GET"]
    assert all(r.headers["Authorization"] == "Bearer secret" for r in recorder.requests)
    assert json.loads(recorder.requests[0].content) == {"mode": "x"}
    assert recorder.requests[2].content == b""


@pytest.mark.asyncio
async def test_presigned_put_has_no_default_headers(config, recorder):
    async with HTTPTransport(config) as transport:
        await transport.presigned_put("meta.json", "https://s3/meta", "YQ==", '{"a": 1}')
        await transport.presigned_put("data.bin", "https://s3/data", None, b"\x00\x01")

    meta, data = recorder.requests
    assert "Authorization" not in meta.headers
    assert meta.headers["Content-Type"] == "application/json"
    assert meta.headers["Content-MD5"] == "YQ=="
    assert meta.content == b'{"a": 1}'
    assert "Authorization" not in data.headers
    assert data.headers["Content-Type"] == "application/octet-stream"
    assert "Content-MD5" not in data.headers
    assert data.content == b"\x00\x01"


@pytest.mark.asyncio
async def test_presigned_put_reads_path(config, recorder, tmp_path):
    file_path = tmp_path / "data.bin"
    file_path.write_bytes(b"file contents")

    async with HTTPTransport(config) as transport:
        await transport.presigned_put("data.bin", "https://s3/data", None, file_path)

    assert recorder.requests[0].content == b"file contents"


@pytest.mark.asyncio
async def test_requires_context():
    transport = HTTPTransport()
    with pytest.raises(RuntimeError, match="not initialized"):
        await transport.get("http://api/jobs/1")
    with pytest.raises(RuntimeError, match="not initialized"):
        await transport.presigned_put("a", "https://s3/a", None, b"")


@pytest.mark.asyncio
async def test_network_error_becomes_http_error():
    def _fail(request):
        raise httpx.ConnectError("connection refused", request=request)

    config = TransportConfig(http_transport=httpx.MockTransport(_fail))
    async with HTTPTransport(config) as transport:
        with pytest.raises(HttpError, match="GET http://api/jobs/1 failed") as exc_info:
            await transport.get("http://api/jobs/1")

    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
