"""Tests for artifact-up CLI helpers."""
import json
import logging
import os
from unittest.mock import AsyncMock

import httpx
import pytest

from artifact_uploader.cli import (
    CLIError,
    _load_env_file,
    _parse_pairs,
    _run_upload,
    _setup_logging,
    _split_dedup,
    run_cli,
)
from artifact_uploader.models import PermissionSpec, UploadOptions, Visibility
from artifact_uploader.services.transport import TransportConfig


def test_load_env_file(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "# comment",
                "ARTIFACTDB_API_URL=http://localhost:8000",
                "ARTIFACTDB_TIMEOUT='30'",
                "export LOG_LEVEL=DEBUG",
            ]
        ),
        encoding="utf-8",
    )

    monkeypatch.delenv("ARTIFACTDB_API_URL", raising=False)
    monkeypatch.delenv("ARTIFACTDB_TIMEOUT", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    _load_env_file(env_path)

    assert os.environ["ARTIFACTDB_API_URL"] == "http://localhost:8000"
    assert os.environ["ARTIFACTDB_TIMEOUT"] == "30"
    assert os.environ["LOG_LEVEL"] == "DEBUG"


def test_load_env_file_missing(tmp_path):
    with pytest.raises(CLIError, match="env file not found"):
        _load_env_file(tmp_path / "missing.env")


def test_parse_pairs():
    assert _parse_pairs(["Authorization=Bearer abc", "X-Extra='1'"], "--header") == {
        "Authorization": "Bearer abc",
        "X-Extra": "1",
    }
    with pytest.raises(CLIError, match="--header expects NAME=VALUE"):
        _parse_pairs(["broken"], "--header")


def test_split_dedup():
    fresh, dedup = _split_dedup(
        {"a.bin": "1", "b.bin": "2", "c.bin": "3"},
        ["b.bin"],
        {"c.bin": "proj:c.bin@v1", "d.bin": "proj:d.bin@v1"},
    )
    assert fresh == {"a.bin": "1"}
    assert dedup.md5_paths == {"b.bin": "2"}
    assert dedup.link_paths == {"c.bin": "proj:c.bin@v1", "d.bin": "proj:d.bin@v1"}


def test_split_dedup_unknown_md5_path():
    with pytest.raises(CLIError, match="--dedup-md5 path not found"):
        _split_dedup({"a.bin": "1"}, ["zzz.bin"], {})


def test_setup_logging_defaults_to_silent(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    mode = _setup_logging(debug=False, silent=False, log_level=None)
    assert mode == "silent"
    assert logging.getLogger().isEnabledFor(logging.ERROR) is False
    logging.disable(logging.NOTSET)


def test_setup_logging_debug_mode():
    mode = _setup_logging(debug=True, silent=False, log_level=None)
    assert mode == "DEBUG"
    assert logging.getLogger().isEnabledFor(logging.DEBUG) is True
    logging.disable(logging.NOTSET)


def test_run_cli_requires_base_url(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("ARTIFACTDB_API_URL", raising=False)
    code = run_cli([str(tmp_path), "--project", "p", "--version-name", "v1", "--silent"])
    assert code == 1


def test_run_cli_rejects_missing_source(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    code = run_cli([str(tmp_path / "nope"), "--base-url", "http://api", "--silent"])
    assert code == 1


def test_run_cli_builds_upload(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    run_upload = AsyncMock(return_value=0)
    monkeypatch.setattr("artifact_uploader.cli._run_upload", run_upload)

    code = run_cli(
        [
            str(tmp_path),
            "--base-url",
            "http://api",
            "-p",
            "proj",
            "-V",
            "v1",
            "--private",
            "--viewer",
            "bob",
            "--expires",
            "7",
            "--no-auto-dedup",
            "-H",
            "Authorization=Bearer t",
            "--dedup-link",
            "old.bin=proj:old.bin@v0",
            "--silent",
        ]
    )

    assert code == 0
    kwargs = run_upload.await_args.kwargs
    assert kwargs["project"] == "proj"
    assert kwargs["version"] == "v1"
    assert kwargs["options"].expires == 7
    assert kwargs["options"].auto_dedup_md5 is False
    assert kwargs["permissions"].visibility is Visibility.VIEWERS
    assert kwargs["permissions"].viewers == ["bob"]
    assert kwargs["transport_config"].default_headers == {"Authorization": "Bearer t"}
    assert kwargs["link_paths"] == {"old.bin": "proj:old.bin@v0"}
    logging.disable(logging.NOTSET)


class UploadServer:
    """Fake artifact store API and presigned storage behind httpx.MockTransport."""

    def __init__(self, storage_status=200):
        self.requests = []
        self.stored = {}
        self._storage_status = storage_status

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, str(request.url)))
        if request.url.host == "s3":
            if self._storage_status == 200:
                self.stored[request.url.path] = request.content
            return httpx.Response(self._storage_status, text="AccessDenied")

        path = request.url.path
        if request.method == "POST" and path == "/projects/p/version/v/upload":
            self.start_body = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "presigned_urls": [
                        {"filename": "a.bin", "url": "https://s3/a", "md5sum": "YQ=="},
                        {"filename": "b.bin", "url": "https://s3/b", "md5sum": "Yg=="},
                    ],
                    "links": [{"filename": "old.bin", "url": "/link/old"}],
                    "completion_url": "/complete",
                    "abort_url": "/abort",
                },
            )
        if request.method == "PUT" and path == "/complete":
            return httpx.Response(200, json={"job_id": "j1"})
        if request.method == "PUT" and path in ("/link/old", "/abort"):
            return httpx.Response(200)
        return httpx.Response(404)


async def _upload_directory(tmp_path, server):
    (tmp_path / "a.bin").write_bytes(b"aaa")
    (tmp_path / "b.bin").write_bytes(b"bbb")
    return await _run_upload(
        source=tmp_path,
        base_url="http://api",
        project="p",
        version="v",
        options=UploadOptions(),
        permissions=PermissionSpec(),
        transport_config=TransportConfig(
            default_headers={"Authorization": "Bearer t"},
            http_transport=httpx.MockTransport(server),
        ),
        index_wait=0,
        md5_paths=["b.bin"],
        link_paths={"old.bin": "p:old.bin@v0"},
    )


class TestRunUpload:
    @pytest.mark.asyncio
    async def test_changed_md5_file_is_uploaded(self, tmp_path):
        server = UploadServer()

        code = await _upload_directory(tmp_path, server)

        assert code == 0
        assert server.stored == {"/a": b"aaa", "/b": b"bbb"}
        checks = {f["filename"]: f["check"] for f in server.start_body["filenames"]}
        assert checks == {"a.bin": "md5", "b.bin": "md5", "old.bin": "link"}
        assert ("PUT", "http://api/link/old") in server.requests
        assert server.requests[-1] == ("PUT", "http://api/complete")

    @pytest.mark.asyncio
    async def test_failed_transfer_aborts(self, tmp_path):
        server = UploadServer(storage_status=403)

        code = await _upload_directory(tmp_path, server)

        assert code == 1
        assert server.requests[-1] == ("PUT", "http://api/abort")
        assert ("PUT", "http://api/complete") not in server.requests
