"""
Shared fixtures: an in-memory fake of the B2 native API.
"""

import asyncio
import json
from typing import Any, Optional
from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio

from hls_publisher.storage import B2StorageClient

AUTH_URL = "https://auth.example.com/b2api/v2/b2_authorize_account"
API_URL = "https://api.example.com"
DOWNLOAD_URL = "https://f000.example.com"
UPLOAD_URL = "https://pod.example.com/b2api/v2/b2_upload_file/bkt/c000"


class FakeB2:
    """
    Minimal B2 server used through httpx.MockTransport.

    Stores uploaded files in memory and records every request. Failures can
    be injected per remote file name or per operation.
    """

    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []
        self.token_counter = 0
        self.valid_token: Optional[str] = None
        self.fail_uploads: set[str] = set()
        self.expire_next_api_call = False
        self.reject_auth = False
        self.page_size_cap: Optional[int] = None
        self.token_prefix = "token-"
        self.reject_upload_token = False
        self.malformed_uploads: set[str] = set()
        self.latency = 0.0

    # ------------------------------------------------------------------

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.latency:
            await asyncio.sleep(self.latency)
        return self.handle(request)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        if url.startswith(AUTH_URL):
            return self._authorize(request)
        if url.startswith(UPLOAD_URL):
            return self._upload(request)
        if url.startswith(f"{DOWNLOAD_URL}/file/"):
            return self._download(request)
        if url.startswith(f"{API_URL}/b2api/v2/"):
            return self._api(request)
        return httpx.Response(404, json={"status": 404, "code": "not_found", "message": url})

    def _error(self, status: int, code: str, message: str = "") -> httpx.Response:
        return httpx.Response(status, json={"status": status, "code": code, "message": message})

    def _authorize(self, request: httpx.Request) -> httpx.Response:
        if self.reject_auth or not request.headers.get("Authorization", "").startswith("Basic "):
            return self._error(401, "bad_auth_token", "Invalid key")
        self.token_counter += 1
        self.valid_token = f"{self.token_prefix}{self.token_counter}"
        return httpx.Response(
            200,
            json={
                "accountId": "acct-1",
                "apiUrl": API_URL,
                "authorizationToken": self.valid_token,
                "downloadUrl": DOWNLOAD_URL,
            },
        )

    def _api(self, request: httpx.Request) -> httpx.Response:
        if request.headers.get("Authorization") != self.valid_token:
            return self._error(401, "bad_auth_token", "Invalid token")
        if self.expire_next_api_call:
            self.expire_next_api_call = False
            self.valid_token = None
            return self._error(401, "expired_auth_token", "Token expired")

        operation = request.url.path.rsplit("/", 1)[-1]
        body = json.loads(request.content or b"{}")

        if operation == "b2_get_upload_url":
            return httpx.Response(
                200,
                json={
                    "bucketId": body["bucketId"],
                    "uploadUrl": UPLOAD_URL,
                    "authorizationToken": "upload-token",
                },
            )
        if operation == "b2_list_file_names":
            return httpx.Response(200, json=self._list(body))
        if operation == "b2_list_buckets":
            return httpx.Response(
                200,
                json={"buckets": [{"bucketId": "bkt", "bucketName": "videos"}]},
            )
        return self._error(400, "bad_request", operation)

    def _list(self, body: dict[str, Any]) -> dict[str, Any]:
        prefix = body.get("prefix") or ""
        delimiter = body.get("delimiter")
        start = body.get("startFileName") or ""
        limit = body.get("maxFileCount", 100)
        if self.page_size_cap:
            limit = min(limit, self.page_size_cap)

        entries: list[dict[str, Any]] = []
        seen_folders: set[str] = set()
        for name in sorted(self.files):
            if not name.startswith(prefix):
                continue
            rest = name[len(prefix) :]
            if delimiter and delimiter in rest:
                folder = prefix + rest.split(delimiter, 1)[0] + delimiter
                if folder not in seen_folders:
                    seen_folders.add(folder)
                    entries.append({"fileName": folder, "action": "folder", "fileId": None})
                continue
            entries.append(self._file_json(name))

        entries = [e for e in entries if e["fileName"] >= start]
        page = entries[:limit]
        next_name = entries[limit]["fileName"] if len(entries) > limit else None
        return {"files": page, "nextFileName": next_name}

    def _file_json(self, name: str) -> dict[str, Any]:
        content = self.files[name]
        return {
            "fileName": name,
            "fileId": f"id-{name}",
            "contentLength": len(content),
            "contentType": "video/mp2t" if name.endswith(".ts") else "application/x-mpegurl",
            "action": "upload",
            "uploadTimestamp": 1700000000000,
        }

    def _upload(self, request: httpx.Request) -> httpx.Response:
        if self.reject_upload_token or request.headers.get("Authorization") != "upload-token":
            return self._error(401, "bad_auth_token", "Invalid upload token")

        name = unquote(request.headers["X-Bz-File-Name"])
        if name in self.fail_uploads:
            return self._error(503, "service_unavailable", "c001_v0001 too busy")
        if name in self.malformed_uploads:
            return httpx.Response(200, text="<html>gateway</html>")

        self.files[name] = request.content
        data = self._file_json(name)
        data["contentSha1"] = request.headers["X-Bz-Content-Sha1"]
        return httpx.Response(200, json=data)

    def _download(self, request: httpx.Request) -> httpx.Response:
        key = unquote(request.url.path.split("/", 3)[3])
        if key not in self.files:
            return self._error(404, "not_found", key)
        return httpx.Response(200, content=self.files[key])

    def calls(self, operation: str) -> list[httpx.Request]:
        """Requests made to one API operation."""
        return [r for r in self.requests if r.url.path.endswith(f"/{operation}")]


@pytest.fixture
def fake_b2():
    return FakeB2()


@pytest_asyncio.fixture
async def storage(fake_b2):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake_b2))
    client = B2StorageClient(
        key_id="key-id",
        application_key="app-key",
        auth_url=AUTH_URL,
        default_bucket_name="videos",
        http_client=http_client,
    )
    yield client
    await http_client.aclose()
