"""
Backblaze B2 client over the native API (v2).

One client instance holds one authorized session. Every API call goes
through ``_api_call``, which authorizes lazily and re-authorizes once when
the store rejects the token.
"""

import asyncio
import base64
import hashlib
from pathlib import Path
from typing import Any, Optional, Sequence
from urllib.parse import quote

import httpx

from ..config import StorageConfig
from ..models import FileInfo, FileListing, FolderListing, StorageSession
from ..utils import AuthError, StorageError, UploadError, ensure_directory, get_logger

logger = get_logger(__name__)

DEFAULT_AUTH_URL = "https://api.backblazeb2.com/b2api/v2/b2_authorize_account"
API_PREFIX = "/b2api/v2"

VIDEO_SUFFIXES = (".mp4", ".mov", ".mkv", ".webm", ".avi", ".m3u8", ".ts")

# Error codes for which a fresh authorization may succeed
REAUTH_CODES = {"expired_auth_token", "bad_auth_token"}

# Page size used when a listing must walk the whole bucket
FULL_SCAN_PAGE_SIZE = 1000


class B2StorageClient:
    """
    Async Backblaze B2 client.

    Use as an async context manager so the HTTP client it owns is closed.
    An injected ``http_client`` is left open for its owner to close.
    """

    def __init__(
        self,
        key_id: str,
        application_key: str,
        auth_url: str = DEFAULT_AUTH_URL,
        default_bucket_name: str = "cloud-video-store",
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize storage client.

        Args:
            key_id: Application key id
            application_key: Application key
            auth_url: b2_authorize_account endpoint
            default_bucket_name: Bucket used for URLs when none is given
            timeout: HTTP timeout in seconds
            http_client: Optional pre-built client (e.g. with a mock transport)
        """
        self.key_id = key_id
        self.application_key = application_key
        self.auth_url = auth_url
        self.default_bucket_name = default_bucket_name
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._session: Optional[StorageSession] = None
        self._auth_lock = asyncio.Lock()

    @classmethod
    def from_config(
        cls,
        config: StorageConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "B2StorageClient":
        """Create a client from the storage section of the configuration."""
        return cls(
            key_id=config.key_id,
            application_key=config.application_key,
            auth_url=config.auth_url,
            default_bucket_name=config.bucket_name or config.default_bucket_name,
            timeout=config.timeout,
            http_client=http_client,
        )

    async def __aenter__(self) -> "B2StorageClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    @property
    def session(self) -> Optional[StorageSession]:
        """Current session, or None before the first authorization."""
        return self._session

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    async def authenticate(self) -> StorageSession:
        """
        Authorize the account and store the session.

        Returns:
            New StorageSession

        Raises:
            AuthError: If credentials are rejected, the response is
                incomplete or the store is unreachable
        """
        if not self.key_id or not self.application_key:
            raise AuthError("Storage credentials are not configured")

        credentials = base64.b64encode(
            f"{self.key_id}:{self.application_key}".encode()
        ).decode()

        try:
            response = await self._client.get(
                self.auth_url,
                headers={"Authorization": f"Basic {credentials}"},
            )
        except httpx.HTTPError as e:
            raise AuthError(f"Authorization request failed: {e}") from e

        if response.is_error:
            raise self._error_from_response(response, "Authorization failed", AuthError)

        try:
            data = self._json_body(response)
            session = StorageSession(
                api_url=data["apiUrl"],
                authorization_token=data["authorizationToken"],
                download_url=data["downloadUrl"],
                account_id=data.get("accountId"),
            )
        except (ValueError, KeyError) as e:
            raise AuthError(f"Malformed authorization response: {e}") from e

        self._session = session
        logger.info(f"Authorized against {session.api_url}")
        return session

    async def _ensure_session(self) -> StorageSession:
        """Current session, authorizing once for all concurrent first callers."""
        session = self._session
        if session is not None:
            return session
        async with self._auth_lock:
            if self._session is None:
                return await self.authenticate()
            return self._session

    async def _reauthenticate(self, rejected: StorageSession) -> StorageSession:
        """
        Replace a rejected session.

        Callers whose token was rejected after another caller already
        re-authorized get the newer session without a second authorization.
        """
        async with self._auth_lock:
            current = self._session
            if (
                current is not None
                and current.authorization_token != rejected.authorization_token
            ):
                return current
            return await self.authenticate()

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------

    async def _post(
        self, session: StorageSession, operation: str, payload: dict[str, Any]
    ) -> httpx.Response:
        try:
            return await self._client.post(
                f"{session.api_url}{API_PREFIX}/{operation}",
                json=payload,
                headers={"Authorization": session.authorization_token},
            )
        except httpx.HTTPError as e:
            raise StorageError(f"{operation} request failed: {e}") from e

    async def _api_call(self, operation: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Call one API operation with lazy authorization.

        Args:
            operation: Operation name (e.g. "b2_list_file_names")
            payload: JSON body

        Returns:
            Decoded JSON response

        Raises:
            AuthError: If the token is rejected again after re-authorizing
            StorageError: On any other error response or network failure
        """
        session = await self._ensure_session()
        response = await self._post(session, operation, payload)

        if self._needs_reauth(response):
            logger.info(f"{operation}: authorization token rejected, re-authorizing")
            session = await self._reauthenticate(session)
            response = await self._post(session, operation, payload)
            if response.status_code == 401:
                raise self._error_from_response(
                    response, f"{operation} rejected after re-authorization", AuthError
                )

        if response.is_error:
            raise self._error_from_response(response, f"{operation} failed", StorageError)

        try:
            return self._json_body(response)
        except ValueError as e:
            raise StorageError(
                f"{operation} returned a malformed response: {e}",
                status_code=response.status_code,
            ) from e

    @staticmethod
    def _json_body(response: httpx.Response) -> dict[str, Any]:
        """
        Decode a JSON object body.

        Raises:
            ValueError: If the body is not JSON or not an object
        """
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError(f"expected a JSON object, got {type(body).__name__}")
        return body

    @staticmethod
    def _error_code(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        return body.get("code") if isinstance(body, dict) else None

    def _needs_reauth(self, response: httpx.Response) -> bool:
        return response.status_code == 401 and self._error_code(response) in REAUTH_CODES

    @staticmethod
    def _error_from_response(
        response: httpx.Response,
        message: str,
        error_cls: type[StorageError],
        remote_key: Optional[str] = None,
    ) -> StorageError:
        code = None
        detail = response.text
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = body.get("code")
            detail = body.get("message") or detail

        return error_cls(
            f"{message} (HTTP {response.status_code}): {detail}",
            status_code=response.status_code,
            code=code,
            remote_key=remote_key,
        )

    # ------------------------------------------------------------------
    # Upload / download
    # ------------------------------------------------------------------

    async def upload_file(self, bucket_id: str, remote_key: str, local_path: Path) -> FileInfo:
        """
        Upload one local file under ``remote_key``.

        The file is read fully and its SHA1 is sent for server-side
        verification. An upload URL whose token has expired is replaced
        once.

        Args:
            bucket_id: Target bucket id
            remote_key: Remote file name
            local_path: File to upload

        Returns:
            FileInfo of the stored file

        Raises:
            UploadError: If the file is unreadable or the transfer fails
            AuthError: If authorization cannot be obtained
        """
        local_path = Path(local_path)
        try:
            content = local_path.read_bytes()
        except OSError as e:
            raise UploadError(f"Cannot read {local_path}: {e}", remote_key=remote_key) from e

        sha1 = hashlib.sha1(content).hexdigest()

        for attempt in (1, 2):
            try:
                target = await self._api_call("b2_get_upload_url", {"bucketId": bucket_id})
            except AuthError:
                raise
            except StorageError as e:
                raise UploadError(
                    str(e), status_code=e.status_code, code=e.code, remote_key=remote_key
                ) from e

            try:
                upload_url = target["uploadUrl"]
                upload_token = target["authorizationToken"]
            except KeyError as e:
                raise UploadError(
                    f"Upload URL response for {remote_key} missing field {e}",
                    remote_key=remote_key,
                ) from e

            try:
                response = await self._client.post(
                    upload_url,
                    content=content,
                    headers={
                        "Authorization": upload_token,
                        "X-Bz-File-Name": quote(remote_key, safe="/"),
                        "Content-Type": "b2/x-auto",
                        "X-Bz-Content-Sha1": sha1,
                        "Content-Length": str(len(content)),
                    },
                )
            except httpx.HTTPError as e:
                raise UploadError(
                    f"Upload of {remote_key} failed: {e}", remote_key=remote_key
                ) from e

            if response.status_code == 401:
                if attempt == 1:
                    logger.info(f"Upload URL expired for {remote_key}, requesting a new one")
                    continue
                raise self._error_from_response(
                    response, f"Upload of {remote_key} rejected twice", AuthError, remote_key
                )

            if response.is_error:
                raise self._error_from_response(
                    response, f"Upload of {remote_key} failed", UploadError, remote_key
                )

            try:
                info = FileInfo.from_api(self._json_body(response))
            except ValueError as e:
                raise UploadError(
                    f"Upload of {remote_key} returned a malformed response: {e}",
                    status_code=response.status_code,
                    remote_key=remote_key,
                ) from e
            logger.debug(f"Uploaded {local_path} -> {remote_key} ({len(content)} bytes)")
            return info

        raise AuthError(f"Upload of {remote_key} rejected twice", remote_key=remote_key)

    async def download_file(self, bucket_name: str, remote_key: str, output_path: Path) -> Path:
        """
        Download one file to ``output_path``.

        Raises:
            StorageError: If the download fails
        """
        session = await self._ensure_session()
        output_path = Path(output_path)
        ensure_directory(output_path.parent)

        url = f"{session.download_url}/file/{bucket_name}/{quote(remote_key, safe='/')}"
        try:
            async with self._client.stream(
                "GET", url, headers={"Authorization": session.authorization_token}
            ) as response:
                if response.is_error:
                    await response.aread()
                    raise self._error_from_response(
                        response, f"Download of {remote_key} failed", StorageError, remote_key
                    )
                with open(output_path, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as e:
            raise StorageError(
                f"Download of {remote_key} failed: {e}", remote_key=remote_key
            ) from e

        logger.info(f"Downloaded {remote_key} -> {output_path}")
        return output_path

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    def public_url(self, remote_key: str, bucket_name: Optional[str] = None) -> str:
        """
        Unsigned download URL for a key.

        Raises:
            AuthError: If no session exists yet
        """
        if self._session is None:
            raise AuthError("Not authorized; download URL unknown")
        bucket = bucket_name or self.default_bucket_name
        return f"{self._session.download_url}/file/{bucket}/{quote(remote_key, safe='/')}"

    async def get_download_url_with_token(
        self, remote_key: str, bucket_name: Optional[str] = None
    ) -> str:
        """
        Signed download URL carrying the session token.

        Authorizes first when no session exists.
        """
        session = await self._ensure_session()
        url = self.public_url(remote_key, bucket_name)
        return f"{url}?Authorization={quote(session.authorization_token, safe='')}"

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def list_buckets(self) -> list[dict[str, Any]]:
        """List buckets visible to the account."""
        session = await self._ensure_session()
        data = await self._api_call(
            "b2_list_buckets", {"accountId": session.account_id or self.key_id}
        )
        return data.get("buckets", [])

    async def list_files(
        self,
        bucket_id: str,
        start_file_name: Optional[str] = None,
        max_file_count: int = 100,
        prefix: Optional[str] = None,
        delimiter: Optional[str] = None,
    ) -> FileListing:
        """
        List one page of file names.

        Args:
            bucket_id: Bucket id
            start_file_name: First file name to return (from a previous page)
            max_file_count: Page size
            prefix: Only names starting with this prefix
            delimiter: Collapse names below this delimiter into folders

        Returns:
            FileListing with the page and the next start name
        """
        payload: dict[str, Any] = {"bucketId": bucket_id, "maxFileCount": max_file_count}
        if start_file_name:
            payload["startFileName"] = start_file_name
        if prefix:
            payload["prefix"] = prefix
        if delimiter:
            payload["delimiter"] = delimiter

        data = await self._api_call("b2_list_file_names", payload)
        files = [FileInfo.from_api(item) for item in data.get("files", [])]
        logger.debug(f"Listed {len(files)} files in bucket {bucket_id}")
        return FileListing(files=files, next_file_name=data.get("nextFileName"))

    async def search_by_prefix(
        self, bucket_id: str, prefix: str, max_file_count: int = 100
    ) -> list[FileInfo]:
        """Files whose name starts with ``prefix`` (one page)."""
        listing = await self.list_files(bucket_id, max_file_count=max_file_count, prefix=prefix)
        return listing.files

    async def search_by_name(self, bucket_id: str, substring: str) -> list[FileInfo]:
        """
        Files whose name contains ``substring``, case-insensitively.

        Walks every page of the bucket, so cost grows with the total
        number of files.
        """
        needle = substring.lower()
        matches: list[FileInfo] = []
        start: Optional[str] = None

        while True:
            listing = await self.list_files(
                bucket_id, start_file_name=start, max_file_count=FULL_SCAN_PAGE_SIZE
            )
            matches.extend(f for f in listing.files if needle in f.file_name.lower())
            if not listing.next_file_name:
                break
            start = listing.next_file_name

        return matches

    async def list_folder(self, bucket_id: str, folder_path: str = "") -> FolderListing:
        """
        Direct children of an emulated folder.

        Args:
            bucket_id: Bucket id
            folder_path: Folder path; empty for the bucket root

        Returns:
            FolderListing with sub-folder names and direct files
        """
        folder = folder_path.strip("/")
        prefix = f"{folder}/" if folder else ""
        result = FolderListing(path=folder)
        start: Optional[str] = None

        while True:
            payload: dict[str, Any] = {
                "bucketId": bucket_id,
                "prefix": prefix,
                "delimiter": "/",
                "maxFileCount": FULL_SCAN_PAGE_SIZE,
            }
            if start:
                payload["startFileName"] = start
            data = await self._api_call("b2_list_file_names", payload)

            for item in data.get("files", []):
                info = FileInfo.from_api(item)
                if info.is_folder:
                    if info.file_name not in result.folders:
                        result.folders.append(info.file_name)
                else:
                    result.files.append(info)

            for common in data.get("commonPrefixes", []):
                if common not in result.folders:
                    result.folders.append(common)

            start = data.get("nextFileName")
            if not start:
                break

        return result

    async def list_video_files(
        self,
        bucket_id: str,
        start_file_name: Optional[str] = None,
        max_file_count: int = 100,
        suffix_filter: Optional[str] = None,
        suffixes: Sequence[str] = VIDEO_SUFFIXES,
    ) -> FileListing:
        """
        One page of files filtered to video and manifest types.

        Args:
            bucket_id: Bucket id
            start_file_name: First file name to return
            max_file_count: Page size before filtering
            suffix_filter: When given, keep only names ending with it
            suffixes: Suffixes kept when no ``suffix_filter`` is given

        Returns:
            Filtered FileListing; ``next_file_name`` continues the raw listing
        """
        listing = await self.list_files(
            bucket_id, start_file_name=start_file_name, max_file_count=max_file_count
        )

        if suffix_filter:
            keep = [f for f in listing.files if f.file_name.endswith(suffix_filter)]
        else:
            lowered = tuple(s.lower() for s in suffixes)
            keep = [f for f in listing.files if f.file_name.lower().endswith(lowered)]

        return FileListing(files=keep, next_file_name=listing.next_file_name)
