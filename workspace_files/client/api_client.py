"""
Workspace Files API Client.

Async HTTP client for the workspace file store and attachment graph.
Uses httpx for async HTTP requests; the acting agent and API key travel as
headers built from an explicit ``Caller`` on every call.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from uuid import uuid4

import httpx

from workspace_files.config import Settings, get_settings
from workspace_files.core.auth import Caller
from workspace_files.core.exceptions import (
    ERRORS_BY_CODE,
    AmbiguousIdError,
    OrphanedFileError,
    TransportError,
    TTLOutOfRangeError,
    WorkspaceError,
)
from workspace_files.core.expiry import bounds_check
from workspace_files.models.contracts.attachment import (
    AttachmentLinkResponse,
    AttachmentPublic,
    FileAttachmentList,
)
from workspace_files.models.contracts.file import (
    FileContent,
    FileList,
    FilePublic,
    UploadPayload,
)
from workspace_files.models.enums import EntityType
from workspace_files.services.file_ingestion import (
    UploadOptions,
    decode_content,
    digest,
    prepare_upload_from_path,
)

logger = logging.getLogger(__name__)


@dataclass
class DownloadedFile:
    """A downloaded file: metadata, decoded bytes and where they were written."""

    file: FileContent
    data: bytes
    written_to: Path | None = None


def error_from_response(response: httpx.Response) -> WorkspaceError:
    """
    Map an error response back to the exception the server raised.

    Bodies follow ``ErrorResponse``; anything else (proxies, HTML error pages)
    becomes a ``TransportError``.
    """
    try:
        body = response.json()
    except ValueError:
        body = response.text

    if not isinstance(body, dict):
        return TransportError(
            f"API Error {response.status_code}: {body}",
            status_code=response.status_code,
            response_body=body,
        )

    code = body.get("error")
    message = body.get("message") or str(body.get("detail", body))
    details = body.get("details") or {}

    if code == AmbiguousIdError.code:
        return AmbiguousIdError(details.get("candidate", ""), details.get("candidates", []))
    if code == TTLOutOfRangeError.code:
        return TTLOutOfRangeError(
            details.get("minutes", 0), details.get("min", 0), details.get("max", 0)
        )
    if code in ERRORS_BY_CODE:
        return ERRORS_BY_CODE[code](message, details)

    return TransportError(
        f"API Error {response.status_code}: {message}",
        status_code=response.status_code,
        response_body=body,
    )


def attachment_path(entity_type: EntityType, entity_ref: str, filename: str) -> str:
    """Default remote path for a file uploaded by ``attach`` (unique per call)."""
    return f"/attachments/{EntityType(entity_type).value}/{entity_ref}/{uuid4().hex[:8]}/{filename}"


class WorkspaceClient:
    """
    Async client for the Workspace Files API.

    Provides methods for:
    - Files (upload, download, metadata, list, update, delete)
    - Identifier resolution
    - Attachments (link, list, unlink, reverse traversal, entity cascade)
    - attach: upload + link as one logical step
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        max_upload_bytes: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Workspace Files API client.

        Args:
            base_url: Base URL of the API (e.g., "https://workspace.startanaicompany.com")
            timeout: Request timeout in seconds (default: 60.0)
            max_upload_bytes: Local size limit checked before reading a file
            transport: Optional httpx transport (ASGI or mock transports in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_upload_bytes = max_upload_bytes
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "WorkspaceClient":
        """Build a client from WORKSPACE_API_URL and related settings."""
        settings = settings or get_settings()
        return cls(
            base_url=settings.api_url,
            timeout=settings.request_timeout,
            max_upload_bytes=settings.max_upload_bytes,
            transport=transport,
        )

    async def __aenter__(self) -> "WorkspaceClient":
        """Enter async context manager."""
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is initialized."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Content-Type": "application/json"},
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        caller: Caller,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make an HTTP request to the API.

        Args:
            caller: Acting identity (sent as headers)
            method: HTTP method (GET, POST, PATCH, DELETE)
            path: API endpoint path
            json: Request body as JSON
            params: Query parameters (None values are dropped)

        Returns:
            Response data (dict, or empty dict for 204)

        Raises:
            NotFoundError, GoneError, AmbiguousIdError, ConflictError,
            TTLOutOfRangeError: As reported by the server
            TransportError: On network failures and unrecognized error bodies
        """
        client = await self._ensure_client()
        if params is not None:
            params = {key: value for key, value in params.items() if value is not None}

        try:
            response = await client.request(
                method=method,
                url=path,
                json=json,
                params=params,
                headers=caller.headers(),
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timed out: {e}") from e
        except httpx.RequestError as e:
            raise TransportError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            raise error_from_response(response)

        # Handle 204 No Content
        if response.status_code == 204:
            return {}

        return response.json()

    # =========================================================================
    # Files
    # =========================================================================

    async def upload_payload(self, caller: Caller, payload: UploadPayload) -> FilePublic:
        """
        Send a prepared upload payload.

        Returns:
            Stored file metadata
        """
        result = await self._request(
            caller, "POST", "/api/files", json=payload.model_dump(mode="json")
        )
        return FilePublic.model_validate(result)

    async def upload_file(
        self,
        caller: Caller,
        local_path: str | Path,
        remote_path: str,
        options: UploadOptions,
    ) -> FilePublic:
        """
        Prepare a local file and upload it.

        Local failures (unreadable file, TTL out of range, too large) are raised
        before any request is sent.

        Args:
            caller: Acting identity
            local_path: File to read
            remote_path: Destination path in the workspace
            options: TTL, description, tags, project and visibility

        Returns:
            Stored file metadata
        """
        payload = prepare_upload_from_path(
            local_path, remote_path, options, caller, max_bytes=self.max_upload_bytes
        )
        file = await self.upload_payload(caller, payload)
        logger.info(
            f"Uploaded {local_path} to {file.path}",
            extra={"file_id": file.id, "size": file.size},
        )
        return file

    async def download_file(
        self,
        caller: Caller,
        remote_path: str,
        output: str | Path | None = None,
    ) -> DownloadedFile:
        """
        Download a file, decode it and verify its checksum.

        Args:
            caller: Acting identity
            remote_path: Path of the file in the workspace
            output: Optional local path to write the decoded bytes to

        Returns:
            DownloadedFile with metadata and decoded bytes

        Raises:
            NotFoundError: Nothing was ever stored at the path
            GoneError: The file has expired
            TransportError: Decoded content does not match size or checksum
        """
        result = await self._request(
            caller, "GET", "/api/files/by-path", params={"path": remote_path}
        )
        file = FileContent.model_validate(result)

        try:
            data = decode_content(file.content, file.base64_encoded)
        except ValueError as e:
            raise TransportError(f"Downloaded content is corrupt: {e}") from e

        actual = digest(data)
        if actual.checksum != file.checksum or actual.size != file.size:
            raise TransportError(
                f"Downloaded content for {remote_path} does not match its checksum",
                response_body={"expected": file.checksum, "actual": actual.checksum},
            )

        written_to = None
        if output is not None:
            written_to = Path(output)
            written_to.write_bytes(data)
            logger.info(f"Downloaded {remote_path} to {written_to}")

        return DownloadedFile(file=file, data=data, written_to=written_to)

    async def get_metadata(self, caller: Caller, remote_path: str) -> FilePublic:
        """Get file metadata without content."""
        result = await self._request(
            caller, "GET", "/api/files/metadata", params={"path": remote_path}
        )
        return FilePublic.model_validate(result)

    async def list_files(
        self,
        caller: Caller,
        path: str | None = None,
        tags: list[str] | None = None,
        project_id: str | None = None,
        created_by: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> FileList:
        """
        List unexpired files.

        Args:
            caller: Acting identity
            path: Path prefix filter
            tags: Match files carrying any of these tags
            project_id: Project ID, short or full
            created_by: Creator agent name
            limit: Page size
            offset: Page offset

        Returns:
            FileList with the page and the total count
        """
        params = {
            "path": path,
            "tags": ",".join(tags) if tags else None,
            "project_id": project_id,
            "created_by": created_by,
            "limit": limit,
            "offset": offset,
        }
        result = await self._request(caller, "GET", "/api/files", params=params)
        return FileList.model_validate(result)

    async def update_file(
        self,
        caller: Caller,
        remote_path: str,
        expire_minutes: int | None = None,
        description: str | None = None,
        tags: list[str] | None = None,
        project_id: str | None = None,
    ) -> FilePublic:
        """
        Update file metadata or restart its TTL.

        An out-of-range TTL is rejected locally.
        """
        payload: dict[str, Any] = {}
        if expire_minutes is not None:
            payload["expire_minutes"] = bounds_check(expire_minutes)
        if description is not None:
            payload["description"] = description
        if tags is not None:
            payload["tags"] = tags
        if project_id is not None:
            payload["project_id"] = project_id

        result = await self._request(
            caller, "PATCH", "/api/files", json=payload, params={"path": remote_path}
        )
        return FilePublic.model_validate(result)

    async def delete_file(self, caller: Caller, remote_path: str) -> FilePublic:
        """Delete a file and every attachment referencing it."""
        result = await self._request(
            caller, "DELETE", "/api/files", params={"path": remote_path}
        )
        return FilePublic.model_validate(result)

    async def resolve(self, caller: Caller, file_ref: str) -> str:
        """
        Resolve a file reference (short or full ID, or path) to the full file ID.

        Raises:
            NotFoundError: No file matches the reference
            GoneError: The file exists but has expired
            AmbiguousIdError: Several file IDs start with the candidate
        """
        result = await self._request(
            caller, "GET", "/api/files/resolve", params={"ref": file_ref}
        )
        return result["id"]

    # =========================================================================
    # Attachments
    # =========================================================================

    def _entity_path(self, entity_type: EntityType, entity_ref: str) -> str:
        return f"/api/entities/{EntityType(entity_type).value}/{entity_ref}"

    async def link(
        self,
        caller: Caller,
        entity_type: EntityType,
        entity_ref: str,
        file_ref: str,
        description: str | None = None,
    ) -> AttachmentLinkResponse:
        """
        Link an existing file to an entity.

        Args:
            caller: Acting identity
            entity_type: Kind of entity
            entity_ref: Entity ID, short or full
            file_ref: File ID (short or full) or remote path
            description: Optional note on the attachment

        Returns:
            The attachment and whether this call created it
        """
        result = await self._request(
            caller,
            "POST",
            f"{self._entity_path(entity_type, entity_ref)}/attachments",
            json={"file_ref": file_ref, "description": description},
        )
        return AttachmentLinkResponse.model_validate(result)

    async def list_attachments(
        self, caller: Caller, entity_type: EntityType, entity_ref: str
    ) -> list[AttachmentPublic]:
        """List an entity's attachments, oldest first."""
        result = await self._request(
            caller, "GET", f"{self._entity_path(entity_type, entity_ref)}/attachments"
        )
        return [AttachmentPublic.model_validate(item) for item in result["items"]]

    async def unlink(
        self,
        caller: Caller,
        entity_type: EntityType,
        entity_ref: str,
        attachment_ref: str,
    ) -> None:
        """Remove one attachment from an entity. The file is kept."""
        await self._request(
            caller,
            "DELETE",
            f"{self._entity_path(entity_type, entity_ref)}/attachments/{attachment_ref}",
        )

    async def file_attachments(self, caller: Caller, file_ref: str) -> FileAttachmentList:
        """List the entities a file is attached to."""
        result = await self._request(
            caller, "GET", "/api/files/attachments", params={"ref": file_ref}
        )
        return FileAttachmentList.model_validate(result)

    async def delete_entity_attachments(
        self, caller: Caller, entity_type: EntityType, entity_ref: str
    ) -> int:
        """Remove every attachment of a deleted entity. Returns the number removed."""
        result = await self._request(
            caller, "DELETE", f"{self._entity_path(entity_type, entity_ref)}/attachments"
        )
        return result["removed"]

    async def attach(
        self,
        caller: Caller,
        entity_type: EntityType,
        entity_ref: str,
        local_path: str | Path,
        ttl_minutes: int,
        description: str | None = None,
        remote_path: str | None = None,
        tags: str | None = None,
        project_id: str | None = None,
    ) -> AttachmentPublic:
        """
        Upload a local file and link it to an entity.

        The two steps are not transactional. If the upload succeeds and the
        link fails, the file is neither deleted nor re-linked.

        Args:
            caller: Acting identity
            entity_type: Kind of entity
            entity_ref: Entity ID, short or full
            local_path: File to upload
            ttl_minutes: Expiry in minutes
            description: Stored on both the file and the attachment
            remote_path: Destination path (defaults to a fresh path under /attachments)
            tags: Comma-separated tags for the file
            project_id: Project ID for the file

        Returns:
            The new attachment

        Raises:
            FileReadError, TTLOutOfRangeError: Before anything is sent
            OrphanedFileError: The file was uploaded but could not be linked
        """
        local_path = Path(local_path)
        if remote_path is None:
            remote_path = attachment_path(entity_type, entity_ref, local_path.name)

        options = UploadOptions(
            expire=ttl_minutes,
            description=description,
            tags=tags,
            project_id=project_id,
        )
        file = await self.upload_file(caller, local_path, remote_path, options)

        try:
            linked = await self.link(
                caller, entity_type, entity_ref, file.id, description=description
            )
        except WorkspaceError as e:
            logger.warning(
                f"Uploaded {file.path} but could not link it",
                extra={"file_id": file.id, "entity_type": EntityType(entity_type).value},
            )
            raise OrphanedFileError(file.id, file.path, e) from e

        return linked.attachment
