"""
Unit tests for the Workspace Files API client.

Uses httpx.MockTransport in place of the server.
"""

import json
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import httpx
import pytest

from workspace_files.client import WorkspaceClient
from workspace_files.core.auth import Caller
from workspace_files.core.exceptions import (
    AmbiguousIdError,
    ConflictError,
    FileReadError,
    GoneError,
    NotFoundError,
    OrphanedFileError,
    TransportError,
    TTLOutOfRangeError,
)
from workspace_files.models.enums import EntityType
from workspace_files.services.file_ingestion import UploadOptions, digest

CALLER = Caller(agent_name="client-agent", api_key="secret")


def error_body(error: str, message: str, details: dict | None = None) -> dict:
    return {"error": error, "message": message, "details": details}


def file_body(path: str = "/t.txt", content: str = "hello", **overrides) -> dict:
    raw = content.encode()
    checksum, size = digest(raw)
    now = datetime.now(UTC)
    body = {
        "id": str(uuid4()),
        "path": path,
        "filename": path.rsplit("/", 1)[-1],
        "size": size,
        "content_type": "text/plain",
        "checksum": checksum,
        "base64_encoded": False,
        "tags": [],
        "description": None,
        "project_id": None,
        "is_public": False,
        "created_by": "client-agent",
        "updated_by": None,
        "created_at": now.isoformat(),
        "updated_at": now.isoformat(),
        "expire_at": (now + timedelta(hours=1)).isoformat(),
        "content": content,
    }
    body.update(overrides)
    return body


def make_client(handler) -> WorkspaceClient:
    return WorkspaceClient("http://workspace.test", transport=httpx.MockTransport(handler))


@pytest.mark.unit
class TestErrorMapping:
    """Error bodies come back as the exceptions the server raised."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,error,exc_type",
        [
            (404, "not_found", NotFoundError),
            (410, "gone", GoneError),
            (409, "conflict", ConflictError),
        ],
    )
    async def test_domain_errors(self, status, error, exc_type):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json=error_body(error, "nope", {"path": "/t.txt"}))

        async with make_client(handler) as client:
            with pytest.raises(exc_type) as exc_info:
                await client.get_metadata(CALLER, "/t.txt")

        assert exc_info.value.message == "nope"
        assert exc_info.value.details == {"path": "/t.txt"}

    @pytest.mark.asyncio
    async def test_not_found_and_gone_stay_distinct(self):
        responses = iter(
            [
                httpx.Response(404, json=error_body("not_found", "missing")),
                httpx.Response(410, json=error_body("gone", "expired")),
            ]
        )

        async with make_client(lambda request: next(responses)) as client:
            with pytest.raises(NotFoundError):
                await client.download_file(CALLER, "/never.txt")
            with pytest.raises(GoneError):
                await client.download_file(CALLER, "/old.txt")

    @pytest.mark.asyncio
    async def test_ambiguous_carries_candidates(self):
        candidates = ["a1b2c3d4-0000-4000-8000-000000000001", "a1b2c3d4-0000-4000-8000-000000000002"]

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                409,
                json=error_body(
                    "ambiguous", "2 matches", {"candidate": "a1b2c3d4", "candidates": candidates}
                ),
            )

        async with make_client(handler) as client:
            with pytest.raises(AmbiguousIdError) as exc_info:
                await client.resolve(CALLER, "a1b2c3d4")

        assert exc_info.value.candidate == "a1b2c3d4"
        assert exc_info.value.matches == candidates

    @pytest.mark.asyncio
    async def test_out_of_range(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                422, json=error_body("out_of_range", "bad", {"minutes": 0, "min": 1, "max": 43200})
            )

        async with make_client(handler) as client:
            with pytest.raises(TTLOutOfRangeError) as exc_info:
                await client.get_metadata(CALLER, "/t.txt")
        assert exc_info.value.minutes == 0

    @pytest.mark.asyncio
    async def test_unknown_body_is_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        async with make_client(handler) as client:
            with pytest.raises(TransportError) as exc_info:
                await client.get_metadata(CALLER, "/t.txt")
        assert exc_info.value.http_status == 502

    @pytest.mark.asyncio
    async def test_network_failure_is_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(TransportError):
                await client.get_metadata(CALLER, "/t.txt")


@pytest.mark.unit
class TestRequests:
    """Requests carry the caller and the documented parameters."""

    @pytest.mark.asyncio
    async def test_caller_headers_are_sent(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=file_body())

        async with make_client(handler) as client:
            await client.get_metadata(CALLER, "/t.txt")

        assert seen[0].headers["X-Agent-Name"] == "client-agent"
        assert seen[0].headers["X-Api-Key"] == "secret"
        assert seen[0].url.params["path"] == "/t.txt"

    @pytest.mark.asyncio
    async def test_list_files_drops_unset_filters(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"files": [], "count": 0})

        async with make_client(handler) as client:
            result = await client.list_files(CALLER, tags=["a", "b"], limit=10)

        assert result.count == 0
        assert dict(seen[0].url.params) == {"tags": "a,b", "limit": "10"}

    @pytest.mark.asyncio
    async def test_resolve_sends_path_as_query_parameter(self):
        seen: list[httpx.Request] = []
        file_id = str(uuid4())

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"candidate": "/docs/t.txt", "id": file_id})

        async with make_client(handler) as client:
            assert await client.resolve(CALLER, "/docs/t.txt") == file_id

        assert seen[0].url.path == "/api/files/resolve"
        assert seen[0].url.params["ref"] == "/docs/t.txt"

    @pytest.mark.asyncio
    async def test_update_rejects_bad_ttl_locally(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async with make_client(handler) as client:
            with pytest.raises(TTLOutOfRangeError):
                await client.update_file(CALLER, "/t.txt", expire_minutes=43201)

    @pytest.mark.asyncio
    async def test_upload_with_bad_ttl_sends_nothing(self, tmp_path):
        source = tmp_path / "t.txt"
        source.write_text("hello")

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async with make_client(handler) as client:
            with pytest.raises(TTLOutOfRangeError):
                await client.upload_file(CALLER, source, "/t.txt", UploadOptions(expire=0))


@pytest.mark.unit
class TestDownload:
    @pytest.mark.asyncio
    async def test_download_writes_decoded_bytes(self, tmp_path):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=file_body(content="hello world"))

        target = tmp_path / "out.txt"
        async with make_client(handler) as client:
            downloaded = await client.download_file(CALLER, "/t.txt", output=target)

        assert downloaded.data == b"hello world"
        assert downloaded.written_to == target
        assert target.read_bytes() == b"hello world"

    @pytest.mark.asyncio
    async def test_checksum_mismatch(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=file_body(content="hello", checksum="0" * 64))

        async with make_client(handler) as client:
            with pytest.raises(TransportError, match="checksum"):
                await client.download_file(CALLER, "/t.txt")


@pytest.mark.unit
class TestAttach:
    """attach uploads then links; a failed link surfaces the orphaned file."""

    @pytest.mark.asyncio
    async def test_link_failure_names_orphaned_file(self, tmp_path):
        source = tmp_path / "log.txt"
        source.write_text("boom")
        uploaded = file_body(path="/attachments/log.txt", content="boom")
        requests: list[tuple[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append((request.method, request.url.path))
            if request.url.path == "/api/files":
                return httpx.Response(201, json=uploaded)
            return httpx.Response(404, json=error_body("not_found", "bug missing"))

        async with make_client(handler) as client:
            with pytest.raises(OrphanedFileError) as exc_info:
                await client.attach(
                    CALLER,
                    EntityType.BUG,
                    "deadbeef",
                    source,
                    ttl_minutes=60,
                    remote_path="/attachments/log.txt",
                )

        error = exc_info.value
        assert error.file_id == uploaded["id"]
        assert error.path == "/attachments/log.txt"
        assert isinstance(error.__cause__, NotFoundError)
        # One upload, one link attempt, no retry or cleanup
        assert requests == [
            ("POST", "/api/files"),
            ("POST", "/api/entities/bug/deadbeef/attachments"),
        ]

    @pytest.mark.asyncio
    async def test_local_failure_is_not_orphaned(self, tmp_path):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async with make_client(handler) as client:
            with pytest.raises(FileReadError):
                await client.attach(
                    CALLER, EntityType.BUG, "deadbeef", tmp_path / "missing.txt", ttl_minutes=60
                )

    @pytest.mark.asyncio
    async def test_attach_links_uploaded_file(self, tmp_path):
        source = tmp_path / "notes.md"
        source.write_text("# notes")
        uploaded = file_body(path="/n.md", content="# notes")
        link_payloads: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/files":
                return httpx.Response(201, json=uploaded)
            link_payloads.append(json.loads(request.content))
            return httpx.Response(
                201,
                json={
                    "attachment": {
                        "id": str(uuid4()),
                        "file_id": uploaded["id"],
                        "entity_type": "feature",
                        "entity_id": str(uuid4()),
                        "description": "design notes",
                        "created_by": "client-agent",
                        "created_at": uploaded["created_at"],
                        "file": uploaded,
                    },
                    "created": True,
                },
            )

        async with make_client(handler) as client:
            attachment = await client.attach(
                CALLER, EntityType.FEATURE, "cafe", source, ttl_minutes=5, description="design notes"
            )

        assert attachment.file_id == uploaded["id"]
        assert link_payloads == [{"file_ref": uploaded["id"], "description": "design notes"}]
