"""
Integration tests for the HTTP surface.

Drives the FastAPI app in-process through httpx.ASGITransport against a real
database.
"""

from datetime import datetime
from uuid import UUID

import httpx
import pytest

from workspace_files.core.auth import Caller
from workspace_files.services.file_ingestion import UploadOptions, prepare_upload
from workspace_files.services.id_resolver import short_id

CALLER = Caller(agent_name="test-agent")


def upload_body(path: str = "/docs/readme.md", data: bytes = b"# Readme\n", **options) -> dict:
    filename = path.rsplit("/", 1)[-1]
    options.setdefault("expire", 60)
    payload = prepare_upload(data, filename, path, UploadOptions(**options), CALLER)
    return payload.model_dump(mode="json")


@pytest.mark.integration
class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


@pytest.mark.integration
class TestAuth:
    @pytest.mark.asyncio
    async def test_missing_agent_name(self, app):
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        ) as anonymous:
            response = await anonymous.get("/api/files")

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"


@pytest.mark.integration
class TestUpload:
    """Tests for POST /api/files."""

    @pytest.mark.asyncio
    async def test_upload_text_file(self, client):
        response = await client.post("/api/files", json=upload_body(tags="docs, readme"))

        assert response.status_code == 201
        body = response.json()
        assert body["path"] == "/docs/readme.md"
        assert body["size"] == 9
        assert body["base64_encoded"] is False
        assert body["tags"] == ["docs", "readme"]
        assert body["created_by"] == "test-agent"
        assert "content" not in body
        UUID(body["id"])

    @pytest.mark.asyncio
    async def test_upload_to_occupied_path(self, client):
        await client.post("/api/files", json=upload_body())
        response = await client.post("/api/files", json=upload_body())

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    @pytest.mark.asyncio
    async def test_upload_replaces_expired_file(self, client, make_file):
        await make_file("/docs/readme.md", minutes=-1)

        response = await client.post("/api/files", json=upload_body())
        assert response.status_code == 201

    @pytest.mark.asyncio
    @pytest.mark.parametrize("minutes", [0, 43201])
    async def test_upload_ttl_out_of_range(self, client, minutes):
        body = upload_body()
        body["expire_minutes"] = minutes

        response = await client.post("/api/files", json=body)

        assert response.status_code == 422
        assert response.json()["error"] == "out_of_range"

    @pytest.mark.asyncio
    async def test_upload_with_wrong_checksum(self, client):
        body = upload_body()
        body["checksum"] = "0" * 64

        response = await client.post("/api/files", json=body)

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_upload_accepts_upper_case_checksum(self, client):
        body = upload_body()
        expected = body["checksum"]
        body["checksum"] = expected.upper()

        response = await client.post("/api/files", json=body)

        assert response.status_code == 201
        assert response.json()["checksum"] == expected

    @pytest.mark.asyncio
    async def test_upload_cleans_list_tags(self, client):
        body = upload_body()
        body["tags"] = [" docs ", "", "  ", "readme"]

        response = await client.post("/api/files", json=body)

        assert response.status_code == 201
        assert response.json()["tags"] == ["docs", "readme"]

    @pytest.mark.asyncio
    async def test_upload_with_unknown_project(self, client):
        response = await client.post("/api/files", json=upload_body(project_id="0badc0de"))
        assert response.status_code == 404


@pytest.mark.integration
class TestReadFiles:
    """Tests for download, metadata and NotFound vs Gone."""

    @pytest.mark.asyncio
    async def test_download_binary(self, client):
        data = bytes(range(32))
        await client.post("/api/files", json=upload_body("/bin/blob.bin", data))

        response = await client.get("/api/files/by-path", params={"path": "/bin/blob.bin"})

        assert response.status_code == 200
        body = response.json()
        assert body["base64_encoded"] is True
        assert body["size"] == 32

    @pytest.mark.asyncio
    async def test_metadata_has_no_content(self, client):
        await client.post("/api/files", json=upload_body())
        response = await client.get("/api/files/metadata", params={"path": "/docs/readme.md"})

        assert response.status_code == 200
        assert "content" not in response.json()

    @pytest.mark.asyncio
    async def test_never_existed_is_not_found(self, client):
        response = await client.get("/api/files/by-path", params={"path": "/nothing.txt"})
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_expired_is_gone(self, client, make_file):
        await make_file("/stale.txt", minutes=-10)

        response = await client.get("/api/files/by-path", params={"path": "/stale.txt"})

        assert response.status_code == 410
        body = response.json()
        assert body["error"] == "gone"
        assert body["details"]["path"] == "/stale.txt"


@pytest.mark.integration
class TestListFiles:
    """Tests for GET /api/files filters."""

    @pytest.mark.asyncio
    async def test_filters(self, client, make_file, project):
        await make_file("/reports/a.txt", tags=["daily"], created_by="alpha")
        await make_file("/reports/b.txt", tags=["weekly"], created_by="beta", project_id=project.id)
        await make_file("/notes/c.txt", tags=["daily", "weekly"], created_by="alpha")
        await make_file("/reports/expired.txt", minutes=-1, tags=["daily"])

        async def paths(**params) -> set[str]:
            response = await client.get("/api/files", params=params)
            assert response.status_code == 200
            body = response.json()
            assert body["count"] == len(body["files"])
            return {f["path"] for f in body["files"]}

        assert await paths() == {"/reports/a.txt", "/reports/b.txt", "/notes/c.txt"}
        assert await paths(path="/reports/") == {"/reports/a.txt", "/reports/b.txt"}
        assert await paths(tags="daily") == {"/reports/a.txt", "/notes/c.txt"}
        assert await paths(tags="weekly,nope") == {"/reports/b.txt", "/notes/c.txt"}
        assert await paths(created_by="beta") == {"/reports/b.txt"}
        assert await paths(project_id=short_id(project.id)) == {"/reports/b.txt"}

    @pytest.mark.asyncio
    async def test_pagination(self, client, make_file):
        for n in range(5):
            await make_file(f"/page/{n}.txt")

        response = await client.get("/api/files", params={"limit": 2, "offset": 1})

        body = response.json()
        assert body["count"] == 5
        assert len(body["files"]) == 2


@pytest.mark.integration
class TestUpdateAndDelete:
    @pytest.mark.asyncio
    async def test_refresh_ttl_and_metadata(self, client):
        created = (await client.post("/api/files", json=upload_body(expire=5))).json()

        response = await client.patch(
            "/api/files",
            params={"path": "/docs/readme.md"},
            json={"expire_minutes": 120, "description": "Updated", "tags": ["x", " y "]},
        )

        assert response.status_code == 200
        body = response.json()
        assert datetime.fromisoformat(body["expire_at"]) > datetime.fromisoformat(created["expire_at"])
        assert body["description"] == "Updated"
        assert body["tags"] == ["x", "y"]
        assert body["updated_by"] == "test-agent"

    @pytest.mark.asyncio
    async def test_refresh_out_of_range(self, client):
        await client.post("/api/files", json=upload_body())
        response = await client.patch(
            "/api/files", params={"path": "/docs/readme.md"}, json={"expire_minutes": 0}
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_delete_cascades_to_attachments(self, client, bug):
        file = (await client.post("/api/files", json=upload_body())).json()
        link = await client.post(
            f"/api/entities/bug/{bug.id}/attachments", json={"file_ref": file["id"]}
        )
        assert link.status_code == 201

        response = await client.delete("/api/files", params={"path": "/docs/readme.md"})

        assert response.status_code == 200
        assert response.json()["id"] == file["id"]
        listed = await client.get(f"/api/entities/bug/{bug.id}/attachments")
        assert listed.json() == {"items": [], "total": 0}
        missing = await client.get("/api/files/by-path", params={"path": "/docs/readme.md"})
        assert missing.status_code == 404


@pytest.mark.integration
class TestAttachmentRoutes:
    """Tests for the entity attachment endpoints."""

    @pytest.mark.asyncio
    async def test_link_status_codes(self, client, bug):
        await client.post("/api/files", json=upload_body())
        url = f"/api/entities/bug/{short_id(bug.id)}/attachments"

        first = await client.post(url, json={"file_ref": "/docs/readme.md"})
        second = await client.post(url, json={"file_ref": "/docs/readme.md"})

        assert first.status_code == 201
        assert first.json()["created"] is True
        assert second.status_code == 200
        assert second.json()["created"] is False
        assert first.json()["attachment"]["id"] == second.json()["attachment"]["id"]

    @pytest.mark.asyncio
    async def test_unknown_entity_type(self, client, bug):
        response = await client.get(f"/api/entities/document/{bug.id}/attachments")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unlink_route(self, client, bug):
        file = (await client.post("/api/files", json=upload_body())).json()
        url = f"/api/entities/bug/{bug.id}/attachments"
        attachment = (await client.post(url, json={"file_ref": file["id"]})).json()["attachment"]

        first = await client.delete(f"{url}/{attachment['id']}")
        second = await client.delete(f"{url}/{attachment['id']}")

        assert first.status_code == 204
        assert second.status_code == 404
        reverse = await client.get("/api/files/attachments", params={"ref": file["id"]})
        assert reverse.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_remove_entity_attachments(self, client, bug):
        await client.post("/api/files", json=upload_body())
        url = f"/api/entities/bug/{bug.id}/attachments"
        await client.post(url, json={"file_ref": "/docs/readme.md"})

        response = await client.delete(url)

        assert response.status_code == 200
        assert response.json() == {"removed": 1}

    @pytest.mark.asyncio
    async def test_resolve_entity(self, client, bug):
        response = await client.get(f"/api/entities/bug/{short_id(bug.id)}/resolve")
        assert response.json()["id"] == str(bug.id)


@pytest.mark.integration
class TestResolve:
    """Tests for short file ID resolution."""

    @pytest.mark.asyncio
    async def test_ambiguous_prefix(self, client, make_file):
        await make_file("/one.txt", id=UUID("a1b2c3d4-0000-4000-8000-000000000001"))
        await make_file("/two.txt", id=UUID("a1b2c3d4-0000-4000-8000-000000000002"))

        response = await client.get("/api/files/resolve", params={"ref": "a1b2c3d4"})

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "ambiguous"
        assert body["details"]["candidates"] == [
            "a1b2c3d4-0000-4000-8000-000000000001",
            "a1b2c3d4-0000-4000-8000-000000000002",
        ]

    @pytest.mark.asyncio
    async def test_unique_prefix(self, client, make_file):
        await make_file("/one.txt", id=UUID("a1b2c3d4-0000-4000-8000-000000000001"))
        await make_file("/two.txt", id=UUID("ffee0011-2233-4455-8667-778899aabbcc"))

        response = await client.get("/api/files/resolve", params={"ref": "ffee0011"})

        assert response.status_code == 200
        assert response.json() == {
            "candidate": "ffee0011",
            "id": "ffee0011-2233-4455-8667-778899aabbcc",
        }

    @pytest.mark.asyncio
    async def test_unknown_prefix(self, client):
        response = await client.get("/api/files/resolve", params={"ref": "deadbeef"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_resolve_by_path(self, client, make_file):
        file = await make_file("/docs/guide.md")

        response = await client.get("/api/files/resolve", params={"ref": "/docs/guide.md"})

        assert response.status_code == 200
        assert response.json() == {"candidate": "/docs/guide.md", "id": str(file.id)}

    @pytest.mark.asyncio
    async def test_resolve_expired_path_is_gone(self, client, make_file):
        await make_file("/docs/old.md", minutes=-1)

        response = await client.get("/api/files/resolve", params={"ref": "/docs/old.md"})

        assert response.status_code == 410
        assert response.json()["error"] == "gone"

    @pytest.mark.asyncio
    async def test_resolve_unknown_path(self, client):
        response = await client.get("/api/files/resolve", params={"ref": "/docs/none.md"})

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
