"""
Volunteer API — File Service Tests
===================================

What:  Tests for FileService validation and storage, and the upload routes
       that use it.
Why:   Upload handling is the only place user input becomes a path on disk.
How:   Unit tests write into pytest's tmp_path; route tests go through the
       full app and read the file back from the static mount.

Test Strategy:
    ✅ Allow-listed extensions, case-insensitive
    ✅ Rejected extensions and empty / oversized files → DataValidationError
    ✅ Stored under YYYY/MM/DD with a UUID name (no user input in the path)
    ✅ Upload → 201, then served at /uploadsfile/<path>
    ✅ Upload without a token → 401
"""

import re

import pytest

from volunteer_api.exceptions import DataValidationError
from volunteer_api.services.file_service import DOCUMENT_EXTENSIONS, IMAGE_EXTENSIONS, FileService

STORED_PATH = re.compile(r"^\d{4}/\d{2}/\d{2}/[0-9a-f-]{36}\.\w+$")


class TestFileValidation:
    def setup_method(self):
        self.service = FileService("unused", IMAGE_EXTENSIONS, max_size=1024)

    def test_allowed_extensions(self):
        assert self.service.validate_extension("photo.jpg") == ".jpg"
        assert self.service.validate_extension("photo.PNG") == ".png"

    def test_rejected_extension(self):
        with pytest.raises(DataValidationError) as excinfo:
            self.service.validate_extension("setup.exe")
        assert excinfo.value.errors[0].startswith("file: type '.exe' is not allowed")

    def test_missing_extension(self):
        with pytest.raises(DataValidationError):
            self.service.validate_extension("README")

    def test_documents_accept_pdf(self):
        documents = FileService("unused", DOCUMENT_EXTENSIONS, max_size=1024)
        assert documents.validate_extension("plan.pdf") == ".pdf"

    def test_empty_file(self):
        with pytest.raises(DataValidationError) as excinfo:
            self.service.validate_size(0)
        assert "empty" in excinfo.value.errors[0]

    def test_size_boundary(self):
        self.service.validate_size(1024)
        with pytest.raises(DataValidationError):
            self.service.validate_size(1025)


class TestFileStorage:
    @pytest.mark.asyncio
    async def test_store_uses_dated_uuid_path(self, tmp_path):
        service = FileService(tmp_path, IMAGE_EXTENSIONS, max_size=1024)
        relative = await service.validate_and_store("../../etc/passwd.png", b"\x89PNG data")
        assert STORED_PATH.match(relative)
        assert (tmp_path / relative).read_bytes() == b"\x89PNG data"

    @pytest.mark.asyncio
    async def test_invalid_file_is_not_written(self, tmp_path):
        service = FileService(tmp_path, IMAGE_EXTENSIONS, max_size=1024)
        with pytest.raises(DataValidationError):
            await service.validate_and_store("big.png", b"x" * 2048)
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_cleanup_removes_file(self, tmp_path):
        service = FileService(tmp_path, IMAGE_EXTENSIONS, max_size=1024)
        relative = await service.validate_and_store("a.png", b"data")
        await service.cleanup_file(relative)
        assert not (tmp_path / relative).exists()
        # Second cleanup is a no-op
        await service.cleanup_file(relative)


class TestUploadRoutes:
    @pytest.mark.asyncio
    async def test_upload_then_download(self, make_user, client):
        user, headers = await make_user()
        response = await client.post(
            "/api/files",
            files={"file": ("plan.pdf", b"%PDF-1.4 plan", "application/pdf")},
            headers=headers,
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["original_name"] == "plan.pdf"
        assert data["uploaded_by"] == user.id
        assert data["url"] == f"/uploadsfile/{data['stored_path']}"

        download = await client.get(data["url"])
        assert download.status_code == 200
        assert download.content == b"%PDF-1.4 plan"

        listing = await client.get("/api/files", params={"uploaded_by": user.id}, headers=headers)
        assert [f["id"] for f in listing.json()["data"]] == [data["id"]]

    @pytest.mark.asyncio
    async def test_disallowed_type(self, make_user, client):
        _, headers = await make_user()
        response = await client.post(
            "/api/files", files={"file": ("run.exe", b"MZ", "application/octet-stream")}, headers=headers
        )
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["errors"][0].startswith("file:")

    @pytest.mark.asyncio
    async def test_upload_requires_token(self, database, client):
        response = await client.post("/api/files", files={"file": ("plan.pdf", b"%PDF", "application/pdf")})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_static_file_is_json_404(self, client):
        response = await client.get("/uploadsfile/2020/01/01/missing.pdf")
        assert response.status_code == 404
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_profile_image_upload(self, make_user, client):
        _, headers = await make_user()
        response = await client.post(
            "/api/profile/image", files={"image": ("me.png", b"\x89PNG", "image/png")}, headers=headers
        )
        assert response.status_code == 200
        stored = response.json()["data"]["profile_image"]
        assert STORED_PATH.match(stored)

        served = await client.get(f"/uploads/{stored}")
        assert served.content == b"\x89PNG"
