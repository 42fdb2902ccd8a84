"""
Pixdrop Backend — HTTP Endpoint Tests
======================================

What:  The HTTP contract: status codes, bodies and headers of
       GET/POST/DELETE /image, /health and the OpenAPI document.
How:   HTTPX AsyncClient over ASGITransport (see conftest.test_client).
"""

import base64
import errno
import io
import logging
from unittest.mock import patch
from uuid import uuid4

import pytest
from PIL import Image

from pixdrop.middleware.logging import mask_api_key

API_KEY = "test-secret"


async def _upload(client, payload):
    return await client.post(f"/image/{API_KEY}", json={"data": payload})


class TestUpload:
    @pytest.mark.asyncio
    async def test_upload_returns_id_dimensions_and_token(self, test_client, make_payload):
        response = await _upload(test_client, make_payload((2000, 1000)))

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"id", "width", "height", "delete_token"}
        assert (body["width"], body["height"]) == (1280, 720)
        assert body["id"] != body["delete_token"]

    @pytest.mark.asyncio
    async def test_wrong_key_is_401(self, test_client, make_payload, caplog):
        with caplog.at_level(logging.INFO, logger="pixdrop.main"):
            response = await test_client.post("/image/wrong", json={"data": make_payload()})

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"
        assert "unauthorized request from" in caplog.text

    @pytest.mark.asyncio
    async def test_bad_base64_is_400(self, test_client):
        response = await _upload(test_client, "%%% not base64 %%%")

        assert response.status_code == 400
        assert response.json()["error"] == "bad_request"

    @pytest.mark.asyncio
    async def test_non_image_is_400(self, test_client):
        response = await _upload(test_client, base64.b64encode(b"plain text").decode())

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_data_field_is_400(self, test_client):
        response = await test_client.post(f"/image/{API_KEY}", json={"image": "x"})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_storage_failure_logged_once_at_error(self, test_client, make_payload, caplog):
        payload = make_payload()

        with caplog.at_level(logging.DEBUG):
            with patch("aiofiles.open", side_effect=OSError(errno.ENOSPC, "No space left")):
                response = await _upload(test_client, payload)

        assert response.status_code == 500
        assert response.json()["error"] == "server_error"
        errors = [
            r for r in caplog.records
            if r.levelno >= logging.ERROR and r.name != "pixdrop.access"
        ]
        assert [r.name for r in errors] == ["pixdrop.main"]

    @pytest.mark.asyncio
    async def test_error_body_hides_context(self, test_client):
        response = await _upload(test_client, "%%%")

        assert set(response.json()) == {"error", "message", "request_id"}


class TestRetrieve:
    @pytest.mark.asyncio
    async def test_get_uploaded_image(self, test_client, make_payload):
        uploaded = (await _upload(test_client, make_payload((1000, 2000)))).json()

        response = await test_client.get(f"/image/{uploaded['id']}")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        with Image.open(io.BytesIO(response.content)) as image:
            assert image.format == "JPEG"
            assert image.size == (uploaded["width"], uploaded["height"])

    @pytest.mark.asyncio
    async def test_unknown_image_is_404(self, test_client):
        response = await test_client.get(f"/image/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_image_deleted_before_read_is_404(self, test_client, make_payload):
        uploaded = (await _upload(test_client, make_payload())).json()

        with patch("aiofiles.open", side_effect=FileNotFoundError(errno.ENOENT, "gone")):
            response = await test_client.get(f"/image/{uploaded['id']}")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_non_uuid_id_is_400(self, test_client):
        response = await test_client.get("/image/not-a-uuid")

        assert response.status_code == 400


class TestDelete:
    @pytest.mark.asyncio
    async def test_full_lifecycle(self, test_client, make_payload):
        uploaded = (await _upload(test_client, make_payload())).json()

        response = await test_client.delete(f"/image/{API_KEY}/{uploaded['delete_token']}")
        assert response.status_code == 200
        assert response.content == b""

        assert (await test_client.get(f"/image/{uploaded['id']}")).status_code == 404
        again = await test_client.delete(f"/image/{API_KEY}/{uploaded['delete_token']}")
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_wrong_key_is_401_and_keeps_image(self, test_client, make_payload):
        uploaded = (await _upload(test_client, make_payload())).json()

        response = await test_client.delete(f"/image/wrong/{uploaded['delete_token']}")

        assert response.status_code == 401
        assert (await test_client.get(f"/image/{uploaded['id']}")).status_code == 200

    @pytest.mark.asyncio
    async def test_non_uuid_token_is_400(self, test_client):
        response = await test_client.delete(f"/image/{API_KEY}/not-a-uuid")

        assert response.status_code == 400
        assert response.json()["error"] == "bad_request"

    @pytest.mark.asyncio
    async def test_unknown_token_is_404(self, test_client):
        response = await test_client.delete(f"/image/{API_KEY}/{uuid4()}")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_other_uploads_token_leaves_image_alone(self, test_client, make_payload):
        a = (await _upload(test_client, make_payload())).json()
        b = (await _upload(test_client, make_payload())).json()

        await test_client.delete(f"/image/{API_KEY}/{a['delete_token']}")

        assert (await test_client.get(f"/image/{b['id']}")).status_code == 200
        assert (await test_client.get(f"/image/{a['id']}")).status_code == 404


class TestAmbient:
    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["storage"] == "writable"

    @pytest.mark.asyncio
    async def test_health_unhealthy_without_directories(self, test_client, store):
        store.delete_token_dir.rmdir()

        response = await test_client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get(f"/image/{uuid4()}", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"
        assert response.json()["request_id"] == "abc123"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, test_client):
        response = await test_client.get("/health")

        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_openapi_document(self, test_client):
        response = await test_client.get("/api-doc/openapi.json")

        assert response.status_code == 200
        paths = response.json()["paths"]
        assert "/image/{id}" in paths
        assert "/image/{api_key}/{delete_token}" in paths


class TestMaskApiKey:
    def test_upload_path_masked(self):
        assert mask_api_key("POST", f"/image/{API_KEY}") == "/image/***"

    def test_delete_path_masked(self):
        token = str(uuid4())
        assert mask_api_key("DELETE", f"/image/{API_KEY}/{token}") == f"/image/***/{token}"

    def test_get_path_untouched(self):
        image_id = str(uuid4())
        assert mask_api_key("GET", f"/image/{image_id}") == f"/image/{image_id}"
        assert mask_api_key("GET", "/health") == "/health"
