"""
Pixdrop Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own data directory under tmp_path; nothing touches
       ./data. Images are generated with Pillow in memory.

Fixture Hierarchy (all function-scoped):
    ├── data_root:     empty tmp directory used as DATA_ROOT
    ├── store:         ImageStore on data_root with directories created
    ├── normalizer:    ImageNormalizer with the default HD bounds
    ├── authorizer:    ApiKeyAuthorizer for API_KEY
    ├── service:       ImageService composed from the three above
    ├── make_image:    factory for encoded image bytes
    ├── make_payload:  factory for base64 upload payloads
    └── test_client:   HTTPX AsyncClient on the app, ImageService overridden
"""

import base64
import io
import os
import tempfile
from typing import Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

# Override settings for testing BEFORE any app imports
os.environ["BACKEND_API_KEY"] = "test-secret"
os.environ["DATA_ROOT"] = tempfile.mkdtemp(prefix="pixdrop_test_")
os.environ["LOG_LEVEL"] = "WARNING"

from pixdrop.services.authorizer import ApiKeyAuthorizer  # noqa: E402
from pixdrop.services.image_service import ImageService  # noqa: E402
from pixdrop.services.normalizer import ImageNormalizer  # noqa: E402
from pixdrop.services.storage import ImageStore  # noqa: E402

API_KEY = "test-secret"


def encode_image(
    size=(64, 48),
    mode: str = "RGB",
    fmt: str = "PNG",
    color=None,
) -> bytes:
    """Encode a solid-color image of the given size, mode and format."""
    if color is None:
        color = {"RGB": (200, 30, 30), "RGBA": (200, 30, 30, 128), "L": 128, "LA": (128, 64)}.get(mode, 0)
    image = Image.new(mode, size, color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def data_root(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def store(data_root):
    image_store = ImageStore(data_root)
    image_store.ensure_directories()
    return image_store


@pytest.fixture
def normalizer():
    return ImageNormalizer()


@pytest.fixture
def authorizer():
    return ApiKeyAuthorizer(API_KEY)


@pytest.fixture
def service(store, authorizer, normalizer):
    return ImageService(store=store, authorizer=authorizer, normalizer=normalizer)


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    return encode_image


@pytest.fixture
def make_payload() -> Callable[..., str]:
    def _payload(size=(64, 48), mode="RGB", fmt="PNG") -> str:
        return base64.b64encode(encode_image(size, mode, fmt)).decode("ascii")

    return _payload


@pytest_asyncio.fixture
async def test_client(service):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    The lifespan is not run; the ImageService dependency is replaced by the
    tmp_path-backed `service` fixture.
    """
    from pixdrop.dependencies import get_image_service
    from pixdrop.main import app

    app.dependency_overrides[get_image_service] = lambda: service
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
