import io
import os
import sys
import tempfile
import zipfile
from pathlib import Path

import pytest
import pytest_asyncio
import httpx
from fastapi.testclient import TestClient

# Add the project root to Python path
project_root = str(Path(__file__).parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

# Keep test runs from writing log files into the checkout
os.environ.setdefault("VIBESHARE_LOG_DIR", tempfile.mkdtemp(prefix="vibeshare-logs-"))

from shared.config import settings
from shared.auth import create_jwt

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)

TEST_USER = "user-alice"
OTHER_USER = "user-bob"


@pytest.fixture(autouse=True)
def setup_test_environment(tmp_path_factory, monkeypatch):
    """Point storage and metadata at a fresh temporary directory for each test"""
    env_root = tmp_path_factory.mktemp("env")
    storage_root = env_root / "uploads"
    data_dir = env_root / "data"
    storage_root.mkdir()
    data_dir.mkdir()
    monkeypatch.setattr(settings, "storage_root", storage_root)
    monkeypatch.setattr(settings, "data_dir", data_dir)
    monkeypatch.setattr(settings, "jwt_secret", "test-secret")
    yield


@pytest.fixture
def storage_root():
    return Path(settings.storage_root)


@pytest.fixture
def app():
    from backend.server import app as server_app
    return server_app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest_asyncio.fixture
async def async_client(app):
    """Create an async test client"""
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_jwt(TEST_USER)}"}


@pytest.fixture
def other_headers():
    return {"Authorization": f"Bearer {create_jwt(OTHER_USER)}"}


@pytest.fixture
def project(client, auth_headers):
    """A fresh public project owned by TEST_USER"""
    response = client.post(
        "/api/projects",
        json={"title": "Demo", "description": "A demo project", "framework": "vanilla", "tags": ["demo"]},
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()["project"]


def make_zip(entries, compression=zipfile.ZIP_DEFLATED) -> bytes:
    """Zip bytes from a {name: content} mapping; content may be str or bytes"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression) as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def zip_factory():
    return make_zip
