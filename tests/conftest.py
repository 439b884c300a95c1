"""
Betteh Music CMS - Pytest Configuration & Shared Fixtures

Provides reusable fixtures for:
- A JSON store and uploads directory inside a per-test temp directory
- A FastAPI TestClient running the full app lifespan
- A client already logged in as the bootstrap admin
- Small image payloads for upload tests
"""

import os

# Cheap bcrypt rounds for the test run; must be set before the package loads
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from betteh_cms.config import ALLOWED_IMAGE_EXTENSIONS
from betteh_cms.main import create_app
from betteh_cms.store import JsonStore
from betteh_cms.uploads import UploadManager

ADMIN_USER = "betteh"
ADMIN_PASS = "Secret1"

# Smallest valid-looking PNG header plus padding; content is never decoded
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


# ---------------------------------------------------------------------------
# Storage fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    """Path of the JSON document (not created yet)."""
    return tmp_path / "db.json"


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def store(data_file: Path) -> JsonStore:
    return JsonStore(data_file)


@pytest.fixture
def uploads(upload_dir: Path) -> UploadManager:
    return UploadManager(upload_dir, ALLOWED_IMAGE_EXTENSIONS, 1024 * 1024)


# ---------------------------------------------------------------------------
# Application fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app(store: JsonStore, uploads: UploadManager, monkeypatch):
    """App seeded with the bootstrap admin betteh / Secret1 on startup."""
    monkeypatch.setattr("betteh_cms.main.ADMIN_USERNAME", ADMIN_USER)
    monkeypatch.setattr("betteh_cms.main.ADMIN_PASSWORD", ADMIN_PASS)
    return create_app(store=store, uploads=uploads)


@pytest.fixture
def client(app) -> Iterator[TestClient]:
    """Anonymous client; the context manager runs the app lifespan."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_client(client: TestClient) -> TestClient:
    """Client holding a valid session for the bootstrap admin."""
    response = client.post(
        "/login",
        data={"username": ADMIN_USER, "password": ADMIN_PASS},
        follow_redirects=False,
    )
    assert response.status_code == 302
    return client


@pytest.fixture
def empty_app(store: JsonStore, uploads: UploadManager, monkeypatch):
    """App with no bootstrap credentials and therefore no admins."""
    monkeypatch.setattr("betteh_cms.main.ADMIN_USERNAME", "")
    monkeypatch.setattr("betteh_cms.main.ADMIN_PASSWORD", "")
    return create_app(store=store, uploads=uploads)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def png_file(name: str = "photo.png", data: bytes = PNG_BYTES) -> tuple:
    """A multipart file tuple for TestClient ``files=``."""
    return (name, data, "image/png")


def stored_files(directory: Path) -> list[str]:
    """Names of the files currently in the uploads directory."""
    if not directory.exists():
        return []
    return sorted(p.name for p in directory.iterdir() if p.is_file())
