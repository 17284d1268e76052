"""Shared fixtures: an app whose storage lives in tmp_path, with the sweeper off."""
import io

import pytest

from app import create_app
from store import EXTENSION_KEY, SessionStore


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "STORAGE_ROOT": tmp_path / "sessions",
        "STAGING_DIR": tmp_path / "staging",
        "SESSION_TTL": 60,
        "MAX_FILE_SIZE": 4096,
        "START_SWEEPER": False,
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app) -> SessionStore:
    return app.extensions[EXTENSION_KEY]


@pytest.fixture
def bare_store(tmp_path) -> SessionStore:
    """A store without an app, for direct unit tests."""
    root = tmp_path / "root"
    staging = tmp_path / "stage"
    root.mkdir()
    staging.mkdir()
    return SessionStore(root, staging, ttl=60, max_file_size=4096)


def multipart(*files):
    """Build a Flask test-client form body from (name, bytes) pairs."""
    return {"files": [(io.BytesIO(data), name) for name, data in files]}
