"""Shared pytest fixtures for all tests."""

import pytest
from fastapi.testclient import TestClient

from fileshare.config import ServerSettings
from fileshare.file_store import FileStore
from fileshare.main import create_app
from fileshare.notifier import ChangeNotifier


@pytest.fixture
def share_dir(tmp_path):
    """
    Empty shared directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to the directory (created)
    """
    path = tmp_path / 'uploads'
    path.mkdir()
    return path


@pytest.fixture
def notifier():
    return ChangeNotifier(buffer_size=16)


@pytest.fixture
def store(share_dir, notifier):
    """
    FileStore over the temporary shared directory.

    Returns:
        FileStore with directories prepared
    """
    file_store = FileStore(share_dir, notifier=notifier, max_upload_bytes=1024, max_files_per_upload=5)
    file_store.ensure_directories()
    return file_store


@pytest.fixture
def settings(share_dir):
    """Server settings with discovery off and small limits."""
    return ServerSettings(
        upload_dir=share_dir,
        host='127.0.0.1',
        port=3000,
        max_upload_bytes=1024,
        max_files_per_upload=3,
        discovery_enabled=False,
        subscriber_buffer=16,
        service_name='Test Share',
    )


@pytest.fixture
def client(settings):
    """
    FastAPI test client with startup and shutdown events run.
    """
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file for testing uploads.

    Returns:
        Path to sample text file
    """
    file_path = tmp_path / 'test.txt'
    file_path.write_text('Sample content for testing')
    return file_path
