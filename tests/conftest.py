"""Shared pytest fixtures for md2gdocs tests."""

import base64
import struct
from unittest.mock import MagicMock

import pytest

from core.config import reload_config


def make_png(width: int, height: int) -> bytes:
    """Build a minimal PNG (signature, IHDR, IEND) for the given size. CRCs are not checked."""
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    crc = b"\x00\x00\x00\x00"
    return (
        b"\x89PNG\r\n\x1a\n"
        + struct.pack(">I", len(ihdr))
        + b"IHDR"
        + ihdr
        + crc
        + struct.pack(">I", 0)
        + b"IEND"
        + crc
    )


def data_uri(payload: bytes, fmt: str = "png") -> str:
    return f"data:image/{fmt};base64,{base64.b64encode(payload).decode('ascii')}"


@pytest.fixture
def png_800x600():
    return make_png(800, 600)


@pytest.fixture
def png_factory():
    return make_png


@pytest.fixture
def to_data_uri():
    return data_uri


@pytest.fixture
def mock_docs_service():
    """Create a mock Google Docs service."""
    service = MagicMock()
    service.documents.return_value.create.return_value.execute.return_value = {"documentId": "doc123"}
    service.documents.return_value.batchUpdate.return_value.execute.return_value = {"replies": []}
    return service


@pytest.fixture
def mock_drive_service():
    """Create a mock Google Drive service."""
    service = MagicMock()
    service.files.return_value.create.return_value.execute.side_effect = [
        {"id": "gdoc1", "name": "Report", "webViewLink": "https://docs.google.com/document/d/gdoc1/edit"},
        {"id": "docx1", "name": "Report.docx", "webViewLink": "https://drive.google.com/file/d/docx1/view"},
    ]
    return service


@pytest.fixture
def env_override(monkeypatch):
    """Helper to override environment variables and re-read the configuration."""

    def _override(**kwargs):
        for key, value in kwargs.items():
            if value is None:
                monkeypatch.delenv(key, raising=False)
            else:
                monkeypatch.setenv(key, value)
        return reload_config()

    yield _override
    monkeypatch.undo()
    reload_config()
