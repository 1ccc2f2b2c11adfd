"""
Pytest configuration and shared fixtures for kandjitool tests.

This module provides reusable fixtures and test utilities used across
the test suite.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import yaml

from kandjitool.api import KandjiTransport
from kandjitool.config import KandjiConfig
from kandjitool.logging import SilentLogger, set_global_logger

BASE_URL = "https://acme.api.kandji.io"
API_TOKEN = "test-token"
STORAGE_URL = "https://s3.example.com/kandji-uploads"


@pytest.fixture(autouse=True)
def _reset_global_logger():
    """Keep the global logger silent between tests (the CLI replaces it)."""
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def kandji_config() -> KandjiConfig:
    """Provide connection settings pointing at a fake tenant."""
    return KandjiConfig(base_url=BASE_URL, api_token=API_TOKEN)


@pytest.fixture
def transport(kandji_config: KandjiConfig) -> KandjiTransport:
    """Provide a transport against the fake tenant."""
    return KandjiTransport(kandji_config)


@pytest.fixture
def sample_app_record() -> dict[str, Any]:
    """Provide a custom app record as returned by the Kandji API."""
    return {
        "id": "app-123",
        "name": "My App",
        "version": "1.2.0",
        "description": "Internal tooling",
        "platform": "Mac",
        "created": "2024-01-01T00:00:00Z",
        "modified": "2024-02-01T00:00:00Z",
        "file_key": "old-key",
    }


@pytest.fixture
def signed_target_response() -> dict[str, Any]:
    """Provide a signed upload target response."""
    return {
        "post_url": STORAGE_URL,
        "file_key": "companies/acme/library/custom_apps/build.zip",
        "post_data": {
            "key": "companies/acme/library/custom_apps/build.zip",
            "policy": "p",
            "x-amz-signature": "sig",
        },
    }


@pytest.fixture
def build_file(tmp_test_dir: Path) -> Path:
    """Provide a small build artifact on disk."""
    path = tmp_test_dir / "build.zip"
    path.write_bytes(b"PK\x03\x04 fake archive")
    return path


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    """
    Replace time.sleep in the upload workflow and record the delays.

    Usage:
        def test_x(sleeps):
            ...
            assert sleeps == [5.0]
    """
    recorded: list[float] = []
    monkeypatch.setattr("kandjitool.io.upload.time.sleep", recorded.append)
    return recorded


@pytest.fixture
def create_config_file(tmp_test_dir: Path):
    """
    Factory fixture for creating JSON or YAML config files.

    Usage:
        path = create_config_file("kandji.json", {"uri": "...", "token": "..."})
    """

    def _create(filename: str, data: Any) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            if path.suffix == ".json":
                json.dump(data, f)
            else:
                yaml.dump(data, f)
        return path

    return _create


class RecordingLogger:
    """Logger that keeps warning and error messages for assertions."""

    def __init__(self) -> None:
        self.debug_messages: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []

    def step(self, step: int, total: int, message: str) -> None:
        pass

    def verbose(self, prefix: str, message: str) -> None:
        pass

    def debug(self, prefix: str, message: str) -> None:
        self.debug_messages.append(message)

    def warning(self, message: str) -> None:
        self.warnings.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


@pytest.fixture
def recording_logger() -> RecordingLogger:
    """Provide a logger that records warnings and errors."""
    return RecordingLogger()
