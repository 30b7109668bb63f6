"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
APP_ENV is set before any sealbox import so the testing .env file is used.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

from pathlib import Path
from typing import Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from sealbox.core.app_factory import create_app
from sealbox.core.config import AppSettings, LogSettings, Settings, StorageSettings
from sealbox.utils.pgp_validators import MESSAGE_BEGIN_MARKER, MESSAGE_END_MARKER

PUBLIC_KEY_TEXT = (
    "-----BEGIN PGP PUBLIC KEY BLOCK-----\n"
    "\n"
    "mDMEZkc2XhYJKwYBBAHaRw8BAQdAtestkeymaterialonlyforthetestsuite\n"
    "=abcd\n"
    "-----END PGP PUBLIC KEY BLOCK-----\n"
)


def make_envelope(content: str = "A" * 60) -> str:
    """Build an armored message around ``content``."""
    return f"{MESSAGE_BEGIN_MARKER}\n{content}\n{MESSAGE_END_MARKER}"


def build_settings(root: Path, **app_overrides) -> Settings:
    return Settings(
        app=AppSettings(**app_overrides),
        storage=StorageSettings(root_dir=root),
        log=LogSettings(),
    )


@pytest.fixture
def valid_envelope() -> str:
    return make_envelope()


@pytest.fixture
def make_app(tmp_path: Path) -> Callable[..., FastAPI]:
    """Factory building an isolated app rooted at ``tmp_path``."""

    def _make(**app_overrides) -> FastAPI:
        return create_app(build_settings(tmp_path, **app_overrides))

    return _make


@pytest.fixture
def app(make_app: Callable[..., FastAPI]) -> FastAPI:
    return make_app()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def feedback_file(tmp_path: Path) -> Path:
    return tmp_path / "feedback.txt"


@pytest.fixture
def public_key_file(tmp_path: Path) -> Path:
    return tmp_path / "public-key.asc"


@pytest.fixture
def envelope_factory() -> Callable[[str], str]:
    return make_envelope


@pytest.fixture
def public_key_text() -> str:
    return PUBLIC_KEY_TEXT
