"""Pytest configuration and fixtures."""

import os

# config is read at import time
os.environ.pop("DATABASE_URL", None)
os.environ.setdefault("LLM_API_KEY", "test-llm-key")
os.environ.setdefault("APP_ENV", "test")

import pytest
from fastapi.testclient import TestClient

from businessmeter.main import create_app
from tests.fakes.fake_db import build_fake_context


@pytest.fixture
def ctx():
    return build_fake_context()


@pytest.fixture
def client(ctx):
    app = create_app(context_factory=lambda: ctx)
    with TestClient(app) as c:
        yield c
