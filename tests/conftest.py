# tests/conftest.py
from __future__ import annotations

import os
import random

import pytest

from src.inputs.settings import PipelineSettings
from src.tools.vision.mock_provider import MockClassifier


# -------- Global deterministic seed --------
@pytest.fixture(autouse=True, scope="session")
def _seed_session():
    random.seed(1337)
    os.environ.setdefault("PYTHONHASHSEED", "0")
    yield


# -------- Environment isolation --------
@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Tests never see the developer's provider keys or OBSBUNDLE_* overrides."""
    for key in list(os.environ):
        if key.startswith("OBSBUNDLE_"):
            monkeypatch.delenv(key, raising=False)
    for key in ("OPENAI_API_KEY", "OPENROUTER_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    yield


# -------- Pipeline fixtures --------
@pytest.fixture
def mock_settings():
    """Factory for mock-provider settings with optional overrides."""

    def _factory(**overrides):
        return PipelineSettings(provider="mock", **overrides)

    return _factory


@pytest.fixture
def mock_classifier():
    return MockClassifier()
