# src/tools/vision/selection.py
"""
Provider selection.

`get_classifier(settings)` returns the configured `ClassifierClient`. When the
OpenAI provider is requested but cannot be constructed (no key, no SDK), the
deterministic mock is returned instead and a warning is logged, so the
pipeline still runs end-to-end on its local fallbacks.
"""

from __future__ import annotations

import logging

from src.inputs.settings import PipelineSettings

from .mock_provider import MockClassifier
from .provider_base import ClassifierClient

logger = logging.getLogger(__name__)


def get_classifier(settings: PipelineSettings) -> ClassifierClient:
    if settings.provider == "mock":
        return MockClassifier()
    try:
        from .openai_provider import OpenAIClassifier

        return OpenAIClassifier(settings)
    except RuntimeError as exc:
        logger.warning("Classifier provider unavailable (%s); falling back to mock classifier.", exc)
        return MockClassifier()
