"""
Classifier tools package

Re-exports the provider interface/implementations and the response decoder,
so callers can do:

    from src.tools.vision import (
        ClassifierClient,
        MockClassifier,
        OpenAIClassifier,
        call_classifier,
        decode_response,
        get_classifier,
    )
"""

from __future__ import annotations

# Concrete providers
from .mock_provider import MockClassifier
from .openai_provider import OpenAIClassifier

# Provider protocol / base
from .provider_base import ClassifierClient, ImageInput, call_classifier

# Response decoding
from .response_parser import decode_response, extract_json_block, repair_json
from .selection import get_classifier

__all__ = [
    "ClassifierClient",
    "ImageInput",
    "MockClassifier",
    "OpenAIClassifier",
    "call_classifier",
    "decode_response",
    "extract_json_block",
    "repair_json",
    "get_classifier",
]
