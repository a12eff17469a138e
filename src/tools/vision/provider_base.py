# src/tools/vision/provider_base.py
"""
Classifier Provider Interface

Purpose
-------
Define the one external capability the assignment core consumes: a
multimodal classification/reasoning service. Text prompt and zero or more
images in, free-form text out. Every call site goes through
`call_classifier`, which enforces the per-call time budget and normalizes
provider exceptions into the typed `ClassifierError` family.

Public API
----------
class ImageInput(TypedDict): data, mime_type

class ClassifierClient(Protocol):
    async def complete(self, prompt, *, images=(), purpose, temperature=None) -> str

async def call_classifier(client, prompt, *, purpose, timeout_s, images=(), temperature=None) -> str

Invariants & Guardrails
-----------------------
- A call never outlives its timeout: on expiry it is cancelled and
  `ClassifierTimeoutError` is raised. Nothing is retried here.
- Providers must not parse responses; decoding lives in `response_parser`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol, TypedDict, runtime_checkable

from src.core.errors import ClassifierTimeoutError, classifier_error_guard
from src.schemas.labels import ClassifierPurpose

logger = logging.getLogger(__name__)


class ImageInput(TypedDict):
    data: bytes
    mime_type: str


@runtime_checkable
class ClassifierClient(Protocol):
    async def complete(
        self,
        prompt: str,
        *,
        images: Sequence[ImageInput] = (),
        purpose: ClassifierPurpose,
        temperature: float | None = None,
    ) -> str: ...


async def call_classifier(
    client: ClassifierClient,
    prompt: str,
    *,
    purpose: ClassifierPurpose,
    timeout_s: float,
    images: Sequence[ImageInput] = (),
    temperature: float | None = None,
) -> str:
    """
    Issue one classifier call under an explicit time budget.
    Raises ClassifierTimeoutError / ClassifierUnavailableError; never returns None.
    """
    logger.debug("Classifier call %s (timeout %.0fs, %d image(s))", purpose.value, timeout_s, len(images))
    try:
        with classifier_error_guard():
            text = await asyncio.wait_for(
                client.complete(prompt, images=images, purpose=purpose, temperature=temperature),
                timeout=timeout_s,
            )
    except ClassifierTimeoutError:
        logger.warning("Classifier call %s timed out after %.0fs", purpose.value, timeout_s)
        raise
    return text if isinstance(text, str) else str(text or "")
