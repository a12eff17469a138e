# src/tools/vision/openai_provider.py
"""
OpenAI Classifier Provider

Purpose
-------
Production `ClassifierClient` backed by any OpenAI-compatible chat completions
endpoint (OpenAI itself, or OpenRouter via `base_url`). Images are sent as
base64 data URLs alongside the text prompt.

Environment
-----------
OPENAI_API_KEY       : required (OPENROUTER_API_KEY is accepted as well)
OPENROUTER_APP_URL   : optional HTTP-Referer header for OpenRouter
OPENROUTER_APP_NAME  : optional X-Title header for OpenRouter

Model selection comes from `PipelineSettings`: verification uses
`verify_model`, every other purpose uses `model`.
"""

from __future__ import annotations

import base64
import os
from collections.abc import Sequence
from typing import Any

from src.inputs.settings import PipelineSettings
from src.schemas.labels import ClassifierPurpose

from .provider_base import ClassifierClient, ImageInput

_OPENROUTER_HINT = "openrouter.ai"


class OpenAIClassifier(ClassifierClient):
    def __init__(self, settings: PipelineSettings | None = None) -> None:
        api_key = os.getenv("OPENAI_API_KEY") or os.getenv("OPENROUTER_API_KEY")
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY (or OPENROUTER_API_KEY) not set for OpenAIClassifier.")
        try:
            from openai import AsyncOpenAI
        except ImportError as e:
            raise RuntimeError("OpenAI SDK not available. Install `openai>=1.0`.") from e

        self._settings = settings or PipelineSettings()
        base_url = self._settings.base_url
        if base_url is None and os.getenv("OPENROUTER_API_KEY") and not os.getenv("OPENAI_API_KEY"):
            base_url = "https://openrouter.ai/api/v1"

        headers: dict[str, str] = {}
        if base_url and _OPENROUTER_HINT in base_url:
            headers = {
                "HTTP-Referer": os.getenv("OPENROUTER_APP_URL", ""),
                "X-Title": os.getenv("OPENROUTER_APP_NAME", "Observation Bundler"),
            }

        # Timeouts are enforced per call by call_classifier; SDK retries are disabled
        # so a single budget covers the whole call.
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, default_headers=headers or None, max_retries=0)

    async def complete(
        self,
        prompt: str,
        *,
        images: Sequence[ImageInput] = (),
        purpose: ClassifierPurpose,
        temperature: float | None = None,
    ) -> str:
        model = self._settings.verify_model if purpose is ClassifierPurpose.verify_assignments else self._settings.model
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": _build_content(prompt, images)}],
        }
        if temperature is not None:
            kwargs["temperature"] = temperature

        resp = await self._client.chat.completions.create(**kwargs)
        if not resp.choices:
            return ""
        return (resp.choices[0].message.content or "").strip()

    async def aclose(self) -> None:
        await self._client.close()


# ---------- helpers ----------
def _data_url(image: ImageInput) -> str:
    b64 = base64.b64encode(image["data"]).decode("ascii")
    return f"data:{image['mime_type']};base64,{b64}"


def _build_content(prompt: str, images: Sequence[ImageInput]) -> str | list[dict[str, Any]]:
    if not images:
        return prompt
    parts: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
    for image in images:
        parts.append({"type": "image_url", "image_url": {"url": _data_url(image)}})
    return parts
