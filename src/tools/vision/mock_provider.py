# src/tools/vision/mock_provider.py
"""
Mock Classifier Provider

Purpose
-------
Provide a deterministic, network-free `ClassifierClient`. This lets us:
  - Run the whole pipeline locally and in CI without credentials.
  - Script exact classifier responses (including malformed text, exceptions
    and slow calls) to drive every fallback path in tests.

Design
------
- Scripted responses are queued per `ClassifierPurpose` and consumed in order.
  A script entry is a response string, an exception instance (raised), or a
  callable `prompt -> str`.
- `delays` adds an `asyncio.sleep` before answering, to exercise timeouts.
- Unscripted photo analysis is inferred from the *original filename* quoted in
  the analysis prompt (no pixels are read).
- Unscripted matching, verification and naming calls raise
  `ClassifierUnavailableError`, so the local fallbacks take over.

Usage
-----
clf = MockClassifier(scripts={ClassifierPurpose.match_all_photos: [ClassifierTimeoutError("slow")]})
"""

from __future__ import annotations

import asyncio
import json
import re
from collections import defaultdict, deque
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from src.core.errors import ClassifierUnavailableError
from src.schemas.labels import ClassifierPurpose

from .provider_base import ClassifierClient, ImageInput

ScriptEntry = str | BaseException | Callable[[str], str]

_FILENAME_LINE = re.compile(r"^Original filename:\s*(.+)$", re.MULTILINE)

PROBLEM_CUES = ("damage", "blocked", "missing", "hazard", "broken", "leak", "trip", "exposed", "unsafe", "poor", "risk")
GOOD_CUES = ("good", "proper", "compliant", "positive", "clean", "safe", "tidy")
LOCATION_CUES = ("colo", "laydown", "corridor", "roof", "electrical", "loading", "generator", "office", "external")
EQUIPMENT_CUES = ("cable", "ladder", "scaffold", "barrier", "extinguisher", "pallet", "forklift", "helmet")


@dataclass(frozen=True)
class RecordedCall:
    purpose: ClassifierPurpose
    prompt: str
    image_count: int
    temperature: float | None


class MockClassifier(ClassifierClient):
    """Deterministic, scriptable classifier."""

    def __init__(
        self,
        scripts: Mapping[ClassifierPurpose, Sequence[ScriptEntry]] | None = None,
        *,
        delays: Mapping[ClassifierPurpose, float] | None = None,
    ) -> None:
        self._scripts: dict[ClassifierPurpose, deque[ScriptEntry]] = defaultdict(deque)
        for purpose, entries in (scripts or {}).items():
            self._scripts[purpose].extend(entries)
        self._delays = dict(delays or {})
        self.calls: list[RecordedCall] = []

    def script(self, purpose: ClassifierPurpose, *entries: ScriptEntry) -> MockClassifier:
        self._scripts[purpose].extend(entries)
        return self

    def calls_for(self, purpose: ClassifierPurpose) -> list[RecordedCall]:
        return [c for c in self.calls if c.purpose is purpose]

    async def complete(
        self,
        prompt: str,
        *,
        images: Sequence[ImageInput] = (),
        purpose: ClassifierPurpose,
        temperature: float | None = None,
    ) -> str:
        self.calls.append(RecordedCall(purpose, prompt, len(images), temperature))

        delay = self._delays.get(purpose)
        if delay:
            await asyncio.sleep(delay)

        queue = self._scripts.get(purpose)
        if queue:
            entry = queue.popleft()
            if isinstance(entry, BaseException):
                raise entry
            if callable(entry):
                return entry(prompt)
            return entry

        if purpose is ClassifierPurpose.analyze_photo:
            return json.dumps(_metadata_from_filename(prompt))
        raise ClassifierUnavailableError(f"mock classifier has no response for {purpose.value}")


def _metadata_from_filename(prompt: str) -> dict[str, object]:
    m = _FILENAME_LINE.search(prompt)
    name = (m.group(1) if m else "").strip().lower()
    words = [w for w in re.split(r"[^a-z0-9]+", name) if w]

    if any(c in name for c in PROBLEM_CUES):
        sentiment = "problem"
    elif any(c in name for c in GOOD_CUES):
        sentiment = "good_practice"
    else:
        sentiment = "neutral"

    location = next((w for w in words if any(w.startswith(c) for c in LOCATION_CUES)), "")
    equipment = [w for w in words if any(w.startswith(c) for c in EQUIPMENT_CUES)]
    issues = [w for w in words if any(c in w for c in PROBLEM_CUES)]

    return {
        "location": location,
        "equipment": equipment,
        "people": [],
        "safetyIssues": issues,
        "conditions": [],
        "confidence": "medium" if sentiment != "neutral" else "low",
        "sentiment": sentiment,
    }
