# tests/utils.py
"""
Shared test factories.

Builders for photos, notes, metadata and assignments, plus small JSON helpers
for scripting `MockClassifier` answers. Keep these free of pytest so they can
be imported from any test module.
"""

from __future__ import annotations

import io
import json
from collections.abc import Mapping, Sequence
from typing import Any

from PIL import Image

from src.core.context import PipelineContext
from src.inputs.settings import PipelineSettings
from src.schemas.labels import ConfidenceLevel, Sentiment
from src.schemas.models import NoteAssignment, ObservationNote, Photo, PhotoMetadata, StructuredNote
from src.tools.vision.mock_provider import MockClassifier
from src.tools.vision.provider_base import ClassifierClient

# ---------------------------
# Inputs
# ---------------------------


def make_photo(photo_id: int, name: str | None = None, content: bytes = b"") -> Photo:
    return Photo(photo_id=photo_id, content=content, original_name=name or f"IMG_{photo_id:04d}.jpg")


def make_photos(*names: str) -> list[Photo]:
    return [make_photo(i, name) for i, name in enumerate(names, start=1)]


def make_notes(*texts: str, start: int = 1) -> list[ObservationNote]:
    return [ObservationNote(note_id=i, text=t) for i, t in enumerate(texts, start=start)]


# ---------------------------
# Derived inputs
# ---------------------------


def make_metadata(photo_id: int, sentiment: str | Sentiment = Sentiment.neutral, **overrides: Any) -> PhotoMetadata:
    base: dict[str, Any] = {
        "photo_id": photo_id,
        "location": "site",
        "sentiment": sentiment,
        "confidence": ConfidenceLevel.medium,
        "original_name": f"IMG_{photo_id:04d}.jpg",
    }
    base.update(overrides)
    return PhotoMetadata.model_validate(base)


def make_structured_note(note_id: int, text: str = "", *, is_positive: bool = False, **overrides: Any) -> StructuredNote:
    return StructuredNote(
        note_id=note_id,
        original_text=text or f"Observation {note_id}",
        is_positive=is_positive,
        **overrides,
    )


def make_assignment(mapping: Mapping[int, Sequence[int]], confidence: float = 0.95) -> list[NoteAssignment]:
    return [
        NoteAssignment(note_id=nid, photo_ids=list(pids), reasoning="test", confidence=confidence)
        for nid, pids in mapping.items()
    ]


def as_mapping(assignment: Sequence[NoteAssignment]) -> dict[int, list[int]]:
    return {a.note_id: list(a.photo_ids) for a in assignment}


def make_context(
    *,
    metadata: Sequence[PhotoMetadata] = (),
    structured: Sequence[StructuredNote] = (),
    classifier: ClassifierClient | None = None,
    settings: PipelineSettings | None = None,
) -> PipelineContext:
    """Context whose photos and notes mirror the given metadata / structured notes."""
    photos = [make_photo(m.photo_id, m.original_name or None) for m in metadata]
    notes = [ObservationNote(note_id=n.note_id, text=n.original_text) for n in structured]
    return PipelineContext(
        photos=photos,
        notes=notes,
        classifier=classifier or MockClassifier(),
        settings=settings or PipelineSettings(provider="mock"),
        photo_metadata=list(metadata),
        structured_notes=list(structured),
    )


# ---------------------------
# Classifier answers
# ---------------------------


def analysis_json(sentiment: str = "neutral", location: str = "site", **extra: Any) -> str:
    payload: dict[str, Any] = {
        "location": location,
        "equipment": [],
        "people": [],
        "safetyIssues": [],
        "conditions": [],
        "confidence": "high",
        "sentiment": sentiment,
    }
    payload.update(extra)
    return json.dumps(payload)


def assignments_json(mapping: Mapping[int, Sequence[int]], confidence: float = 0.9) -> str:
    return json.dumps(
        [{"noteId": nid, "photoIds": list(pids), "reasoning": "scripted", "confidence": confidence} for nid, pids in mapping.items()]
    )


def names_json(names: Mapping[int, str]) -> str:
    return json.dumps([{"photoId": pid, "suggestedName": name, "reasoning": "scripted"} for pid, name in names.items()])


def png_bytes(w: int = 16, h: int = 16, color: tuple[int, int, int] = (200, 60, 60)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (w, h), color).save(buf, format="PNG")
    return buf.getvalue()
