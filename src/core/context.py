# src/core/context.py
"""
PipelineContext: the run-scoped state threaded through every stage.

Holds the immutable inputs (photos, notes), the read-only derived inputs
(photo metadata, structured notes), the classifier and the settings. Stages
receive it explicitly instead of reaching for module-level state.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.inputs.settings import PipelineSettings
from src.schemas.models import ObservationNote, Photo, PhotoMetadata, StructuredNote
from src.tools.vision.provider_base import ClassifierClient


@dataclass
class PipelineContext:
    photos: list[Photo]
    notes: list[ObservationNote]
    classifier: ClassifierClient
    settings: PipelineSettings = field(default_factory=PipelineSettings)
    photo_metadata: list[PhotoMetadata] = field(default_factory=list)
    structured_notes: list[StructuredNote] = field(default_factory=list)

    @property
    def photo_count(self) -> int:
        return len(self.photos)

    @property
    def note_count(self) -> int:
        return len(self.notes)

    @property
    def note_ids(self) -> list[int]:
        return [n.note_id for n in self.notes]

    @property
    def structured_by_id(self) -> dict[int, StructuredNote]:
        return {n.note_id: n for n in self.structured_notes}

    @property
    def notes_by_id(self) -> dict[int, ObservationNote]:
        return {n.note_id: n for n in self.notes}

    def photo(self, photo_id: int) -> Photo | None:
        if 1 <= photo_id <= len(self.photos):
            return self.photos[photo_id - 1]
        return None
