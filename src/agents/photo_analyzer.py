# src/agents/photo_analyzer.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from src.core.errors import CLASSIFIER_ERRORS
from src.core.prompts import build_analyze_prompt
from src.inputs.settings import PipelineSettings
from src.schemas.labels import ClassifierPurpose, ConfidenceLevel, Sentiment
from src.schemas.models import Photo, PhotoMetadata
from src.tools.vision.provider_base import ClassifierClient, ImageInput, call_classifier
from src.tools.vision.response_parser import decode_response

logger = logging.getLogger(__name__)


class PhotoAnalyzer:
    """
    Per-photo visual metadata extraction.

    Behavior:
      - One `analyze_photo` call per photo, at most `analyzer_concurrency` in flight.
      - Results come back in input order, one slot per photo.
      - A failed photo (timeout, transport error, undecodable answer) gets
        neutral, low-confidence metadata instead of aborting the run.
    """

    def __init__(self, classifier: ClassifierClient, settings: PipelineSettings | None = None) -> None:
        self.classifier = classifier
        self.settings = settings or PipelineSettings()

    async def analyze(self, photo: Photo) -> PhotoMetadata:
        images: list[ImageInput] = [{"data": photo.content, "mime_type": photo.mime_type}] if photo.content else []
        try:
            text = await call_classifier(
                self.classifier,
                build_analyze_prompt(photo),
                purpose=ClassifierPurpose.analyze_photo,
                timeout_s=self.settings.analyze_timeout_s,
                images=images,
                temperature=self.settings.analyze_temperature,
            )
            meta = decode_response(text, PhotoMetadata)
        except CLASSIFIER_ERRORS as e:
            logger.warning("Photo %d analysis failed (%s: %s); using neutral metadata", photo.photo_id, type(e).__name__, e)
            return fallback_metadata(photo)
        return meta.model_copy(update={"photo_id": photo.photo_id, "original_name": photo.original_name})

    async def analyze_all(self, photos: Sequence[Photo]) -> list[PhotoMetadata]:
        sem = asyncio.Semaphore(self.settings.analyzer_concurrency)

        async def _bounded(photo: Photo) -> PhotoMetadata:
            async with sem:
                return await self.analyze(photo)

        results = await asyncio.gather(*(_bounded(p) for p in photos))
        counts = {s: sum(1 for m in results if m.sentiment is s) for s in Sentiment}
        logger.info(
            "Analyzed %d photo(s): %d problem, %d good practice, %d neutral",
            len(results), counts[Sentiment.problem], counts[Sentiment.good_practice], counts[Sentiment.neutral],
        )
        return list(results)


def fallback_metadata(photo: Photo) -> PhotoMetadata:
    return PhotoMetadata(
        photo_id=photo.photo_id,
        original_name=photo.original_name,
        sentiment=Sentiment.neutral,
        confidence=ConfidenceLevel.low,
    )
