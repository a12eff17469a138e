# src/orchestrators/assignment_orchestrator.py
"""
Photo-to-Observation Assignment Orchestrator

Purpose
-------
Run the whole assignment pipeline for one batch of photos and notes:

  1) Photo Analyzer   (concurrent, one classifier call per photo)
  2) Note Parser      (local)
  3) Pattern Detector (local) -> numbered | unnumbered
  4) Matcher          (direct or enhanced strategy, with local fallbacks)
  5) Validator -> Verifier (only when there are errors or warnings)
  6) Fallback Repairer (only when errors remain)
  7) Photo Namer

Guarantees
----------
- Classifier failures never escape: every stage has a local fallback, so the
  worst case is a low-confidence, placeholder-laden but structurally valid result.
- With at least one photo and one note, every photo is assigned exactly once
  (the photo-1 placeholder for surplus notes is the only duplicate allowed)
  and every note has at least one photo.
- InvariantBreachError from the repairer is a defect and is not caught here.

Usage
-----
    result = orchestrate(photos, notes, classifier=MockClassifier())
    result.assignments   # {note_id: [photo_id, ...]}
    result.photo_names   # {photo_id: slug}
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from src.agents.photo_analyzer import PhotoAnalyzer
from src.core.context import PipelineContext
from src.core.matching import match_photos_to_notes, repair_assignments, validate_for, verify_assignments
from src.core.naming import name_photos
from src.core.notes import detect_note_pattern, parse_notes
from src.inputs.settings import PipelineSettings
from src.schemas.models import (
    Diagnostics,
    ObservationNote,
    OrchestrationResult,
    Photo,
    VerificationSummary,
)
from src.tools.vision.provider_base import ClassifierClient
from src.tools.vision.selection import get_classifier

logger = logging.getLogger(__name__)


class AssignmentOrchestrator:
    def __init__(self, classifier: ClassifierClient | None = None, settings: PipelineSettings | None = None) -> None:
        self.settings = settings or PipelineSettings()
        self._owns_classifier = classifier is None
        self.classifier = classifier if classifier is not None else get_classifier(self.settings)

    async def aclose(self) -> None:
        """Release the classifier client when this orchestrator created it."""
        if not self._owns_classifier:
            return
        close = getattr(self.classifier, "aclose", None)
        if close is not None:
            await close()

    async def run(self, photos: Sequence[Photo], notes: Sequence[ObservationNote]) -> OrchestrationResult:
        ctx = PipelineContext(
            photos=_renumbered(photos),
            notes=list(notes),
            classifier=self.classifier,
            settings=self.settings,
        )
        logger.info("Starting assignment: %d photo(s), %d note(s)", ctx.photo_count, ctx.note_count)

        # 1) + 2) Analyze photos, parse notes
        ctx.photo_metadata = await PhotoAnalyzer(ctx.classifier, ctx.settings).analyze_all(ctx.photos)
        ctx.structured_notes = parse_notes(ctx.notes)
        positives = sum(1 for n in ctx.structured_notes if n.is_positive)
        logger.info("Parsed %d note(s): %d positive, %d problem", ctx.note_count, positives, ctx.note_count - positives)

        # 3) + 4) Pattern and matching
        pattern = detect_note_pattern(ctx.structured_notes, ctx.photo_count, ctx.settings)
        outcome = await match_photos_to_notes(ctx, pattern)
        assignment = outcome.assignment
        for a in assignment:
            logger.info("Note %s -> photos %s (confidence %.2f)", a.note_id, a.photo_ids, a.confidence)

        # 5) Validate, verify when needed
        report = validate_for(ctx, assignment)
        verification = await verify_assignments(ctx, assignment, report)
        if verification.invoked and verification.fixed:
            assignment = verification.assignment
            report = verification.report
        elif not verification.invoked:
            logger.info("Verification skipped (assignments already consistent)")

        # 6) Deterministic repair
        repairs: list[str] = []
        if not report.valid:
            logger.warning("Validation issues remain, applying fallback repair: %s", "; ".join(report.errors))
            assignment, repairs = repair_assignments(assignment, ctx.photo_count, ctx.note_ids)
            report = validate_for(ctx, assignment)

        # 7) Naming
        photo_names = await name_photos(ctx, assignment)

        logger.info(
            "Assignment finished (%s, %d error(s), %d warning(s))",
            "valid" if report.valid else "invalid", len(report.errors), len(report.warnings),
        )
        return OrchestrationResult(
            assignments={a.note_id: list(a.photo_ids) for a in assignment},
            photo_names=photo_names,
            diagnostics=Diagnostics(
                photo_metadata=ctx.photo_metadata,
                structured_notes=ctx.structured_notes,
                assignment_reasoning=assignment,
                validation=report,
                note_pattern=pattern,
                match_strategy=outcome.strategy,
                verification=VerificationSummary(
                    invoked=verification.invoked, fixed=verification.fixed, reasoning=verification.reasoning
                ),
                repairs=repairs,
            ),
        )


def _renumbered(photos: Sequence[Photo]) -> list[Photo]:
    """Photo identity is the 1-based batch position."""
    out: list[Photo] = []
    for idx, photo in enumerate(photos, start=1):
        out.append(photo if photo.photo_id == idx else photo.model_copy(update={"photo_id": idx}))
    return out


async def orchestrate_async(
    photos: Sequence[Photo],
    notes: Sequence[ObservationNote],
    *,
    classifier: ClassifierClient | None = None,
    settings: PipelineSettings | None = None,
) -> OrchestrationResult:
    orchestrator = AssignmentOrchestrator(classifier, settings)
    try:
        return await orchestrator.run(photos, notes)
    finally:
        await orchestrator.aclose()


def orchestrate(
    photos: Sequence[Photo],
    notes: Sequence[ObservationNote],
    *,
    classifier: ClassifierClient | None = None,
    settings: PipelineSettings | None = None,
) -> OrchestrationResult:
    """Synchronous entry point; must not be called from inside a running event loop."""
    return asyncio.run(orchestrate_async(photos, notes, classifier=classifier, settings=settings))
