# src/core/matching/matcher.py
"""
Photo-to-note matching.

Two strategies, chosen by the detected note pattern:

- direct (numbered notes): photo i <-> note i when sentiments are compatible,
  then one `match_excess_photos` call for whatever is left over. Failure of
  that call is an accepted partial result: the direct matches are returned.
- enhanced (unnumbered notes): one `match_all_photos` call with the full
  context. Failure falls back to a deterministic round-robin by sentiment.

Both strategies decode through `decode_response`. The direct strategy and the
round-robin fallback return one entry per note, in note order (entries may be
empty placeholders); the enhanced answer is returned as decoded and left to
validation.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from src.core.context import PipelineContext
from src.core.errors import CLASSIFIER_ERRORS
from src.core.prompts import build_enhanced_match_prompt, build_excess_match_prompt
from src.schemas.labels import ClassifierPurpose, NotePattern, Sentiment
from src.schemas.models import NoteAssignment, PhotoMetadata, StructuredNote
from src.tools.vision.provider_base import call_classifier
from src.tools.vision.response_parser import decode_response

from .validator import assigned_photo_ids

logger = logging.getLogger(__name__)

DIRECT_CONFIDENCE = 0.95
MISMATCH_CONFIDENCE = 0.35
ROUND_ROBIN_CONFIDENCE = 0.4


@dataclass
class MatchOutcome:
    assignment: list[NoteAssignment]
    strategy: str
    used_fallback: bool = False


def is_sentiment_compatible(meta: PhotoMetadata, note: StructuredNote) -> bool:
    if meta.sentiment is Sentiment.neutral:
        return True
    if meta.sentiment is Sentiment.problem:
        return not note.is_positive
    return note.is_positive


async def match_photos_to_notes(ctx: PipelineContext, pattern: NotePattern) -> MatchOutcome:
    if pattern is NotePattern.numbered:
        logger.info("Matching %d photos to %d notes (direct strategy)", ctx.photo_count, ctx.note_count)
        return await match_direct(ctx)
    logger.info("Matching %d photos to %d notes (enhanced strategy)", ctx.photo_count, ctx.note_count)
    return await match_enhanced(ctx)


# =========================
# Direct strategy
# =========================


def direct_pairs(metadata: Sequence[PhotoMetadata], notes: Sequence[StructuredNote]) -> list[NoteAssignment]:
    """Position-wise pairing; notes beyond the last photo become placeholders."""
    out: list[NoteAssignment] = []
    for i, note in enumerate(notes):
        if i >= len(metadata):
            out.append(
                NoteAssignment(
                    note_id=note.note_id,
                    reasoning=f"No photo at position {i + 1} for note {note.note_id}",
                    confidence=MISMATCH_CONFIDENCE,
                )
            )
            continue
        meta = metadata[i]
        if is_sentiment_compatible(meta, note):
            out.append(
                NoteAssignment(
                    note_id=note.note_id,
                    photo_ids=[meta.photo_id],
                    reasoning=f"Direct match: photo {meta.photo_id} corresponds to note {note.note_id} (numbered notes)",
                    confidence=DIRECT_CONFIDENCE,
                )
            )
        else:
            polarity = "positive" if note.is_positive else "problem"
            logger.warning(
                "Sentiment mismatch: photo %d (%s) vs note %d (%s)",
                meta.photo_id, meta.sentiment.value, note.note_id, polarity,
            )
            out.append(
                NoteAssignment(
                    note_id=note.note_id,
                    reasoning=(
                        f"No direct match: photo {meta.photo_id} sentiment {meta.sentiment.value} "
                        f"vs note {polarity} (placeholder for reassignment)"
                    ),
                    confidence=MISMATCH_CONFIDENCE,
                )
            )
    return out


async def match_direct(ctx: PipelineContext) -> MatchOutcome:
    assignment = direct_pairs(ctx.photo_metadata, ctx.structured_notes)
    held = assigned_photo_ids(assignment)
    unassigned = [m for m in ctx.photo_metadata if m.photo_id not in held]
    if not unassigned:
        logger.info("All %d photos assigned by direct matching", ctx.photo_count)
        return MatchOutcome(assignment, "direct")

    logger.info("%d photo(s) left after direct matching; requesting excess match", len(unassigned))
    prompt = build_excess_match_prompt(unassigned, assignment, ctx.structured_by_id)
    try:
        text = await call_classifier(
            ctx.classifier,
            prompt,
            purpose=ClassifierPurpose.match_excess_photos,
            timeout_s=ctx.settings.excess_match_timeout_s,
            temperature=ctx.settings.excess_temperature,
        )
        additions = decode_response(text, list[NoteAssignment])
    except CLASSIFIER_ERRORS as e:
        logger.warning("Excess photo matching failed (%s: %s); keeping direct matches only", type(e).__name__, e)
        return MatchOutcome(assignment, "direct", used_fallback=True)

    merged = merge_additions(assignment, additions, ctx.photo_count)
    logger.info("Excess matching added %d photo(s)", merged)
    return MatchOutcome(assignment, "direct+excess")


def merge_additions(assignment: list[NoteAssignment], additions: Sequence[NoteAssignment], photo_count: int) -> int:
    """
    Append-only merge of classifier additions into `assignment` (in place).
    Unknown notes, out-of-range photos and photos already held are dropped.
    Returns the number of photos added.
    """
    by_note = {a.note_id: a for a in assignment}
    held = assigned_photo_ids(assignment)
    added = 0
    for extra in additions:
        entry = by_note.get(extra.note_id)
        if entry is None:
            logger.debug("Dropping addition for unknown note %s", extra.note_id)
            continue
        fresh = [pid for pid in extra.photo_ids if 1 <= pid <= photo_count and pid not in held]
        if not fresh:
            continue
        entry.photo_ids.extend(fresh)
        held.update(fresh)
        added += len(fresh)
        if extra.reasoning:
            entry.reasoning = f"{entry.reasoning} + {extra.reasoning}" if entry.reasoning else extra.reasoning
    return added


# =========================
# Enhanced strategy
# =========================


async def match_enhanced(ctx: PipelineContext) -> MatchOutcome:
    prompt = build_enhanced_match_prompt(ctx.photo_metadata, ctx.structured_notes)
    try:
        text = await call_classifier(
            ctx.classifier,
            prompt,
            purpose=ClassifierPurpose.match_all_photos,
            timeout_s=ctx.settings.enhanced_match_timeout_s,
            temperature=ctx.settings.match_temperature,
        )
        assignment = decode_response(text, list[NoteAssignment])
    except CLASSIFIER_ERRORS as e:
        logger.warning("Enhanced matching failed (%s: %s); using sentiment round-robin", type(e).__name__, e)
        return MatchOutcome(round_robin_by_sentiment(ctx.photo_metadata, ctx.structured_notes), "round-robin", True)

    if not assignment:
        logger.warning("Enhanced matching returned no assignments; using sentiment round-robin")
        return MatchOutcome(round_robin_by_sentiment(ctx.photo_metadata, ctx.structured_notes), "round-robin", True)
    return MatchOutcome(assignment, "enhanced")


def round_robin_by_sentiment(
    metadata: Sequence[PhotoMetadata],
    notes: Sequence[StructuredNote],
) -> list[NoteAssignment]:
    """
    Deterministic fallback: problem and neutral photos cycle over the
    non-positive notes, good-practice photos over the positive notes. A bucket
    whose polarity has no notes cycles over all notes instead, so every photo
    lands somewhere. Notes that receive nothing stay as empty entries.
    """
    problem_notes = [n for n in notes if not n.is_positive]
    positive_notes = [n for n in notes if n.is_positive]
    buckets = (
        ([m for m in metadata if m.sentiment is not Sentiment.good_practice], problem_notes),
        ([m for m in metadata if m.sentiment is Sentiment.good_practice], positive_notes),
    )

    photos_by_note: dict[int, list[int]] = {n.note_id: [] for n in notes}
    for photos, targets in buckets:
        targets = targets or list(notes)
        if not targets:
            continue
        for idx, meta in enumerate(photos):
            photos_by_note[targets[idx % len(targets)].note_id].append(meta.photo_id)

    return [
        NoteAssignment(
            note_id=n.note_id,
            photo_ids=photos_by_note[n.note_id],
            reasoning="Fallback: distributed by sentiment",
            confidence=ROUND_ROBIN_CONFIDENCE,
        )
        for n in notes
    ]
