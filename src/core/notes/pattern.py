# src/core/notes/pattern.py
"""
Pattern Detector: decide between the numbered (1:1, in order) and the
unnumbered (open-ended) matching workflow.

Heuristic, not a guarantee:
  1) photo/note ratio within [ratio_min, ratio_max] → numbered
  2) else, if at least ceil(inspected × prefix_threshold) of the first
     `prefix_inspect_limit` notes carry an ordinal prefix → numbered
  3) else → unnumbered
Never raises; zero notes is simply unnumbered.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Sequence

from src.inputs.settings import PipelineSettings
from src.schemas.labels import NotePattern
from src.schemas.models import StructuredNote

logger = logging.getLogger(__name__)

_ORDINAL_PREFIXES = (
    re.compile(r"^\s*\d+[.):]"),
    re.compile(r"^\s*note\s+\d+", re.IGNORECASE),
    re.compile(r"^\s*\d+\s*-"),
    re.compile(r"^\s*observation\s+\d+", re.IGNORECASE),
)


def has_ordinal_prefix(text: str) -> bool:
    return any(p.match(text) for p in _ORDINAL_PREFIXES)


def detect_note_pattern(
    notes: Sequence[StructuredNote],
    photo_count: int,
    settings: PipelineSettings | None = None,
) -> NotePattern:
    cfg = settings or PipelineSettings()
    if not notes:
        return NotePattern.unnumbered

    ratio = photo_count / len(notes)
    if cfg.ratio_min <= ratio <= cfg.ratio_max:
        logger.info("Photo/note ratio %.2f within [%.2f, %.2f]; using direct matching", ratio, cfg.ratio_min, cfg.ratio_max)
        return NotePattern.numbered

    inspected = notes[: cfg.prefix_inspect_limit]
    numbered = sum(1 for n in inspected if has_ordinal_prefix(n.original_text))
    threshold = math.ceil(len(inspected) * cfg.prefix_threshold)
    pattern = NotePattern.numbered if numbered >= threshold else NotePattern.unnumbered
    logger.info(
        "Photo/note ratio %.2f outside bounds; %d/%d notes carry ordinal prefixes → %s",
        ratio,
        numbered,
        len(inspected),
        pattern.value,
    )
    return pattern
