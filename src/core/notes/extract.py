# src/core/notes/extract.py
"""
Observation note extraction.

Turns the inspector's raw notes block into `ObservationNote`s:

    1. COLO2 electrical room: cable damage on supply line
    2) Laydown area - materials blocking walkway

- Only lines carrying a `<n>.` or `<n>)` prefix become notes; the prefix is the note id.
- Zero-width word joiners (U+2060) pasted from messaging apps are removed.
- Blank lines and lines with an empty body are skipped.
"""

from __future__ import annotations

import logging
import re

from src.schemas.models import ObservationNote

logger = logging.getLogger(__name__)

_WORD_JOINER = "\u2060"
_NUMBERED_LINE = re.compile(r"^(\d+)[.)]\s*(.+)$")


def extract_observation_notes(raw: str) -> list[ObservationNote]:
    if not raw or not raw.strip():
        return []

    cleaned = raw.replace(_WORD_JOINER, "")
    notes: list[ObservationNote] = []
    for line in cleaned.splitlines():
        m = _NUMBERED_LINE.match(line.strip())
        if not m:
            continue
        text = m.group(2).strip()
        if text:
            notes.append(ObservationNote(note_id=int(m.group(1)), text=text))

    logger.info("Extracted %d observation notes", len(notes))
    return notes


def note_preview(text: str, limit: int = 100) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."
