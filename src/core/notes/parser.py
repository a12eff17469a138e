# src/core/notes/parser.py
"""
Note Parser: raw note → StructuredNote.

Purely local and deterministic. Polarity, issue type and required elements
come from fixed keyword tables in `src.schemas.labels`; the location hint is
the text before the first `:`, `–` or `-`.
"""

from __future__ import annotations

import re

from src.schemas.labels import ISSUE_TYPE_CUES, NOTE_STOPWORDS, POSITIVE_CUES, REQUIRED_ELEMENTS, IssueType
from src.schemas.models import ObservationNote, StructuredNote

_LOCATION_PREFIX = re.compile(r"^([^:–-]+)[:–-]")


def parse_note(note: ObservationNote) -> StructuredNote:
    text = note.text.lower()

    is_positive = any(cue in text for cue in POSITIVE_CUES)

    m = _LOCATION_PREFIX.match(note.text)
    location = m.group(1).strip() if m else ""

    issue_type = classify_issue_type(text)

    keywords = [w for w in text.split() if len(w) > 3 and w not in NOTE_STOPWORDS]

    return StructuredNote(
        note_id=note.note_id,
        original_text=note.text,
        location=location,
        issue_type=issue_type,
        keywords=keywords,
        required_elements=list(REQUIRED_ELEMENTS.get(issue_type, ())),
        is_positive=is_positive,
    )


def classify_issue_type(text: str) -> IssueType:
    lowered = text.lower()
    for issue_type, cues in ISSUE_TYPE_CUES:
        if any(cue in lowered for cue in cues):
            return issue_type
    return IssueType.other


def parse_notes(notes: list[ObservationNote]) -> list[StructuredNote]:
    return [parse_note(n) for n in notes]
