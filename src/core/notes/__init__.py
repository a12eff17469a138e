# src/core/notes/__init__.py

from .extract import extract_observation_notes, note_preview
from .parser import classify_issue_type, parse_note, parse_notes
from .pattern import detect_note_pattern, has_ordinal_prefix

__all__ = [
    "extract_observation_notes",
    "note_preview",
    "parse_note",
    "parse_notes",
    "classify_issue_type",
    "detect_note_pattern",
    "has_ordinal_prefix",
]
