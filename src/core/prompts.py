# src/core/prompts.py
"""
Prompt builders for the five classifier call shapes.

Each builder is a pure function of stage inputs and returns the full text
prompt. Every prompt ends with the exact JSON shape expected back; decoding
and validation of the answer live in `src.tools.vision.response_parser`.
"""

from __future__ import annotations

from collections.abc import Sequence

from src.core.notes.extract import note_preview
from src.schemas.labels import Sentiment
from src.schemas.models import NoteAssignment, Photo, PhotoMetadata, StructuredNote, ValidationReport

# =========================
# Shared fragments
# =========================

SENTIMENT_RULES = """\
1. SENTIMENT MUST MATCH:
   - Photos with sentiment="problem" can ONLY match notes marked [PROBLEM]
   - Photos with sentiment="good_practice" can ONLY match notes marked [POSITIVE]
   - Photos with sentiment="neutral" can match either type
   - Never match a problem photo to a positive note or vice versa."""

_SENTIMENT_GLOSS = {
    Sentiment.problem: "(shows issues/hazards)",
    Sentiment.good_practice: "(shows good practices)",
    Sentiment.neutral: "(neutral documentation)",
}


def _join(items: Sequence[str]) -> str:
    return ", ".join(items) if items else "none"


def note_polarity(note: StructuredNote) -> str:
    return "POSITIVE" if note.is_positive else "PROBLEM"


def photo_summary_line(meta: PhotoMetadata) -> str:
    return (
        f'Photo {meta.photo_id}: Location="{meta.location}" Sentiment={meta.sentiment.value} '
        f"Issues=[{', '.join(meta.safety_issues)}] Equipment=[{', '.join(meta.equipment)}]"
    )


def photo_detail_block(meta: PhotoMetadata) -> str:
    return (
        f"Photo {meta.photo_id}:\n"
        f'  Location: "{meta.location}"\n'
        f"  Sentiment: {meta.sentiment.value} {_SENTIMENT_GLOSS[meta.sentiment]}\n"
        f"  Safety Issues: {_join(meta.safety_issues)}\n"
        f"  Equipment: {_join(meta.equipment)}\n"
        f"  People: {_join(meta.people)}\n"
        f"  Conditions: {_join(meta.conditions)}\n"
        f"  Confidence: {meta.confidence.value}"
    )


def note_detail_block(note: StructuredNote, *, keyword_limit: int = 10) -> str:
    return (
        f"Note {note.note_id} [{note_polarity(note)}]:\n"
        f'  Text: "{note.original_text}"\n'
        f'  Location hint: "{note.location}"\n'
        f"  Issue type: {note.issue_type.value}\n"
        f"  Keywords: {', '.join(note.keywords[:keyword_limit])}"
    )


def assignment_lines(assignment: Sequence[NoteAssignment]) -> str:
    return "\n".join(f"Note {a.note_id} <- Photos [{', '.join(str(p) for p in a.photo_ids)}]" for a in assignment)


# =========================
# 1) Photo analysis
# =========================


def build_analyze_prompt(photo: Photo) -> str:
    return f"""Analyze this construction safety photo. Extract factual details AND decide whether it shows a PROBLEM or a GOOD PRACTICE.

Original filename: {photo.original_name}

EXTRACT:
1. Location (building area, room, outdoor area)
2. Equipment visible (specific items, brands, IDs)
3. People (count, roles, PPE status)
4. Safety issues (specific hazards)
5. Conditions (weather, lighting, cleanliness)
6. Sentiment:
   - "problem" = hazards, violations, damage, poor housekeeping, unsafe conditions
   - "good_practice" = proper PPE, good signage, clean areas, compliant setup
   - "neutral" = general documentation, no clear positive or negative

Return ONLY this JSON object:
{{
  "location": "specific location",
  "equipment": ["item1", "item2"],
  "people": ["description1"],
  "safetyIssues": ["issue1", "issue2"],
  "conditions": ["condition1"],
  "confidence": "high|medium|low",
  "sentiment": "problem|good_practice|neutral"
}}

Be precise. No speculation. Only what you see."""


# =========================
# 2) Excess photo matching (numbered workflow)
# =========================


def build_excess_match_prompt(
    unassigned: Sequence[PhotoMetadata],
    assignment: Sequence[NoteAssignment],
    notes_by_id: dict[int, StructuredNote],
) -> str:
    photo_lines = "\n".join(photo_summary_line(m) for m in unassigned)
    note_lines = []
    for a in assignment:
        note = notes_by_id.get(a.note_id)
        preview = note_preview(note.original_text, 80) if note else "Unknown note"
        polarity = note_polarity(note) if note else "UNKNOWN"
        if a.photo_ids:
            held = ",".join(str(p) for p in a.photo_ids)
            note_lines.append(f'Note {a.note_id} [{polarity}]: ALREADY HAS Photo {held} - "{preview}"')
        else:
            note_lines.append(f'Note {a.note_id} [{polarity}]: NO PHOTO ASSIGNED - "{preview}"')

    return f"""{len(unassigned)} photos still need to be assigned to existing notes.

UNASSIGNED PHOTOS:
{photo_lines}

EXISTING ASSIGNMENTS:
{chr(10).join(note_lines)}

TASK: Assign each unassigned photo to ONE existing note (several photos may go to the same note).

RULES:
{SENTIMENT_RULES}
2. Prefer notes with NO PHOTO ASSIGNED when they are compatible.
3. Match by: location > issue type > keywords.
4. photoIds lists the photos to ADD to that note.

Return ONLY a JSON array: [{{"noteId": 1, "photoIds": [19, 20], "reasoning": "...", "confidence": 0.8}}]"""


# =========================
# 3) Enhanced matching (unnumbered workflow)
# =========================


def build_enhanced_match_prompt(metadata: Sequence[PhotoMetadata], notes: Sequence[StructuredNote]) -> str:
    n_photos = len(metadata)
    photos = "\n\n".join(photo_detail_block(m) for m in metadata)
    note_blocks = "\n\n".join(note_detail_block(n) for n in notes)

    return f"""You are a construction safety photo matching expert. Match {n_photos} photos to {len(notes)} observation notes.

CRITICAL RULES:
{SENTIMENT_RULES}
2. EACH PHOTO GOES TO EXACTLY ONE NOTE: no duplicates, no orphans.
3. MATCH BY: first sentiment, then location, then issue type, then keywords.
4. MULTIPLE PHOTOS PER NOTE: one note may have several photos of the same issue.

PHOTOS:
{photos}

NOTES:
{note_blocks}

STEP-BY-STEP REASONING:
1. List all photos and their sentiments.
2. List all notes and their polarity.
3. For each photo, identify the compatible notes.
4. Choose the best note by location, issue type and keywords.
5. Verify that all {n_photos} photos are assigned to exactly one note.

Return ONLY this JSON array:
[
  {{"noteId": 1, "photoIds": [1, 3], "reasoning": "Both show housekeeping problems in the external area", "confidence": 0.9}},
  {{"noteId": 2, "photoIds": [2], "reasoning": "Cable damage matching the electrical note", "confidence": 0.95}}
]

Think step by step. Respect sentiment matching. Ensure all {n_photos} photos are assigned."""


# =========================
# 4) Verification
# =========================


def build_verification_prompt(
    assignment: Sequence[NoteAssignment],
    report: ValidationReport,
    metadata: Sequence[PhotoMetadata],
    notes: Sequence[StructuredNote],
) -> str:
    errors = "\n".join(f"- {e}" for e in report.errors) or "None"
    warnings = "\n".join(f"- {w}" for w in report.warnings) or "None"
    photos = "\n\n".join(photo_detail_block(m) for m in metadata)
    note_blocks = "\n\n".join(note_detail_block(n, keyword_limit=8) for n in notes)

    return f"""You are an expert reviewer for construction safety photo matching.

TASK: Verify and fix photo-to-observation assignments.

CURRENT ASSIGNMENTS (may have errors):
{assignment_lines(assignment)}

VALIDATION ERRORS DETECTED:
{errors}

VALIDATION WARNINGS:
{warnings}

PHOTO DETAILS:
{photos}

NOTE DETAILS:
{note_blocks}

CRITICAL MATCHING RULES:
{SENTIMENT_RULES}
2. ONE PHOTO = ONE NOTE: each photo is assigned to exactly one note (no duplicates, no orphans).
3. EVERY NOTE NEEDS PHOTOS: each of the {len(notes)} notes gets at least one photo.
4. MATCH LOGIC: sentiment first, then location > issue type > keywords > equipment.

YOUR TASK:
1. Review the current assignments.
2. Identify wrongly assigned photos (sentiment mismatch, duplicates, orphans).
3. Produce corrected assignments that follow ALL rules.
4. Explain every correction you made and why.

Return ONLY this JSON object:
{{
  "correctedAssignments": [
    {{"noteId": 1, "photoIds": [1, 3], "reasoning": "...", "confidence": 0.95}}
  ],
  "fixesApplied": "What was wrong and how each problem was fixed"
}}

Think step by step. Verify sentiment first. Ensure all {len(metadata)} photos are assigned."""


# =========================
# 5) Photo naming
# =========================


def build_naming_prompt(contexts: Sequence[tuple[int, str | None]]) -> str:
    blocks = "\n".join(f'Photo {pid}:\nOBSERVATION TEXT: "{text or "Unassigned photo"}"\n' for pid, text in contexts)
    return f"""You are a photo naming expert for construction safety observations.

Create SHORT, DESCRIPTIVE filenames that capture what each observation documents.

PHOTO CONTEXTS:
{blocks}
INSTRUCTIONS:
1. PROBLEM observations: name the issue (e.g. "cable-damage", "poor-housekeeping", "blocked-exit").
2. POSITIVE observations: name what is GOOD (e.g. "proper-ppe", "clean-walkways", "good-signage").
3. Include the location when mentioned (e.g. "colo2", "laydown").
4. kebab-case (lowercase, hyphens), 2 to 4 words.
5. NO generic names like "positive-observation", "problem-photo" or "photo-1".
6. Every name must be specific and unique.

Return ONLY this JSON array:
[
  {{"photoId": 1, "suggestedName": "cable-damage-colo2", "reasoning": "Cable damage in the COLO2 electrical room"}}
]"""


def build_naming_retry_prompt(rejections: Sequence[tuple[int, str, str, str | None]]) -> str:
    """`rejections` holds (photo_id, previous_name, reason, observation_text)."""
    blocks = "\n".join(
        f"""Photo {pid}:
  Previous name: "{name}"
  Problem: {reason}
  Observation: "{text or 'No observation'}"
"""
        for pid, name, reason, text in rejections
    )
    return f"""Your previous photo names had issues. Fix ONLY these photos:

{blocks}
Requirements:
  - SPECIFIC (not generic like "positive-observation")
  - DESCRIPTIVE (what is shown), 2 to 4 words, kebab-case

Return ONLY a JSON array with improved names for these {len(rejections)} photos:
[
  {{"photoId": 3, "suggestedName": "proper-signage-mixing-station", "reasoning": "..."}}
]"""
