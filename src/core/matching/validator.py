# src/core/matching/validator.py
"""
Pure constraint checker for an assignment.

Rules (all evaluated, never short-circuited):
  1. every photo id in 1..photo_count appears exactly once
     (duplicates and omissions reported per photo; out-of-range ids reported)
  2. the number of entries equals the number of notes
     (with `note_ids`, unknown and repeated note entries are reported too)
  3. no entry has an empty `photo_ids`
  4. confidence below the threshold is a warning only

`valid` is true iff there are no errors.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from src.schemas.models import NoteAssignment, ValidationReport

LOW_CONFIDENCE_THRESHOLD = 0.7


def validate_assignments(
    assignment: Sequence[NoteAssignment],
    photo_count: int,
    note_count: int,
    note_ids: Sequence[int] | None = None,
    low_confidence_threshold: float = LOW_CONFIDENCE_THRESHOLD,
) -> ValidationReport:
    errors: list[str] = []
    warnings: list[str] = []

    counts = Counter(pid for a in assignment for pid in a.photo_ids)
    for pid in range(1, photo_count + 1):
        n = counts.get(pid, 0)
        if n == 0:
            errors.append(f"Photo {pid} is not assigned to any note")
        elif n > 1:
            errors.append(f"Photo {pid} assigned to {n} notes (should be 1)")
    for pid in sorted(p for p in counts if not 1 <= p <= photo_count):
        errors.append(f"Photo {pid} is out of range (expected 1..{photo_count})")

    if len(assignment) != note_count:
        errors.append(f"Assignments cover {len(assignment)}/{note_count} notes")

    if note_ids is not None:
        known = set(note_ids)
        entry_counts = Counter(a.note_id for a in assignment)
        for nid, n in entry_counts.items():
            if nid not in known:
                errors.append(f"Note {nid} is not one of the input notes")
            elif n > 1:
                errors.append(f"Note {nid} appears in {n} assignments")
        for nid in note_ids:
            if nid not in entry_counts:
                errors.append(f"Note {nid} has no assignment entry")

    for a in assignment:
        if not a.photo_ids:
            errors.append(f"Note {a.note_id} has no photos assigned")
        if a.confidence < low_confidence_threshold:
            warnings.append(f"Note {a.note_id} has low confidence ({a.confidence:.2f})")

    return ValidationReport(valid=not errors, errors=errors, warnings=warnings)


def assigned_photo_ids(assignment: Sequence[NoteAssignment]) -> set[int]:
    return {pid for a in assignment for pid in a.photo_ids}


def orphaned_photo_ids(assignment: Sequence[NoteAssignment], photo_count: int) -> list[int]:
    """Photo ids in 1..photo_count that no entry holds, ascending."""
    held = assigned_photo_ids(assignment)
    return [pid for pid in range(1, photo_count + 1) if pid not in held]


def copy_assignment(assignment: Sequence[NoteAssignment]) -> list[NoteAssignment]:
    return [a.model_copy(deep=True) for a in assignment]
