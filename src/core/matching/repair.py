# src/core/matching/repair.py
"""
Deterministic fallback repair of an assignment. No classifier calls.

Order of operations
-------------------
0. Normalize: one entry per input note in note order (unknown notes dropped,
   repeated note entries merged, missing notes added as empty placeholders),
   each photo kept only in its first entry, out-of-range ids dropped.
1. Orphans and empty notes both present: zip them one photo per note
   (confidence 0.5); leftover orphans go to the last entry.
2. Orphans only: round-robin across all entries by index.
3. Empty notes only: take a surplus photo from the fullest entry holding more
   than one (confidence 0.5); when no entry has a surplus, photo 1 becomes a
   placeholder (confidence 0.3).

Afterwards every photo is held exactly once and no entry is empty. The single
accepted exception is the photo-1 placeholder, which can only be needed when
there are fewer photos than notes. Anything else raises InvariantBreachError.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from src.core.errors import InvariantBreachError
from src.schemas.models import NoteAssignment

from .validator import orphaned_photo_ids

logger = logging.getLogger(__name__)

REBALANCE_CONFIDENCE = 0.5
PLACEHOLDER_PHOTO_ID = 1
PLACEHOLDER_CONFIDENCE = 0.3


def repair_assignments(
    assignment: Sequence[NoteAssignment],
    photo_count: int,
    note_ids: Sequence[int],
) -> tuple[list[NoteAssignment], list[str]]:
    """Return a repaired copy of `assignment` and the list of actions taken."""
    actions: list[str] = []
    repaired = _normalize(assignment, photo_count, note_ids, actions)

    if not repaired or photo_count == 0:
        if repaired or photo_count:
            actions.append(f"Cannot distribute {photo_count} photo(s) across {len(repaired)} note(s)")
            logger.warning("Fallback repair skipped: %d photos, %d notes", photo_count, len(repaired))
        return repaired, actions

    orphans = orphaned_photo_ids(repaired, photo_count)
    empties = [a for a in repaired if not a.photo_ids]

    if orphans and empties:
        paired = min(len(orphans), len(empties))
        for entry, pid in zip(empties, orphans):
            entry.photo_ids = [pid]
            entry.confidence = REBALANCE_CONFIDENCE
            entry.reasoning = _append_reason(entry.reasoning, f"Fallback: assigned orphaned photo {pid}")
            actions.append(f"Note {entry.note_id} <- orphaned photo {pid}")
        leftover = orphans[paired:]
        if leftover:
            last = repaired[-1]
            last.photo_ids.extend(leftover)
            last.reasoning = _append_reason(last.reasoning, f"Fallback: added orphaned photos {_ids(leftover)}")
            actions.append(f"Note {last.note_id} <- leftover orphaned photos {_ids(leftover)}")
    elif orphans:
        for i, pid in enumerate(orphans):
            entry = repaired[i % len(repaired)]
            entry.photo_ids.append(pid)
            entry.reasoning = _append_reason(entry.reasoning, f"Fallback: added orphaned photo {pid}")
            actions.append(f"Note {entry.note_id} <- orphaned photo {pid} (round-robin)")

    placeholder_used = False
    for entry in (a for a in repaired if not a.photo_ids):
        donor = _fullest_entry(repaired)
        if donor is not None:
            pid = donor.photo_ids.pop()
            entry.photo_ids = [pid]
            entry.confidence = REBALANCE_CONFIDENCE
            entry.reasoning = _append_reason(entry.reasoning, f"Fallback: moved photo {pid} from note {donor.note_id}")
            actions.append(f"Note {entry.note_id} <- photo {pid} moved from note {donor.note_id}")
        else:
            entry.photo_ids = [PLACEHOLDER_PHOTO_ID]
            entry.confidence = PLACEHOLDER_CONFIDENCE
            entry.reasoning = _append_reason(entry.reasoning, "Fallback: placeholder photo 1")
            actions.append(f"Note {entry.note_id} <- placeholder photo {PLACEHOLDER_PHOTO_ID}")
            placeholder_used = True

    _check_repaired(repaired, photo_count, note_ids, placeholder_used)
    for action in actions:
        logger.info("Fallback repair: %s", action)
    return repaired, actions


# ---------- helpers ----------
def _normalize(
    assignment: Sequence[NoteAssignment],
    photo_count: int,
    note_ids: Sequence[int],
    actions: list[str],
) -> list[NoteAssignment]:
    by_note: dict[int, NoteAssignment] = {}
    known = set(note_ids)
    for a in assignment:
        if a.note_id not in known:
            actions.append(f"Dropped entry for unknown note {a.note_id}")
            continue
        if a.note_id in by_note:
            by_note[a.note_id].photo_ids.extend(a.photo_ids)
            actions.append(f"Merged repeated entry for note {a.note_id}")
            continue
        by_note[a.note_id] = a.model_copy(deep=True)

    repaired: list[NoteAssignment] = []
    for nid in note_ids:
        entry = by_note.get(nid)
        if entry is None:
            entry = NoteAssignment(note_id=nid, reasoning="Missing from matcher output", confidence=0.0)
            actions.append(f"Added placeholder entry for note {nid}")
        repaired.append(entry)

    seen: set[int] = set()
    for entry in repaired:
        kept: list[int] = []
        for pid in entry.photo_ids:
            if not 1 <= pid <= photo_count:
                actions.append(f"Dropped out-of-range photo {pid} from note {entry.note_id}")
            elif pid in seen:
                actions.append(f"Dropped duplicate photo {pid} from note {entry.note_id}")
            else:
                seen.add(pid)
                kept.append(pid)
        entry.photo_ids = kept
    return repaired


def _fullest_entry(assignment: Sequence[NoteAssignment]) -> NoteAssignment | None:
    best: NoteAssignment | None = None
    for a in assignment:
        if len(a.photo_ids) > 1 and (best is None or len(a.photo_ids) > len(best.photo_ids)):
            best = a
    return best


def _check_repaired(
    assignment: Sequence[NoteAssignment],
    photo_count: int,
    note_ids: Sequence[int],
    placeholder_used: bool,
) -> None:
    if [a.note_id for a in assignment] != list(note_ids):
        raise InvariantBreachError("repaired assignment does not have one entry per note in note order")
    if any(not a.photo_ids for a in assignment):
        raise InvariantBreachError("repaired assignment still has an empty note")

    held = [pid for a in assignment for pid in a.photo_ids]
    if set(held) != set(range(1, photo_count + 1)):
        raise InvariantBreachError("repaired assignment does not cover every photo exactly")
    duplicates = len(held) - len(set(held))
    if duplicates:
        placeholder_dupes = held.count(PLACEHOLDER_PHOTO_ID) - 1
        if not placeholder_used or duplicates != placeholder_dupes or photo_count >= len(note_ids):
            raise InvariantBreachError("repaired assignment holds duplicate photos")


def _append_reason(reasoning: str, extra: str) -> str:
    return f"{reasoning} ({extra})" if reasoning else extra


def _ids(ids: Sequence[int]) -> str:
    return ", ".join(str(i) for i in ids)
