# src/schemas/labels.py
from __future__ import annotations

from enum import Enum

# =========================
# Canonical label enums
# =========================


class Sentiment(str, Enum):
    """Classifier-assigned polarity of what a photo shows."""

    problem = "problem"
    good_practice = "good_practice"
    neutral = "neutral"


class ConfidenceLevel(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


class IssueType(str, Enum):
    ppe = "ppe"
    barriers = "barriers"
    housekeeping = "housekeeping"
    electrical = "electrical"
    working_at_height = "working_at_height"
    emergency = "emergency"
    other = "other"


class NotePattern(str, Enum):
    numbered = "numbered"
    unnumbered = "unnumbered"


class ClassifierPurpose(str, Enum):
    """Which of the classifier call shapes a request belongs to."""

    analyze_photo = "analyze_photo"
    match_excess_photos = "match_excess_photos"
    match_all_photos = "match_all_photos"
    verify_assignments = "verify_assignments"
    suggest_photo_names = "suggest_photo_names"
    retry_photo_names = "retry_photo_names"


# =========================
# Note keyword tables
# =========================

# First match wins, so order matters (ppe before barriers before housekeeping ...).
ISSUE_TYPE_CUES: tuple[tuple[IssueType, tuple[str, ...]], ...] = (
    (IssueType.ppe, ("ppe", "protective equipment")),
    (IssueType.barriers, ("barrier", "fence")),
    (IssueType.housekeeping, ("housekeep", "storage")),
    (IssueType.electrical, ("electrical", "cable")),
    (IssueType.working_at_height, ("scaff", "ladder")),
    (IssueType.emergency, ("fire", "aed", "emergency")),
)

REQUIRED_ELEMENTS: dict[IssueType, tuple[str, ...]] = {
    IssueType.ppe: ("person", "worker"),
    IssueType.barriers: ("barrier", "fence", "area"),
    IssueType.electrical: ("cable", "wire", "electrical"),
}

POSITIVE_CUES: tuple[str, ...] = (
    "positive observation",
    "good practice",
    "well maintained",
    "proper signage",
    "compliant",
)

NOTE_STOPWORDS: frozenset[str] = frozenset({"with", "from", "that", "this", "were", "have"})
