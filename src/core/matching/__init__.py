# src/core/matching/__init__.py

from .matcher import (
    MatchOutcome,
    direct_pairs,
    is_sentiment_compatible,
    match_direct,
    match_enhanced,
    match_photos_to_notes,
    merge_additions,
    round_robin_by_sentiment,
)
from .repair import repair_assignments
from .validator import (
    assigned_photo_ids,
    copy_assignment,
    orphaned_photo_ids,
    validate_assignments,
)
from .verifier import VerificationOutcome, needs_verification, validate_for, verify_assignments

__all__ = [
    "MatchOutcome",
    "VerificationOutcome",
    "assigned_photo_ids",
    "copy_assignment",
    "direct_pairs",
    "is_sentiment_compatible",
    "match_direct",
    "match_enhanced",
    "match_photos_to_notes",
    "merge_additions",
    "needs_verification",
    "orphaned_photo_ids",
    "repair_assignments",
    "round_robin_by_sentiment",
    "validate_assignments",
    "validate_for",
    "verify_assignments",
]
