# src/core/naming/__init__.py

from .namer import NamingState, PhotoNamer, name_photos
from .slugs import (
    GENERIC_NAMES,
    dedupe_slug,
    enforce_slug_rules,
    fallback_candidates,
    limit_slug,
    rejection_reason,
    sanitize_slug,
    simple_photo_slug,
    slug_from_original_name,
    word_count,
)

__all__ = [
    "NamingState",
    "PhotoNamer",
    "name_photos",
    "GENERIC_NAMES",
    "dedupe_slug",
    "enforce_slug_rules",
    "fallback_candidates",
    "limit_slug",
    "rejection_reason",
    "sanitize_slug",
    "simple_photo_slug",
    "slug_from_original_name",
    "word_count",
]
