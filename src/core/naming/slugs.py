# src/core/naming/slugs.py
"""
Slug helpers for photo filenames.

A slug is lowercase, hyphen-joined, at most 4 tokens and 60 characters.
Every helper here is pure; the used-slug set is owned by the caller.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

MAX_SLUG_LENGTH = 60
MAX_SLUG_TOKENS = 4
MIN_SLUG_TOKENS = 2
MAX_NUMERIC_SUFFIX = 100

GENERIC_NAMES: frozenset[str] = frozenset(
    {"photo", "observation", "positive-observation", "problem-photo", "construction-site", "site-photo"}
)

SLUG_STOPWORDS: frozenset[str] = frozenset(
    {
        "the", "and", "for", "with", "from", "that", "this", "were", "was", "are", "has", "have",
        "into", "onto", "been", "being", "there", "their", "which", "while", "should", "would",
        "positive", "negative", "observation", "observed", "noted", "photo", "area",
    }
)

_NON_SLUG = re.compile(r"[^a-z0-9\s-]")
_SEPARATORS = re.compile(r"[\s-]+")
_EXTENSION = re.compile(r"\.[^.]+$")
_WHATSAPP = re.compile(
    r"whatsapp\s*image\s*(\d{4})-(\d{2})-(\d{2}).*?(\d{2})\.(\d{2})\.(\d{2})(?:.*?\((\d+)\))?",
    re.IGNORECASE,
)


def word_count(slug: str) -> int:
    return len([t for t in slug.split("-") if t])


def limit_slug(slug: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    if len(slug) <= max_length:
        return slug
    return slug[:max_length].rstrip("-")


def sanitize_slug(raw: str | None) -> str:
    """Lowercase, strip to [a-z0-9], hyphen-join the first four tokens, cap at 60 chars."""
    if not raw:
        return ""
    normalized = _NON_SLUG.sub(" ", raw.lower())
    tokens = [t for t in _SEPARATORS.split(normalized) if t]
    return limit_slug("-".join(tokens[:MAX_SLUG_TOKENS]))


def rejection_reason(name: str) -> str | None:
    """Why a suggested name is unusable, or None when it is acceptable."""
    lowered = name.strip().lower()
    if lowered in GENERIC_NAMES:
        return f'Generic name "{name}" - not descriptive enough'
    n = word_count(lowered)
    if n < MIN_SLUG_TOKENS:
        return f'Too short: "{name}" ({n} word) - needs more detail'
    return None


def _tokens(text: str, min_len: int = 3, max_len: int = 14) -> list[str]:
    words = _NON_SLUG.sub(" ", text.lower()).replace("-", " ").split()
    return [w for w in words if min_len <= len(w) <= max_len]


def simple_photo_slug(text: str) -> str:
    """Slug from a note description: the first four distinct content words."""
    picked: list[str] = []
    for word in _tokens(text):
        if word in SLUG_STOPWORDS or word in picked:
            continue
        picked.append(word)
        if len(picked) == MAX_SLUG_TOKENS:
            break
    return limit_slug("-".join(picked))


def slug_from_original_name(name: str, max_length: int = 40) -> str:
    """
    Short slug from an uploaded filename.

    >>> slug_from_original_name("WhatsApp Image 2025-09-16 at 18.10.59 (13).jpeg")
    'wa-20250916-181059-13'
    """
    base = _EXTENSION.sub("", name or "")

    wa = _WHATSAPP.search(base)
    if wa:
        y, m, d, hh, mm, ss, idx = wa.groups()
        return "-".join(p for p in ("wa", f"{y}{m}{d}", f"{hh}{mm}{ss}", idx or "") if p)

    slug = _NON_SLUG.sub(" ", base.lower()).strip()
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug).strip("-")
    if len(slug) > max_length:
        cut = slug[:max_length]
        slug = cut.rsplit("-", 1)[0] if "-" in cut else cut
    return slug or "img"


def enforce_slug_rules(candidate: str, fallback: str) -> str:
    cleaned = re.sub(r"-+", "-", candidate or "").strip("-")
    if not cleaned or word_count(cleaned) < MIN_SLUG_TOKENS:
        return fallback
    return cleaned


def dedupe_slug(base: str, used: set[str], extras: Iterable[str], photo_id: int) -> str:
    """
    Return a slug not yet in `used` and record it there.

    On collision, in order: append an unused token from `extras`, append a
    numeric suffix starting at 2, append `photo-<id>`. The base is cut to
    leave room for the appended token(s) so the result stays within
    MAX_SLUG_TOKENS, the `photo-<id>` last resort included. Always terminates.
    """
    limited = limit_slug(base)
    if limited not in used:
        used.add(limited)
        return limited

    base_tokens = set(t for t in limited.split("-") if t)
    extra_tokens: list[str] = []
    for extra in extras:
        for token in (t.strip() for t in extra.split("-")):
            if token and token not in base_tokens and token not in extra_tokens:
                extra_tokens.append(token)

    head = _head(limited, MAX_SLUG_TOKENS - 1)
    for token in extra_tokens:
        attempt = limit_slug(f"{head}-{token}")
        if attempt not in used:
            used.add(attempt)
            return attempt

    for counter in range(2, MAX_NUMERIC_SUFFIX):
        attempt = _with_tail(head, str(counter))
        if attempt not in used:
            used.add(attempt)
            return attempt

    short = _head(limited, MAX_SLUG_TOKENS - 2)
    attempt = _with_tail(short, f"photo-{photo_id}")
    n = 2
    while attempt in used:
        attempt = _with_tail(short, f"photo-{photo_id}-{n}")
        n += 1
    used.add(attempt)
    return attempt


def _head(slug: str, tokens: int) -> str:
    return "-".join(slug.split("-")[:tokens])


def _with_tail(base: str, tail: str) -> str:
    """Append `tail`, trimming `base` so the tail always survives the length cap."""
    room = MAX_SLUG_LENGTH - len(tail) - 1
    head = base[:room].rstrip("-") if room > 0 else ""
    return f"{head}-{tail}" if head else tail[:MAX_SLUG_LENGTH]


def fallback_candidates(note_text: str | None, original_name: str, photo_id: int) -> list[str]:
    """
    Ordered fallback slugs for one photo: note-derived, then the note text
    itself, then the original filename, then `photo-<id>`. Empty ones dropped.
    """
    raw: Sequence[str] = (
        simple_photo_slug(note_text) if note_text else "",
        note_text or "",
        slug_from_original_name(original_name) if original_name else "",
        f"photo-{photo_id}",
    )
    return [s for s in (sanitize_slug(c) for c in raw) if s]
