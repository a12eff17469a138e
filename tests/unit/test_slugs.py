# tests/unit/test_slugs.py
"""
Slug helpers

Purpose
-------
Shape rules (lowercase, hyphen-joined, <= 4 tokens, <= 60 chars), generic-name
rejection, filename-derived slugs and always-terminating de-duplication.
"""

import pytest

from src.core.naming import (
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


def test_sanitize_slug_lowercases_and_keeps_four_tokens():
    assert sanitize_slug("Cable Damage in COLO2!!") == "cable-damage-in-colo2"
    assert sanitize_slug("a-b c-d e") == "a-b-c-d"
    assert sanitize_slug("") == ""
    assert sanitize_slug(None) == ""
    assert sanitize_slug("x" * 70) == "x" * 60


def test_limit_slug_strips_dangling_hyphen():
    assert limit_slug("abc-def", max_length=4) == "abc"


@pytest.mark.parametrize("name", ["positive-observation", "photo", "observation", "construction-site", "site-photo"])
def test_generic_names_rejected(name):
    assert "Generic" in rejection_reason(name)


def test_short_names_rejected_and_specific_names_accepted():
    assert "Too short" in rejection_reason("damage")
    assert rejection_reason("cable-damage-colo2") is None


def test_simple_photo_slug_skips_stopwords():
    text = "Positive observation - Proper PPE usage by workers in the laydown area"
    assert simple_photo_slug(text) == "proper-ppe-usage-workers"


def test_whatsapp_filenames():
    assert slug_from_original_name("WhatsApp Image 2025-09-16 at 18.10.59 (13).jpeg") == "wa-20250916-181059-13"
    assert slug_from_original_name("WhatsApp Image 2025-09-16 at 18.10.59.jpeg") == "wa-20250916-181059"


def test_generic_filenames():
    assert slug_from_original_name("IMG_1234 Cable Damage.JPG") == "img-1234-cable-damage"
    assert slug_from_original_name("!!!.jpg") == "img"
    long = slug_from_original_name("very long descriptive filename about the laydown area housekeeping.png")
    assert len(long) <= 40 and not long.endswith("-")


def test_enforce_slug_rules_falls_back_on_single_token():
    assert enforce_slug_rules("single", "fallback-slug") == "fallback-slug"
    assert enforce_slug_rules("--a--b--", "fallback-slug") == "a-b"


def test_dedupe_prefers_extra_tokens_then_numbers():
    used = {"cable-damage"}
    assert dedupe_slug("cable-damage", used, ["cable-damage-colo2"], 3) == "cable-damage-colo2"
    assert dedupe_slug("cable-damage", used, ["cable-damage-colo2"], 4) == "cable-damage-2"
    assert {"cable-damage", "cable-damage-colo2", "cable-damage-2"} <= used


def test_dedupe_keeps_four_token_cap_on_collision():
    used = {"missing-hard-hats-scaffold"}
    first = dedupe_slug("missing-hard-hats-scaffold", used, ["img-0004"], 4)
    second = dedupe_slug("missing-hard-hats-scaffold", used, ["img-0004"], 5)
    assert first == "missing-hard-hats-img"
    assert second == "missing-hard-hats-0004"
    used |= {f"missing-hard-hats-{n}" for n in range(2, 100)}
    last = dedupe_slug("missing-hard-hats-scaffold", used, [], 6)
    assert last == "missing-hard-photo-6"
    assert all(word_count(s) <= 4 for s in (first, second, last))


def test_dedupe_last_resort_is_photo_id():
    used = {"a-b"} | {f"a-b-{n}" for n in range(2, 100)}
    assert dedupe_slug("a-b", used, [], 7) == "a-b-photo-7"


def test_dedupe_always_unique_and_bounded():
    used: set[str] = set()
    base = "-".join(["abcdefghij"] * 6)
    slugs = [dedupe_slug(base, used, [], i) for i in range(1, 150)]
    assert len(set(slugs)) == len(slugs)
    assert all(len(s) <= 60 and s == s.lower() and not s.endswith("-") for s in slugs)


def test_fallback_candidates_order():
    cands = fallback_candidates("Blocked fire exit near COLO2", "IMG_1.jpg", 4)
    assert cands[0] == "blocked-fire-exit-near"
    assert cands[-1] == "photo-4"
    assert "img-1" in cands
    assert fallback_candidates(None, "", 2) == ["photo-2"]


def test_word_count():
    assert word_count("a-b--c") == 3
    assert word_count("") == 0
