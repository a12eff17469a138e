# tests/unit/test_namer.py
"""
Photo Namer

Purpose
-------
- Accepted suggestions are used as-is (sanitized).
- Generic or short suggestions are rejected, retried exactly once for just
  those photos, and fall back to note-derived slugs when the retry fails.
- Every photo ends with a unique slug.
"""

import asyncio

import pytest

from src.core.errors import ClassifierTimeoutError
from src.core.naming import NamingState, PhotoNamer, name_photos
from src.core.naming.slugs import word_count
from src.schemas.labels import ClassifierPurpose
from src.tools.vision.mock_provider import MockClassifier
from tests.utils import make_assignment, make_context, make_metadata, make_structured_note, names_json


def _ctx(clf, photo_count=2):
    notes = [
        make_structured_note(1, "Good practice: proper signage at mixing station", is_positive=True),
        make_structured_note(2, "Cable damage in COLO2 room"),
    ]
    metadata = [make_metadata(i) for i in range(1, photo_count + 1)]
    return make_context(metadata=metadata, structured=notes, classifier=clf)


def _run(namer):
    return asyncio.run(namer.run())


def test_accepted_suggestions_skip_retry():
    clf = MockClassifier().script(
        ClassifierPurpose.suggest_photo_names, names_json({1: "Proper Signage Mixing", 2: "cable-damage-colo2"})
    )
    namer = PhotoNamer(_ctx(clf), make_assignment({1: [1], 2: [2]}))
    names = _run(namer)
    assert names == {1: "proper-signage-mixing", 2: "cable-damage-colo2"}
    assert namer.history == [NamingState.initial, NamingState.final]
    assert [(r.photo_id, r.slug) for r in namer.records] == [(1, "proper-signage-mixing"), (2, "cable-damage-colo2")]
    assert clf.calls_for(ClassifierPurpose.retry_photo_names) == []


def test_generic_name_rejected_and_retry_failure_falls_back_to_note():
    clf = MockClassifier().script(
        ClassifierPurpose.suggest_photo_names, names_json({1: "positive-observation", 2: "cable-damage-colo2"})
    )
    clf.script(ClassifierPurpose.retry_photo_names, ClassifierTimeoutError("slow"))
    namer = PhotoNamer(_ctx(clf), make_assignment({1: [1], 2: [2]}))
    names = _run(namer)

    assert names[1] == "good-practice-proper-signage"
    assert names[2] == "cable-damage-colo2"
    assert namer.history == [NamingState.initial, NamingState.rejected, NamingState.retried, NamingState.final]

    retry = clf.calls_for(ClassifierPurpose.retry_photo_names)
    assert len(retry) == 1
    assert "Photo 1:" in retry[0].prompt and "Photo 2:" not in retry[0].prompt
    assert "Generic name" in retry[0].prompt


def test_retry_answer_is_used():
    clf = MockClassifier()
    clf.script(ClassifierPurpose.suggest_photo_names, names_json({1: "photo", 2: "cable-damage-colo2"}))
    clf.script(ClassifierPurpose.retry_photo_names, names_json({1: "signage-mixing-station", 2: "ignored-name"}))
    names = _run(PhotoNamer(_ctx(clf), make_assignment({1: [1], 2: [2]})))
    assert names == {1: "signage-mixing-station", 2: "cable-damage-colo2"}


def test_short_retry_answer_still_meets_shape_rules():
    clf = MockClassifier()
    clf.script(ClassifierPurpose.suggest_photo_names, names_json({1: "signage"}))
    clf.script(ClassifierPurpose.retry_photo_names, names_json({1: "signage"}))
    names = _run(PhotoNamer(_ctx(clf, photo_count=1), make_assignment({1: [1], 2: []})))
    assert names[1] == "good-practice-proper-signage"


def test_naming_unavailable_uses_local_fallbacks_and_stays_unique():
    # unscripted naming calls raise ClassifierUnavailableError in the mock
    clf = MockClassifier()
    ctx = _ctx(clf, photo_count=3)
    names = asyncio.run(name_photos(ctx, make_assignment({1: [], 2: [1, 2]})))

    assert names[1] == "cable-damage-colo2-room"
    assert names[2].startswith("cable-damage-colo2-") and word_count(names[2]) <= 4
    assert names[3] == "img-0003"  # unassigned photo: original filename
    assert len(set(names.values())) == 3


def test_suggestions_for_unknown_photos_are_ignored():
    clf = MockClassifier().script(
        ClassifierPurpose.suggest_photo_names, names_json({9: "bogus-photo-name", 1: "blocked-fire-exit"})
    )
    names = _run(PhotoNamer(_ctx(clf, photo_count=1), make_assignment({1: [1]})))
    assert names == {1: "blocked-fire-exit"}


def test_run_only_once():
    namer = PhotoNamer(_ctx(MockClassifier(), photo_count=1), make_assignment({1: [1]}))
    _run(namer)
    with pytest.raises(RuntimeError):
        _run(namer)
