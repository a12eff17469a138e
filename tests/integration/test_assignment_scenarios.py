# tests/integration/test_assignment_scenarios.py
"""
Assignment Orchestrator (end-to-end, mock classifier)

Purpose
-------
Drive the full pipeline (analyze → parse → pattern → match → validate →
verify → repair → name) through its main paths:

- numbered notes, all sentiments compatible: direct 1:1, no verification
- unnumbered notes, enhanced call times out: sentiment round-robin at 0.4
- duplicate from the matcher, verifier down: repair leaves no duplicates
- generic photo name, retry down: slug from the assigned note
- every classifier call failing: still a structurally valid result
- wrong field types in a matcher reply: no crash, still a valid result
- a classifier created by the orchestrator is closed after the run
"""

import asyncio

import pytest

from src.core.errors import ClassifierTimeoutError
from src.orchestrators.assignment_orchestrator import orchestrate, orchestrate_async
from src.schemas.labels import ClassifierPurpose, NotePattern
from src.tools.vision.mock_provider import MockClassifier
from tests.utils import assignments_json, make_notes, make_photo, make_photos, names_json


class FailingClassifier:
    """Every call fails like a dropped connection."""

    def __init__(self):
        self.calls = 0

    async def complete(self, prompt, *, images=(), purpose, temperature=None):
        self.calls += 1
        raise ConnectionError("connection reset by peer")


def _photo_ids(result):
    return sorted(pid for pids in result.assignments.values() for pid in pids)


NUMBERED_NOTES = make_notes(
    "COLO2 electrical room: cable damage on supply line",
    "Corridor - blocked fire exit near stairwell",
    "Good practice: proper signage at mixing station",
)


def test_numbered_direct_match_skips_verification(mock_settings):
    clf = MockClassifier()
    photos = make_photos("cable damage colo2.jpg", "blocked exit corridor.jpg", "proper signage.jpg")
    result = orchestrate(photos, NUMBERED_NOTES, classifier=clf, settings=mock_settings())

    diag = result.diagnostics
    assert diag.note_pattern is NotePattern.numbered
    assert diag.match_strategy == "direct"
    assert result.assignments == {1: [1], 2: [2], 3: [3]}
    assert all(a.confidence == 0.95 for a in diag.assignment_reasoning)
    assert diag.validation.valid and diag.validation.warnings == []
    assert diag.verification.invoked is False
    assert clf.calls_for(ClassifierPurpose.verify_assignments) == []
    assert diag.repairs == []

    assert sorted(result.photo_names) == [1, 2, 3]
    assert len(set(result.photo_names.values())) == 3


def test_unnumbered_timeout_falls_back_to_round_robin(mock_settings):
    clf = MockClassifier().script(ClassifierPurpose.match_all_photos, ClassifierTimeoutError("slow"))
    photos = make_photos(
        "cable damage.jpg", "general view.jpg", "proper ppe.jpg", "exposed wiring.jpg", "site overview.jpg"
    )
    notes = make_notes(
        "Cable damage in COLO2 room",
        "Positive observation - proper PPE used by crew",
        "Exposed wiring near generator",
    )
    result = orchestrate(photos, notes, classifier=clf, settings=mock_settings())

    diag = result.diagnostics
    assert diag.note_pattern is NotePattern.unnumbered
    assert diag.match_strategy == "round-robin"
    assert result.assignments == {1: [1, 4], 2: [3], 3: [2, 5]}
    assert all(a.confidence == 0.4 for a in diag.assignment_reasoning)
    assert diag.validation.valid
    # low confidence warnings send it to the verifier, which is unscripted here
    assert diag.verification.invoked is True and diag.verification.fixed is False
    assert diag.repairs == []


def test_duplicate_resolved_by_repair_when_verifier_fails(mock_settings):
    clf = MockClassifier()
    clf.script(ClassifierPurpose.match_all_photos, assignments_json({1: [1, 2], 2: [2, 3]}))
    clf.script(ClassifierPurpose.verify_assignments, ClassifierTimeoutError("slow"))
    photos = make_photos("a.jpg", "b.jpg", "c.jpg", "d.jpg")
    notes = make_notes("Housekeeping in laydown area", "Scaffold tag missing on east side")
    result = orchestrate(photos, notes, classifier=clf, settings=mock_settings())

    diag = result.diagnostics
    assert diag.match_strategy == "enhanced"
    assert diag.verification.invoked is True and diag.verification.fixed is False
    assert diag.repairs
    assert diag.validation.valid
    assert _photo_ids(result) == [1, 2, 3, 4]
    assert all(result.assignments[nid] for nid in (1, 2))


def test_duplicate_fixed_by_verifier(mock_settings):
    clf = MockClassifier()
    clf.script(ClassifierPurpose.match_all_photos, assignments_json({1: [1, 2], 2: [2, 3]}))
    clf.script(
        ClassifierPurpose.verify_assignments,
        '{"correctedAssignments": [{"noteId": 1, "photoIds": [1, 2], "confidence": 0.9},'
        ' {"noteId": 2, "photoIds": [3, 4], "confidence": 0.9}], "fixesApplied": "Moved photo 2; placed photo 4"}',
    )
    result = orchestrate(
        make_photos("a.jpg", "b.jpg", "c.jpg", "d.jpg"),
        make_notes("Housekeeping in laydown area", "Scaffold tag missing on east side"),
        classifier=clf,
        settings=mock_settings(),
    )
    assert result.assignments == {1: [1, 2], 2: [3, 4]}
    assert result.diagnostics.verification.fixed is True
    assert result.diagnostics.repairs == []


def test_generic_name_falls_back_to_note_slug(mock_settings):
    clf = MockClassifier()
    clf.script(
        ClassifierPurpose.suggest_photo_names,
        names_json({1: "cable-damage-colo2", 2: "blocked-fire-exit", 3: "positive-observation"}),
    )
    clf.script(ClassifierPurpose.retry_photo_names, ClassifierTimeoutError("slow"))
    photos = make_photos("cable damage colo2.jpg", "blocked exit corridor.jpg", "proper signage.jpg")
    result = orchestrate(photos, NUMBERED_NOTES, classifier=clf, settings=mock_settings())

    assert result.photo_names == {
        1: "cable-damage-colo2",
        2: "blocked-fire-exit",
        3: "good-practice-proper-signage",
    }
    retry = clf.calls_for(ClassifierPurpose.retry_photo_names)
    assert len(retry) == 1 and "positive-observation" in retry[0].prompt


def test_all_calls_failing_still_covers_every_photo(mock_settings):
    clf = FailingClassifier()
    photos = make_photos("a.jpg", "b.jpg", "c.jpg", "d.jpg")
    notes = make_notes("Cable damage in COLO2", "Blocked exit", "Missing guard rail")
    result = orchestrate(photos, notes, classifier=clf, settings=mock_settings())

    diag = result.diagnostics
    assert clf.calls > 0
    assert all(m.confidence.value == "low" for m in diag.photo_metadata)
    assert diag.validation.valid
    assert _photo_ids(result) == [1, 2, 3, 4]
    assert len(set(result.photo_names.values())) == 4


@pytest.mark.parametrize("photo_count,note_count", [(1, 1), (2, 5), (3, 2), (6, 2), (7, 4)])
def test_every_note_gets_a_photo_when_everything_fails(mock_settings, photo_count, note_count):
    photos = [make_photo(i) for i in range(1, photo_count + 1)]
    notes = make_notes(*(f"Observation about area {i}" for i in range(1, note_count + 1)))
    result = orchestrate(photos, notes, classifier=FailingClassifier(), settings=mock_settings())

    assert sorted(result.assignments) == list(range(1, note_count + 1))
    assert all(result.assignments.values())
    assert set(_photo_ids(result)) == set(range(1, photo_count + 1))
    if photo_count >= note_count:
        assert result.diagnostics.validation.valid
        assert len(_photo_ids(result)) == photo_count


def test_photo_ids_follow_batch_position(mock_settings):
    photos = [make_photo(7, "x.jpg"), make_photo(3, "y.jpg")]
    result = asyncio.run(
        orchestrate_async(photos, make_notes("Cable damage", "Blocked exit"), classifier=MockClassifier(), settings=mock_settings())
    )
    assert [m.photo_id for m in result.diagnostics.photo_metadata] == [1, 2]
    assert [m.original_name for m in result.diagnostics.photo_metadata] == ["x.jpg", "y.jpg"]


def test_scalar_photo_ids_in_match_reply_do_not_abort_the_run(mock_settings):
    clf = MockClassifier().script(
        ClassifierPurpose.match_all_photos, '[{"noteId": 1, "photoIds": 1.0, "confidence": 0.9}]'
    )
    photos = make_photos("a.jpg", "b.jpg", "c.jpg", "d.jpg", "e.jpg")
    notes = make_notes("Housekeeping in laydown area", "Scaffold tag missing", "Blocked exit")
    result = orchestrate(photos, notes, classifier=clf, settings=mock_settings())

    assert result.diagnostics.validation.valid
    assert _photo_ids(result) == [1, 2, 3, 4, 5]
    assert all(result.assignments[nid] for nid in (1, 2, 3))


class ClosingClassifier(MockClassifier):
    def __init__(self):
        super().__init__()
        self.closed = False

    async def aclose(self):
        self.closed = True


def test_created_classifier_is_closed_after_run(monkeypatch, mock_settings):
    created = ClosingClassifier()
    monkeypatch.setattr(
        "src.orchestrators.assignment_orchestrator.get_classifier", lambda settings: created
    )
    result = orchestrate(make_photos("a.jpg"), make_notes("Blocked exit"), settings=mock_settings())

    assert _photo_ids(result) == [1]
    assert created.closed is True


def test_created_classifier_is_closed_when_run_raises(monkeypatch, mock_settings):
    created = ClosingClassifier()
    monkeypatch.setattr(
        "src.orchestrators.assignment_orchestrator.get_classifier", lambda settings: created
    )

    async def _boom(self, photos, notes):
        raise RuntimeError("stage defect")

    monkeypatch.setattr("src.orchestrators.assignment_orchestrator.AssignmentOrchestrator.run", _boom)
    with pytest.raises(RuntimeError):
        orchestrate(make_photos("a.jpg"), make_notes("Blocked exit"), settings=mock_settings())
    assert created.closed is True


def test_caller_supplied_classifier_is_left_open(mock_settings):
    clf = ClosingClassifier()
    orchestrate(make_photos("a.jpg"), make_notes("Blocked exit"), classifier=clf, settings=mock_settings())
    assert clf.closed is False
