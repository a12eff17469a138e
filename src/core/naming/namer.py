# src/core/naming/namer.py
"""
Photo Namer: final assignment -> one unique slug per photo.

Flow (explicit state machine)
-----------------------------
INITIAL   one `suggest_photo_names` call for every photo
REJECTED  some suggestions were generic or too short
RETRIED   one `retry_photo_names` call scoped to the rejected photos,
          each with the reason it was rejected; its answers are accepted as-is
FINAL     per photo: accepted suggestion -> note-derived slug ->
          original-filename slug -> `photo-<id>`, then de-duplicated

INITIAL goes straight to FINAL when nothing was rejected (or the call failed).
Classifier failures never propagate: the local fallbacks always produce a name.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum

from src.core.context import PipelineContext
from src.core.errors import CLASSIFIER_ERRORS
from src.core.prompts import build_naming_prompt, build_naming_retry_prompt
from src.schemas.labels import ClassifierPurpose
from src.schemas.models import NoteAssignment, PhotoNameRecord, PhotoNameSuggestion
from src.tools.vision.provider_base import call_classifier
from src.tools.vision.response_parser import decode_response

from .slugs import dedupe_slug, enforce_slug_rules, fallback_candidates, rejection_reason, sanitize_slug, word_count

logger = logging.getLogger(__name__)


class NamingState(str, Enum):
    initial = "initial"
    rejected = "rejected"
    retried = "retried"
    final = "final"


_TRANSITIONS: dict[NamingState, tuple[NamingState, ...]] = {
    NamingState.initial: (NamingState.rejected, NamingState.final),
    NamingState.rejected: (NamingState.retried,),
    NamingState.retried: (NamingState.final,),
    NamingState.final: (),
}


class PhotoNamer:
    """Single-use namer for one run. Call `run()` once."""

    def __init__(self, ctx: PipelineContext, assignment: Sequence[NoteAssignment]) -> None:
        self.ctx = ctx
        self.state = NamingState.initial
        self.history: list[NamingState] = [NamingState.initial]
        self.accepted: dict[int, str] = {}
        self.rejections: dict[int, tuple[str, str]] = {}
        self.records: list[PhotoNameRecord] = []

        notes_by_id = ctx.notes_by_id
        self._note_text: dict[int, str] = {}
        for entry in assignment:
            note = notes_by_id.get(entry.note_id)
            if note is None:
                continue
            for pid in entry.photo_ids:
                self._note_text.setdefault(pid, note.text)

    # ---------- state machine ----------

    def _advance(self, target: NamingState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid naming transition {self.state.value} -> {target.value}")
        logger.debug("Naming state %s -> %s", self.state.value, target.value)
        self.state = target
        self.history.append(target)

    async def run(self) -> dict[int, str]:
        if self.state is not NamingState.initial:
            raise RuntimeError("PhotoNamer.run() may only be called once")

        await self._request_initial()
        if self.rejections:
            self._advance(NamingState.rejected)
            await self._request_retry()
            self._advance(NamingState.retried)
        self._advance(NamingState.final)
        return self._finalize()

    # ---------- classifier calls ----------

    def note_text(self, photo_id: int) -> str | None:
        return self._note_text.get(photo_id)

    async def _suggest(self, prompt: str, purpose: ClassifierPurpose) -> list[PhotoNameSuggestion]:
        try:
            text = await call_classifier(
                self.ctx.classifier,
                prompt,
                purpose=purpose,
                timeout_s=self.ctx.settings.naming_timeout_s,
                temperature=self.ctx.settings.naming_temperature,
            )
            return decode_response(text, list[PhotoNameSuggestion])
        except CLASSIFIER_ERRORS as e:
            logger.warning("Photo naming call %s failed (%s: %s)", purpose.value, type(e).__name__, e)
            return []

    async def _request_initial(self) -> None:
        contexts = [(pid, self.note_text(pid)) for pid in range(1, self.ctx.photo_count + 1)]
        if not contexts:
            return
        suggestions = await self._suggest(build_naming_prompt(contexts), ClassifierPurpose.suggest_photo_names)

        for s in suggestions:
            if not 1 <= s.photo_id <= self.ctx.photo_count:
                continue
            if s.photo_id in self.accepted or s.photo_id in self.rejections:
                continue
            slug = sanitize_slug(s.suggested_name)
            reason = rejection_reason(slug) if slug else "Empty name"
            if reason:
                logger.info("Rejected name for photo %d: %s", s.photo_id, reason)
                self.rejections[s.photo_id] = (s.suggested_name, reason)
            else:
                self.accepted[s.photo_id] = slug

    async def _request_retry(self) -> None:
        rejected = [
            (pid, name, reason, self.note_text(pid)) for pid, (name, reason) in sorted(self.rejections.items())
        ]
        logger.info("Retrying names for %d photo(s)", len(rejected))
        improved = await self._suggest(build_naming_retry_prompt(rejected), ClassifierPurpose.retry_photo_names)

        for s in improved:
            if s.photo_id not in self.rejections or s.photo_id in self.accepted:
                continue
            slug = sanitize_slug(s.suggested_name)
            if slug:
                self.accepted[s.photo_id] = slug

    # ---------- final selection ----------

    def _finalize(self) -> dict[int, str]:
        used: set[str] = set()
        for pid in range(1, self.ctx.photo_count + 1):
            photo = self.ctx.photo(pid)
            original_name = photo.original_name if photo else ""
            candidates = fallback_candidates(self.note_text(pid), original_name, pid)

            fallback = next((c for c in candidates if word_count(c) >= 2), f"photo-{pid}")
            candidate = self.accepted.get(pid) or fallback
            slug = dedupe_slug(enforce_slug_rules(candidate, fallback), used, candidates, pid)
            self.records.append(PhotoNameRecord(photo_id=pid, slug=slug))
        return {r.photo_id: r.slug for r in self.records}


async def name_photos(ctx: PipelineContext, assignment: Sequence[NoteAssignment]) -> dict[int, str]:
    """Name every photo of the run; the result maps photo_id -> unique slug."""
    namer = PhotoNamer(ctx, assignment)
    names = await namer.run()
    logger.info("Named %d photo(s) (states: %s)", len(names), " -> ".join(s.value for s in namer.history))
    return names
