# src/core/matching/verifier.py
"""
Independent verification of an assignment.

Re-states the full context (metadata, notes, current assignment, validator
errors and warnings) to a second classifier call and accepts its correction
only when re-validation is valid or has strictly fewer errors. Any failure
keeps the current assignment.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from src.core.context import PipelineContext
from src.core.errors import CLASSIFIER_ERRORS
from src.core.prompts import build_verification_prompt
from src.schemas.labels import ClassifierPurpose
from src.schemas.models import NoteAssignment, ValidationReport, VerificationResponse
from src.tools.vision.provider_base import call_classifier
from src.tools.vision.response_parser import decode_response

from .validator import copy_assignment, validate_assignments

logger = logging.getLogger(__name__)


@dataclass
class VerificationOutcome:
    assignment: list[NoteAssignment]
    fixed: bool
    reasoning: str
    report: ValidationReport
    invoked: bool = True
    rejected: list[str] = field(default_factory=list)


def needs_verification(report: ValidationReport) -> bool:
    return bool(report.errors or report.warnings)


def validate_for(ctx: PipelineContext, assignment: Sequence[NoteAssignment]) -> ValidationReport:
    return validate_assignments(
        assignment,
        ctx.photo_count,
        ctx.note_count,
        note_ids=ctx.note_ids,
        low_confidence_threshold=ctx.settings.low_confidence_threshold,
    )


async def verify_assignments(
    ctx: PipelineContext,
    assignment: Sequence[NoteAssignment],
    report: ValidationReport,
) -> VerificationOutcome:
    """
    Ask the verification model to fix `assignment`.

    The returned outcome always carries a usable assignment: the correction
    when accepted, otherwise a copy of the input.
    """
    current = copy_assignment(assignment)
    if not needs_verification(report):
        return VerificationOutcome(current, False, "Assignments already consistent", report, invoked=False)

    logger.info(
        "Verifying assignments (%d error(s), %d warning(s))", len(report.errors), len(report.warnings)
    )
    prompt = build_verification_prompt(current, report, ctx.photo_metadata, ctx.structured_notes)
    try:
        text = await call_classifier(
            ctx.classifier,
            prompt,
            purpose=ClassifierPurpose.verify_assignments,
            timeout_s=ctx.settings.verify_timeout_s,
            temperature=ctx.settings.match_temperature,
        )
        response = decode_response(text, VerificationResponse)
    except CLASSIFIER_ERRORS as e:
        logger.warning("Verification failed (%s: %s); keeping current assignments", type(e).__name__, e)
        return VerificationOutcome(current, False, f"Verification unavailable: {type(e).__name__}", report)

    if not response.corrected_assignments:
        logger.warning("Verifier returned no corrected assignments; keeping current assignments")
        return VerificationOutcome(current, False, "Verifier returned no corrections", report)

    corrected = response.corrected_assignments
    new_report = validate_for(ctx, corrected)
    if new_report.valid or len(new_report.errors) < len(report.errors):
        logger.info(
            "Verifier correction accepted (%d -> %d error(s)): %s",
            len(report.errors), len(new_report.errors), response.fixes_applied,
        )
        return VerificationOutcome(corrected, True, response.fixes_applied, new_report)

    logger.warning(
        "Verifier correction rejected: %d error(s) before, %d after",
        len(report.errors), len(new_report.errors),
    )
    return VerificationOutcome(
        current,
        False,
        f"Correction rejected ({len(new_report.errors)} error(s) vs {len(report.errors)})",
        report,
        rejected=new_report.errors,
    )
