# src/schemas/models.py

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from src.schemas.labels import ConfidenceLevel, IssueType, NotePattern, Sentiment

# =========================
# Inputs
# =========================


class Photo(BaseModel):
    """One field photograph. Identity is its 1-based position in the input batch."""

    model_config = ConfigDict(frozen=True)

    photo_id: int = Field(..., ge=1, description="1-based ordinal position in the input batch.")
    content: bytes = Field(b"", repr=False, description="Opaque image bytes (already compressed upstream).")
    original_name: str = Field("", description="Filename as uploaded by the inspector.")
    mime_type: str = Field("image/jpeg", description="MIME type used when the image is sent to the classifier.")


class ObservationNote(BaseModel):
    """Inspector-written note. Ids come from the inspector and need not be contiguous."""

    model_config = ConfigDict(frozen=True)

    note_id: int = Field(..., description="Inspector-assigned note number.")
    text: str = Field(..., description="Raw note text without its numeric prefix.")


# =========================
# Derived, read-only stage inputs
# =========================


def _as_str_list(value: object) -> list[str]:
    """Classifiers sometimes return a bare string or null where a list is expected."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None and str(v).strip()]
    return [str(value)]


class PhotoMetadata(BaseModel):
    """
    Visual metadata extracted from one photo by the Photo Analyzer.

    Accepts the classifier's camelCase keys (``safetyIssues``) as well as the
    snake_case field names. Unknown sentiment/confidence values degrade to
    ``neutral`` / ``low`` instead of failing validation.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    photo_id: int = Field(0, ge=0, validation_alias=AliasChoices("photo_id", "photoId"))
    location: str = Field("", description="Building area, room or outdoor area visible in the photo.")
    equipment: list[str] = Field(default_factory=list)
    people: list[str] = Field(default_factory=list)
    safety_issues: list[str] = Field(default_factory=list, validation_alias=AliasChoices("safety_issues", "safetyIssues"))
    conditions: list[str] = Field(default_factory=list)
    confidence: ConfidenceLevel = ConfidenceLevel.low
    sentiment: Sentiment = Sentiment.neutral
    original_name: str = Field("", validation_alias=AliasChoices("original_name", "originalName"))

    @field_validator("equipment", "people", "safety_issues", "conditions", mode="before")
    @classmethod
    def _coerce_lists(cls, v: object) -> list[str]:
        return _as_str_list(v)

    @field_validator("location", mode="before")
    @classmethod
    def _coerce_location(cls, v: object) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("sentiment", mode="before")
    @classmethod
    def _coerce_sentiment(cls, v: object) -> Sentiment:
        raw = str(v or "").strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return Sentiment(raw)
        except ValueError:
            return Sentiment.neutral

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, v: object) -> ConfidenceLevel:
        try:
            return ConfidenceLevel(str(v or "").strip().lower())
        except ValueError:
            return ConfidenceLevel.low


class StructuredNote(BaseModel):
    """Note intent derived locally by the Note Parser."""

    model_config = ConfigDict(frozen=True)

    note_id: int
    original_text: str
    location: str = ""
    issue_type: IssueType = IssueType.other
    keywords: list[str] = Field(default_factory=list)
    required_elements: list[str] = Field(default_factory=list)
    is_positive: bool = False


# =========================
# Assignment
# =========================


class NoteAssignment(BaseModel):
    """
    One entry of the assignment: the photos documenting a single note.

    `photo_ids` may be empty only transiently (placeholder entries during matching).
    """

    model_config = ConfigDict(populate_by_name=True)

    note_id: int = Field(..., validation_alias=AliasChoices("note_id", "noteId"))
    photo_ids: list[int] = Field(default_factory=list, validation_alias=AliasChoices("photo_ids", "photoIds"))
    reasoning: str = ""
    confidence: float = Field(0.0, ge=0.0, le=1.0)

    @field_validator("photo_ids", mode="before")
    @classmethod
    def _coerce_photo_ids(cls, v: object) -> list[int]:
        if v is None:
            return []
        if isinstance(v, dict):
            raise ValueError("photoIds must be a list of photo ids")
        if not isinstance(v, (list, tuple, set)):
            v = [v]
        out: list[int] = []
        for item in v:
            if isinstance(item, bool):
                continue
            try:
                out.append(int(float(item)))
            except (TypeError, ValueError, OverflowError):
                continue
        return out

    @field_validator("reasoning", mode="before")
    @classmethod
    def _coerce_reasoning(cls, v: object) -> str:
        return "" if v is None else str(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: object) -> float:
        try:
            f = float(v)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0.0
        return min(1.0, max(0.0, f))


Assignment = list[NoteAssignment]


class VerificationResponse(BaseModel):
    """Shape returned by the independent verification call."""

    model_config = ConfigDict(populate_by_name=True)

    corrected_assignments: list[NoteAssignment] = Field(
        default_factory=list, validation_alias=AliasChoices("corrected_assignments", "correctedAssignments")
    )
    fixes_applied: str = Field("", validation_alias=AliasChoices("fixes_applied", "fixesApplied"))

    @field_validator("fixes_applied", mode="before")
    @classmethod
    def _coerce_fixes(cls, v: object) -> str:
        if isinstance(v, list):
            return "; ".join(str(x) for x in v)
        return "" if v is None else str(v)


class PhotoNameSuggestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    photo_id: int = Field(..., validation_alias=AliasChoices("photo_id", "photoId"))
    suggested_name: str = Field("", validation_alias=AliasChoices("suggested_name", "suggestedName"))
    reasoning: str = ""

    @field_validator("suggested_name", "reasoning", mode="before")
    @classmethod
    def _coerce_text(cls, v: object) -> str:
        return "" if v is None else str(v)


# =========================
# Outputs
# =========================


class ValidationReport(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class PhotoNameRecord(BaseModel):
    """Final, unique filename slug for one photo."""

    model_config = ConfigDict(frozen=True)

    photo_id: int = Field(..., ge=1)
    slug: str = Field(..., min_length=1, max_length=60)


class VerificationSummary(BaseModel):
    invoked: bool = False
    fixed: bool = False
    reasoning: str = ""


class Diagnostics(BaseModel):
    """Everything a reviewer needs to triage low-confidence matches."""

    photo_metadata: list[PhotoMetadata] = Field(default_factory=list)
    structured_notes: list[StructuredNote] = Field(default_factory=list)
    assignment_reasoning: list[NoteAssignment] = Field(default_factory=list)
    validation: ValidationReport = Field(default_factory=lambda: ValidationReport(valid=True))
    note_pattern: NotePattern | None = None
    match_strategy: str = Field("", description="direct, direct+excess, enhanced or round-robin.")
    verification: VerificationSummary = Field(default_factory=VerificationSummary)
    repairs: list[str] = Field(default_factory=list, description="Actions taken by the fallback repairer.")


class OrchestrationResult(BaseModel):
    assignments: dict[int, list[int]] = Field(default_factory=dict, description="note_id -> photo_ids")
    photo_names: dict[int, str] = Field(default_factory=dict, description="photo_id -> slug")
    diagnostics: Diagnostics = Field(default_factory=Diagnostics)
