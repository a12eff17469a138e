# src/inputs/settings.py
"""
Pipeline settings loader for the observation bundler.

Goals
-----
- Every tunable of the assignment pipeline lives in one validated Pydantic model.
- File-first: optional JSON file, then light environment-variable overrides.
- Non-destructive overrides for CLI flags (`with_overrides` returns copies).

JSON shape
----------
    {
      "excess_match_timeout_s": 120,
      "enhanced_match_timeout_s": 180,
      "ratio_min": 0.8,
      "ratio_max": 1.5,
      "prefix_threshold": 0.6,
      "provider": "openai"
    }

Environment overrides (optional)
--------------------------------
- OBSBUNDLE_PROVIDER              -> provider ("mock" | "openai")
- OBSBUNDLE_MODEL                 -> model
- OBSBUNDLE_VERIFY_MODEL          -> verify_model
- OBSBUNDLE_BASE_URL              -> base_url
- OBSBUNDLE_ANALYZER_CONCURRENCY  -> analyzer_concurrency (int)
- OBSBUNDLE_RATIO_MIN / _RATIO_MAX / _PREFIX_THRESHOLD (float)

Notes
-----
- The ratio bounds and prefix threshold are empirically chosen heuristics,
  kept here so they can be tuned per deployment. They are not correctness
  constants: any value yields a structurally valid assignment.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, cast

from pydantic import BaseModel, Field, ValidationError, model_validator

ProviderChoice = Literal["mock", "openai"]


class PipelineSettings(BaseModel):
    """Runtime options controlling a single orchestration run."""

    # --- classifier ---
    provider: ProviderChoice = Field("openai", description='Classifier provider: "openai" or "mock".')
    model: str = Field("google/gemini-2.5-flash", description="Model used for analysis, matching and naming.")
    verify_model: str = Field("anthropic/claude-sonnet-4.5", description="Stronger model used for verification.")
    base_url: str | None = Field(None, description="OpenAI-compatible endpoint (e.g. https://openrouter.ai/api/v1).")

    # --- timeouts (seconds) ---
    analyze_timeout_s: float = Field(60.0, gt=0, description="Per-photo analysis budget.")
    excess_match_timeout_s: float = Field(120.0, gt=0, description="Numbered-strategy overflow matching budget.")
    enhanced_match_timeout_s: float = Field(180.0, gt=0, description="Unnumbered-strategy matching budget.")
    verify_timeout_s: float = Field(180.0, gt=0, description="Verification budget.")
    naming_timeout_s: float = Field(60.0, gt=0, description="Budget per naming call (initial and retry).")

    # --- concurrency ---
    analyzer_concurrency: int = Field(3, ge=1, le=32, description="Max photo analyses in flight.")

    # --- pattern detection heuristics ---
    ratio_min: float = Field(0.8, gt=0, description="Lower photo/note ratio bound for the numbered workflow.")
    ratio_max: float = Field(1.5, gt=0, description="Upper photo/note ratio bound for the numbered workflow.")
    prefix_threshold: float = Field(0.6, ge=0, le=1, description="Share of inspected notes that must carry an ordinal prefix.")
    prefix_inspect_limit: int = Field(5, ge=1, description="How many leading notes to inspect for ordinal prefixes.")

    # --- validation ---
    low_confidence_threshold: float = Field(0.7, ge=0, le=1, description="Assignments below this confidence are warned about.")

    # --- sampling ---
    analyze_temperature: float = Field(0.1, ge=0, le=2)
    match_temperature: float = Field(0.1, ge=0, le=2)
    excess_temperature: float = Field(0.2, ge=0, le=2)
    naming_temperature: float = Field(0.3, ge=0, le=2)

    @model_validator(mode="after")
    def _check_ratio_bounds(self) -> PipelineSettings:
        if self.ratio_min > self.ratio_max:
            raise ValueError("ratio_min must not exceed ratio_max")
        return self


# ----------------------------
# Loader
# ----------------------------


@dataclass(frozen=True)
class SettingsLoader:
    """
    File-first settings loader with light env overrides.

    Responsibilities:
        - Read JSON from a file or string (both optional)
        - Validate with Pydantic
        - Apply environment overrides
    """

    env_prefix: str = "OBSBUNDLE_"

    # ---------- Public API ----------

    def load(self, path: str | Path | None = None) -> PipelineSettings:
        """
        Load settings from a JSON file. With no path, defaults are used.

        Returns:
            PipelineSettings (validated, env overrides applied).
        """
        raw: dict[str, Any] = {}
        if path is not None:
            raw = self._read_json_file(Path(path))
        cfg = self._parse_root(raw)
        return self._apply_env_overrides(cfg)

    def load_json(self, text: str) -> PipelineSettings:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON payload: {e}") from e
        if not isinstance(raw, dict):
            raise ValueError("Settings JSON must be an object.")
        cfg = self._parse_root(raw)
        return self._apply_env_overrides(cfg)

    def with_overrides(self, cfg: PipelineSettings, **overrides: Any) -> PipelineSettings:
        """
        Return a *new* PipelineSettings with the non-null overrides applied.
        The result is re-validated; the original instance is not mutated.
        """
        updates = {k: v for k, v in overrides.items() if v is not None}
        if not updates:
            return cfg
        return self._parse_root({**cfg.model_dump(), **updates})

    # ---------- Internals ----------

    def _read_json_file(self, p: Path) -> dict[str, Any]:
        if not p.exists():
            raise FileNotFoundError(f"Settings file not found: {p}")
        if p.suffix.lower() != ".json":
            raise ValueError(f"Unsupported settings format for {p.name}; only .json is supported.")
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {p}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {p} must contain a JSON object.")
        return cast(dict[str, Any], data)

    def _parse_root(self, data: dict[str, Any]) -> PipelineSettings:
        try:
            return PipelineSettings.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Settings validation failed:\n{e}") from e

    def _apply_env_overrides(self, cfg: PipelineSettings) -> PipelineSettings:
        prefix = self.env_prefix
        updates: dict[str, Any] = {}

        provider = os.getenv(f"{prefix}PROVIDER")
        if provider:
            normalized = provider.strip().lower()
            if normalized in ("mock", "openai"):
                updates["provider"] = normalized

        for key in ("model", "verify_model", "base_url"):
            val = os.getenv(f"{prefix}{key.upper()}")
            if val:
                updates[key] = val.strip()

        concurrency = os.getenv(f"{prefix}ANALYZER_CONCURRENCY")
        if concurrency:
            try:
                updates["analyzer_concurrency"] = int(concurrency)
            except ValueError:
                # Ignore bad value; keep validated default
                pass

        for key in ("ratio_min", "ratio_max", "prefix_threshold"):
            val = os.getenv(f"{prefix}{key.upper()}")
            if val:
                try:
                    updates[key] = float(val)
                except ValueError:
                    pass

        if not updates:
            return cfg
        return self._parse_root({**cfg.model_dump(), **updates})


# ----------------------------
# Convenience function
# ----------------------------


def load_settings(path: str | Path | None = None) -> PipelineSettings:
    """Convenience wrapper for one-shot callers."""
    return SettingsLoader().load(path)
