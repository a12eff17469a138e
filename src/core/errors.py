# src/core/errors.py
"""
Typed errors + utilities for classifier calls and pipeline invariants.

Exports
-------
- ClassifierError, ClassifierUnavailableError, ClassifierTimeoutError,
  DecodeError, InvariantBreachError
- CLASSIFIER_ERRORS
- classify_classifier_error(exc)
- classifier_error_guard()

Only the ClassifierError family is recoverable: every pipeline stage catches
CLASSIFIER_ERRORS and switches to its local fallback. InvariantBreachError is
a defect and is never caught by the pipeline.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Iterator
from contextlib import contextmanager

# =========================
# Exception types
# =========================


class ClassifierError(RuntimeError):
    """Base class for failures of the external classification/reasoning service."""


class ClassifierUnavailableError(ClassifierError):
    """Transport failure, non-2xx status, missing SDK or missing credentials."""


class ClassifierTimeoutError(ClassifierError):
    """The call exceeded its time budget and was abandoned."""


class DecodeError(ClassifierError):
    """The response text could not be decoded into the expected shape, even after repair."""

    def __init__(self, message: str, *, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class InvariantBreachError(AssertionError):
    """A local, deterministic stage produced a state its algorithm rules out."""


# Selector tuple for grouped exception handling
CLASSIFIER_ERRORS = (
    ClassifierUnavailableError,
    ClassifierTimeoutError,
    DecodeError,
)

_TIMEOUT_PATTERN = re.compile(r"(timed?\s*out|timeout|deadline)", re.IGNORECASE)

# =========================
# Classification helpers
# =========================


def classify_classifier_error(exc: BaseException) -> ClassifierError:
    """
    Map arbitrary exceptions raised by a provider to a typed ClassifierError.

    Heuristics:
      - Any ClassifierError subclass → passed through
      - asyncio/builtin TimeoutError or openai.APITimeoutError → ClassifierTimeoutError
      - openai.APIError family, OSError, ConnectionError → ClassifierUnavailableError
      - Messages hinting at a timeout → ClassifierTimeoutError
      - Fallback → ClassifierUnavailableError
    """
    if isinstance(exc, ClassifierError):
        return exc

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return ClassifierTimeoutError(str(exc) or "classifier call timed out")

    try:
        import openai

        if isinstance(exc, openai.APITimeoutError):
            return ClassifierTimeoutError(str(exc))
        if isinstance(exc, openai.APIError):
            return ClassifierUnavailableError(f"{type(exc).__name__}: {exc}")
    except ImportError:
        pass

    msg = f"{type(exc).__name__}: {exc}"
    if _TIMEOUT_PATTERN.search(msg):
        return ClassifierTimeoutError(msg)
    return ClassifierUnavailableError(msg)


@contextmanager
def classifier_error_guard() -> Iterator[None]:
    """Context manager to normalize unexpected exceptions from provider internals."""
    try:
        yield
    except CLASSIFIER_ERRORS:
        raise
    except Exception as exc:  # noqa: BLE001
        raise classify_classifier_error(exc) from exc


__all__ = [
    "ClassifierError",
    "ClassifierUnavailableError",
    "ClassifierTimeoutError",
    "DecodeError",
    "InvariantBreachError",
    "CLASSIFIER_ERRORS",
    "classify_classifier_error",
    "classifier_error_guard",
]
