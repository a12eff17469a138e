# src/tools/__init__.py
"""
Observation Bundler — tools package

Exports only modules that live under `src/tools`:
  - vision (subpackage)        classifier providers + response decoding

Pipeline stages live in `src/core` and should be imported from there, not
re-exported here.
"""

from __future__ import annotations

from . import vision

__all__ = ["vision"]
